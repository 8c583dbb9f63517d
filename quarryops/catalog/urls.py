from django.urls import path
from .views import material_list_create, material_detail

urlpatterns = [
    path('materials/', material_list_create, name='material-list-create'),
    path('materials/<int:pk>/', material_detail, name='material-detail'),
]
