from django.urls import path
from .views import (
    machine_list_create, machine_detail,
    site_list_create, site_detail,
    run_list_create, run_detail,
    dispatch_list_create, dispatch_detail,
)

urlpatterns = [
    # Machine endpoints
    path('crusher/machines/', machine_list_create, name='crusher-machine-list-create'),
    path('crusher/machines/<int:pk>/', machine_detail, name='crusher-machine-detail'),

    # Site endpoints
    path('crusher/sites/', site_list_create, name='crusher-site-list-create'),
    path('crusher/sites/<int:pk>/', site_detail, name='crusher-site-detail'),

    # Run endpoints
    path('crusher/runs/', run_list_create, name='crusher-run-list-create'),
    path('crusher/runs/<int:pk>/', run_detail, name='crusher-run-detail'),

    # Dispatch endpoints
    path('crusher/dispatches/', dispatch_list_create, name='dispatch-list-create'),
    path('crusher/dispatches/<int:pk>/', dispatch_detail, name='dispatch-detail'),
]
