from django.urls import path
from . import views

urlpatterns = [
    path('reports/deliveries/', views.delivery_report, name='delivery-report'),
    path('reports/kpis/', views.dashboard_kpis, name='dashboard-kpis'),
    path('reports/weekly/', views.weekly_summary, name='weekly-summary'),
]
