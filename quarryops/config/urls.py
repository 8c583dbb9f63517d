"""
URL configuration for the quarryops project.

Every API app is mounted under ``/api/``; the Django admin stays at ``/admin/``.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "QuarryOps Admin Panel"
admin.site.site_title = "QuarryOps Admin Portal"
admin.site.index_title = "Crusher, dispatch and order administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('quarryops.core.urls')),
    path('api/', include('quarryops.catalog.urls')),
    path('api/', include('quarryops.parties.urls')),
    path('api/', include('quarryops.orders.urls')),
    path('api/', include('quarryops.crusher.urls')),
    path('api/', include('quarryops.reports.urls')),
]
