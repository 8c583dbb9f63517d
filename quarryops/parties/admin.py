from django.contrib import admin
from .models import Customer, Vendor


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact', 'gst_no', 'city', 'created_at']
    list_filter = ['state', 'created_at']
    search_fields = ['name', 'contact', 'gst_no']
    ordering = ['name']


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact', 'gst_no', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'contact', 'gst_no']
    ordering = ['name']
