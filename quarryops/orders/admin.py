from django.contrib import admin
from .models import SalesOrder, PurchaseOrder


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'material', 'qty', 'rate', 'status', 'order_date']
    list_filter = ['status', 'material', 'order_date']
    search_fields = ['customer__name', 'vehicle_no', 'challan_no']
    raw_id_fields = ['customer', 'material']
    date_hierarchy = 'order_date'


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'vendor', 'material', 'qty', 'rate', 'status', 'order_date']
    list_filter = ['status', 'material', 'order_date']
    search_fields = ['vendor__name']
    raw_id_fields = ['vendor', 'material']
    date_hierarchy = 'order_date'
