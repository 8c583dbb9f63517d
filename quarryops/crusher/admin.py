from django.contrib import admin
from .models import CrusherMachine, CrusherRun, CrusherSite, Dispatch


@admin.register(CrusherMachine)
class CrusherMachineAdmin(admin.ModelAdmin):
    list_display = ['name', 'status', 'last_maintenance_date']
    list_filter = ['status']
    search_fields = ['name']


@admin.register(CrusherSite)
class CrusherSiteAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'location', 'created_at']
    search_fields = ['name', 'owner', 'location']
    filter_horizontal = ['materials']


@admin.register(CrusherRun)
class CrusherRunAdmin(admin.ModelAdmin):
    list_display = ['id', 'material', 'machine', 'input_qty', 'produced_qty', 'dispatched_qty', 'status', 'run_date']
    list_filter = ['material', 'machine', 'run_date']
    # Owned by the dispatch ledger
    readonly_fields = ['dispatched_qty', 'created_at', 'updated_at']
    date_hierarchy = 'run_date'


@admin.register(Dispatch)
class DispatchAdmin(admin.ModelAdmin):
    list_display = ['id', 'crusher_run', 'vehicle_no', 'quantity', 'destination', 'delivery_status', 'dispatch_date']
    list_filter = ['delivery_status', 'dispatch_date']
    search_fields = ['vehicle_no', 'destination', 'driver']
    raw_id_fields = ['crusher_run', 'sales_order', 'purchase_order']
    # Quantity and run changes must go through the API so the run balance follows
    readonly_fields = ['crusher_run', 'quantity', 'created_at', 'updated_at']
    date_hierarchy = 'dispatch_date'

    def has_delete_permission(self, request, obj=None):
        return False
