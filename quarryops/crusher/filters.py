import django_filters

from .models import CrusherRun, Dispatch, RUN_STATUS_CHOICES


class CrusherRunFilter(django_filters.FilterSet):
    """Query-string filters for the crusher run list"""
    materialId = django_filters.NumberFilter(field_name='material_id')
    machineId = django_filters.NumberFilter(field_name='machine_id')
    status = django_filters.ChoiceFilter(choices=RUN_STATUS_CHOICES, method='filter_status')
    available = django_filters.BooleanFilter(method='filter_available', label='Has quantity left')
    startDate = django_filters.DateFilter(field_name='run_date', lookup_expr='date__gte')
    endDate = django_filters.DateFilter(field_name='run_date', lookup_expr='date__lte')

    class Meta:
        model = CrusherRun
        fields = ['materialId', 'machineId', 'status', 'available', 'startDate', 'endDate']

    def filter_status(self, queryset, name, value):
        # Status is derived, so filter on the annotation rather than a column
        return queryset.with_status(value)

    def filter_available(self, queryset, name, value):
        queryset = queryset.with_available()
        if value:
            return queryset.filter(available_qty__gt=0)
        return queryset.filter(available_qty__lte=0)


class DispatchFilter(django_filters.FilterSet):
    """Query-string filters for the dispatch list"""
    crusherRunId = django_filters.NumberFilter(field_name='crusher_run_id')
    salesOrderId = django_filters.NumberFilter(field_name='sales_order_id')
    purchaseOrderId = django_filters.NumberFilter(field_name='purchase_order_id')
    materialId = django_filters.NumberFilter(field_name='crusher_run__material_id')
    deliveryStatus = django_filters.ChoiceFilter(
        field_name='delivery_status', choices=Dispatch.DELIVERY_STATUS_CHOICES
    )
    vehicleNo = django_filters.CharFilter(field_name='vehicle_no', lookup_expr='icontains')
    startDate = django_filters.DateFilter(field_name='dispatch_date', lookup_expr='date__gte')
    endDate = django_filters.DateFilter(field_name='dispatch_date', lookup_expr='date__lte')

    class Meta:
        model = Dispatch
        fields = [
            'crusherRunId', 'salesOrderId', 'purchaseOrderId', 'materialId',
            'deliveryStatus', 'vehicleNo', 'startDate', 'endDate'
        ]
