import django_filters

from .models import SalesOrder, PurchaseOrder


class SalesOrderFilter(django_filters.FilterSet):
    """Query-string filters for the sales order list"""
    customerId = django_filters.NumberFilter(field_name='customer_id')
    materialId = django_filters.NumberFilter(field_name='material_id')
    status = django_filters.ChoiceFilter(choices=SalesOrder.STATUS_CHOICES)
    startDate = django_filters.DateFilter(field_name='order_date', lookup_expr='date__gte')
    endDate = django_filters.DateFilter(field_name='order_date', lookup_expr='date__lte')

    class Meta:
        model = SalesOrder
        fields = ['customerId', 'materialId', 'status', 'startDate', 'endDate']


class PurchaseOrderFilter(django_filters.FilterSet):
    """Query-string filters for the purchase order list"""
    vendorId = django_filters.NumberFilter(field_name='vendor_id')
    materialId = django_filters.NumberFilter(field_name='material_id')
    status = django_filters.ChoiceFilter(choices=PurchaseOrder.STATUS_CHOICES)
    startDate = django_filters.DateFilter(field_name='order_date', lookup_expr='date__gte')
    endDate = django_filters.DateFilter(field_name='order_date', lookup_expr='date__lte')

    class Meta:
        model = PurchaseOrder
        fields = ['vendorId', 'materialId', 'status', 'startDate', 'endDate']
