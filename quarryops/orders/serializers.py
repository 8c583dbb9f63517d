from decimal import Decimal

from django.db.models import Sum
from rest_framework import serializers

from quarryops.catalog.models import Material
from quarryops.parties.models import Customer, Vendor
from .models import SalesOrder, PurchaseOrder

QTY_PLACES = Decimal('0.001')


class OrderSerializerMixin:
    """Shared validation and the read-only dispatched aggregate"""

    def validate_qty(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than 0')
        return value

    def validate_rate(self, value):
        if value < 0:
            raise serializers.ValidationError('Rate cannot be negative')
        return value

    def get_dispatchedQty(self, obj):
        total = getattr(obj, 'dispatched_total', None)
        if total is None:
            total = obj.dispatches.aggregate(total=Sum('quantity'))['total'] or Decimal('0')
        return Decimal(total).quantize(QTY_PLACES)


class SalesOrderSerializer(OrderSerializerMixin, serializers.ModelSerializer):
    customerId = serializers.PrimaryKeyRelatedField(source='customer', queryset=Customer.objects.all())
    customerName = serializers.CharField(source='customer.name', read_only=True)
    materialId = serializers.PrimaryKeyRelatedField(source='material', queryset=Material.objects.all())
    materialName = serializers.CharField(source='material.name', read_only=True)
    uom = serializers.CharField(source='material.uom', read_only=True)
    vehicleNo = serializers.CharField(source='vehicle_no', required=False, allow_blank=True, allow_null=True, max_length=50)
    challanNo = serializers.CharField(source='challan_no', required=False, allow_blank=True, allow_null=True, max_length=50)
    orderDate = serializers.DateTimeField(source='order_date', required=False)
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)
    dispatchedQty = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = SalesOrder
        fields = [
            'id', 'customerId', 'customerName', 'materialId', 'materialName', 'uom',
            'qty', 'rate', 'amount', 'vehicleNo', 'challanNo', 'orderDate', 'status',
            'dispatchedQty', 'createdAt', 'updatedAt'
        ]


class PurchaseOrderSerializer(OrderSerializerMixin, serializers.ModelSerializer):
    vendorId = serializers.PrimaryKeyRelatedField(source='vendor', queryset=Vendor.objects.all())
    vendorName = serializers.CharField(source='vendor.name', read_only=True)
    materialId = serializers.PrimaryKeyRelatedField(source='material', queryset=Material.objects.all())
    materialName = serializers.CharField(source='material.name', read_only=True)
    uom = serializers.CharField(source='material.uom', read_only=True)
    orderDate = serializers.DateTimeField(source='order_date', required=False)
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)
    dispatchedQty = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'vendorId', 'vendorName', 'materialId', 'materialName', 'uom',
            'qty', 'rate', 'amount', 'orderDate', 'status', 'dispatchedQty',
            'createdAt', 'updatedAt'
        ]
