from rest_framework import serializers

from quarryops.catalog.models import Material
from quarryops.catalog.serializers import MaterialSerializer
from quarryops.orders.models import SalesOrder, PurchaseOrder
from .models import CrusherMachine, CrusherRun, CrusherSite, Dispatch


def _quantity_field(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=3, **kwargs)


class CrusherMachineSerializer(serializers.ModelSerializer):
    lastMaintenanceDate = serializers.DateTimeField(
        source='last_maintenance_date', required=False, allow_null=True
    )
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = CrusherMachine
        fields = ['id', 'name', 'status', 'lastMaintenanceDate', 'createdAt', 'updatedAt']


class CrusherSiteSerializer(serializers.ModelSerializer):
    """Sites are written with ``materialIds`` and read back with the materials embedded"""
    materialIds = serializers.PrimaryKeyRelatedField(
        source='materials', queryset=Material.objects.all(), many=True, required=False
    )
    materials = MaterialSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = CrusherSite
        fields = ['id', 'name', 'owner', 'location', 'materialIds', 'materials', 'createdAt', 'updatedAt']


class CrusherRunSerializer(serializers.ModelSerializer):
    """Input validation and output shape of crusher runs.

    ``status`` and ``availableQuantity`` are derived and read-only; a status
    sent by the client is ignored.
    """
    materialId = serializers.PrimaryKeyRelatedField(source='material', queryset=Material.objects.all())
    materialName = serializers.CharField(source='material.name', read_only=True)
    uom = serializers.CharField(source='material.uom', read_only=True)
    machineId = serializers.PrimaryKeyRelatedField(source='machine', queryset=CrusherMachine.objects.all())
    machineName = serializers.CharField(source='machine.name', read_only=True)
    inputQty = _quantity_field(source='input_qty')
    producedQty = _quantity_field(source='produced_qty')
    dispatchedQty = _quantity_field(source='dispatched_qty', required=False)
    availableQuantity = _quantity_field(source='available_quantity', read_only=True)
    status = serializers.CharField(read_only=True)
    runDate = serializers.DateTimeField(source='run_date')
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = CrusherRun
        fields = [
            'id', 'materialId', 'materialName', 'uom', 'machineId', 'machineName',
            'inputQty', 'producedQty', 'dispatchedQty', 'availableQuantity', 'status',
            'runDate', 'createdAt', 'updatedAt'
        ]

    def validate_inputQty(self, value):
        if value <= 0:
            raise serializers.ValidationError('Input quantity must be greater than 0')
        return value

    def validate_producedQty(self, value):
        if value <= 0:
            raise serializers.ValidationError('Produced quantity must be greater than 0')
        return value

    def validate_dispatchedQty(self, value):
        if value < 0:
            raise serializers.ValidationError('Dispatched quantity cannot be negative')
        return value


class CrusherRunSummarySerializer(serializers.ModelSerializer):
    """Run fields embedded in dispatch responses"""
    materialId = serializers.IntegerField(source='material_id', read_only=True)
    materialName = serializers.CharField(source='material.name', read_only=True)
    uom = serializers.CharField(source='material.uom', read_only=True)
    machineName = serializers.CharField(source='machine.name', read_only=True)
    producedQty = _quantity_field(source='produced_qty', read_only=True)
    dispatchedQty = _quantity_field(source='dispatched_qty', read_only=True)
    availableQuantity = _quantity_field(source='available_quantity', read_only=True)
    status = serializers.CharField(read_only=True)
    runDate = serializers.DateTimeField(source='run_date', read_only=True)

    class Meta:
        model = CrusherRun
        fields = [
            'id', 'materialId', 'materialName', 'uom', 'machineName', 'producedQty',
            'dispatchedQty', 'availableQuantity', 'status', 'runDate'
        ]


class DispatchSerializer(serializers.ModelSerializer):
    """Output shape of a dispatch with its run and counterparty joined"""
    crusherRunId = serializers.IntegerField(source='crusher_run_id', read_only=True)
    crusherRun = CrusherRunSummarySerializer(source='crusher_run', read_only=True)
    salesOrderId = serializers.IntegerField(source='sales_order_id', read_only=True)
    customerName = serializers.CharField(source='sales_order.customer.name', read_only=True, default=None)
    purchaseOrderId = serializers.IntegerField(source='purchase_order_id', read_only=True)
    vendorName = serializers.CharField(source='purchase_order.vendor.name', read_only=True, default=None)
    dispatchDate = serializers.DateTimeField(source='dispatch_date', read_only=True)
    quantity = _quantity_field(read_only=True)
    vehicleNo = serializers.CharField(source='vehicle_no', read_only=True)
    pickupQuantity = _quantity_field(source='pickup_quantity', read_only=True)
    dropQuantity = _quantity_field(source='drop_quantity', read_only=True)
    difference = _quantity_field(read_only=True)
    deliveryStatus = serializers.CharField(source='delivery_status', read_only=True)
    deliveryDuration = serializers.IntegerField(source='delivery_duration', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Dispatch
        fields = [
            'id', 'crusherRunId', 'crusherRun', 'salesOrderId', 'customerName',
            'purchaseOrderId', 'vendorName', 'dispatchDate', 'quantity', 'destination',
            'vehicleNo', 'driver', 'pickupQuantity', 'dropQuantity', 'difference',
            'deliveryStatus', 'deliveryDuration', 'notes', 'createdAt', 'updatedAt'
        ]
        read_only_fields = fields


class DispatchWriteSerializer(serializers.Serializer):
    """
    Validates dispatch create / update bodies.

    ``crusherRunId`` is only checked for shape here; the ledger resolves it
    under a row lock and answers 404 when it does not exist. Order ids must
    resolve or the request is rejected with 400.
    """
    crusherRunId = serializers.IntegerField(source='crusher_run_id')
    salesOrderId = serializers.PrimaryKeyRelatedField(
        source='sales_order', queryset=SalesOrder.objects.all(), required=False, allow_null=True
    )
    purchaseOrderId = serializers.PrimaryKeyRelatedField(
        source='purchase_order', queryset=PurchaseOrder.objects.all(), required=False, allow_null=True
    )
    dispatchDate = serializers.DateTimeField(source='dispatch_date')
    quantity = _quantity_field()
    destination = serializers.CharField(max_length=255)
    vehicleNo = serializers.CharField(source='vehicle_no', max_length=50)
    driver = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    pickupQuantity = _quantity_field(source='pickup_quantity', required=False, allow_null=True)
    dropQuantity = _quantity_field(source='drop_quantity', required=False, allow_null=True)
    deliveryStatus = serializers.ChoiceField(
        source='delivery_status', choices=Dispatch.DELIVERY_STATUS_CHOICES, required=False
    )
    deliveryDuration = serializers.IntegerField(
        source='delivery_duration', required=False, allow_null=True, min_value=0
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than 0')
        return value

    def validate_pickupQuantity(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError('Pickup quantity cannot be negative')
        return value

    def validate_dropQuantity(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError('Drop quantity cannot be negative')
        return value
