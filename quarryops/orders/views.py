import logging

from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from quarryops.core.exceptions import ValidationError, get_or_not_found
from quarryops.core.utils import create_audit_log, filter_queryset_or_reject
from .filters import SalesOrderFilter, PurchaseOrderFilter
from .models import SalesOrder, PurchaseOrder
from .serializers import SalesOrderSerializer, PurchaseOrderSerializer

logger = logging.getLogger(__name__)


def _order_changes(serializer):
    """Snapshot of the writable fields that were submitted, for the audit trail"""
    changes = {}
    for key, value in serializer.validated_data.items():
        changes[key] = getattr(value, 'pk', value)
    return changes


# Sales order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sales_order_list_create(request):
    """List sales orders (filterable) or create a new one"""
    if request.method == 'GET':
        queryset = SalesOrder.objects.select_related('customer', 'material').with_dispatched()
        queryset = filter_queryset_or_reject(SalesOrderFilter, request, queryset)
        serializer = SalesOrderSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = SalesOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='SalesOrder',
            object_id=order.id,
            object_name=f"Sales order for {order.customer.name}",
            object_reference=f"SO-{order.id}",
            changes=_order_changes(serializer),
        )
        logger.info(f"Sales order {order.id} created for customer {order.customer_id}")
        return Response(SalesOrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def sales_order_detail(request, pk):
    """Retrieve, update or delete a sales order"""
    order = get_or_not_found(
        SalesOrder.objects.select_related('customer', 'material').with_dispatched(), pk, 'Sales order'
    )

    if request.method == 'GET':
        return Response(SalesOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SalesOrderSerializer(order, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        order = serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='SalesOrder',
            object_id=order.id,
            object_name=f"Sales order for {order.customer.name}",
            object_reference=f"SO-{order.id}",
            changes=_order_changes(serializer),
        )
        return Response(SalesOrderSerializer(order).data)
    else:  # DELETE
        order_id = order.id
        try:
            order.delete()
        except ProtectedError:
            raise ValidationError('Sales order has dispatches and cannot be deleted')
        create_audit_log(
            request=request,
            action='delete',
            model_name='SalesOrder',
            object_id=order_id,
            object_reference=f"SO-{order_id}",
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Purchase order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_list_create(request):
    """List purchase orders (filterable) or create a new one"""
    if request.method == 'GET':
        queryset = PurchaseOrder.objects.select_related('vendor', 'material').with_dispatched()
        queryset = filter_queryset_or_reject(PurchaseOrderFilter, request, queryset)
        serializer = PurchaseOrderSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = PurchaseOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='PurchaseOrder',
            object_id=order.id,
            object_name=f"Purchase order from {order.vendor.name}",
            object_reference=f"PO-{order.id}",
            changes=_order_changes(serializer),
        )
        logger.info(f"Purchase order {order.id} created for vendor {order.vendor_id}")
        return Response(PurchaseOrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_order_detail(request, pk):
    """Retrieve, update or delete a purchase order"""
    order = get_or_not_found(
        PurchaseOrder.objects.select_related('vendor', 'material').with_dispatched(), pk, 'Purchase order'
    )

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = PurchaseOrderSerializer(order, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        order = serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='PurchaseOrder',
            object_id=order.id,
            object_name=f"Purchase order from {order.vendor.name}",
            object_reference=f"PO-{order.id}",
            changes=_order_changes(serializer),
        )
        return Response(PurchaseOrderSerializer(order).data)
    else:  # DELETE
        order_id = order.id
        try:
            order.delete()
        except ProtectedError:
            raise ValidationError('Purchase order has dispatches and cannot be deleted')
        create_audit_log(
            request=request,
            action='delete',
            model_name='PurchaseOrder',
            object_id=order_id,
            object_reference=f"PO-{order_id}",
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
