import logging
from datetime import datetime, timedelta
from decimal import Decimal

from django.db.models import Count, DecimalField, F, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from quarryops.core.exceptions import ValidationError
from quarryops.crusher.models import Dispatch
from quarryops.orders.models import PurchaseOrder

logger = logging.getLogger(__name__)

REPORT_VIEWS = ('combined', 'sales', 'purchases')
AMOUNT_PLACES = Decimal('0.01')


def _parse_date(value, param):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(
            'Invalid date parameter', details={param: ['Date must be in YYYY-MM-DD format']}
        ) from None


def _report_period(request, default_days=30):
    """Resolve (startDate, endDate) from the query string; both days inclusive"""
    today = timezone.localdate()
    start = request.query_params.get('startDate')
    end = request.query_params.get('endDate')

    date_from = _parse_date(start, 'startDate') if start else today - timedelta(days=default_days)
    date_to = _parse_date(end, 'endDate') if end else today

    if date_from > date_to:
        raise ValidationError(
            'Invalid date range', details={'startDate': ['startDate must be on or before endDate']}
        )
    return date_from, date_to


def _number(value):
    return float(value) if value is not None else None


def _delivery_row(dispatch, row_type, order, counterparty):
    amount = (order.rate * dispatch.quantity).quantize(AMOUNT_PLACES)
    run = dispatch.crusher_run
    return {
        'dispatchId': dispatch.id,
        'type': row_type,
        'orderId': order.id,
        'counterparty': counterparty.name,
        'crusherRunId': run.id,
        'material': run.material.name,
        'uom': run.material.uom,
        'dispatchDate': timezone.localtime(dispatch.dispatch_date).isoformat(),
        'vehicleNo': dispatch.vehicle_no,
        'driver': dispatch.driver,
        'destination': dispatch.destination,
        'quantity': _number(dispatch.quantity),
        'pickupQuantity': _number(dispatch.pickup_quantity),
        'dropQuantity': _number(dispatch.drop_quantity),
        'difference': _number(dispatch.difference),
        'rate': _number(order.rate),
        'amount': _number(amount),
        'deliveryStatus': dispatch.delivery_status,
        'deliveryDuration': dispatch.delivery_duration,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def delivery_report(request):
    """
    Dispatches joined with their orders, one row per (dispatch, order).

    ``view`` selects sales rows, purchase rows or both (default). A dispatch
    linked to both a sales and a purchase order appears once per order in the
    combined view; dispatches with no order are not reported.
    """
    date_from, date_to = _report_period(request)
    report_view = request.query_params.get('view', 'combined').lower()
    if report_view not in REPORT_VIEWS:
        raise ValidationError(
            'Invalid report view', details={'view': [f"Must be one of: {', '.join(REPORT_VIEWS)}"]}
        )

    dispatches = Dispatch.objects.with_relations().filter(
        dispatch_date__date__gte=date_from,
        dispatch_date__date__lte=date_to,
    ).order_by('dispatch_date', 'id')

    include_sales = report_view in ('combined', 'sales')
    include_purchases = report_view in ('combined', 'purchases')
    if report_view == 'sales':
        dispatches = dispatches.filter(sales_order__isnull=False)
    elif report_view == 'purchases':
        dispatches = dispatches.filter(purchase_order__isnull=False)

    rows = []
    totals = {
        'SALE': {'count': 0, 'quantity': Decimal('0'), 'amount': Decimal('0')},
        'PURCHASE': {'count': 0, 'quantity': Decimal('0'), 'amount': Decimal('0')},
    }
    for dispatch in dispatches:
        linked = []
        if include_sales and dispatch.sales_order_id:
            linked.append(('SALE', dispatch.sales_order, dispatch.sales_order.customer))
        if include_purchases and dispatch.purchase_order_id:
            linked.append(('PURCHASE', dispatch.purchase_order, dispatch.purchase_order.vendor))
        for row_type, order, counterparty in linked:
            rows.append(_delivery_row(dispatch, row_type, order, counterparty))
            totals[row_type]['count'] += 1
            totals[row_type]['quantity'] += dispatch.quantity
            totals[row_type]['amount'] += order.rate * dispatch.quantity

    delivered = sum(1 for row in rows if row['deliveryStatus'] == 'DELIVERED')

    logger.debug(f"Delivery report {date_from}..{date_to} view={report_view}: {len(rows)} rows")

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': date_to.isoformat(),
            'view': report_view,
        },
        'summary': {
            'totalRows': len(rows),
            'delivered': delivered,
            'pending': len(rows) - delivered,
            'salesCount': totals['SALE']['count'],
            'salesQuantity': float(totals['SALE']['quantity']),
            'salesAmount': float(totals['SALE']['amount'].quantize(AMOUNT_PLACES)),
            'purchaseCount': totals['PURCHASE']['count'],
            'purchaseQuantity': float(totals['PURCHASE']['quantity']),
            'purchaseAmount': float(totals['PURCHASE']['amount'].quantize(AMOUNT_PLACES)),
        },
        'deliveries': rows,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_kpis(request):
    """Headline numbers for the dashboard"""
    today = timezone.localdate()
    since = today - timedelta(days=30)

    todays = Dispatch.objects.filter(dispatch_date__date=today).aggregate(
        quantity=Sum('quantity'),
        count=Count('id'),
    )

    pending_purchases = PurchaseOrder.objects.filter(status='PENDING').count()

    recent = Dispatch.objects.filter(dispatch_date__date__gte=since, dispatch_date__date__lte=today)

    weighed = recent.filter(pickup_quantity__isnull=False, drop_quantity__isnull=False).aggregate(
        pickup=Sum('pickup_quantity'),
        variance=Sum(F('drop_quantity') - F('pickup_quantity'),
                     output_field=DecimalField(max_digits=14, decimal_places=3)),
    )
    variance_pct = None
    if weighed['pickup']:
        variance_pct = round(float(weighed['variance'] / weighed['pickup'] * 100), 2)

    top = recent.values(
        'crusher_run__material_id', 'crusher_run__material__name', 'crusher_run__material__uom'
    ).annotate(total=Sum('quantity')).order_by('-total').first()
    top_material = None
    if top:
        top_material = {
            'id': top['crusher_run__material_id'],
            'name': top['crusher_run__material__name'],
            'uom': top['crusher_run__material__uom'],
            'quantity': float(top['total']),
        }

    return Response({
        'date': today.isoformat(),
        'todaysDispatch': float(todays['quantity'] or Decimal('0')),
        'todaysDispatchCount': todays['count'],
        'pendingPurchases': pending_purchases,
        'variancePct': variance_pct,
        'topMaterial': top_material,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def weekly_summary(request):
    """Quantity sold and purchased per day over the last 7 days (today included)"""
    today = timezone.localdate()
    date_from = today - timedelta(days=6)

    daily = Dispatch.objects.filter(
        dispatch_date__date__gte=date_from,
        dispatch_date__date__lte=today,
    ).annotate(
        day=TruncDate('dispatch_date')
    ).values('day').annotate(
        sold=Sum('quantity', filter=Q(sales_order__isnull=False)),
        purchased=Sum('quantity', filter=Q(purchase_order__isnull=False)),
    ).order_by('day')
    by_day = {row['day']: row for row in daily}

    days = []
    for offset in range(7):
        day = date_from + timedelta(days=offset)
        row = by_day.get(day, {})
        days.append({
            'date': day.isoformat(),
            'day': day.strftime('%a'),
            'sold': float(row.get('sold') or 0),
            'purchased': float(row.get('purchased') or 0),
        })

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': today.isoformat(),
        },
        'days': days,
    })
