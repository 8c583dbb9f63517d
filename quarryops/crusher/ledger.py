"""
Crusher run and dispatch ledger.

Every write that touches ``CrusherRun.dispatched_qty`` goes through this
module. Each operation runs in one database transaction and locks the
affected run rows with ``SELECT ... FOR UPDATE`` before reading the balance,
so concurrent dispatches against the same run are serialized and the sum of
dispatched quantities can never exceed what the run produced. SQLite has no
row locks; there every transaction begins IMMEDIATE (see settings) and
writers queue on the database lock instead.
"""
import logging
from collections import namedtuple
from decimal import Decimal

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from quarryops.core.exceptions import (
    CapacityExceeded, NotFoundError, ValidationError, format_quantity, get_or_not_found,
)
from quarryops.core.utils import create_audit_log
from .models import CrusherRun, Dispatch

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

ReconcileResult = namedtuple('ReconcileResult', ['run_id', 'recorded', 'actual', 'corrected'])

RUN_FIELDS = ('material', 'machine', 'input_qty', 'produced_qty', 'run_date')
DISPATCH_FIELDS = (
    'sales_order', 'purchase_order', 'dispatch_date', 'destination', 'vehicle_no', 'driver',
    'pickup_quantity', 'drop_quantity', 'delivery_status', 'delivery_duration', 'notes',
)


def _audit_value(value):
    return getattr(value, 'pk', value)


def _lock_run(run_id):
    return get_or_not_found(CrusherRun.objects.select_for_update(), run_id, 'Crusher run')


def _require_positive(quantity):
    if quantity is None or quantity <= ZERO:
        raise ValidationError('Validation failed', details={'quantity': ['Quantity must be greater than 0']})


def _check_capacity(run, quantity, already_held=ZERO):
    """Raise CapacityExceeded unless ``quantity`` fits in the locked run.

    ``already_held`` is quantity this run has already committed to the
    dispatch being edited, which becomes available again for the new value.
    """
    available = run.produced_qty - run.dispatched_qty + already_held
    if quantity > available:
        logger.warning(
            f"Dispatch rejected on run {run.pk}: requested {format_quantity(quantity)}, "
            f"available {format_quantity(available)}"
        )
        raise CapacityExceeded(available)


def _adjust_dispatched(run_id, delta):
    if delta:
        CrusherRun.objects.filter(pk=run_id).update(
            dispatched_qty=F('dispatched_qty') + delta,
            updated_at=timezone.now(),
        )


def _fill_delivery_duration(dispatch):
    """Days elapsed since dispatch, for loads marked delivered without a duration"""
    if dispatch.delivery_status == 'DELIVERED' and dispatch.delivery_duration is None:
        elapsed = timezone.now() - dispatch.dispatch_date
        dispatch.delivery_duration = max(elapsed.days, 0)


def get_dispatch(dispatch_id):
    return get_or_not_found(Dispatch.objects.with_relations(), dispatch_id, 'Dispatch')


# Runs

def create_run(data, request=None):
    """Create a crusher run. The dispatched counter always starts at zero."""
    dispatched = data.get('dispatched_qty') or ZERO
    if dispatched != ZERO:
        raise ValidationError(
            'Validation failed',
            details={'dispatchedQty': ['Dispatched quantity is maintained by dispatches and must be 0 on create']},
        )
    fields = {field: data[field] for field in RUN_FIELDS if field in data}
    with transaction.atomic():
        run = CrusherRun.objects.create(dispatched_qty=ZERO, **fields)
        create_audit_log(
            request=request,
            action='create',
            model_name='CrusherRun',
            object_id=run.id,
            object_name=run.material.name,
            object_reference=f"RUN-{run.id}",
            changes={field: _audit_value(value) for field, value in fields.items()},
        )
    logger.info(f"Crusher run {run.id} created: {run.material.name} produced {format_quantity(run.produced_qty)}")
    return run


def update_run(run_id, data, request=None):
    """Update a crusher run without letting it fall out of balance with its dispatches"""
    with transaction.atomic():
        run = _lock_run(run_id)

        if 'dispatched_qty' in data and data['dispatched_qty'] != run.dispatched_qty:
            raise ValidationError(
                'Dispatched quantity is maintained by dispatches and cannot be edited',
                details={'dispatchedQty': run.dispatched_qty},
            )

        produced = data.get('produced_qty', run.produced_qty)
        if produced < run.dispatched_qty:
            raise ValidationError(
                f'Produced quantity cannot be less than dispatched quantity ({format_quantity(run.dispatched_qty)})',
                details={'dispatchedQty': run.dispatched_qty},
            )

        changes = {}
        for field in RUN_FIELDS:
            if field not in data:
                continue
            old_value = getattr(run, field)
            new_value = data[field]
            if old_value != new_value:
                changes[field] = {'old': _audit_value(old_value), 'new': _audit_value(new_value)}
                setattr(run, field, new_value)

        if changes:
            run.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='CrusherRun',
                object_id=run.id,
                object_name=run.material.name,
                object_reference=f"RUN-{run.id}",
                changes=changes,
            )
    return run


def delete_run(run_id, request=None):
    with transaction.atomic():
        run = _lock_run(run_id)
        if run.dispatches.exists():
            raise ValidationError('Crusher run has dispatches and cannot be deleted')
        material_name = run.material.name
        run.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='CrusherRun',
            object_id=run_id,
            object_name=material_name,
            object_reference=f"RUN-{run_id}",
        )
    logger.info(f"Crusher run {run_id} deleted")


def reconcile_run(run_id, dry_run=False, user=None):
    """
    Recompute a run's dispatched counter from its dispatches.

    Returns a ReconcileResult. Drift is corrected unless ``dry_run`` is set or
    the dispatches already exceed the produced quantity, which needs a human
    to fix the dispatches first.
    """
    with transaction.atomic():
        run = _lock_run(run_id)
        actual = run.dispatches.aggregate(total=Sum('quantity'))['total'] or ZERO
        recorded = run.dispatched_qty
        if actual == recorded:
            return ReconcileResult(run.id, recorded, actual, False)

        if actual > run.produced_qty:
            logger.error(
                f"Run {run.id} dispatches total {format_quantity(actual)} which exceeds "
                f"produced {format_quantity(run.produced_qty)}; not corrected"
            )
            return ReconcileResult(run.id, recorded, actual, False)

        logger.warning(
            f"Run {run.id} dispatched counter drifted: recorded {format_quantity(recorded)}, "
            f"dispatches sum {format_quantity(actual)}"
        )
        if dry_run:
            return ReconcileResult(run.id, recorded, actual, False)

        CrusherRun.objects.filter(pk=run.pk).update(dispatched_qty=actual, updated_at=timezone.now())
        create_audit_log(
            action='run_reconcile',
            model_name='CrusherRun',
            object_id=run.id,
            object_name=run.material.name,
            object_reference=f"RUN-{run.id}",
            user=user,
            changes={'dispatched_qty': {'old': recorded, 'new': actual}},
        )
    return ReconcileResult(run.id, recorded, actual, True)


# Dispatches

def create_dispatch(crusher_run_id, quantity, request=None, **fields):
    """
    Record a dispatch against a crusher run.

    Locks the run, checks the requested quantity against what is still
    available, inserts the dispatch and increments the run's dispatched
    counter, all in one transaction. Raises NotFoundError for an unknown run
    and CapacityExceeded when the run cannot cover the quantity.
    """
    _require_positive(quantity)
    fields = {field: value for field, value in fields.items() if field in DISPATCH_FIELDS}

    with transaction.atomic():
        run = _lock_run(crusher_run_id)
        _check_capacity(run, quantity)

        dispatch = Dispatch(crusher_run=run, quantity=quantity, **fields)
        _fill_delivery_duration(dispatch)
        dispatch.save()
        _adjust_dispatched(run.pk, quantity)

        create_audit_log(
            request=request,
            action='dispatch_create',
            model_name='Dispatch',
            object_id=dispatch.id,
            object_name=dispatch.vehicle_no,
            object_reference=f"RUN-{run.id}",
            changes={
                'crusher_run': run.id,
                'quantity': quantity,
                'available_before': run.produced_qty - run.dispatched_qty,
                **{field: _audit_value(value) for field, value in fields.items()},
            },
        )

    logger.info(f"Dispatch {dispatch.id} created: {format_quantity(quantity)} from run {run.id} on {dispatch.vehicle_no}")
    return get_dispatch(dispatch.id)


def update_dispatch(dispatch_id, data, request=None):
    """
    Apply a partial update to a dispatch.

    When the quantity or the crusher run changes, the old quantity is
    released from the old run and the new quantity is consumed on the new
    run under the same capacity rule as creation. Runs are locked in
    ascending primary key order.
    """
    with transaction.atomic():
        dispatch = get_or_not_found(Dispatch.objects.select_for_update(), dispatch_id, 'Dispatch')

        old_run_id = dispatch.crusher_run_id
        old_quantity = dispatch.quantity
        new_run_id = data.get('crusher_run_id', old_run_id)
        new_quantity = data.get('quantity', old_quantity)
        _require_positive(new_quantity)

        changes = {}
        if new_run_id != old_run_id or new_quantity != old_quantity:
            runs = {
                run.pk: run
                for run in CrusherRun.objects.select_for_update()
                .filter(pk__in={old_run_id, new_run_id})
                .order_by('pk')
            }
            if new_run_id not in runs:
                raise NotFoundError('Crusher run not found')

            if new_run_id == old_run_id:
                _check_capacity(runs[new_run_id], new_quantity, already_held=old_quantity)
                _adjust_dispatched(new_run_id, new_quantity - old_quantity)
            else:
                _check_capacity(runs[new_run_id], new_quantity)
                _adjust_dispatched(old_run_id, -old_quantity)
                _adjust_dispatched(new_run_id, new_quantity)
                dispatch.crusher_run_id = new_run_id
                changes['crusher_run'] = {'old': old_run_id, 'new': new_run_id}

            if new_quantity != old_quantity:
                dispatch.quantity = new_quantity
                changes['quantity'] = {'old': old_quantity, 'new': new_quantity}

        for field in DISPATCH_FIELDS:
            if field not in data:
                continue
            old_value = getattr(dispatch, field)
            new_value = data[field]
            if old_value != new_value:
                changes[field] = {'old': _audit_value(old_value), 'new': _audit_value(new_value)}
                setattr(dispatch, field, new_value)

        if 'delivery_status' in changes:
            _fill_delivery_duration(dispatch)

        if changes:
            dispatch.save()
            create_audit_log(
                request=request,
                action='dispatch_update',
                model_name='Dispatch',
                object_id=dispatch.id,
                object_name=dispatch.vehicle_no,
                object_reference=f"RUN-{dispatch.crusher_run_id}",
                changes=changes,
            )

    return get_dispatch(dispatch.id)


def delete_dispatch(dispatch_id, request=None):
    """Delete a dispatch and release its quantity back to the run"""
    with transaction.atomic():
        dispatch = get_or_not_found(Dispatch.objects.select_for_update(), dispatch_id, 'Dispatch')
        run = _lock_run(dispatch.crusher_run_id)
        quantity = dispatch.quantity
        vehicle_no = dispatch.vehicle_no

        dispatch.delete()
        _adjust_dispatched(run.pk, -quantity)

        create_audit_log(
            request=request,
            action='dispatch_delete',
            model_name='Dispatch',
            object_id=dispatch_id,
            object_name=vehicle_no,
            object_reference=f"RUN-{run.pk}",
            changes={'crusher_run': run.pk, 'quantity': quantity},
        )
    logger.info(f"Dispatch {dispatch_id} deleted, {format_quantity(quantity)} released to run {run.pk}")
