"""
Test suite for the crusher module
Tests: run status, dispatch ledger (capacity, edits, deletes), run rules, machines, sites, reconciliation
"""
import threading
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.db import connection
from django.db.models import Sum
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework import status

from quarryops.catalog.models import Material
from quarryops.core.exceptions import CapacityExceeded
from quarryops.core.models import AuditLog
from quarryops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from quarryops.crusher import ledger
from quarryops.crusher.models import CrusherRun, CrusherSite, Dispatch, run_status

RUNS_URL = '/api/crusher/runs/'
DISPATCHES_URL = '/api/crusher/dispatches/'
MACHINES_URL = '/api/crusher/machines/'
SITES_URL = '/api/crusher/sites/'


def dispatch_payload(run_id, quantity, **extra):
    payload = {
        'crusherRunId': run_id,
        'quantity': quantity,
        'destination': 'Whitefield site',
        'vehicleNo': 'KA05AB1234',
        'dispatchDate': timezone.now().isoformat(),
    }
    payload.update(extra)
    return payload


class RunStatusTests(TestCase):
    """Test the derived run status"""

    def test_nothing_dispatched_is_pending(self):
        self.assertEqual(run_status(Decimal('100'), Decimal('0')), 'PENDING')

    def test_some_dispatched_is_partial(self):
        self.assertEqual(run_status(Decimal('100'), Decimal('0.001')), 'PARTIALLY_DISPATCHED')
        self.assertEqual(run_status(Decimal('100'), Decimal('99.999')), 'PARTIALLY_DISPATCHED')

    def test_everything_dispatched_is_full(self):
        self.assertEqual(run_status(Decimal('100'), Decimal('100')), 'FULLY_DISPATCHED')

    def test_status_follows_dispatches(self):
        run = TestDataFactory.create_run(produced_qty=Decimal('10'))
        self.assertEqual(run.status, 'PENDING')
        TestDataFactory.create_dispatch(run, Decimal('4'))
        self.assertEqual(run.status, 'PARTIALLY_DISPATCHED')
        TestDataFactory.create_dispatch(run, Decimal('6'))
        self.assertEqual(run.status, 'FULLY_DISPATCHED')

    def test_queryset_annotation_matches_property(self):
        pending = TestDataFactory.create_run(produced_qty=Decimal('10'))
        partial = TestDataFactory.create_run(produced_qty=Decimal('10'))
        full = TestDataFactory.create_run(produced_qty=Decimal('10'))
        TestDataFactory.create_dispatch(partial, Decimal('2.5'))
        TestDataFactory.create_dispatch(full, Decimal('10'))

        annotated = {run.pk: run for run in CrusherRun.objects.with_available()}
        self.assertEqual(annotated[pending.pk].current_status, 'PENDING')
        self.assertEqual(annotated[partial.pk].current_status, 'PARTIALLY_DISPATCHED')
        self.assertEqual(annotated[full.pk].current_status, 'FULLY_DISPATCHED')
        self.assertEqual(annotated[partial.pk].available_qty, Decimal('7.5'))


class DispatchCreateTests(TestCase):
    """Test dispatch creation against run capacity"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.run = TestDataFactory.create_run(produced_qty=Decimal('100'))
        TestDataFactory.create_dispatch(self.run, Decimal('80'))

    def test_dispatch_over_capacity_rejected(self):
        """100 produced, 80 dispatched: 21 more must be refused"""
        response = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, '21'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot dispatch more than available quantity (20)')
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('80'))
        self.assertEqual(self.run.dispatches.count(), 1)

    def test_dispatch_exactly_available(self):
        response = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, '20'))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('100'))
        self.assertEqual(self.run.available_quantity, Decimal('0'))
        self.assertEqual(self.run.status, 'FULLY_DISPATCHED')
        self.assertEqual(response.data['crusherRun']['dispatchedQty'], Decimal('100'))
        self.assertEqual(response.data['crusherRun']['status'], 'FULLY_DISPATCHED')

    def test_zero_and_negative_quantity_rejected(self):
        for quantity in ('0', '-5', '-0.001'):
            response = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, quantity))
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data['error'], 'Validation failed')
            self.assertIn('quantity', response.data['details'])
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('80'))

    def test_missing_required_fields(self):
        response = self.client.post(DISPATCHES_URL, {'crusherRunId': self.run.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('quantity', 'destination', 'vehicleNo', 'dispatchDate'):
            self.assertIn(field, response.data['details'])

    def test_unknown_run_is_not_found(self):
        response = self.client.post(DISPATCHES_URL, dispatch_payload(999999, '1'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Crusher run not found'})

    def test_unknown_sales_order_rejected(self):
        response = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, '1', salesOrderId=999999))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('salesOrderId', response.data['details'])

    def test_invalid_delivery_status_rejected(self):
        response = self.client.post(
            DISPATCHES_URL, dispatch_payload(self.run.id, '1', deliveryStatus='LOST')
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('deliveryStatus', response.data['details'])

    def test_negative_weights_rejected(self):
        response = self.client.post(
            DISPATCHES_URL, dispatch_payload(self.run.id, '1', pickupQuantity='-1', deliveryDuration=-2)
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('pickupQuantity', response.data['details'])
        self.assertIn('deliveryDuration', response.data['details'])

    def test_dispatch_with_orders_joins_counterparties(self):
        sales_order = TestDataFactory.create_sales_order(material=self.run.material)
        response = self.client.post(
            DISPATCHES_URL,
            dispatch_payload(self.run.id, '5', salesOrderId=sales_order.id, driver='Ramesh'),
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['salesOrderId'], sales_order.id)
        self.assertEqual(response.data['customerName'], sales_order.customer.name)
        self.assertIsNone(response.data['purchaseOrderId'])
        self.assertEqual(response.data['crusherRun']['materialName'], self.run.material.name)
        self.assertEqual(response.data['driver'], 'Ramesh')
        self.assertEqual(response.data['deliveryStatus'], 'PENDING')

    def test_dispatch_is_audited(self):
        response = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, '5'))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        log = AuditLog.objects.get(action='dispatch_create', object_id=str(response.data['id']))
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.object_reference, f'RUN-{self.run.id}')
        self.assertEqual(Decimal(str(log.changes['quantity'])), Decimal('5'))

    def test_fetching_dispatch_is_idempotent(self):
        created = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, '5'))
        url = f"{DISPATCHES_URL}{created.data['id']}/"
        first = self.client.get(url)
        second = self.client.get(url)
        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data, second.data)

    def test_unknown_dispatch_is_not_found(self):
        response = self.client.get(f'{DISPATCHES_URL}999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Dispatch not found'})

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, '1'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_ledger_raises_capacity_exceeded(self):
        with self.assertRaises(CapacityExceeded) as ctx:
            ledger.create_dispatch(self.run.id, Decimal('20.001'), destination='Yard', vehicle_no='KA01')
        self.assertEqual(ctx.exception.available, Decimal('20'))


class EndToEndScenarioTests(TestCase):
    """M.SAND produced 95 MT, dispatched in two loads"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.machine = TestDataFactory.create_machine(name='VSI 1')

    def test_msand_scenario(self):
        material = self.client.post('/api/materials/', {'name': 'M.SAND', 'uom': 'MT'})
        self.assertEqual(material.status_code, status.HTTP_201_CREATED)

        run = self.client.post(RUNS_URL, {
            'materialId': material.data['id'],
            'machineId': self.machine.id,
            'runDate': '2025-03-01T06:30:00Z',
            'inputQty': 100,
            'producedQty': 95,
            'dispatchedQty': 0,
        })
        self.assertEqual(run.status_code, status.HTTP_201_CREATED)
        self.assertEqual(run.data['status'], 'PENDING')
        run_url = f"{RUNS_URL}{run.data['id']}/"

        first = self.client.post(DISPATCHES_URL, dispatch_payload(run.data['id'], 35.203))
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)

        current = self.client.get(run_url)
        self.assertEqual(current.data['dispatchedQty'], Decimal('35.203'))
        self.assertEqual(current.data['availableQuantity'], Decimal('59.797'))
        self.assertEqual(current.data['status'], 'PARTIALLY_DISPATCHED')

        second = self.client.post(DISPATCHES_URL, dispatch_payload(run.data['id'], 60))
        self.assertEqual(second.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(second.data['error'], 'Cannot dispatch more than available quantity (59.797)')

        unchanged = self.client.get(run_url)
        self.assertEqual(unchanged.data['dispatchedQty'], Decimal('35.203'))
        self.assertEqual(unchanged.data['availableQuantity'], Decimal('59.797'))
        self.assertEqual(Dispatch.objects.filter(crusher_run_id=run.data['id']).count(), 1)


class DispatchEditTests(TestCase):
    """Test dispatch updates and deletes keep the run balance in step"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.run = TestDataFactory.create_run(produced_qty=Decimal('50'))
        self.other_run = TestDataFactory.create_run(produced_qty=Decimal('30'))
        response = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, '20'))
        self.dispatch_url = f"{DISPATCHES_URL}{response.data['id']}/"

    def assertBalanced(self):
        for run in CrusherRun.objects.all():
            total = run.dispatches.aggregate(total=Sum('quantity'))['total'] or Decimal('0')
            self.assertEqual(run.dispatched_qty, total)
            self.assertLessEqual(run.dispatched_qty, run.produced_qty)
            self.assertGreaterEqual(run.dispatched_qty, Decimal('0'))

    def test_increase_quantity_within_capacity(self):
        response = self.client.patch(self.dispatch_url, {'quantity': '50'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('50'))
        self.assertBalanced()

    def test_increase_quantity_over_capacity_rejected(self):
        response = self.client.patch(self.dispatch_url, {'quantity': '50.5'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot dispatch more than available quantity (50)')
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('20'))
        self.assertBalanced()

    def test_decrease_quantity_releases_capacity(self):
        response = self.client.patch(self.dispatch_url, {'quantity': '5'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('5'))
        self.assertBalanced()

    def test_zero_quantity_on_update_rejected(self):
        response = self.client.patch(self.dispatch_url, {'quantity': '0'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertBalanced()

    def test_move_to_other_run(self):
        response = self.client.patch(self.dispatch_url, {'crusherRunId': self.other_run.id, 'quantity': '25'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['crusherRunId'], self.other_run.id)
        self.run.refresh_from_db()
        self.other_run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('0'))
        self.assertEqual(self.other_run.dispatched_qty, Decimal('25'))
        self.assertBalanced()

    def test_move_to_run_without_capacity_rejected(self):
        response = self.client.patch(self.dispatch_url, {'crusherRunId': self.other_run.id, 'quantity': '31'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot dispatch more than available quantity (30)')
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('20'))
        self.assertBalanced()

    def test_move_to_unknown_run_not_found(self):
        response = self.client.patch(self.dispatch_url, {'crusherRunId': 999999})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Crusher run not found')
        self.assertBalanced()

    def test_delivery_fields_update_freely(self):
        response = self.client.patch(self.dispatch_url, {
            'deliveryStatus': 'IN_TRANSIT',
            'pickupQuantity': '20.150',
            'dropQuantity': '19.900',
            'notes': 'Weighbridge slip 442',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deliveryStatus'], 'IN_TRANSIT')
        self.assertEqual(response.data['difference'], Decimal('-0.250'))
        # Any order of statuses is accepted
        response = self.client.patch(self.dispatch_url, {'deliveryStatus': 'PENDING'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertBalanced()

    def test_delivered_without_duration_is_filled(self):
        dispatch = Dispatch.objects.get(crusher_run=self.run)
        dispatch.dispatch_date = timezone.now() - timedelta(days=3, hours=2)
        dispatch.save(update_fields=['dispatch_date'])

        response = self.client.patch(self.dispatch_url, {'deliveryStatus': 'DELIVERED'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deliveryDuration'], 3)

    def test_delivered_with_duration_is_kept(self):
        response = self.client.patch(self.dispatch_url, {'deliveryStatus': 'DELIVERED', 'deliveryDuration': 1})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deliveryDuration'], 1)

    def test_delete_releases_quantity(self):
        response = self.client.delete(self.dispatch_url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('0'))
        self.assertEqual(self.run.status, 'PENDING')
        self.assertTrue(AuditLog.objects.filter(action='dispatch_delete').exists())
        self.assertBalanced()

    def test_put_not_allowed(self):
        response = self.client.put(self.dispatch_url, dispatch_payload(self.run.id, '1'))
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_sequence_of_operations_stays_balanced(self):
        ids = []
        for quantity in ('5', '7.5', '10', '100'):
            response = self.client.post(DISPATCHES_URL, dispatch_payload(self.run.id, quantity))
            if response.status_code == status.HTTP_201_CREATED:
                ids.append(response.data['id'])
        self.client.patch(f'{DISPATCHES_URL}{ids[0]}/', {'quantity': '1'})
        self.client.patch(f'{DISPATCHES_URL}{ids[1]}/', {'crusherRunId': self.other_run.id})
        self.client.delete(f'{DISPATCHES_URL}{ids[2]}/')
        self.client.post(DISPATCHES_URL, dispatch_payload(self.other_run.id, '40'))
        self.assertBalanced()


class CrusherRunApiTests(TestCase):
    """Test crusher run endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_material(name='20MM')
        self.machine = TestDataFactory.create_machine(name='Jaw crusher 1')

    def test_create_run(self):
        response = self.client.post(RUNS_URL, {
            'materialId': self.material.id,
            'machineId': self.machine.id,
            'inputQty': '120',
            'producedQty': '130',
            'runDate': '2025-01-15T08:00:00Z',
            'status': 'FULLY_DISPATCHED',
        })
        # Yield above 100% is accepted and a client status is ignored
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertEqual(response.data['dispatchedQty'], Decimal('0'))
        self.assertEqual(response.data['availableQuantity'], Decimal('130'))
        self.assertEqual(response.data['machineName'], 'Jaw crusher 1')
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='CrusherRun').exists())

    def test_create_run_with_dispatched_rejected(self):
        response = self.client.post(RUNS_URL, {
            'materialId': self.material.id, 'machineId': self.machine.id, 'runDate': '2025-01-15T08:00:00Z',
            'inputQty': '10', 'producedQty': '10', 'dispatchedQty': '5',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('dispatchedQty', response.data['details'])
        self.assertFalse(CrusherRun.objects.exists())

    def test_create_run_requires_positive_quantities(self):
        response = self.client.post(RUNS_URL, {
            'materialId': self.material.id, 'inputQty': '0', 'producedQty': '-1',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('inputQty', response.data['details'])
        self.assertIn('producedQty', response.data['details'])

    def test_create_run_unknown_material(self):
        response = self.client.post(RUNS_URL, {'materialId': 999999, 'inputQty': '1', 'producedQty': '1'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('materialId', response.data['details'])

    def test_create_run_requires_machine_and_date(self):
        response = self.client.post(RUNS_URL, {
            'materialId': self.material.id, 'inputQty': '10', 'producedQty': '10',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('machineId', response.data['details'])
        self.assertIn('runDate', response.data['details'])
        self.assertFalse(CrusherRun.objects.exists())

    def test_machine_cannot_be_cleared(self):
        run = TestDataFactory.create_run(material=self.material, machine=self.machine)
        response = self.client.patch(f'{RUNS_URL}{run.id}/', {'machineId': None})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('machineId', response.data['details'])
        run.refresh_from_db()
        self.assertEqual(run.machine, self.machine)

    def test_produced_cannot_drop_below_dispatched(self):
        run = TestDataFactory.create_run(material=self.material, produced_qty=Decimal('50'))
        TestDataFactory.create_dispatch(run, Decimal('30'))
        response = self.client.patch(f'{RUNS_URL}{run.id}/', {'producedQty': '29.999'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Produced quantity cannot be less than dispatched quantity (30)')
        run.refresh_from_db()
        self.assertEqual(run.produced_qty, Decimal('50'))

        response = self.client.patch(f'{RUNS_URL}{run.id}/', {'producedQty': '30'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'FULLY_DISPATCHED')

    def test_dispatched_qty_cannot_be_edited(self):
        run = TestDataFactory.create_run(material=self.material, produced_qty=Decimal('50'))
        TestDataFactory.create_dispatch(run, Decimal('10'))

        response = self.client.patch(f'{RUNS_URL}{run.id}/', {'dispatchedQty': '40'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        run.refresh_from_db()
        self.assertEqual(run.dispatched_qty, Decimal('10'))

        # Resubmitting the current value is harmless; PUT takes a partial body
        response = self.client.put(f'{RUNS_URL}{run.id}/', {'dispatchedQty': '10', 'inputQty': '60'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['inputQty'], Decimal('60'))

    def test_delete_run_with_dispatches_rejected(self):
        run = TestDataFactory.create_run(material=self.material)
        TestDataFactory.create_dispatch(run, Decimal('1'))
        response = self.client.delete(f'{RUNS_URL}{run.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(CrusherRun.objects.filter(pk=run.pk).exists())

    def test_delete_run(self):
        run = TestDataFactory.create_run(material=self.material)
        response = self.client.delete(f'{RUNS_URL}{run.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(CrusherRun.objects.filter(pk=run.pk).exists())

    def test_unknown_run_not_found(self):
        response = self.client.get(f'{RUNS_URL}999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Crusher run not found'})

    def test_filter_by_status(self):
        pending = TestDataFactory.create_run(material=self.material)
        partial = TestDataFactory.create_run(material=self.material)
        full = TestDataFactory.create_run(material=self.material, produced_qty=Decimal('5'))
        TestDataFactory.create_dispatch(partial, Decimal('1'))
        TestDataFactory.create_dispatch(full, Decimal('5'))

        response = self.client.get(RUNS_URL, {'status': 'PARTIALLY_DISPATCHED'})
        self.assertEqual([row['id'] for row in response.data], [partial.id])

        response = self.client.get(RUNS_URL, {'status': 'PENDING'})
        self.assertEqual([row['id'] for row in response.data], [pending.id])

        # Legacy label maps onto fully dispatched runs
        response = self.client.get(RUNS_URL, {'status': 'COMPLETED'})
        self.assertEqual([row['id'] for row in response.data], [full.id])

        response = self.client.get(RUNS_URL, {'available': 'true'})
        self.assertEqual({row['id'] for row in response.data}, {pending.id, partial.id})

    def test_invalid_filter_rejected(self):
        response = self.client.get(RUNS_URL, {'startDate': 'yesterday'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('startDate', response.data['details'])


class CrusherMachineApiTests(TestCase):
    """Test crusher machine endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_update_status(self):
        response = self.client.post(MACHINES_URL, {'name': 'Cone crusher'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'ACTIVE')

        url = f"{MACHINES_URL}{response.data['id']}/"
        response = self.client.patch(url, {
            'status': 'MAINTENANCE', 'lastMaintenanceDate': '2025-02-01T10:00:00Z',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'MAINTENANCE')

        response = self.client.get(MACHINES_URL, {'status': 'maintenance'})
        self.assertEqual(len(response.data), 1)

    def test_invalid_status_rejected(self):
        machine = TestDataFactory.create_machine()
        response = self.client.patch(f'{MACHINES_URL}{machine.id}/', {'status': 'BROKEN'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['details'])

    def test_delete_machine_with_runs_rejected(self):
        machine = TestDataFactory.create_machine()
        TestDataFactory.create_run(machine=machine)
        response = self.client.delete(f'{MACHINES_URL}{machine.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CrusherSiteApiTests(TestCase):
    """Test crusher site endpoints and their material links"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.msand = TestDataFactory.create_material(name='M.SAND')
        self.jelly = TestDataFactory.create_material(name='20MM')
        self.gsb = TestDataFactory.create_material(name='GSB')

    def create_site(self, **extra):
        payload = {'name': 'Hoskote yard', 'owner': 'Srinivas', 'location': 'Hoskote'}
        payload.update(extra)
        return self.client.post(SITES_URL, payload)

    def test_create_site_with_materials(self):
        response = self.create_site(materialIds=[self.msand.id, self.jelly.id])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['owner'], 'Srinivas')
        self.assertEqual(sorted(response.data['materialIds']), sorted([self.msand.id, self.jelly.id]))
        self.assertEqual(
            sorted(material['name'] for material in response.data['materials']), ['20MM', 'M.SAND']
        )

    def test_create_site_without_materials(self):
        response = self.create_site()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['materials'], [])

    def test_missing_fields_rejected(self):
        response = self.client.post(SITES_URL, {'name': 'Hoskote yard'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('owner', response.data['details'])
        self.assertIn('location', response.data['details'])

    def test_unknown_material_rejected(self):
        response = self.create_site(materialIds=[999999])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('materialIds', response.data['details'])
        self.assertFalse(CrusherSite.objects.exists())

    def test_update_replaces_materials(self):
        created = self.create_site(materialIds=[self.msand.id, self.jelly.id])
        url = f"{SITES_URL}{created.data['id']}/"

        response = self.client.patch(url, {'location': 'Devanahalli', 'materialIds': [self.gsb.id]})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['location'], 'Devanahalli')
        self.assertEqual(response.data['materialIds'], [self.gsb.id])

        # A patch without materialIds leaves the links alone
        response = self.client.patch(url, {'owner': 'Lakshmi'})
        self.assertEqual(response.data['materialIds'], [self.gsb.id])

        response = self.client.get(SITES_URL, {'materialId': self.gsb.id})
        self.assertEqual([row['id'] for row in response.data], [created.data['id']])
        response = self.client.get(SITES_URL, {'materialId': self.msand.id})
        self.assertEqual(response.data, [])

    def test_delete_site_keeps_materials(self):
        created = self.create_site(materialIds=[self.msand.id])
        response = self.client.delete(f"{SITES_URL}{created.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(CrusherSite.objects.exists())
        self.assertTrue(Material.objects.filter(pk=self.msand.pk).exists())

    def test_unknown_site_not_found(self):
        response = self.client.get(f'{SITES_URL}999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Crusher site not found'})

        response = self.client.patch(f'{SITES_URL}999999/', {'name': 'Other'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ReconcileCommandTests(TestCase):
    """Test the reconcile_crusher_runs management command"""

    def setUp(self):
        self.run = TestDataFactory.create_run(produced_qty=Decimal('100'))
        TestDataFactory.create_dispatch(self.run, Decimal('30'))
        CrusherRun.objects.filter(pk=self.run.pk).update(dispatched_qty=Decimal('50'))

    def test_dry_run_reports_without_saving(self):
        out = StringIO()
        call_command('reconcile_crusher_runs', '--dry-run', stdout=out)
        self.assertIn(f'Run {self.run.id}: recorded 50, dispatches sum 30', out.getvalue())
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('50'))

    def test_corrects_drift(self):
        out = StringIO()
        call_command('reconcile_crusher_runs', '--run', str(self.run.id), stdout=out)
        self.assertIn('corrected', out.getvalue())
        self.run.refresh_from_db()
        self.assertEqual(self.run.dispatched_qty, Decimal('30'))
        self.assertTrue(AuditLog.objects.filter(action='run_reconcile', object_id=str(self.run.id)).exists())

    def test_balanced_run_untouched(self):
        CrusherRun.objects.filter(pk=self.run.pk).update(dispatched_qty=Decimal('30'))
        result = ledger.reconcile_run(self.run.id)
        self.assertFalse(result.corrected)
        self.assertEqual(result.recorded, result.actual)


class ConcurrentDispatchTests(TransactionTestCase):
    """Two simultaneous dispatches must not both draw on the last of a run"""

    def test_only_one_of_two_competing_dispatches_succeeds(self):
        run = TestDataFactory.create_run(produced_qty=Decimal('10'))
        barrier = threading.Barrier(2)
        outcomes = []

        def attempt():
            try:
                barrier.wait()
                ledger.create_dispatch(run.id, Decimal('6'), destination='Yard', vehicle_no='KA01')
                outcomes.append('ok')
            except CapacityExceeded:
                outcomes.append('rejected')
            except Exception as exc:
                outcomes.append(type(exc).__name__)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ['ok', 'rejected'])
        run.refresh_from_db()
        self.assertEqual(run.dispatched_qty, Decimal('6'))
        self.assertEqual(run.dispatches.count(), 1)

    def test_competing_api_dispatches_answer_201_and_400(self):
        user = TestDataFactory.create_user()
        run = TestDataFactory.create_run(produced_qty=Decimal('10'))
        barrier = threading.Barrier(2)
        responses = []

        def attempt():
            client = AuthenticatedAPIClient().authenticate_user(user)
            try:
                barrier.wait()
                responses.append(client.post(DISPATCHES_URL, dispatch_payload(run.id, '6')))
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(response.status_code for response in responses), [201, 400])
        rejected = next(response for response in responses if response.status_code == 400)
        self.assertEqual(rejected.data['error'], 'Cannot dispatch more than available quantity (4)')
        run.refresh_from_db()
        self.assertEqual(run.dispatched_qty, Decimal('6'))
