"""
Test suite for the reports module
Tests: Delivery report (views, date filtering, validation), dashboard KPIs, weekly summary
"""
from datetime import datetime, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from quarryops.core.test_utils import TestDataFactory, AuthenticatedAPIClient

DELIVERIES_URL = '/api/reports/deliveries/'


class DeliveryReportTests(TestCase):
    """Test the joined delivery report"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

        self.material = TestDataFactory.create_material(name='M.SAND')
        self.run = TestDataFactory.create_run(material=self.material, produced_qty=Decimal('500'))
        self.sales_order = TestDataFactory.create_sales_order(
            material=self.material, rate=Decimal('800.00')
        )
        self.purchase_order = TestDataFactory.create_purchase_order(
            material=self.material, rate=Decimal('450.00')
        )

        self.sale = TestDataFactory.create_dispatch(
            self.run, Decimal('10'), sales_order=self.sales_order,
            pickup_quantity=Decimal('10.200'), drop_quantity=Decimal('10.000'),
        )
        self.purchase = TestDataFactory.create_dispatch(self.run, Decimal('5'), purchase_order=self.purchase_order)
        self.both = TestDataFactory.create_dispatch(
            self.run, Decimal('2'), sales_order=self.sales_order, purchase_order=self.purchase_order,
        )
        TestDataFactory.create_dispatch(self.run, Decimal('1'))
        TestDataFactory.create_dispatch(
            self.run, Decimal('3'), sales_order=self.sales_order,
            dispatch_date=timezone.now() - timedelta(days=40),
        )

    def test_combined_defaults_to_last_30_days(self):
        response = self.client.get(DELIVERIES_URL)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data), {'period', 'summary', 'deliveries'})
        self.assertEqual(response.data['period']['to'], timezone.localdate().isoformat())

        rows = response.data['deliveries']
        self.assertEqual(len(rows), 4)
        both_rows = [row for row in rows if row['dispatchId'] == self.both.id]
        self.assertEqual(sorted(row['type'] for row in both_rows), ['PURCHASE', 'SALE'])

        summary = response.data['summary']
        self.assertEqual(summary['salesCount'], 2)
        self.assertEqual(summary['salesQuantity'], 12.0)
        self.assertEqual(summary['salesAmount'], 9600.0)
        self.assertEqual(summary['purchaseCount'], 2)
        self.assertEqual(summary['purchaseAmount'], 3150.0)

    def test_row_shape(self):
        response = self.client.get(DELIVERIES_URL, {'view': 'sales'})
        row = next(row for row in response.data['deliveries'] if row['dispatchId'] == self.sale.id)
        self.assertEqual(row['type'], 'SALE')
        self.assertEqual(row['orderId'], self.sales_order.id)
        self.assertEqual(row['counterparty'], self.sales_order.customer.name)
        self.assertEqual(row['material'], 'M.SAND')
        self.assertEqual(row['quantity'], 10.0)
        self.assertAlmostEqual(row['difference'], -0.2)
        self.assertEqual(row['rate'], 800.0)
        self.assertEqual(row['amount'], 8000.0)

    def test_difference_null_without_both_weights(self):
        response = self.client.get(DELIVERIES_URL, {'view': 'purchases'})
        rows = response.data['deliveries']
        self.assertEqual({row['type'] for row in rows}, {'PURCHASE'})
        self.assertEqual(len(rows), 2)
        self.assertTrue(all(row['difference'] is None for row in rows))

    def test_date_filter_is_inclusive(self):
        late_evening = timezone.make_aware(datetime(2025, 3, 10, 23, 30))
        dispatch = TestDataFactory.create_dispatch(
            self.run, Decimal('1'), sales_order=self.sales_order, dispatch_date=late_evening,
        )
        response = self.client.get(DELIVERIES_URL, {'startDate': '2025-03-10', 'endDate': '2025-03-10'})
        self.assertEqual([row['dispatchId'] for row in response.data['deliveries']], [dispatch.id])

        response = self.client.get(DELIVERIES_URL, {'startDate': '2025-03-11', 'endDate': '2025-03-11'})
        self.assertEqual(response.data['deliveries'], [])

    def test_invalid_dates_rejected(self):
        response = self.client.get(DELIVERIES_URL, {'startDate': '10-03-2025'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('startDate', response.data['details'])

        response = self.client.get(DELIVERIES_URL, {'startDate': '2025-03-12', 'endDate': '2025-03-10'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_view_rejected(self):
        response = self.client.get(DELIVERIES_URL, {'view': 'everything'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('view', response.data['details'])


class DashboardTests(TestCase):
    """Test KPI and weekly summary endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.sand = TestDataFactory.create_material(name='M.SAND')
        self.jelly = TestDataFactory.create_material(name='20MM')
        self.sand_run = TestDataFactory.create_run(material=self.sand, produced_qty=Decimal('200'))
        self.jelly_run = TestDataFactory.create_run(material=self.jelly, produced_qty=Decimal('200'))

    def test_kpis(self):
        sales_order = TestDataFactory.create_sales_order(material=self.sand)
        TestDataFactory.create_purchase_order(material=self.jelly)
        TestDataFactory.create_purchase_order(material=self.jelly, status='RECEIVED')

        TestDataFactory.create_dispatch(
            self.sand_run, Decimal('30'), sales_order=sales_order,
            pickup_quantity=Decimal('100'), drop_quantity=Decimal('98'),
        )
        TestDataFactory.create_dispatch(self.jelly_run, Decimal('12.5'))
        TestDataFactory.create_dispatch(
            self.jelly_run, Decimal('40'), dispatch_date=timezone.now() - timedelta(days=5),
        )

        response = self.client.get('/api/reports/kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['todaysDispatch'], 42.5)
        self.assertEqual(response.data['todaysDispatchCount'], 2)
        self.assertEqual(response.data['pendingPurchases'], 1)
        self.assertEqual(response.data['variancePct'], -2.0)
        self.assertEqual(response.data['topMaterial']['name'], '20MM')
        self.assertEqual(response.data['topMaterial']['quantity'], 52.5)

    def test_kpis_with_no_data(self):
        response = self.client.get('/api/reports/kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['todaysDispatch'], 0.0)
        self.assertIsNone(response.data['variancePct'])
        self.assertIsNone(response.data['topMaterial'])

    def test_weekly(self):
        sales_order = TestDataFactory.create_sales_order(material=self.sand)
        purchase_order = TestDataFactory.create_purchase_order(material=self.sand)
        TestDataFactory.create_dispatch(self.sand_run, Decimal('8'), sales_order=sales_order)
        TestDataFactory.create_dispatch(self.sand_run, Decimal('3'), purchase_order=purchase_order)
        TestDataFactory.create_dispatch(
            self.sand_run, Decimal('6'), sales_order=sales_order,
            dispatch_date=timezone.now() - timedelta(days=2),
        )
        TestDataFactory.create_dispatch(
            self.sand_run, Decimal('9'), sales_order=sales_order,
            dispatch_date=timezone.now() - timedelta(days=10),
        )

        response = self.client.get('/api/reports/weekly/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        days = response.data['days']
        self.assertEqual(len(days), 7)
        self.assertEqual(days[-1]['date'], timezone.localdate().isoformat())
        self.assertEqual(days[-1]['sold'], 8.0)
        self.assertEqual(days[-1]['purchased'], 3.0)
        self.assertEqual(days[-3]['sold'], 6.0)
        self.assertEqual(sum(day['sold'] for day in days), 14.0)
