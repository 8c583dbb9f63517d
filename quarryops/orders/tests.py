"""
Test suite for the orders module
Tests: Sales and purchase order CRUD, filtering, dispatched aggregate
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from quarryops.core.models import AuditLog
from quarryops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from quarryops.orders.models import SalesOrder


class SalesOrderApiTests(TestCase):
    """Test sales order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Acme Infra')
        self.material = TestDataFactory.create_material(name='20MM')

    def test_create_sales_order(self):
        response = self.client.post('/api/sales-orders/', {
            'customerId': self.customer.id,
            'materialId': self.material.id,
            'qty': '25.5',
            'rate': '850',
            'vehicleNo': 'KA05AB1234',
            'challanNo': 'CH-118',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertEqual(response.data['customerName'], 'Acme Infra')
        self.assertEqual(response.data['amount'], Decimal('21675.00'))
        self.assertEqual(response.data['dispatchedQty'], Decimal('0'))
        self.assertTrue(AuditLog.objects.filter(model_name='SalesOrder', action='create').exists())

    def test_invalid_quantities_rejected(self):
        response = self.client.post('/api/sales-orders/', {
            'customerId': self.customer.id, 'materialId': self.material.id, 'qty': '0', 'rate': '-1',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('qty', response.data['details'])
        self.assertIn('rate', response.data['details'])

    def test_unknown_customer_rejected(self):
        response = self.client.post('/api/sales-orders/', {
            'customerId': 999999, 'materialId': self.material.id, 'qty': '1', 'rate': '1',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customerId', response.data['details'])

    def test_dispatched_aggregate(self):
        order = TestDataFactory.create_sales_order(customer=self.customer, material=self.material)
        run = TestDataFactory.create_run(material=self.material)
        TestDataFactory.create_dispatch(run, Decimal('4.250'), sales_order=order)
        TestDataFactory.create_dispatch(run, Decimal('5'), sales_order=order)

        response = self.client.get(f'/api/sales-orders/{order.id}/')
        self.assertEqual(response.data['dispatchedQty'], Decimal('9.250'))
        response = self.client.get('/api/sales-orders/')
        self.assertEqual(response.data[0]['dispatchedQty'], Decimal('9.250'))

    def test_dispatches_do_not_change_order(self):
        order = TestDataFactory.create_sales_order(customer=self.customer, material=self.material)
        run = TestDataFactory.create_run(material=self.material)
        response = self.client.post('/api/crusher/dispatches/', {
            'crusherRunId': run.id, 'salesOrderId': order.id, 'quantity': '50',
            'destination': 'Site', 'vehicleNo': 'KA01', 'dispatchDate': '2025-03-01T10:00:00Z',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order.refresh_from_db()
        self.assertEqual(order.qty, Decimal('50'))
        self.assertEqual(order.status, 'PENDING')

    def test_filters(self):
        other = TestDataFactory.create_customer()
        TestDataFactory.create_sales_order(customer=self.customer, material=self.material, status='COMPLETED')
        TestDataFactory.create_sales_order(customer=other, material=self.material)

        response = self.client.get('/api/sales-orders/', {'customerId': self.customer.id})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/sales-orders/', {'status': 'PENDING'})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['customerId'], other.id)

        response = self.client.get('/api/sales-orders/', {'status': 'SHIPPED'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_status(self):
        order = TestDataFactory.create_sales_order(customer=self.customer, material=self.material)
        response = self.client.patch(f'/api/sales-orders/{order.id}/', {'status': 'CANCELLED'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'CANCELLED')

    def test_delete_order_with_dispatches_rejected(self):
        order = TestDataFactory.create_sales_order(customer=self.customer, material=self.material)
        run = TestDataFactory.create_run(material=self.material)
        TestDataFactory.create_dispatch(run, Decimal('1'), sales_order=order)
        response = self.client.delete(f'/api/sales-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(SalesOrder.objects.filter(pk=order.pk).exists())

    def test_delete_order(self):
        order = TestDataFactory.create_sales_order(customer=self.customer, material=self.material)
        response = self.client.delete(f'/api/sales-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class PurchaseOrderApiTests(TestCase):
    """Test purchase order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_vendor(name='Hill Quarry Co')
        self.material = TestDataFactory.create_material(name='Boulders')

    def test_create_purchase_order(self):
        response = self.client.post('/api/purchase-orders/', {
            'vendorId': self.vendor.id, 'materialId': self.material.id, 'qty': '100', 'rate': '300.50',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['vendorName'], 'Hill Quarry Co')
        self.assertEqual(response.data['status'], 'PENDING')

    def test_status_choices(self):
        order = TestDataFactory.create_purchase_order(vendor=self.vendor, material=self.material)
        response = self.client.patch(f'/api/purchase-orders/{order.id}/', {'status': 'PARTIAL'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.patch(f'/api/purchase-orders/{order.id}/', {'status': 'CANCELLED'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_purchase_order(self):
        response = self.client.get('/api/purchase-orders/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Purchase order not found'})
