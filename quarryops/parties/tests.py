"""
Test suite for the parties module
Tests: Customer and Vendor CRUD
"""
from django.test import TestCase
from rest_framework import status

from quarryops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from quarryops.parties.models import Customer


class CustomerApiTests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        response = self.client.post('/api/customers/', {
            'name': 'Sri Balaji Builders',
            'gstNo': '29ABCDE1234F1Z5',
            'contact': '9845012345',
            'city': 'Bengaluru',
            'state': 'Karnataka',
            'pincode': '560066',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['gstNo'], '29ABCDE1234F1Z5')
        self.assertEqual(Customer.objects.get().gst_no, '29ABCDE1234F1Z5')

    def test_name_required(self):
        response = self.client.post('/api/customers/', {'contact': '9845012345'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['details'])

    def test_search(self):
        TestDataFactory.create_customer(name='Acme Infra')
        TestDataFactory.create_customer(name='Metro Roads')
        response = self.client.get('/api/customers/', {'search': 'metro'})
        self.assertEqual([row['name'] for row in response.data], ['Metro Roads'])

    def test_update_customer(self):
        customer = TestDataFactory.create_customer()
        response = self.client.patch(f'/api/customers/{customer.id}/', {'city': 'Hosur'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['city'], 'Hosur')

    def test_delete_customer_with_orders_rejected(self):
        order = TestDataFactory.create_sales_order()
        response = self.client.delete(f'/api/customers/{order.customer_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_customer(self):
        response = self.client.get('/api/customers/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Customer not found'})


class VendorApiTests(TestCase):
    """Test vendor endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_delete_vendor(self):
        response = self.client.post('/api/vendors/', {'name': 'Hill Quarry Co', 'address': 'NH 44'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.delete(f"/api/vendors/{response.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_delete_vendor_with_orders_rejected(self):
        order = TestDataFactory.create_purchase_order()
        response = self.client.delete(f'/api/vendors/{order.vendor_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
