"""
Test suite for the core module
Tests: JWT auth endpoints, audit log helper and listing, API error envelopes
"""
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import RequestFactory, TestCase
from rest_framework import status

from quarryops.core.exceptions import (
    CapacityExceeded, NotFoundError, api_exception_handler, format_quantity, get_or_not_found,
)
from quarryops.core.models import AuditLog
from quarryops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from quarryops.core.utils import create_audit_log, get_client_ip
from quarryops.catalog.models import Material


class AuthTests(TestCase):
    """Test login, refresh and me endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='operator', password='crusher123')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/auth/login/', {'username': 'operator', 'password': 'crusher123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'operator')

    def test_login_wrong_password(self):
        response = self.client.post('/api/auth/login/', {'username': 'operator', 'password': 'nope'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_refresh(self):
        login = self.client.post('/api/auth/login/', {'username': 'operator', 'password': 'crusher123'})
        response = self.client.post('/api/auth/refresh/', {'refresh': login.data['refresh']})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'operator')
        self.assertEqual(response.data['groups'], [])

    def test_me_requires_token(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AuditLogTests(TestCase):
    """Test the audit log helper and endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.factory = RequestFactory()

    def test_create_audit_log_from_request(self):
        request = self.factory.post('/api/crusher/dispatches/', HTTP_X_FORWARDED_FOR='10.0.0.7, 172.16.0.1')
        request.user = self.user
        log = create_audit_log(
            request=request,
            action='dispatch_create',
            model_name='Dispatch',
            object_id=12,
            changes={'quantity': '5.000'},
        )
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.object_id, '12')
        self.assertEqual(log.ip_address, '10.0.0.7')

    def test_missing_fields_skipped(self):
        self.assertIsNone(create_audit_log(action='create', model_name=None, object_id=1))
        self.assertFalse(AuditLog.objects.exists())

    def test_database_failure_does_not_propagate(self):
        with mock.patch.object(AuditLog.objects, 'create', side_effect=DatabaseError('disk full')):
            with self.assertLogs('quarryops.core.utils', level='ERROR'):
                self.assertIsNone(create_audit_log(action='create', model_name='Material', object_id=1))

    def test_client_ip_falls_back_to_remote_addr(self):
        request = self.factory.get('/', REMOTE_ADDR='192.168.1.20')
        self.assertEqual(get_client_ip(request), '192.168.1.20')
        self.assertIsNone(get_client_ip(None))

    def test_audit_log_list_is_staff_only(self):
        create_audit_log(action='create', model_name='Material', object_id=1, user=self.user)
        client = AuthenticatedAPIClient()

        client.authenticate_user(self.user)
        self.assertEqual(client.get('/api/audit-logs/').status_code, status.HTTP_403_FORBIDDEN)

        client.authenticate_user(self.admin)
        response = client.get('/api/audit-logs/', {'model_name': 'Material'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['username'], self.user.username)

    def test_audit_log_list_rejects_bad_page(self):
        client = AuthenticatedAPIClient().authenticate_user(self.admin)
        response = client.get('/api/audit-logs/', {'page': 'two'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid pagination parameters')


class ExceptionHandlingTests(TestCase):
    """Test error envelopes produced by the API exception handler"""

    def test_format_quantity(self):
        self.assertEqual(format_quantity(Decimal('59.797')), '59.797')
        self.assertEqual(format_quantity(Decimal('20.000')), '20')
        self.assertEqual(format_quantity(Decimal('0.500')), '0.5')
        self.assertEqual(format_quantity(Decimal('0.000')), '0')

    def test_capacity_exceeded_message(self):
        exc = CapacityExceeded(Decimal('59.797'))
        self.assertEqual(exc.message, 'Cannot dispatch more than available quantity (59.797)')
        self.assertEqual(exc.status_code, 400)

    def test_get_or_not_found(self):
        with self.assertRaises(NotFoundError) as ctx:
            get_or_not_found(Material, 424242, 'Material')
        self.assertEqual(ctx.exception.message, 'Material not found')

    def test_unexpected_error_is_hidden(self):
        request = RequestFactory().get('/api/materials/')
        with self.assertLogs('quarryops.core.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError('secret connection string'), {'request': request})
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'message': 'Internal server error'})

    def test_validation_error_envelope(self):
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.post('/api/materials/', {'uom': 'MT'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Validation failed')
        self.assertIn('name', response.data['details'])
