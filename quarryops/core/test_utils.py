"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from quarryops.catalog.models import Material
from quarryops.crusher.models import CrusherMachine, CrusherRun, Dispatch
from quarryops.orders.models import SalesOrder, PurchaseOrder
from quarryops.parties.models import Customer, Vendor

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""
    __test__ = False

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_material(name=None, uom='MT'):
        """Create a test material"""
        if not name:
            name = f'Material_{TestDataFactory.random_string(6)}'
        return Material.objects.create(name=name, uom=uom)

    @staticmethod
    def create_customer(name=None, contact=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not contact:
            contact = f'9{random.randint(100000000, 999999999)}'
        return Customer.objects.create(name=name, contact=contact, city='Test City')

    @staticmethod
    def create_vendor(name=None, contact=None):
        """Create a test vendor"""
        if not name:
            name = f'Vendor_{TestDataFactory.random_string(6)}'
        if not contact:
            contact = f'9{random.randint(100000000, 999999999)}'
        return Vendor.objects.create(name=name, contact=contact)

    @staticmethod
    def create_machine(name=None, status='ACTIVE'):
        """Create a test crusher machine"""
        if not name:
            name = f'Crusher_{TestDataFactory.random_string(6)}'
        return CrusherMachine.objects.create(name=name, status=status)

    @staticmethod
    def create_run(material=None, machine=None, input_qty=None, produced_qty=None, run_date=None):
        """Create a crusher run with nothing dispatched yet"""
        if not material:
            material = TestDataFactory.create_material()
        if not machine:
            machine = TestDataFactory.create_machine()
        if produced_qty is None:
            produced_qty = Decimal('100.000')
        if input_qty is None:
            input_qty = produced_qty
        return CrusherRun.objects.create(
            material=material,
            machine=machine,
            input_qty=input_qty,
            produced_qty=produced_qty,
            dispatched_qty=Decimal('0'),
            run_date=run_date or timezone.now()
        )

    @staticmethod
    def create_sales_order(customer=None, material=None, qty=None, rate=None, status='PENDING'):
        """Create a test sales order"""
        if not customer:
            customer = TestDataFactory.create_customer()
        if not material:
            material = TestDataFactory.create_material()
        return SalesOrder.objects.create(
            customer=customer,
            material=material,
            qty=qty if qty is not None else Decimal('50.000'),
            rate=rate if rate is not None else Decimal('500.00'),
            status=status
        )

    @staticmethod
    def create_purchase_order(vendor=None, material=None, qty=None, rate=None, status='PENDING'):
        """Create a test purchase order"""
        if not vendor:
            vendor = TestDataFactory.create_vendor()
        if not material:
            material = TestDataFactory.create_material()
        return PurchaseOrder.objects.create(
            vendor=vendor,
            material=material,
            qty=qty if qty is not None else Decimal('50.000'),
            rate=rate if rate is not None else Decimal('400.00'),
            status=status
        )

    @staticmethod
    def create_dispatch(run, quantity, **fields):
        """
        Create a dispatch row and bump the run's dispatched counter directly.

        Bypasses the ledger (no lock, no capacity check); use it only to
        arrange fixtures, never to exercise dispatch rules.
        """
        fields.setdefault('destination', 'Test Site')
        fields.setdefault('vehicle_no', f'KA01{random.randint(1000, 9999)}')
        dispatch = Dispatch.objects.create(crusher_run=run, quantity=quantity, **fields)
        run.dispatched_qty += quantity
        run.save(update_fields=['dispatched_qty'])
        return dispatch


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
