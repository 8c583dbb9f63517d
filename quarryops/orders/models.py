from decimal import Decimal

from django.db import models
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from quarryops.catalog.models import Material
from quarryops.parties.models import Customer, Vendor


class OrderQuerySet(models.QuerySet):
    def with_dispatched(self):
        """Annotate ``dispatched_total``: sum of quantities of linked dispatches"""
        return self.annotate(
            dispatched_total=Coalesce(
                Sum('dispatches__quantity'),
                Value(Decimal('0')),
                output_field=DecimalField(max_digits=12, decimal_places=3),
            )
        )


class SalesOrder(models.Model):
    """Outbound order: material sold to a customer"""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('COMPLETED', 'Completed'),
        ('CANCELLED', 'Cancelled'),
    ]

    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='sales_orders')
    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name='sales_orders')
    qty = models.DecimalField(max_digits=12, decimal_places=3)
    rate = models.DecimalField(max_digits=12, decimal_places=2)
    vehicle_no = models.CharField(max_length=50, blank=True, null=True)
    challan_no = models.CharField(max_length=50, blank=True, null=True)
    order_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    def __str__(self):
        return f"SO-{self.pk} {self.customer.name}"

    @property
    def amount(self):
        return self.qty * self.rate

    class Meta:
        db_table = 'sales_orders'
        ordering = ['-order_date', '-id']
        indexes = [
            models.Index(fields=['order_date'], name='idx_so_order_date'),
            models.Index(fields=['status'], name='idx_so_status'),
        ]


class PurchaseOrder(models.Model):
    """Inbound order: material bought from a vendor"""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('RECEIVED', 'Received'),
        ('PARTIAL', 'Partial'),
    ]

    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name='purchase_orders')
    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name='purchase_orders')
    qty = models.DecimalField(max_digits=12, decimal_places=3)
    rate = models.DecimalField(max_digits=12, decimal_places=2)
    order_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    def __str__(self):
        return f"PO-{self.pk} {self.vendor.name}"

    @property
    def amount(self):
        return self.qty * self.rate

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-order_date', '-id']
        indexes = [
            models.Index(fields=['order_date'], name='idx_po_order_date'),
            models.Index(fields=['status'], name='idx_po_status'),
        ]
