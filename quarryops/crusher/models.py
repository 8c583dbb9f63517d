from django.db import models
from django.db.models import Case, CharField, DecimalField, ExpressionWrapper, F, Q, Value, When
from django.utils import timezone

from quarryops.catalog.models import Material
from quarryops.orders.models import SalesOrder, PurchaseOrder

RUN_STATUS_PENDING = 'PENDING'
RUN_STATUS_PARTIAL = 'PARTIALLY_DISPATCHED'
RUN_STATUS_FULL = 'FULLY_DISPATCHED'
# Legacy label from rows written before status was derived; never computed
RUN_STATUS_COMPLETED = 'COMPLETED'

RUN_STATUS_CHOICES = [
    (RUN_STATUS_PENDING, 'Pending'),
    (RUN_STATUS_PARTIAL, 'Partially dispatched'),
    (RUN_STATUS_FULL, 'Fully dispatched'),
    (RUN_STATUS_COMPLETED, 'Completed'),
]


def run_status(produced_qty, dispatched_qty):
    """Status of a crusher run as a function of its produced and dispatched quantities"""
    if not dispatched_qty or dispatched_qty <= 0:
        return RUN_STATUS_PENDING
    if dispatched_qty < produced_qty:
        return RUN_STATUS_PARTIAL
    return RUN_STATUS_FULL


class CrusherMachine(models.Model):
    """Crushing unit a run is produced on"""
    STATUS_CHOICES = [
        ('ACTIVE', 'Active'),
        ('INACTIVE', 'Inactive'),
        ('MAINTENANCE', 'Maintenance'),
    ]

    name = models.CharField(max_length=200, unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='ACTIVE')
    last_maintenance_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'crusher_machines'
        ordering = ['name']


class CrusherSite(models.Model):
    """Crushing yard and the materials it supplies"""
    name = models.CharField(max_length=255)
    owner = models.CharField(max_length=255)
    location = models.CharField(max_length=255)
    materials = models.ManyToManyField(
        Material, related_name='crusher_sites', blank=True, db_table='crusher_site_materials'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.location})"

    class Meta:
        db_table = 'crusher_sites'
        ordering = ['-created_at', '-id']


class CrusherRunQuerySet(models.QuerySet):
    def with_available(self):
        """Annotate ``available_qty`` and ``current_status`` computed in the database"""
        return self.annotate(
            available_qty=ExpressionWrapper(
                F('produced_qty') - F('dispatched_qty'),
                output_field=DecimalField(max_digits=12, decimal_places=3),
            ),
            current_status=Case(
                When(dispatched_qty__lte=0, then=Value(RUN_STATUS_PENDING)),
                When(dispatched_qty__lt=F('produced_qty'), then=Value(RUN_STATUS_PARTIAL)),
                default=Value(RUN_STATUS_FULL),
                output_field=CharField(),
            ),
        )

    def with_status(self, status):
        status = (status or '').upper()
        if status == RUN_STATUS_COMPLETED:
            status = RUN_STATUS_FULL
        return self.with_available().filter(current_status=status)


class CrusherRun(models.Model):
    """
    One production batch of a material.

    ``dispatched_qty`` is a counter owned by the dispatch ledger
    (quarryops.crusher.ledger); it always equals the sum of the run's
    dispatch quantities and never exceeds ``produced_qty``.
    """
    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name='crusher_runs')
    machine = models.ForeignKey(CrusherMachine, on_delete=models.PROTECT, related_name='runs')
    input_qty = models.DecimalField(max_digits=12, decimal_places=3)
    produced_qty = models.DecimalField(max_digits=12, decimal_places=3)
    dispatched_qty = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    run_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CrusherRunQuerySet.as_manager()

    def __str__(self):
        return f"Run #{self.pk} {self.material.name}"

    @property
    def available_quantity(self):
        return self.produced_qty - self.dispatched_qty

    @property
    def status(self):
        return run_status(self.produced_qty, self.dispatched_qty)

    class Meta:
        db_table = 'crusher_runs'
        ordering = ['-run_date', '-id']
        indexes = [
            models.Index(fields=['run_date'], name='idx_run_date'),
            models.Index(fields=['material', 'run_date'], name='idx_run_material_date'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(dispatched_qty__gte=0) & Q(dispatched_qty__lte=F('produced_qty')),
                name='crusher_run_dispatched_within_produced',
            ),
        ]


class DispatchQuerySet(models.QuerySet):
    def with_relations(self):
        return self.select_related(
            'crusher_run__material',
            'crusher_run__machine',
            'sales_order__customer',
            'purchase_order__vendor',
        )


class Dispatch(models.Model):
    """A truck load drawn from a crusher run, optionally against a sales or purchase order"""
    DELIVERY_STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('IN_TRANSIT', 'In transit'),
        ('DELIVERED', 'Delivered'),
    ]

    crusher_run = models.ForeignKey(CrusherRun, on_delete=models.PROTECT, related_name='dispatches')
    sales_order = models.ForeignKey(
        SalesOrder, on_delete=models.PROTECT, related_name='dispatches', null=True, blank=True
    )
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.PROTECT, related_name='dispatches', null=True, blank=True
    )
    dispatch_date = models.DateTimeField(default=timezone.now)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    destination = models.CharField(max_length=255)
    vehicle_no = models.CharField(max_length=50)
    driver = models.CharField(max_length=100, blank=True, null=True)
    pickup_quantity = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    drop_quantity = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    delivery_status = models.CharField(max_length=20, choices=DELIVERY_STATUS_CHOICES, default='PENDING')
    delivery_duration = models.PositiveIntegerField(null=True, blank=True, help_text='Days from dispatch to delivery')
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = DispatchQuerySet.as_manager()

    def __str__(self):
        return f"Dispatch #{self.pk} {self.vehicle_no} ({self.quantity})"

    @property
    def difference(self):
        """Drop minus pickup weight; None until both are recorded"""
        if self.pickup_quantity is None or self.drop_quantity is None:
            return None
        return self.drop_quantity - self.pickup_quantity

    class Meta:
        db_table = 'dispatches'
        ordering = ['-dispatch_date', '-id']
        indexes = [
            models.Index(fields=['dispatch_date'], name='idx_dispatch_date'),
            models.Index(fields=['delivery_status'], name='idx_dispatch_status'),
            models.Index(fields=['vehicle_no'], name='idx_dispatch_vehicle'),
        ]
