import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('orders', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CrusherMachine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('INACTIVE', 'Inactive'), ('MAINTENANCE', 'Maintenance')], default='ACTIVE', max_length=20)),
                ('last_maintenance_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'crusher_machines',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='CrusherRun',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('input_qty', models.DecimalField(decimal_places=3, max_digits=12)),
                ('produced_qty', models.DecimalField(decimal_places=3, max_digits=12)),
                ('dispatched_qty', models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ('run_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('machine', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='runs', to='crusher.crushermachine')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='crusher_runs', to='catalog.material')),
            ],
            options={
                'db_table': 'crusher_runs',
                'ordering': ['-run_date', '-id'],
                'indexes': [
                    models.Index(fields=['run_date'], name='idx_run_date'),
                    models.Index(fields=['material', 'run_date'], name='idx_run_material_date'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('dispatched_qty__gte', 0), ('dispatched_qty__lte', models.F('produced_qty'))), name='crusher_run_dispatched_within_produced'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Dispatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dispatch_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('destination', models.CharField(max_length=255)),
                ('vehicle_no', models.CharField(max_length=50)),
                ('driver', models.CharField(blank=True, max_length=100, null=True)),
                ('pickup_quantity', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('drop_quantity', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('delivery_status', models.CharField(choices=[('PENDING', 'Pending'), ('IN_TRANSIT', 'In transit'), ('DELIVERED', 'Delivered')], default='PENDING', max_length=20)),
                ('delivery_duration', models.PositiveIntegerField(blank=True, help_text='Days from dispatch to delivery', null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('crusher_run', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='dispatches', to='crusher.crusherrun')),
                ('purchase_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='dispatches', to='orders.purchaseorder')),
                ('sales_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='dispatches', to='orders.salesorder')),
            ],
            options={
                'db_table': 'dispatches',
                'ordering': ['-dispatch_date', '-id'],
                'indexes': [
                    models.Index(fields=['dispatch_date'], name='idx_dispatch_date'),
                    models.Index(fields=['delivery_status'], name='idx_dispatch_status'),
                    models.Index(fields=['vehicle_no'], name='idx_dispatch_vehicle'),
                ],
            },
        ),
    ]
