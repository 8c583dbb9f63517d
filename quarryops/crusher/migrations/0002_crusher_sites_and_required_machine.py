import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('catalog', '0001_initial'),
        ('crusher', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='crusherrun',
            name='machine',
            field=models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='runs', to='crusher.crushermachine'),
        ),
        migrations.CreateModel(
            name='CrusherSite',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('owner', models.CharField(max_length=255)),
                ('location', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('materials', models.ManyToManyField(blank=True, db_table='crusher_site_materials', related_name='crusher_sites', to='catalog.material')),
            ],
            options={
                'db_table': 'crusher_sites',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
