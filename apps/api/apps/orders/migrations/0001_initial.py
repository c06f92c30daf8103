# Generated migration for orders app - treatment orders

import uuid
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('patients', '0001_initial'),
        ('clinics', '0001_initial'),
        ('offers', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(
                    choices=[
                        ('new', 'New'),
                        ('consultation_scheduled', 'Consultation Scheduled'),
                        ('in_progress', 'In Progress'),
                        ('completed', 'Completed'),
                        ('cancelled', 'Cancelled')
                    ],
                    db_index=True,
                    default='new',
                    max_length=30
                )),
                ('consultation_date', models.DateTimeField(blank=True, null=True)),
                ('treatment_started_at', models.DateTimeField(blank=True, null=True)),
                ('treatment_completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('clinic', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='orders',
                    to='clinics.clinic'
                )),
                ('offer', models.OneToOneField(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='order',
                    to='offers.offer'
                )),
                ('offer_request', models.OneToOneField(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='order',
                    to='offers.offerrequest'
                )),
                ('patient', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='orders',
                    to='patients.patient'
                )),
            ],
            options={
                'db_table': 'order',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='order',
            index=models.Index(fields=['clinic', 'status'], name='idx_order_clinic_status'),
        ),
        migrations.AddIndex(
            model_name='order',
            index=models.Index(fields=['patient', '-created_at'], name='idx_order_patient_created'),
        ),
    ]
