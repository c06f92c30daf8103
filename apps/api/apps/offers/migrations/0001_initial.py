# Generated migration for offers app - offer requests, offers, price snapshot lines

import uuid
import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

SPECIALTY_CHOICES = [
    ('therapy', 'Therapy'),
    ('orthopedics', 'Orthopedics'),
    ('surgery', 'Surgery'),
    ('hygiene', 'Hygiene'),
    ('periodontics', 'Periodontics'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('patients', '0001_initial'),
        ('clinics', '0001_initial'),
        ('plans', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='OfferRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('preferred_city', models.CharField(blank=True, max_length=100)),
                ('preferred_district', models.CharField(blank=True, max_length=100)),
                ('preferred_price_segment', models.CharField(
                    blank=True,
                    choices=[('economy', 'Economy'), ('business', 'Business'), ('premium', 'Premium')],
                    max_length=20
                )),
                ('status', models.CharField(
                    choices=[('open', 'Open'), ('closed', 'Closed')],
                    db_index=True,
                    default='open',
                    max_length=20
                )),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='offer_requests',
                    to='patients.patient'
                )),
                ('plan', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='offer_requests',
                    to='plans.treatmentplan'
                )),
                ('selected_items', models.ManyToManyField(
                    db_table='offer_request_item',
                    related_name='offer_requests',
                    to='plans.planitem'
                )),
            ],
            options={
                'db_table': 'offer_request',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Offer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('total_price', models.DecimalField(
                    decimal_places=2,
                    max_digits=12,
                    validators=[django.core.validators.MinValueValidator(0)]
                )),
                ('discount_percent', models.DecimalField(
                    decimal_places=2,
                    default=0,
                    max_digits=5,
                    validators=[
                        django.core.validators.MinValueValidator(0),
                        django.core.validators.MaxValueValidator(100)
                    ]
                )),
                ('estimated_days', models.PositiveIntegerField(blank=True, null=True)),
                ('has_installment', models.BooleanField(default=False)),
                ('installment_terms', models.TextField(blank=True)),
                ('special_offer', models.TextField(blank=True)),
                ('status', models.CharField(
                    choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected')],
                    db_index=True,
                    default='pending',
                    max_length=20
                )),
                ('decided_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('clinic', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='offers',
                    to='clinics.clinic'
                )),
                ('offer_request', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='offers',
                    to='offers.offerrequest'
                )),
            ],
            options={
                'db_table': 'offer',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='OfferLine',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('specialty', models.CharField(choices=SPECIALTY_CHOICES, max_length=20)),
                ('procedure_code', models.CharField(blank=True, max_length=50)),
                ('procedure_name', models.CharField(max_length=255)),
                ('price', models.DecimalField(
                    decimal_places=2,
                    max_digits=12,
                    validators=[django.core.validators.MinValueValidator(0)]
                )),
                ('offer', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='lines',
                    to='offers.offer'
                )),
                ('plan_item', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='+',
                    to='plans.planitem'
                )),
                ('pricelist_item', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='+',
                    to='clinics.pricelistitem'
                )),
            ],
            options={
                'db_table': 'offer_line',
                'ordering': ['specialty', 'procedure_name'],
            },
        ),
        migrations.AddIndex(
            model_name='offerrequest',
            index=models.Index(fields=['patient', '-created_at'], name='idx_offer_req_patient'),
        ),
        migrations.AddConstraint(
            model_name='offer',
            constraint=models.UniqueConstraint(
                condition=models.Q(status='accepted'),
                fields=('offer_request',),
                name='uniq_accepted_offer_per_request'
            ),
        ),
        migrations.AddConstraint(
            model_name='offer',
            constraint=models.UniqueConstraint(
                condition=models.Q(status='pending'),
                fields=('offer_request', 'clinic'),
                name='uniq_pending_offer_per_clinic'
            ),
        ),
        migrations.AddConstraint(
            model_name='offer',
            constraint=models.CheckConstraint(
                check=models.Q(total_price__gte=0),
                name='offer_total_price_non_negative'
            ),
        ),
        migrations.AddConstraint(
            model_name='offer',
            constraint=models.CheckConstraint(
                check=models.Q(discount_percent__gte=0) & models.Q(discount_percent__lte=100),
                name='offer_discount_percent_range'
            ),
        ),
    ]
