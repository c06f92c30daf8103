# Generated migration for clinics app - clinic, membership, pricelist

import uuid
import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Clinic',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('legal_name', models.CharField(blank=True, max_length=255)),
                ('license_number', models.CharField(max_length=100, unique=True)),
                ('year_established', models.PositiveIntegerField(blank=True, null=True)),
                ('city', models.CharField(max_length=100)),
                ('district', models.CharField(blank=True, max_length=100)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('website', models.URLField(blank=True)),
                ('price_segment', models.CharField(
                    choices=[('economy', 'Economy'), ('business', 'Business'), ('premium', 'Premium')],
                    default='business',
                    max_length=20
                )),
                ('is_active', models.BooleanField(default=False, help_text='Set by an admin after approval')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'clinic',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ClinicMember',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('member_role', models.CharField(choices=[('manager', 'Manager'), ('doctor', 'Doctor')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('clinic', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='members',
                    to='clinics.clinic'
                )),
                ('user', models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='clinic_membership',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'db_table': 'clinic_member',
            },
        ),
        migrations.CreateModel(
            name='PricelistItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('specialty', models.CharField(
                    choices=[
                        ('therapy', 'Therapy'),
                        ('orthopedics', 'Orthopedics'),
                        ('surgery', 'Surgery'),
                        ('hygiene', 'Hygiene'),
                        ('periodontics', 'Periodontics')
                    ],
                    max_length=20
                )),
                ('procedure_code', models.CharField(blank=True, max_length=50)),
                ('procedure_name', models.CharField(max_length=255)),
                ('price_from', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('price_to', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('is_active', models.BooleanField(default=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('clinic', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='pricelist_items',
                    to='clinics.clinic'
                )),
            ],
            options={
                'db_table': 'pricelist_item',
                'ordering': ['specialty', 'procedure_name'],
            },
        ),
        migrations.AddIndex(
            model_name='clinic',
            index=models.Index(fields=['is_active', 'city'], name='idx_clinic_active_city'),
        ),
        migrations.AddIndex(
            model_name='pricelistitem',
            index=models.Index(fields=['clinic', 'is_active'], name='idx_pricelist_clinic_active'),
        ),
        migrations.AddIndex(
            model_name='pricelistitem',
            index=models.Index(fields=['procedure_code'], name='idx_pricelist_code'),
        ),
        migrations.AddConstraint(
            model_name='pricelistitem',
            constraint=models.CheckConstraint(check=models.Q(('price_from__gte', 0)), name='pricelist_price_from_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='pricelistitem',
            constraint=models.CheckConstraint(check=models.Q(('price_to__gte', models.F('price_from'))), name='pricelist_price_range_ordered'),
        ),
    ]
