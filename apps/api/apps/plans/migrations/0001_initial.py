# Generated migration for plans app - treatment plan versions

import uuid
import django.core.validators
import django.db.models.deletion
import apps.plans.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('studies', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TreatmentPlan',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('version', models.PositiveIntegerField()),
                ('source', models.CharField(
                    choices=[('diagnocat', 'Analysis service'), ('manual', 'Manual'), ('modified', 'Modified')],
                    default='diagnocat',
                    max_length=20
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('study', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='plans',
                    to='studies.study'
                )),
            ],
            options={
                'db_table': 'treatment_plan',
                'ordering': ['study', 'version'],
            },
        ),
        migrations.CreateModel(
            name='PlanItem',
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
                ('tooth_number', models.PositiveSmallIntegerField(blank=True, null=True, validators=[apps.plans.models.validate_fdi_tooth_number])),
                ('quantity', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('diagnosis', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('plan', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='items',
                    to='plans.treatmentplan'
                )),
            ],
            options={
                'db_table': 'plan_item',
                'ordering': ['specialty', 'tooth_number', 'procedure_name'],
            },
        ),
        migrations.AddConstraint(
            model_name='treatmentplan',
            constraint=models.UniqueConstraint(fields=('study', 'version'), name='uniq_plan_study_version'),
        ),
        migrations.AddConstraint(
            model_name='planitem',
            constraint=models.CheckConstraint(check=models.Q(('quantity__gte', 1)), name='plan_item_quantity_positive'),
        ),
    ]
