# Generated migration for studies app - imaging studies

import uuid
import django.db.models.deletion
import apps.studies.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('patients', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Study',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('modality', models.CharField(
                    choices=[
                        ('CBCT', 'Cone Beam CT'),
                        ('PANORAMA', 'Panoramic X-ray'),
                        ('FMX', 'Full Mouth X-ray Series'),
                        ('STL', 'Intraoral Scan')
                    ],
                    max_length=20
                )),
                ('study_date', models.DateField()),
                ('status', models.CharField(
                    choices=[
                        ('created', 'Created'),
                        ('uploading', 'Uploading'),
                        ('processing', 'Processing'),
                        ('completed', 'Completed'),
                        ('failed', 'Failed')
                    ],
                    db_index=True,
                    default='created',
                    max_length=20
                )),
                ('artifact', models.FileField(blank=True, upload_to=apps.studies.models.study_artifact_path)),
                ('original_filename', models.CharField(blank=True, max_length=255)),
                ('artifact_size', models.BigIntegerField(blank=True, null=True)),
                ('analysis_uid', models.CharField(blank=True, db_index=True, max_length=100)),
                ('analysis_result', models.JSONField(blank=True, null=True)),
                ('error_message', models.TextField(blank=True)),
                ('report', models.FileField(blank=True, upload_to=apps.studies.models.study_report_path)),
                ('uploaded_at', models.DateTimeField(blank=True, null=True)),
                ('processing_started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='studies',
                    to='patients.patient'
                )),
            ],
            options={
                'db_table': 'study',
                'ordering': ['-created_at'],
                'verbose_name_plural': 'Studies',
            },
        ),
        migrations.AddIndex(
            model_name='study',
            index=models.Index(fields=['patient', '-created_at'], name='idx_study_patient_created'),
        ),
    ]
