"""
Study models: study
"""
import uuid

from django.db import models


class StudyStatusChoices(models.TextChoices):
    CREATED = 'created', 'Created'
    UPLOADING = 'uploading', 'Uploading'
    PROCESSING = 'processing', 'Processing'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


class ModalityChoices(models.TextChoices):
    CBCT = 'CBCT', 'Cone Beam CT'
    PANORAMA = 'PANORAMA', 'Panoramic X-ray'
    FMX = 'FMX', 'Full Mouth X-ray Series'
    STL = 'STL', 'Intraoral Scan'


def study_artifact_path(instance, filename):
    return f"studies/{instance.patient_id}/{instance.id}/{filename}"


def study_report_path(instance, filename):
    return f"reports/{instance.patient_id}/{instance.id}/{filename}"


class Study(models.Model):
    """
    A patient's imaging study and its trip through external analysis.

    created -> uploading -> processing -> completed | failed

    The patient drives the first two transitions; after the artifact is
    stored only the analysis pipeline moves the status. Terminal studies are
    kept forever and never change again.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'patients.Patient',
        on_delete=models.PROTECT,
        related_name='studies'
    )
    modality = models.CharField(max_length=20, choices=ModalityChoices.choices)
    study_date = models.DateField()
    status = models.CharField(
        max_length=20,
        choices=StudyStatusChoices.choices,
        default=StudyStatusChoices.CREATED,
        db_index=True
    )

    # Uploaded artifact
    artifact = models.FileField(upload_to=study_artifact_path, blank=True)
    original_filename = models.CharField(max_length=255, blank=True)
    artifact_size = models.BigIntegerField(null=True, blank=True)

    # Analysis
    analysis_uid = models.CharField(max_length=100, blank=True, db_index=True)
    analysis_result = models.JSONField(null=True, blank=True)
    error_message = models.TextField(blank=True)
    report = models.FileField(upload_to=study_report_path, blank=True)

    uploaded_at = models.DateTimeField(null=True, blank=True)
    processing_started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'study'
        ordering = ['-created_at']
        verbose_name_plural = 'Studies'
        indexes = [
            models.Index(fields=['patient', '-created_at'], name='idx_study_patient_created'),
        ]

    TERMINAL_STATUSES = (StudyStatusChoices.COMPLETED, StudyStatusChoices.FAILED)

    def __str__(self):
        return f"{self.modality} study {self.id} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @classmethod
    def get_valid_transitions(cls):
        """
        Get valid status transitions.

        Returns dict: {current_status: [allowed_next_statuses]}
        """
        return {
            StudyStatusChoices.CREATED: [StudyStatusChoices.UPLOADING],
            StudyStatusChoices.UPLOADING: [StudyStatusChoices.PROCESSING],
            StudyStatusChoices.PROCESSING: [StudyStatusChoices.COMPLETED, StudyStatusChoices.FAILED],
            StudyStatusChoices.COMPLETED: [],  # Terminal
            StudyStatusChoices.FAILED: [],     # Terminal
        }

    def can_transition_to(self, new_status):
        return new_status in self.get_valid_transitions().get(self.status, [])
