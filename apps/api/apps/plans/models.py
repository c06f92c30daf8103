"""
Plan models: treatment_plan, plan_item
"""
import uuid

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from apps.clinics.models import SpecialtyChoices


class PlanSourceChoices(models.TextChoices):
    DIAGNOCAT = 'diagnocat', 'Analysis service'
    MANUAL = 'manual', 'Manual'
    MODIFIED = 'modified', 'Modified'


def validate_fdi_tooth_number(value):
    """FDI notation: quadrant 1-4 followed by tooth 1-8 (11..48)."""
    quadrant, tooth = divmod(value, 10)
    if not (1 <= quadrant <= 4 and 1 <= tooth <= 8):
        raise ValidationError(f'{value} is not a valid FDI tooth number')


class TreatmentPlan(models.Model):
    """
    One immutable version of a study's treatment plan.

    Versions start at 1 and only grow; a new finding set means a new row.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    study = models.ForeignKey(
        'studies.Study',
        on_delete=models.PROTECT,
        related_name='plans'
    )
    version = models.PositiveIntegerField()
    source = models.CharField(
        max_length=20,
        choices=PlanSourceChoices.choices,
        default=PlanSourceChoices.DIAGNOCAT
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'treatment_plan'
        ordering = ['study', 'version']
        constraints = [
            models.UniqueConstraint(fields=['study', 'version'], name='uniq_plan_study_version'),
        ]

    def __str__(self):
        return f"Plan v{self.version} for study {self.study_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError('Treatment plans are immutable')
        super().save(*args, **kwargs)


class PlanItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plan = models.ForeignKey(TreatmentPlan, on_delete=models.CASCADE, related_name='items')
    specialty = models.CharField(max_length=20, choices=SpecialtyChoices.choices)
    procedure_code = models.CharField(max_length=50, blank=True)
    procedure_name = models.CharField(max_length=255)
    tooth_number = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[validate_fdi_tooth_number]
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    diagnosis = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'plan_item'
        ordering = ['specialty', 'tooth_number', 'procedure_name']
        constraints = [
            models.CheckConstraint(check=models.Q(quantity__gte=1), name='plan_item_quantity_positive'),
        ]

    def __str__(self):
        tooth = f" #{self.tooth_number}" if self.tooth_number else ''
        return f"{self.procedure_name}{tooth} x{self.quantity}"
