"""
Patient models - marketplace patient profile.
"""
import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.clinics.models import PriceSegmentChoices


class Patient(models.Model):
    """
    Patient profile, created at registration.

    The preferred_* fields seed the matching preferences of new offer
    requests when the patient leaves them out.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='patient_profile'
    )

    # Demographics
    first_name = models.CharField(_('First Name'), max_length=100, blank=True)
    last_name = models.CharField(_('Last Name'), max_length=100, blank=True)
    date_of_birth = models.DateField(_('Date of Birth'), null=True, blank=True)
    phone = models.CharField(_('Phone'), max_length=20, blank=True)

    # Offer matching defaults
    preferred_city = models.CharField(_('Preferred City'), max_length=100, blank=True)
    preferred_district = models.CharField(_('Preferred District'), max_length=100, blank=True)
    preferred_price_segment = models.CharField(
        _('Preferred Price Segment'),
        max_length=20,
        choices=PriceSegmentChoices.choices,
        blank=True
    )

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'patients'
        ordering = ['-created_at']
        verbose_name = _('Patient')
        verbose_name_plural = _('Patients')

    def __str__(self):
        return f"{self.first_name} {self.last_name}".strip() or str(self.id)
