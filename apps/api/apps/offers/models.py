"""
Offer models: offer_request, offer, offer_line
"""
import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from apps.clinics.models import PriceSegmentChoices, SpecialtyChoices


class OfferRequestStatusChoices(models.TextChoices):
    OPEN = 'open', 'Open'
    CLOSED = 'closed', 'Closed'


class OfferStatusChoices(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACCEPTED = 'accepted', 'Accepted'
    REJECTED = 'rejected', 'Rejected'


class OfferRequest(models.Model):
    """
    A patient's call for offers on selected items of one treatment plan.

    Closed exactly once, by the acceptance of one of its offers.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'patients.Patient',
        on_delete=models.PROTECT,
        related_name='offer_requests'
    )
    plan = models.ForeignKey(
        'plans.TreatmentPlan',
        on_delete=models.PROTECT,
        related_name='offer_requests'
    )
    selected_items = models.ManyToManyField(
        'plans.PlanItem',
        related_name='offer_requests',
        db_table='offer_request_item'
    )
    preferred_city = models.CharField(max_length=100, blank=True)
    preferred_district = models.CharField(max_length=100, blank=True)
    preferred_price_segment = models.CharField(
        max_length=20,
        choices=PriceSegmentChoices.choices,
        blank=True
    )
    status = models.CharField(
        max_length=20,
        choices=OfferRequestStatusChoices.choices,
        default=OfferRequestStatusChoices.OPEN,
        db_index=True
    )
    closed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'offer_request'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['patient', '-created_at'], name='idx_offer_req_patient'),
        ]

    def __str__(self):
        return f"Offer request {self.id} ({self.status})"


class Offer(models.Model):
    """
    A clinic's priced answer to an offer request.

    At most one pending offer per (request, clinic) and at most one accepted
    offer per request, enforced by partial unique constraints.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    offer_request = models.ForeignKey(
        OfferRequest,
        on_delete=models.CASCADE,
        related_name='offers'
    )
    clinic = models.ForeignKey(
        'clinics.Clinic',
        on_delete=models.PROTECT,
        related_name='offers'
    )
    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    discount_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    estimated_days = models.PositiveIntegerField(null=True, blank=True)
    has_installment = models.BooleanField(default=False)
    installment_terms = models.TextField(blank=True)
    special_offer = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=OfferStatusChoices.choices,
        default=OfferStatusChoices.PENDING,
        db_index=True
    )
    decided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'offer'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['offer_request'],
                condition=models.Q(status='accepted'),
                name='uniq_accepted_offer_per_request'
            ),
            models.UniqueConstraint(
                fields=['offer_request', 'clinic'],
                condition=models.Q(status='pending'),
                name='uniq_pending_offer_per_clinic'
            ),
            models.CheckConstraint(check=models.Q(total_price__gte=0), name='offer_total_price_non_negative'),
            models.CheckConstraint(
                check=models.Q(discount_percent__gte=0) & models.Q(discount_percent__lte=100),
                name='offer_discount_percent_range'
            ),
        ]

    def __str__(self):
        return f"Offer {self.id} by clinic {self.clinic_id} ({self.status})"


class OfferLine(models.Model):
    """Price snapshot of one procedure, frozen when the offer is authored."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    offer = models.ForeignKey(Offer, on_delete=models.CASCADE, related_name='lines')
    plan_item = models.ForeignKey(
        'plans.PlanItem',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    pricelist_item = models.ForeignKey(
        'clinics.PricelistItem',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    specialty = models.CharField(max_length=20, choices=SpecialtyChoices.choices)
    procedure_code = models.CharField(max_length=50, blank=True)
    procedure_name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])

    class Meta:
        db_table = 'offer_line'
        ordering = ['specialty', 'procedure_name']

    def __str__(self):
        return f"{self.procedure_name}: {self.price}"
