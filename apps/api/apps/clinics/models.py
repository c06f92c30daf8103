"""
Clinic models: clinic, clinic_member, pricelist_item
"""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q


# ============================================================================
# Enums
# ============================================================================

class PriceSegmentChoices(models.TextChoices):
    ECONOMY = 'economy', 'Economy'
    BUSINESS = 'business', 'Business'
    PREMIUM = 'premium', 'Premium'


class SpecialtyChoices(models.TextChoices):
    """Dental specialties shared by pricelists and treatment plans."""
    THERAPY = 'therapy', 'Therapy'
    ORTHOPEDICS = 'orthopedics', 'Orthopedics'
    SURGERY = 'surgery', 'Surgery'
    HYGIENE = 'hygiene', 'Hygiene'
    PERIODONTICS = 'periodontics', 'Periodontics'


class MemberRoleChoices(models.TextChoices):
    MANAGER = 'manager', 'Manager'
    DOCTOR = 'doctor', 'Doctor'


# ============================================================================
# Clinic
# ============================================================================

class Clinic(models.Model):
    """
    Dental clinic profile.

    New clinics are inactive until an admin approves them; inactive clinics
    are hidden from patients and cannot submit offers.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    legal_name = models.CharField(max_length=255, blank=True)
    license_number = models.CharField(max_length=100, unique=True)
    year_established = models.PositiveIntegerField(null=True, blank=True)
    city = models.CharField(max_length=100)
    district = models.CharField(max_length=100, blank=True)
    address = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    website = models.URLField(blank=True)
    price_segment = models.CharField(
        max_length=20,
        choices=PriceSegmentChoices.choices,
        default=PriceSegmentChoices.BUSINESS
    )
    is_active = models.BooleanField(default=False, help_text='Set by an admin after approval')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic'
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active', 'city'], name='idx_clinic_active_city'),
        ]

    def __str__(self):
        return self.name

    def matches(self, city='', district='', price_segment=''):
        """
        True if this clinic satisfies the given preferences.

        An empty preference matches any clinic; city and district compare
        case-insensitively, the price segment exactly.
        """
        if city and self.city.strip().casefold() != city.strip().casefold():
            return False
        if district and self.district.strip().casefold() != district.strip().casefold():
            return False
        if price_segment and self.price_segment != price_segment:
            return False
        return True


class ClinicMember(models.Model):
    """Binds a clinic_manager or clinic_doctor user to exactly one clinic."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='clinic_membership'
    )
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='members')
    member_role = models.CharField(max_length=20, choices=MemberRoleChoices.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'clinic_member'

    def __str__(self):
        return f"{self.user} @ {self.clinic} ({self.member_role})"


# ============================================================================
# Pricelist
# ============================================================================

class PricelistItemQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)


class PricelistItem(models.Model):
    """
    One procedure price range in a clinic's pricelist.

    Deletion is soft (is_active=False, deleted_at set) and final. Offers
    copy prices into their own lines, so deleting an item never alters a
    stored offer.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='pricelist_items')
    specialty = models.CharField(max_length=20, choices=SpecialtyChoices.choices)
    procedure_code = models.CharField(max_length=50, blank=True)
    procedure_name = models.CharField(max_length=255)
    price_from = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )
    price_to = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )
    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PricelistItemQuerySet.as_manager()

    class Meta:
        db_table = 'pricelist_item'
        ordering = ['specialty', 'procedure_name']
        indexes = [
            models.Index(fields=['clinic', 'is_active'], name='idx_pricelist_clinic_active'),
            models.Index(fields=['procedure_code'], name='idx_pricelist_code'),
        ]
        constraints = [
            models.CheckConstraint(
                check=Q(price_from__gte=0),
                name='pricelist_price_from_non_negative'
            ),
            models.CheckConstraint(
                check=Q(price_to__gte=F('price_from')),
                name='pricelist_price_range_ordered'
            ),
        ]

    def __str__(self):
        return f"{self.procedure_name} ({self.price_from}-{self.price_to})"
