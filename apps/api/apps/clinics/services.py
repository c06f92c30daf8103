"""
Clinic services: clinic profile, membership and the pricelist catalog.

Writes require a clinic_manager bound to the clinic; items of another
clinic are reported as not found.
"""
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.authz.models import RoleChoices, User
from apps.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from apps.core.models import record_audit
from apps.core.observability import metrics
from apps.core.observability.events import log_domain_event
from .models import (
    Clinic,
    ClinicMember,
    MemberRoleChoices,
    PriceSegmentChoices,
    PricelistItem,
    SpecialtyChoices,
)

CLINIC_PROFILE_FIELDS = (
    'name', 'legal_name', 'license_number', 'year_established', 'city', 'district',
    'address', 'phone', 'email', 'website', 'price_segment',
)


# ============================================================================
# Clinic profile
# ============================================================================

def _validate_clinic_data(data, partial=False):
    if not partial:
        for field in ('name', 'license_number', 'city'):
            if not data.get(field):
                raise ValidationError(f'{field} is required')
    segment = data.get('price_segment')
    if segment is not None and segment not in PriceSegmentChoices.values:
        raise ValidationError(
            f"Invalid price_segment '{segment}'. Must be one of: {', '.join(PriceSegmentChoices.values)}"
        )


@transaction.atomic
def create_clinic(caller, data):
    """
    Create the caller's clinic (inactive until admin approval) and bind the
    caller to it as manager.
    """
    if not caller.is_clinic_manager:
        raise ForbiddenError('Only clinic managers can create a clinic profile')
    if caller.clinic_id is not None:
        raise ConflictError('Clinic profile already exists')

    _validate_clinic_data(data)

    if Clinic.objects.filter(license_number=data['license_number']).exists():
        raise ConflictError('A clinic with this license number already exists')

    clinic = Clinic.objects.create(
        is_active=False,
        **{k: v for k, v in data.items() if k in CLINIC_PROFILE_FIELDS}
    )
    try:
        ClinicMember.objects.create(
            user_id=caller.user_id,
            clinic=clinic,
            member_role=MemberRoleChoices.MANAGER,
        )
    except IntegrityError:
        raise ConflictError('Clinic profile already exists')

    log_domain_event('clinic_created', entity_type='Clinic', entity_id=str(clinic.id))
    return clinic


def get_my_clinic(caller):
    if not caller.is_clinic_staff:
        raise ForbiddenError('Only clinic staff have a clinic profile')
    if caller.clinic_id is None:
        raise NotFoundError('Clinic profile not found')
    return Clinic.objects.get(id=caller.clinic_id)


@transaction.atomic
def update_clinic(caller, data):
    """Update profile fields of the caller's clinic. ``is_active`` is admin-only and ignored."""
    clinic_id = caller.require_clinic(manager_only=True)
    _validate_clinic_data(data, partial=True)

    clinic = Clinic.objects.select_for_update().get(id=clinic_id)
    changed = [k for k in data if k in CLINIC_PROFILE_FIELDS]
    for field in changed:
        setattr(clinic, field, data[field])

    if 'license_number' in changed and Clinic.objects.filter(
        license_number=clinic.license_number
    ).exclude(id=clinic.id).exists():
        raise ConflictError('A clinic with this license number already exists')

    clinic.save()
    return clinic


def list_active_clinics(city='', district='', price_segment=''):
    """Public clinic directory: active clinics matching the given filters."""
    queryset = Clinic.objects.filter(is_active=True)
    if city:
        queryset = queryset.filter(city__iexact=city.strip())
    if district:
        queryset = queryset.filter(district__iexact=district.strip())
    if price_segment:
        queryset = queryset.filter(price_segment=price_segment)
    return queryset.order_by('name')


@transaction.atomic
def add_clinic_member(caller, email):
    """Bind a registered clinic_doctor account to the caller's clinic."""
    clinic_id = caller.require_clinic(manager_only=True)

    user = User.objects.filter(email__iexact=(email or '').strip()).first()
    if user is None:
        raise NotFoundError('User not found')
    if user.role != RoleChoices.CLINIC_DOCTOR:
        raise ValidationError('Only clinic_doctor accounts can be added as members')
    if ClinicMember.objects.filter(user=user).exists():
        raise ConflictError('User already belongs to a clinic')

    try:
        member = ClinicMember.objects.create(
            user=user,
            clinic_id=clinic_id,
            member_role=MemberRoleChoices.DOCTOR,
        )
    except IntegrityError:
        raise ConflictError('User already belongs to a clinic')

    log_domain_event(
        'clinic_member_added',
        entity_type='ClinicMember',
        entity_id=str(member.id),
        entity_ids={'clinic_id': str(clinic_id)},
    )
    return member


# ============================================================================
# Pricelist
# ============================================================================

def _to_price(value, field):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if not price.is_finite():
        raise ValidationError(f'{field} must be a number')
    if price < 0:
        raise ValidationError(f'{field} must not be negative')
    return price.quantize(Decimal('0.01'))


@transaction.atomic
def add_item(caller, data):
    """
    Add a pricelist item to the caller's clinic.

    ``price_to`` defaults to ``price_from``. Nothing is persisted when
    validation fails.
    """
    clinic_id = caller.require_clinic(manager_only=True)

    specialty = data.get('specialty')
    if specialty not in SpecialtyChoices.values:
        raise ValidationError(
            f"Invalid specialty '{specialty}'. Must be one of: {', '.join(SpecialtyChoices.values)}"
        )

    procedure_name = (data.get('procedure_name') or '').strip()
    if not procedure_name:
        raise ValidationError('procedure_name is required')

    if data.get('price_from') is None:
        raise ValidationError('price_from is required')
    price_from = _to_price(data['price_from'], 'price_from')
    price_to = price_from if data.get('price_to') is None else _to_price(data['price_to'], 'price_to')

    if price_from > price_to:
        raise ValidationError(
            'price_from cannot exceed price_to',
            details={'price_from': str(price_from), 'price_to': str(price_to)}
        )

    item = PricelistItem.objects.create(
        clinic_id=clinic_id,
        specialty=specialty,
        procedure_code=(data.get('procedure_code') or '').strip(),
        procedure_name=procedure_name,
        price_from=price_from,
        price_to=price_to,
    )

    record_audit(caller.user_id, 'add_pricelist_item', item, {'clinic_id': str(clinic_id)})
    metrics.pricelist_changes_total.labels(action='add').inc()
    return item


@transaction.atomic
def delete_item(caller, item_id):
    """Soft-delete an active item of the caller's clinic."""
    clinic_id = caller.require_clinic(manager_only=True)

    updated = PricelistItem.objects.filter(
        id=item_id,
        clinic_id=clinic_id,
        is_active=True,
    ).update(is_active=False, deleted_at=timezone.now(), updated_at=timezone.now())

    if updated == 0:
        raise NotFoundError('Pricelist item not found')

    item = PricelistItem.objects.get(id=item_id)
    record_audit(caller.user_id, 'delete_pricelist_item', item, {'clinic_id': str(clinic_id)})
    metrics.pricelist_changes_total.labels(action='delete').inc()
    return item


def list_items(caller):
    """Active items of the caller's clinic, by specialty then name."""
    clinic_id = caller.require_clinic()
    return PricelistItem.objects.active().filter(clinic_id=clinic_id).order_by('specialty', 'procedure_name')
