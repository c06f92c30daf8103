"""
Offer matching services.

Patients open requests against plan items; active clinics answer with
offers; the patient accepts exactly one. Acceptance locks the parent
request row and moves every row with a status-guarded update, and the
partial unique constraints on ``offer`` and ``order`` reject a second
acceptance even without the lock.
"""
import uuid
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from apps.clinics.models import Clinic, PriceSegmentChoices, PricelistItem
from apps.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from apps.core.models import record_audit
from apps.core.observability import metrics
from apps.core.observability.events import (
    log_accept_race_lost,
    log_consistency_checkpoint,
    log_domain_event,
    log_offer_accepted,
    log_offer_submitted,
)
from apps.core.observability.tracing import add_span_attribute, trace_span
from apps.orders.models import Order
from apps.patients.models import Patient
from apps.plans.models import PlanItem, TreatmentPlan
from .models import (
    Offer,
    OfferLine,
    OfferRequest,
    OfferRequestStatusChoices,
    OfferStatusChoices,
)

OFFER_TERM_FIELDS = ('estimated_days', 'has_installment', 'installment_terms', 'special_offer')


def _parse_ids(values, field):
    if not isinstance(values, (list, tuple)):
        raise ValidationError(f'{field} must be a list')
    parsed = []
    for value in values:
        try:
            parsed.append(uuid.UUID(str(value)))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid id '{value}' in {field}")
    return list(dict.fromkeys(parsed))


def _to_decimal(value, field, minimum=None, maximum=None):
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if not number.is_finite():
        raise ValidationError(f'{field} must be a number')
    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be at least {minimum}')
    if maximum is not None and number > maximum:
        raise ValidationError(f'{field} must be at most {maximum}')
    return number.quantize(Decimal('0.01'))


# ============================================================================
# Offer requests (patient)
# ============================================================================

@transaction.atomic
def open_offer_request(caller, plan_id, selected_item_ids, preferences=None):
    """
    Open a request for offers on items of one of the caller's plans.

    Preferences left out default to the patient's profile.
    """
    patient_id = caller.require_patient()
    preferences = preferences or {}

    plan = TreatmentPlan.objects.filter(id=plan_id, study__patient_id=patient_id).first()
    if plan is None:
        raise NotFoundError('Plan not found')

    item_ids = _parse_ids(selected_item_ids or [], 'selected_item_ids')
    if not item_ids:
        raise ValidationError('At least one plan item must be selected')

    items = list(PlanItem.objects.filter(plan=plan, id__in=item_ids))
    if len(items) != len(item_ids):
        found = {item.id for item in items}
        raise ValidationError(
            'Selected items do not belong to the plan',
            details={'unknown_item_ids': [str(i) for i in item_ids if i not in found]}
        )

    patient = Patient.objects.get(id=patient_id)
    city = preferences.get('preferred_city')
    district = preferences.get('preferred_district')
    segment = preferences.get('preferred_price_segment')
    if city is None:
        city = patient.preferred_city
    if district is None:
        district = patient.preferred_district
    if segment is None:
        segment = patient.preferred_price_segment
    if segment and segment not in PriceSegmentChoices.values:
        raise ValidationError(
            f"Invalid preferred_price_segment '{segment}'. Must be one of: {', '.join(PriceSegmentChoices.values)}"
        )

    offer_request = OfferRequest.objects.create(
        patient_id=patient_id,
        plan=plan,
        preferred_city=(city or '').strip(),
        preferred_district=(district or '').strip(),
        preferred_price_segment=segment or '',
    )
    offer_request.selected_items.set(items)

    record_audit(caller.user_id, 'open_offer_request', offer_request, {
        'plan_id': str(plan.id),
        'item_count': len(items),
    })
    metrics.offer_requests_opened_total.inc()
    log_domain_event(
        'offer_request_opened',
        entity_type='OfferRequest',
        entity_id=str(offer_request.id),
        entity_ids={'plan_id': str(plan.id), 'patient_id': str(patient_id)},
        item_count=len(items),
    )
    return offer_request


def list_offer_requests_for_patient(caller):
    patient_id = caller.require_patient()
    return (
        OfferRequest.objects
        .filter(patient_id=patient_id)
        .prefetch_related('selected_items')
        .order_by('-created_at')
    )


def list_open_requests_for_clinic(caller):
    """
    Open requests whose preferences fit the caller's clinic.

    An empty preference matches any clinic; city and district compare
    case-insensitively, the price segment exactly.
    """
    clinic_id = caller.require_clinic()
    clinic = Clinic.objects.get(id=clinic_id)

    return (
        OfferRequest.objects
        .filter(status=OfferRequestStatusChoices.OPEN)
        .filter(Q(preferred_city='') | Q(preferred_city__iexact=clinic.city))
        .filter(Q(preferred_district='') | Q(preferred_district__iexact=clinic.district))
        .filter(Q(preferred_price_segment='') | Q(preferred_price_segment=clinic.price_segment))
        .prefetch_related('selected_items')
        .order_by('-created_at')
    )


def get_offer_request(caller, offer_request_id):
    """Owner patient, or clinic staff while the request is open."""
    queryset = OfferRequest.objects.prefetch_related('selected_items')
    if caller.is_patient:
        offer_request = queryset.filter(id=offer_request_id, patient_id=caller.require_patient()).first()
    else:
        clinic_id = caller.require_clinic()
        offer_request = queryset.filter(id=offer_request_id).filter(
            Q(status=OfferRequestStatusChoices.OPEN) | Q(offers__clinic_id=clinic_id)
        ).distinct().first()

    if offer_request is None:
        raise NotFoundError('Offer request not found')
    return offer_request


# ============================================================================
# Offers (clinic)
# ============================================================================

def _build_lines(clinic_id, offer_request, raw_lines):
    """
    Resolve requested lines into OfferLine field dicts.

    Each line names one of the clinic's active pricelist items and,
    optionally, a selected plan item of the request. The price defaults to
    the pricelist's lower bound and must stay inside its range.
    """
    if raw_lines is None:
        return []
    if not isinstance(raw_lines, (list, tuple)):
        raise ValidationError('lines must be a list')

    selected = {item.id: item for item in offer_request.selected_items.all()}
    lines = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f'Line {index}: must be an object')

        try:
            pricelist_item_id = uuid.UUID(str(raw.get('pricelist_item_id')))
        except (TypeError, ValueError):
            raise ValidationError(f'Line {index}: pricelist_item_id is required')

        pricelist_item = PricelistItem.objects.active().filter(id=pricelist_item_id, clinic_id=clinic_id).first()
        if pricelist_item is None:
            raise ValidationError(
                f'Line {index}: pricelist item not found in your active pricelist',
                details={'line_index': index}
            )

        plan_item = None
        if raw.get('plan_item_id'):
            try:
                plan_item = selected.get(uuid.UUID(str(raw['plan_item_id'])))
            except (TypeError, ValueError):
                plan_item = None
            if plan_item is None:
                raise ValidationError(
                    f'Line {index}: plan item is not part of the offer request',
                    details={'line_index': index}
                )

        if raw.get('price') is None:
            price = pricelist_item.price_from
        else:
            price = _to_decimal(raw['price'], f'Line {index}: price', minimum=0)
            if not (pricelist_item.price_from <= price <= pricelist_item.price_to):
                raise ValidationError(
                    f'Line {index}: price must be between {pricelist_item.price_from} and {pricelist_item.price_to}',
                    details={'line_index': index}
                )

        lines.append({
            'plan_item': plan_item,
            'pricelist_item': pricelist_item,
            'specialty': pricelist_item.specialty,
            'procedure_code': pricelist_item.procedure_code,
            'procedure_name': pricelist_item.procedure_name,
            'price': price,
        })
    return lines


def _offer_terms(terms, lines):
    discount = _to_decimal(terms.get('discount_percent') or 0, 'discount_percent', minimum=0, maximum=100)

    if terms.get('total_price') is not None:
        total = _to_decimal(terms['total_price'], 'total_price', minimum=0)
    elif lines:
        total = sum((line['price'] for line in lines), Decimal('0.00'))
    else:
        raise ValidationError('total_price is required when no lines are given')

    estimated_days = terms.get('estimated_days')
    if estimated_days is not None:
        try:
            estimated_days = int(estimated_days)
        except (TypeError, ValueError):
            raise ValidationError('estimated_days must be an integer')
        if estimated_days < 1:
            raise ValidationError('estimated_days must be at least 1')

    return {
        'total_price': total,
        'discount_percent': discount,
        'estimated_days': estimated_days,
        'has_installment': bool(terms.get('has_installment', False)),
        'installment_terms': terms.get('installment_terms') or '',
        'special_offer': terms.get('special_offer') or '',
    }


def submit_offer(caller, offer_request_id, terms):
    """
    Submit the caller clinic's offer on an open request.

    A clinic holds at most one pending offer per request: submitting again
    replaces its terms and lines in place and keeps the offer id.
    """
    clinic_id = caller.require_clinic(manager_only=True)
    clinic = Clinic.objects.get(id=clinic_id)
    if not clinic.is_active:
        raise ForbiddenError('Clinic is not active')

    with transaction.atomic():
        offer_request = OfferRequest.objects.select_for_update().filter(id=offer_request_id).first()
        if offer_request is None:
            raise NotFoundError('Offer request not found')
        if offer_request.status != OfferRequestStatusChoices.OPEN:
            raise InvalidStateError('Offer request is closed')

        lines = _build_lines(clinic_id, offer_request, terms.get('lines'))
        values = _offer_terms(terms, lines)

        offer = Offer.objects.select_for_update().filter(
            offer_request=offer_request,
            clinic_id=clinic_id,
            status=OfferStatusChoices.PENDING,
        ).first()

        if offer is None:
            mode = 'created'
            try:
                with transaction.atomic():
                    offer = Offer.objects.create(offer_request=offer_request, clinic_id=clinic_id, **values)
            except IntegrityError:
                raise ConflictError('A pending offer from this clinic already exists')
        else:
            mode = 'replaced'
            for field, value in values.items():
                setattr(offer, field, value)
            offer.save()
            offer.lines.all().delete()

        OfferLine.objects.bulk_create([OfferLine(offer=offer, **line) for line in lines])

        record_audit(caller.user_id, 'submit_offer', offer, {
            'offer_request_id': str(offer_request.id),
            'mode': mode,
            'total_price': str(offer.total_price),
        })

    metrics.offers_submitted_total.labels(mode=mode).inc()
    log_offer_submitted(offer, mode)
    return offer


def list_offers_for_clinic(caller):
    clinic_id = caller.require_clinic()
    return Offer.objects.filter(clinic_id=clinic_id).prefetch_related('lines').order_by('-created_at')


def list_offers_for_request(caller, offer_request_id):
    """The owner patient sees every offer; a clinic sees only its own."""
    if caller.is_patient:
        patient_id = caller.require_patient()
        if not OfferRequest.objects.filter(id=offer_request_id, patient_id=patient_id).exists():
            raise NotFoundError('Offer request not found')
        offers = Offer.objects.filter(offer_request_id=offer_request_id)
    else:
        clinic_id = caller.require_clinic()
        if not OfferRequest.objects.filter(id=offer_request_id).exists():
            raise NotFoundError('Offer request not found')
        offers = Offer.objects.filter(offer_request_id=offer_request_id, clinic_id=clinic_id)

    return offers.select_related('clinic').prefetch_related('lines').order_by('total_price', 'created_at')


# ============================================================================
# Acceptance (patient)
# ============================================================================

def _race_lost(offer_id, offer_request_id, reason, message, error_class=InvalidStateError):
    metrics.offer_accept_conflicts_total.labels(reason=reason).inc()
    log_accept_race_lost(offer_id, offer_request_id, reason)
    return error_class(message)


@metrics.track_duration(metrics.offer_accept_duration_seconds)
def accept_offer(caller, offer_id):
    """
    Accept one pending offer and create its order.

    Within one transaction: the offer becomes accepted, every other pending
    offer on the request is rejected, the request closes and a ``new``
    order is created. A losing concurrent acceptance raises
    InvalidStateError (or ConflictError when only the constraints caught it)
    and changes nothing.
    """
    patient_id = caller.require_patient()

    offer_request_id = (
        Offer.objects
        .filter(id=offer_id, offer_request__patient_id=patient_id)
        .values_list('offer_request_id', flat=True)
        .first()
    )
    if offer_request_id is None:
        raise NotFoundError('Offer not found')

    with trace_span('accept_offer', attributes={'offer_id': str(offer_id)}):
        try:
            with transaction.atomic():
                offer_request = OfferRequest.objects.select_for_update().get(id=offer_request_id)
                offer = Offer.objects.get(id=offer_id)

                if offer_request.status != OfferRequestStatusChoices.OPEN:
                    raise _race_lost(offer_id, offer_request_id, 'request_closed', 'Offer request is already closed')
                if offer.status != OfferStatusChoices.PENDING:
                    raise _race_lost(
                        offer_id, offer_request_id, 'offer_not_pending',
                        f"Offer is '{offer.status}', expected 'pending'"
                    )

                now = timezone.now()
                accepted = Offer.objects.filter(
                    id=offer.id,
                    status=OfferStatusChoices.PENDING,
                ).update(status=OfferStatusChoices.ACCEPTED, decided_at=now, updated_at=now)
                if accepted != 1:
                    raise _race_lost(offer_id, offer_request_id, 'offer_not_pending', 'Offer is no longer pending')

                rejected = Offer.objects.filter(
                    offer_request_id=offer_request.id,
                    status=OfferStatusChoices.PENDING,
                ).exclude(id=offer.id).update(status=OfferStatusChoices.REJECTED, decided_at=now, updated_at=now)
                add_span_attribute('rejected_siblings', rejected)

                closed = OfferRequest.objects.filter(
                    id=offer_request.id,
                    status=OfferRequestStatusChoices.OPEN,
                ).update(status=OfferRequestStatusChoices.CLOSED, closed_at=now, updated_at=now)
                if closed != 1:
                    raise _race_lost(offer_id, offer_request_id, 'request_closed', 'Offer request is already closed')

                order = Order.objects.create(
                    offer_id=offer.id,
                    offer_request_id=offer_request.id,
                    patient_id=patient_id,
                    clinic_id=offer.clinic_id,
                )
                offer.refresh_from_db()

                record_audit(caller.user_id, 'accept_offer', offer, {
                    'order_id': str(order.id),
                    'rejected_siblings': rejected,
                })

                log_consistency_checkpoint(
                    'offer_accepted',
                    entity_ids={'offer_request_id': str(offer_request.id), 'order_id': str(order.id)},
                    checks_passed={
                        'single_accepted_offer': Offer.objects.filter(
                            offer_request_id=offer_request.id, status=OfferStatusChoices.ACCEPTED
                        ).count() == 1,
                        'no_pending_siblings': not Offer.objects.filter(
                            offer_request_id=offer_request.id, status=OfferStatusChoices.PENDING
                        ).exists(),
                        'single_order': Order.objects.filter(offer_request_id=offer_request.id).count() == 1,
                    },
                )
        except IntegrityError:
            raise _race_lost(
                offer_id, offer_request_id, 'constraint',
                'Offer request already has an accepted offer', error_class=ConflictError
            )

    metrics.offers_accepted_total.inc()
    log_offer_accepted(offer, order, rejected)
    return order
