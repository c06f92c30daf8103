"""
Treatment plan services.

Plans are only ever created by the study completion transition
(``create_plan_version``); patients read them and get price estimates.
"""
from collections import OrderedDict
from decimal import Decimal

from django.db.models import Max, Min

from apps.clinics.models import PricelistItem, SpecialtyChoices
from apps.core.exceptions import NotFoundError, ValidationError
from apps.core.observability import metrics
from apps.core.observability.events import log_domain_event
from apps.studies.models import Study
from .models import PlanItem, PlanSourceChoices, TreatmentPlan


def _finding_error(index, message):
    return ValidationError(f'Finding {index}: {message}', details={'finding_index': index})


def validate_findings(findings):
    """
    Validate and normalize analysis findings into PlanItem field dicts.

    Raises ValidationError naming the first bad finding.
    """
    if not isinstance(findings, (list, tuple)):
        raise ValidationError('Findings must be a list')

    normalized = []
    for index, finding in enumerate(findings):
        if not isinstance(finding, dict):
            raise _finding_error(index, 'must be an object')

        specialty = finding.get('specialty')
        if specialty not in SpecialtyChoices.values:
            raise _finding_error(index, f"unknown specialty '{specialty}'")

        procedure_name = (finding.get('procedure_name') or '').strip()
        if not procedure_name:
            raise _finding_error(index, 'procedure_name is required')

        tooth_number = finding.get('tooth_number')
        if tooth_number is not None:
            try:
                tooth_number = int(tooth_number)
            except (TypeError, ValueError):
                raise _finding_error(index, 'tooth_number must be an integer')
            quadrant, tooth = divmod(tooth_number, 10)
            if not (1 <= quadrant <= 4 and 1 <= tooth <= 8):
                raise _finding_error(index, f'{tooth_number} is not a valid FDI tooth number')

        quantity = finding.get('quantity') or 1
        try:
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise _finding_error(index, 'quantity must be an integer')
        if quantity < 1:
            raise _finding_error(index, 'quantity must be at least 1')

        normalized.append({
            'specialty': specialty,
            'procedure_code': (finding.get('procedure_code') or '').strip(),
            'procedure_name': procedure_name,
            'tooth_number': tooth_number,
            'quantity': quantity,
            'diagnosis': finding.get('diagnosis') or '',
            'notes': finding.get('notes') or '',
            'metadata': finding.get('metadata') or {},
        })
    return normalized


def create_plan_version(study, findings, source=PlanSourceChoices.DIAGNOCAT):
    """
    Create the next plan version for ``study``.

    The caller must hold the study row lock (select_for_update) inside an
    atomic block; the version is max(version)+1 under that lock.
    """
    if source not in PlanSourceChoices.values:
        raise ValidationError(f"Invalid plan source '{source}'")

    items = validate_findings(findings)

    current = TreatmentPlan.objects.filter(study=study).aggregate(v=Max('version'))['v'] or 0
    plan = TreatmentPlan.objects.create(study=study, version=current + 1, source=source)
    PlanItem.objects.bulk_create([PlanItem(plan=plan, **item) for item in items])

    metrics.plans_created_total.labels(source=source).inc()
    log_domain_event(
        'plan_version_created',
        entity_type='TreatmentPlan',
        entity_id=str(plan.id),
        entity_ids={'study_id': str(study.id)},
        version=plan.version,
        items_count=len(items),
    )
    return plan


def list_plans_for_study(caller, study_id):
    """Plans of one of the caller's studies, ascending by version, with items."""
    patient_id = caller.require_patient()
    if not Study.objects.filter(id=study_id, patient_id=patient_id).exists():
        raise NotFoundError('Study not found')
    return (
        TreatmentPlan.objects
        .filter(study_id=study_id)
        .prefetch_related('items')
        .order_by('version')
    )


def get_plan(caller, plan_id):
    patient_id = caller.require_patient()
    plan = (
        TreatmentPlan.objects
        .filter(id=plan_id, study__patient_id=patient_id)
        .prefetch_related('items')
        .first()
    )
    if plan is None:
        raise NotFoundError('Plan not found')
    return plan


def estimate_plan(caller, plan_id):
    """
    Price range per specialty from active pricelists of approved clinics.

    Items are matched to pricelist entries by procedure code; the cheapest
    price_from and dearest price_to across clinics are multiplied by the
    item quantity. Items with no priced match count toward ``count`` but
    not toward ``priced_count`` or the totals.
    """
    plan = get_plan(caller, plan_id)
    items = list(plan.items.all())

    codes = {item.procedure_code for item in items if item.procedure_code}
    ranges = {
        row['procedure_code']: (row['low'], row['high'])
        for row in (
            PricelistItem.objects.active()
            .filter(clinic__is_active=True, procedure_code__in=codes)
            .values('procedure_code')
            .annotate(low=Min('price_from'), high=Max('price_to'))
        )
    }

    estimates = OrderedDict(
        (specialty, {'count': 0, 'priced_count': 0, 'min': Decimal('0.00'), 'max': Decimal('0.00')})
        for specialty in SpecialtyChoices.values
    )
    for item in items:
        bucket = estimates[item.specialty]
        bucket['count'] += 1
        price_range = ranges.get(item.procedure_code)
        if price_range is None:
            continue
        low, high = price_range
        bucket['priced_count'] += 1
        bucket['min'] += low * item.quantity
        bucket['max'] += high * item.quantity

    return {
        'plan_id': plan.id,
        'estimates': estimates,
        'total_min': sum((b['min'] for b in estimates.values()), Decimal('0.00')),
        'total_max': sum((b['max'] for b in estimates.values()), Decimal('0.00')),
    }
