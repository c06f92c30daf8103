"""
Order fulfillment services.

Only staff of the winning clinic move an order; consultation is never
skipped and completed/cancelled orders are final.
"""
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from apps.core.models import record_audit
from apps.core.observability import metrics
from apps.core.observability.events import log_order_transition
from .models import Order, OrderStatusChoices


def _parse_consultation_date(value):
    if value is None or value == '':
        return None
    if hasattr(value, 'tzinfo'):
        parsed = value
    else:
        try:
            parsed = parse_datetime(str(value))
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValidationError(f"Invalid consultation_date '{value}', expected ISO 8601 datetime")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


@transaction.atomic
def update_order_status(caller, order_id, new_status, consultation_date=None, reason=''):
    """
    Move an order of the caller's clinic to ``new_status``.

    Raises:
        ValidationError: unknown status or bad consultation date
        ForbiddenError: caller is not clinic staff
        NotFoundError: order belongs to another clinic
        InvalidStateError: transition not allowed from the current status
    """
    if caller.is_patient:
        raise ForbiddenError('Patients cannot change order status')
    clinic_id = caller.require_clinic()

    if new_status not in OrderStatusChoices.values:
        raise ValidationError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(OrderStatusChoices.values)}"
        )
    consultation_at = _parse_consultation_date(consultation_date)

    order = Order.objects.select_for_update().filter(id=order_id, clinic_id=clinic_id).first()
    if order is None:
        raise NotFoundError('Order not found')

    previous = order.status
    if not order.can_transition_to(new_status):
        metrics.order_transition_total.labels(from_status=previous, to_status=new_status, result='rejected').inc()
        log_order_transition(order, previous, new_status, result='blocked')
        raise InvalidStateError(
            f"Cannot move order from '{previous}' to '{new_status}'",
            details={'allowed': [str(s) for s in order.get_valid_transitions()]}
        )

    now = timezone.now()
    if new_status == OrderStatusChoices.CONSULTATION_SCHEDULED:
        order.consultation_date = consultation_at
    elif new_status == OrderStatusChoices.IN_PROGRESS:
        order.treatment_started_at = now
    elif new_status == OrderStatusChoices.COMPLETED:
        order.treatment_completed_at = now
    elif new_status == OrderStatusChoices.CANCELLED:
        order.cancelled_at = now
        order.cancellation_reason = reason or ''

    order.status = new_status
    order.save()

    record_audit(caller.user_id, 'update_order_status', order, {
        'from_status': previous,
        'to_status': new_status,
    })
    metrics.order_transition_total.labels(from_status=previous, to_status=new_status, result='success').inc()
    log_order_transition(order, previous, new_status)
    return order


def list_orders(caller):
    """Clinic staff see their clinic's orders; patients their own."""
    if caller.is_patient:
        orders = Order.objects.filter(patient_id=caller.require_patient())
    else:
        orders = Order.objects.filter(clinic_id=caller.require_clinic())
    return orders.select_related('offer', 'clinic').order_by('-created_at')


def get_order(caller, order_id):
    if caller.is_patient:
        order = Order.objects.filter(id=order_id, patient_id=caller.require_patient()).first()
    else:
        order = Order.objects.filter(id=order_id, clinic_id=caller.require_clinic()).first()
    if order is None:
        raise NotFoundError('Order not found')
    return order
