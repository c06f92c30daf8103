"""
Domain events logging helpers.

Provides structured event logging for marketplace workflows.
"""
from typing import Dict, Optional

from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'study_transition', 'offer_accepted')
        entity_type: Type of entity (e.g., 'Study', 'Offer')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, duplicate, etc.)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'offer_accepted',
            entity_type='Offer',
            entity_id=str(offer.id),
            entity_ids={'offer_request_id': str(offer.offer_request_id)},
            rejected_siblings=3
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'conflict']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.

    Used to verify data integrity at critical points, e.g. right after an
    offer acceptance commits its sibling rejections and order creation.
    """
    all_passed = all(checks_passed.values())

    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))

    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_study_transition(study, from_status, to_status, result='success', **extra):
    """Log study status transition event."""
    log_domain_event(
        'study_transition',
        entity_type='Study',
        entity_id=str(study.id),
        entity_ids={'study_id': str(study.id), 'patient_id': str(study.patient_id)},
        result=result,
        from_status=from_status,
        to_status=to_status,
        **extra
    )


def log_analysis_callback(study_id, source, outcome_result, **extra):
    """Log an analysis outcome delivered to the pipeline (completed, failed, duplicate)."""
    log_domain_event(
        'analysis_callback',
        entity_type='Study',
        entity_id=str(study_id),
        entity_ids={'study_id': str(study_id)},
        result=outcome_result,
        source=source,
        **extra
    )


def log_offer_submitted(offer, mode):
    """Log offer authoring (created or replaced in place)."""
    log_domain_event(
        'offer_submitted',
        entity_type='Offer',
        entity_id=str(offer.id),
        entity_ids={
            'offer_request_id': str(offer.offer_request_id),
            'clinic_id': str(offer.clinic_id),
        },
        mode=mode,
        total_price=str(offer.total_price),
    )


def log_offer_accepted(offer, order, rejected_siblings):
    """Log offer acceptance and resulting order creation."""
    log_domain_event(
        'offer_accepted',
        entity_type='Offer',
        entity_id=str(offer.id),
        entity_ids={
            'offer_request_id': str(offer.offer_request_id),
            'clinic_id': str(offer.clinic_id),
            'order_id': str(order.id),
        },
        rejected_siblings=rejected_siblings,
    )


def log_accept_race_lost(offer_id, offer_request_id, reason):
    """Log an acceptance attempt rejected because another acceptance won."""
    log_domain_event(
        'offer_accept_race_lost',
        entity_type='Offer',
        entity_id=str(offer_id),
        entity_ids={'offer_request_id': str(offer_request_id)},
        result='conflict',
        reason=reason,
    )


def log_order_transition(order, from_status, to_status, result='success', **extra):
    """Log order status transition event."""
    log_domain_event(
        'order_transition',
        entity_type='Order',
        entity_id=str(order.id),
        entity_ids={'order_id': str(order.id), 'clinic_id': str(order.clinic_id)},
        result=result,
        from_status=from_status,
        to_status=to_status,
        **extra
    )
