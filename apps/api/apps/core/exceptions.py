"""
Domain error kinds and their HTTP mapping.

Services raise these; ``marketplace_exception_handler`` (wired as DRF's
EXCEPTION_HANDLER) turns them into ``{"error": ..., "error_type": ...}``
responses.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.core.observability.logging import get_sanitized_logger
from apps.core.observability.metrics import metrics

logger = get_sanitized_logger(__name__)


class MarketplaceError(Exception):
    """Base class for all domain errors."""

    error_type = 'marketplace_error'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        return self.message


class ValidationError(MarketplaceError):
    """Malformed or out-of-range input."""
    error_type = 'validation_error'
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(MarketplaceError):
    """Entity missing or not visible to the caller."""
    error_type = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(MarketplaceError):
    """Caller's role may not perform the operation."""
    error_type = 'forbidden'
    status_code = status.HTTP_403_FORBIDDEN


class InvalidStateError(MarketplaceError):
    """Entity status does not allow the operation."""
    error_type = 'invalid_state'
    status_code = status.HTTP_409_CONFLICT


class ConflictError(MarketplaceError):
    """Uniqueness violation or lost concurrent race."""
    error_type = 'conflict'
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(MarketplaceError):
    """An external collaborator (the analysis service) failed."""
    error_type = 'upstream_error'
    status_code = status.HTTP_502_BAD_GATEWAY


def _django_validation_message(exc):
    if hasattr(exc, 'message_dict'):
        return '; '.join(
            f'{field}: {" ".join(messages)}' for field, messages in exc.message_dict.items()
        )
    return ' '.join(exc.messages)


def _drf_validation_message(detail):
    if isinstance(detail, dict) and detail:
        field, errors = next(iter(detail.items()))
        first = errors[0] if isinstance(errors, list) and errors else errors
        return f'{field}: {first}'
    if isinstance(detail, list) and detail:
        return str(detail[0])
    return str(detail)


def marketplace_exception_handler(exc, context):
    """
    DRF exception handler.

    Domain errors, model-level Django ValidationErrors and serializer
    validation failures become ``{"error", "error_type"}`` bodies; anything
    else (authentication, throttling, 404 routing) falls through to DRF.
    """
    view = context.get('view')
    location = view.__class__.__name__ if view is not None else 'unknown'

    if isinstance(exc, MarketplaceError):
        metrics.exceptions_total.labels(error_type=exc.error_type, location=location).inc()
        logger.info(
            'Domain error returned',
            extra={
                'event': 'domain_error',
                'error_type': exc.error_type,
                'location': location,
            }
        )
        body = {'error': exc.message, 'error_type': exc.error_type}
        if exc.details:
            body['details'] = exc.details
        return Response(body, status=exc.status_code)

    if isinstance(exc, DjangoValidationError):
        metrics.exceptions_total.labels(error_type='validation_error', location=location).inc()
        return Response(
            {'error': _django_validation_message(exc), 'error_type': 'validation_error'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, DRFValidationError):
        metrics.exceptions_total.labels(error_type='validation_error', location=location).inc()
        return Response(
            {
                'error': _drf_validation_message(exc.detail),
                'error_type': 'validation_error',
                'details': exc.detail,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )

    return exception_handler(exc, context)
