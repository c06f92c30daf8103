"""
Request correlation middleware.

Generates/propagates X-Request-ID and injects it into logs.
"""
import uuid
import time
import logging
from threading import local

from django.utils.deprecation import MiddlewareMixin

# Thread-local storage for request context
_request_context = local()

logger = logging.getLogger(__name__)


def get_request_id():
    """Get current request ID from thread-local storage."""
    return getattr(_request_context, 'request_id', None)


def get_trace_id():
    """Get current trace ID from thread-local storage."""
    return getattr(_request_context, 'trace_id', None)


def get_user_id():
    """Get current user ID from thread-local storage."""
    return getattr(_request_context, 'user_id', None)


def get_user_role():
    """Get current user role from thread-local storage."""
    return getattr(_request_context, 'user_role', None)


class RequestCorrelationMiddleware(MiddlewareMixin):
    """
    Middleware to handle request correlation.

    - Generates/propagates X-Request-ID
    - Stores context in thread-local for logging
    - Adds correlation headers to response
    - Logs request duration
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'
    TRACE_ID_HEADER = 'HTTP_X_TRACE_ID'

    def process_request(self, request):
        request_id = request.META.get(self.REQUEST_ID_HEADER) or str(uuid.uuid4())
        trace_id = request.META.get(self.TRACE_ID_HEADER)

        request.request_id = request_id
        request.trace_id = trace_id
        request.start_time = time.time()

        _request_context.request_id = request_id
        _request_context.trace_id = trace_id

        # Session-authenticated users only; JWT users are resolved later by DRF
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            _request_context.user_id = str(user.id)
            _request_context.user_role = getattr(user, 'role', None)
        else:
            _request_context.user_id = None
            _request_context.user_role = None

    def process_response(self, request, response):
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id

        if getattr(request, 'trace_id', None):
            response['X-Trace-ID'] = request.trace_id

        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000
            logger.info(
                'Request completed',
                extra={
                    'event': 'http_request_completed',
                    'path': request.path,
                    'method': request.method,
                    'status_code': response.status_code,
                    'duration_ms': round(duration_ms, 2),
                }
            )

        clear_request_context()
        return response

    def process_exception(self, request, exception):
        duration_ms = 0
        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000

        logger.error(
            f'Request failed: {exception.__class__.__name__}',
            exc_info=True,
            extra={
                'event': 'http_request_exception',
                'path': request.path,
                'method': request.method,
                'exception_type': exception.__class__.__name__,
                'duration_ms': round(duration_ms, 2),
            }
        )


def bind_user(user):
    """Record the authenticated user in the log context (called once DRF has authenticated)."""
    _request_context.user_id = str(user.id)
    _request_context.user_role = getattr(user, 'role', None)


def clear_request_context():
    """Clear thread-local request context."""
    for attr in ['request_id', 'trace_id', 'user_id', 'user_role']:
        if hasattr(_request_context, attr):
            delattr(_request_context, attr)
