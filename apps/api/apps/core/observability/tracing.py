"""
Tracing support via the OpenTelemetry API.

Without a configured SDK the API hands out non-recording spans, so
``trace_span`` is safe to use everywhere.
"""
from contextlib import contextmanager
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

tracer = trace.get_tracer('dental_marketplace')

_SPAN_KINDS = {
    'server': SpanKind.SERVER,
    'client': SpanKind.CLIENT,
    'internal': SpanKind.INTERNAL,
    'consumer': SpanKind.CONSUMER,
}


@contextmanager
def trace_span(
    name: str,
    kind: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None
):
    """
    Context manager for creating trace spans.

    Usage:
        with trace_span('accept_offer', attributes={'offer_id': str(offer.id)}):
            ...
    """
    span_kind = _SPAN_KINDS.get(kind, SpanKind.INTERNAL)

    with tracer.start_as_current_span(name, kind=span_kind) as span:
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)

        try:
            yield span
        except Exception as e:
            span.set_attribute('error.type', e.__class__.__name__)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise


def add_span_attribute(key: str, value: Any):
    """Add attribute to the current span if it is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value)
