"""
Structured logging with PHI/PII protection.

Study findings, diagnoses and contact details must never reach log sinks.
"""
import logging
import json
from datetime import datetime, timezone
from .correlation import get_request_id, get_trace_id, get_user_id, get_user_role


# Fields that should NEVER be logged (PHI/PII)
SENSITIVE_FIELDS = {
    'password',
    'token',
    'access',
    'refresh',
    'secret',
    'api_key',
    'authorization',
    'signature',
    'diagnosis',
    'findings',
    'analysis_result',
    'notes',
    'first_name',
    'last_name',
    'email',
    'phone',
    'address',
    'date_of_birth',
}

# Attributes every LogRecord carries; not copied into the JSON payload
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
])


class CorrelationFilter(logging.Filter):
    """
    Logging filter that injects correlation context into log records.
    """

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        record.trace_id = get_trace_id() or '-'
        record.user_id = get_user_id() or '-'
        record.user_role = get_user_role() or '-'
        return True


class SanitizedJSONFormatter(logging.Formatter):
    """
    JSON formatter that redacts sensitive fields.
    """

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'request_id': getattr(record, 'request_id', '-'),
            'trace_id': getattr(record, 'trace_id', '-'),
            'user_id': getattr(record, 'user_id', '-'),
            'user_role': getattr(record, 'user_role', '-'),
        }

        # Extra fields passed via extra={}
        for key, value in record.__dict__.items():
            if key in log_data or key.startswith('_') or key in _RESERVED_ATTRS:
                continue
            if key.lower() in SENSITIVE_FIELDS:
                log_data[key] = '[REDACTED]'
            else:
                log_data[key] = sanitize_value(value)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def sanitize_value(value):
    """Redact sensitive keys inside nested dicts and lists."""
    if isinstance(value, dict):
        return sanitize_dict(value)
    if isinstance(value, (list, tuple)):
        return [sanitize_value(v) for v in value]
    return value


def sanitize_dict(data):
    """
    Return a copy of ``data`` with sensitive keys replaced by '[REDACTED]'.
    """
    if not isinstance(data, dict):
        return data

    return {
        key: '[REDACTED]' if str(key).lower() in SENSITIVE_FIELDS else sanitize_value(value)
        for key, value in data.items()
    }


def get_sanitized_logger(name):
    """
    Get a logger with correlation filter applied.

    Usage:
        logger = get_sanitized_logger(__name__)
        logger.info('Study uploaded', extra={'event': 'study_uploaded', 'study_id': str(study.id)})
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())

    return logger
