"""Integration views - analysis service webhook."""
import base64
import binascii
import hashlib
import hmac
import logging
import time

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.core.exceptions import ValidationError
from apps.core.observability import metrics
from apps.studies.services import AnalysisOutcome, on_analysis_callback

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = 'X-Analysis-Signature'


def verify_analysis_webhook_signature(request) -> tuple[bool, str]:
    """
    Verify the analysis service webhook signature.

    - Header: X-Analysis-Signature
    - Format: t=<timestamp>,v1=<signature>
    - Signed payload: <timestamp>.<raw_body>
    - Algorithm: HMAC-SHA256

    Returns:
        (is_valid: bool, error_message: str)
    """
    signature_header = request.headers.get(SIGNATURE_HEADER, '')

    if not signature_header:
        return False, f'Missing {SIGNATURE_HEADER} header'

    secret = settings.ANALYSIS_WEBHOOK_SECRET
    if not secret:
        return False, 'Webhook secret not configured'

    # Parse signature header: t=<timestamp>,v1=<signature>
    try:
        parts = {}
        for part in signature_header.split(','):
            key, value = part.split('=', 1)
            parts[key.strip()] = value.strip()

        timestamp = parts.get('t')
        signature = parts.get('v1')

        if not timestamp or not signature:
            return False, 'Invalid signature format (missing t= or v1=)'
    except (ValueError, AttributeError):
        return False, 'Invalid signature format'

    try:
        age_seconds = int(time.time()) - int(timestamp)

        if age_seconds > 300:  # 5 minutes
            return False, 'Signature timestamp expired'
        if age_seconds < -60:  # 1 min clock skew
            return False, 'Signature timestamp is in the future'
    except (ValueError, TypeError):
        return False, 'Invalid timestamp format'

    signed_payload = f"{timestamp}.".encode() + request.body

    expected_signature = hmac.new(
        secret.encode(),
        signed_payload,
        hashlib.sha256
    ).hexdigest()

    if not hmac.compare_digest(signature.encode(), expected_signature.encode()):
        return False, 'Invalid signature'

    return True, ''


def _signature_failure_reason(message):
    if message.startswith('Missing'):
        return 'missing'
    if 'timestamp' in message:
        return 'timestamp'
    if 'format' in message:
        return 'format'
    if 'not configured' in message:
        return 'not_configured'
    return 'mismatch'


def _outcome_from_payload(data):
    """Translate the webhook body into an AnalysisOutcome."""
    outcome_status = data.get('status')
    analysis_uid = str(data.get('analysis_uid') or '')

    if outcome_status == 'failed':
        return AnalysisOutcome.failure(data.get('error') or 'Analysis failed', analysis_uid=analysis_uid)

    if outcome_status != 'completed':
        raise ValidationError("status must be 'completed' or 'failed'")

    report_pdf = None
    if data.get('report_pdf_base64'):
        try:
            report_pdf = base64.b64decode(data['report_pdf_base64'], validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise ValidationError('report_pdf_base64 is not valid base64')

    findings = data.get('findings')
    if findings is None:
        findings = []
    if not isinstance(findings, list):
        raise ValidationError('findings must be a list')

    result = data.get('result') or {}
    if not isinstance(result, dict):
        raise ValidationError('result must be an object')

    return AnalysisOutcome.success(findings, result=result, report_pdf=report_pdf, analysis_uid=analysis_uid)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def analysis_callback(request):
    """
    Analysis service completion webhook.

    Body: {study_id, status: completed|failed, error, findings, result,
    analysis_uid, report_pdf_base64?}

    Returns:
    - 401: Invalid or missing signature
    - 400: Malformed body
    - 404: Unknown study
    - 409: Study not yet processing
    - 200: Outcome applied, or duplicate delivery for a terminal study
    """
    is_valid, error_message = verify_analysis_webhook_signature(request)

    if not is_valid:
        metrics.webhook_signature_failures_total.labels(reason=_signature_failure_reason(error_message)).inc()
        logger.warning(f'[ANALYSIS_WEBHOOK] Invalid signature: {error_message}')
        return Response(
            {'error': error_message, 'error_type': 'invalid_signature'},
            status=status.HTTP_401_UNAUTHORIZED
        )

    data = request.data
    if not isinstance(data, dict):
        raise ValidationError('Body must be a JSON object')

    study_id = data.get('study_id')
    if not study_id:
        raise ValidationError('study_id is required')

    outcome = _outcome_from_payload(data)
    study = on_analysis_callback(study_id, outcome, source='webhook')

    logger.info(f'[ANALYSIS_WEBHOOK] Study {study.id} is {study.status}')
    return Response({
        'status': 'received',
        'study_id': str(study.id),
        'study_status': study.status,
    }, status=status.HTTP_200_OK)
