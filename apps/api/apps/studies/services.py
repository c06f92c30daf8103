"""
Study pipeline services.

Patients create a study, open the upload, and submit the artifact; from
then on only ``on_analysis_callback`` moves the status. Every status change
is a status-guarded update or happens under the study row lock, so a stale
retry can never re-trigger analysis or rewrite a terminal study.
"""
import datetime
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.files.base import ContentFile
from django.db import transaction
from django.urls import reverse
from django.utils import timezone
from django.utils.dateparse import parse_date

from apps.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from apps.core.models import record_audit
from apps.core.observability import metrics
from apps.core.observability.events import log_analysis_callback, log_study_transition
from apps.core.observability.tracing import trace_span
from apps.plans.models import PlanSourceChoices
from apps.plans.services import create_plan_version, validate_findings
from .analysis import AnalysisServiceError, get_analysis_client
from .models import ModalityChoices, Study, StudyStatusChoices


@dataclass(frozen=True)
class UploadToken:
    study_id: Any
    upload_url: str
    allowed_extensions: List[str]
    max_upload_bytes: int


@dataclass
class AnalysisOutcome:
    """Terminal answer from the analysis service, however it was delivered."""
    succeeded: bool
    findings: List[Dict[str, Any]] = field(default_factory=list)
    result: Dict[str, Any] = field(default_factory=dict)
    error: str = ''
    report_pdf: Optional[bytes] = None
    analysis_uid: str = ''

    @classmethod
    def success(cls, findings, result=None, report_pdf=None, analysis_uid=''):
        return cls(True, findings=findings, result=result or {}, report_pdf=report_pdf, analysis_uid=analysis_uid)

    @classmethod
    def failure(cls, error, analysis_uid=''):
        return cls(False, error=error or 'Analysis failed', analysis_uid=analysis_uid)


def max_upload_bytes():
    return settings.STUDY_UPLOAD_MAX_MB * 1024 * 1024


def allowed_extensions():
    return [ext.strip().lower() for ext in settings.STUDY_UPLOAD_ALLOWED_EXTENSIONS if ext.strip()]


def _get_owned(patient_id, study_id, for_update=False):
    queryset = Study.objects.select_for_update() if for_update else Study.objects
    study = queryset.filter(id=study_id, patient_id=patient_id).first()
    if study is None:
        raise NotFoundError('Study not found')
    return study


def _parse_study_date(value):
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not value:
        raise ValidationError('study_date is required')
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Invalid study_date '{value}', expected YYYY-MM-DD")
    return parsed


# ============================================================================
# Patient-driven transitions
# ============================================================================

@transaction.atomic
def create_study(caller, modality, study_date):
    patient_id = caller.require_patient()

    if modality not in ModalityChoices.values:
        raise ValidationError(
            f"Invalid modality '{modality}'. Must be one of: {', '.join(ModalityChoices.values)}"
        )

    study = Study.objects.create(
        patient_id=patient_id,
        modality=modality,
        study_date=_parse_study_date(study_date),
    )

    record_audit(caller.user_id, 'create_study', study, {'modality': modality})
    log_study_transition(study, None, StudyStatusChoices.CREATED)
    return study


@transaction.atomic
def init_upload(caller, study_id):
    """Move a created study to uploading and describe where and what to upload."""
    patient_id = caller.require_patient()
    study = _get_owned(patient_id, study_id)

    updated = Study.objects.filter(
        id=study.id,
        status=StudyStatusChoices.CREATED,
    ).update(status=StudyStatusChoices.UPLOADING, updated_at=timezone.now())

    if updated == 0:
        current = Study.objects.filter(id=study.id).values_list('status', flat=True).first()
        metrics.study_transition_total.labels(
            from_status=current, to_status=StudyStatusChoices.UPLOADING, result='rejected'
        ).inc()
        raise InvalidStateError(f"Cannot start upload: study is '{current}', expected 'created'")

    record_audit(caller.user_id, 'init_upload', study)
    metrics.study_transition_total.labels(
        from_status=StudyStatusChoices.CREATED, to_status=StudyStatusChoices.UPLOADING, result='success'
    ).inc()
    log_study_transition(study, StudyStatusChoices.CREATED, StudyStatusChoices.UPLOADING)

    return UploadToken(
        study_id=study.id,
        upload_url=reverse('study-upload', kwargs={'pk': study.id}),
        allowed_extensions=allowed_extensions(),
        max_upload_bytes=max_upload_bytes(),
    )


def _validate_artifact(fileobj, filename):
    if not filename:
        raise ValidationError('File name is required')

    extension = os.path.splitext(filename)[1].lower()
    allowed = allowed_extensions()
    if extension not in allowed:
        raise ValidationError(
            f"File type '{extension or filename}' is not allowed. Allowed: {', '.join(allowed)}"
        )

    size = getattr(fileobj, 'size', None)
    if not size:
        raise ValidationError('Uploaded file is empty')
    if size > max_upload_bytes():
        raise ValidationError(
            f'File exceeds the maximum upload size of {settings.STUDY_UPLOAD_MAX_MB} MB',
            details={'size': size, 'max_upload_bytes': max_upload_bytes()}
        )
    return size


def submit_file(caller, study_id, fileobj, filename):
    """
    Store the artifact and move the study to processing.

    The hand-off to the analysis service is enqueued only after commit.
    """
    from .tasks import submit_study_for_analysis

    patient_id = caller.require_patient()
    size = _validate_artifact(fileobj, filename)

    with transaction.atomic():
        study = _get_owned(patient_id, study_id, for_update=True)
        if not study.can_transition_to(StudyStatusChoices.PROCESSING):
            metrics.study_transition_total.labels(
                from_status=study.status, to_status=StudyStatusChoices.PROCESSING, result='rejected'
            ).inc()
            raise InvalidStateError(f"Cannot accept upload: study is '{study.status}', expected 'uploading'")

        now = timezone.now()
        study.artifact.save(os.path.basename(filename), fileobj, save=False)
        study.original_filename = os.path.basename(filename)
        study.artifact_size = size
        study.status = StudyStatusChoices.PROCESSING
        study.uploaded_at = now
        study.processing_started_at = now
        study.save()

        record_audit(caller.user_id, 'upload_file', study, {'filename': study.original_filename, 'size': size})
        metrics.study_upload_bytes.observe(size)
        metrics.study_transition_total.labels(
            from_status=StudyStatusChoices.UPLOADING, to_status=StudyStatusChoices.PROCESSING, result='success'
        ).inc()
        log_study_transition(study, StudyStatusChoices.UPLOADING, StudyStatusChoices.PROCESSING, size=size)

        study_pk = str(study.id)
        transaction.on_commit(lambda: submit_study_for_analysis.delay(study_pk))

    return study


# ============================================================================
# Reads
# ============================================================================

def get_status(caller, study_id):
    """Single indexed read of the status; never mutates."""
    patient_id = caller.require_patient()
    current = Study.objects.filter(id=study_id, patient_id=patient_id).values_list('status', flat=True).first()
    if current is None:
        raise NotFoundError('Study not found')
    return current


def get_study(caller, study_id):
    patient_id = caller.require_patient()
    return _get_owned(patient_id, study_id)


def list_studies_for_patient(caller):
    patient_id = caller.require_patient()
    return Study.objects.filter(patient_id=patient_id).order_by('-created_at')


def get_report_artifact(caller, study_id, client=None):
    """
    Return (pdf_bytes, filename) for a completed study.

    A report not delivered with the completion callback is fetched once
    from the analysis service and stored.
    """
    patient_id = caller.require_patient()
    study = _get_owned(patient_id, study_id)

    if study.status != StudyStatusChoices.COMPLETED:
        raise InvalidStateError(f"Report not available: study is '{study.status}'")

    filename = f'report_{study.id}.pdf'

    if not study.report:
        if not study.analysis_uid:
            raise NotFoundError('Report not available for this study')
        client = client or get_analysis_client()
        try:
            pdf = client.download_report_pdf(study.analysis_uid)
        except AnalysisServiceError as e:
            raise UpstreamError(f'Could not fetch report: {e}')

        with transaction.atomic():
            study = Study.objects.select_for_update().get(id=study.id)
            if not study.report:
                study.report.save(filename, ContentFile(pdf), save=False)
                study.save(update_fields=['report', 'updated_at'])

    with study.report.open('rb') as report:
        return report.read(), filename


# ============================================================================
# Pipeline
# ============================================================================

def record_analysis_uid(study_id, analysis_uid):
    """Remember the remote analysis id of a processing study (first write wins)."""
    return Study.objects.filter(
        id=study_id,
        status=StudyStatusChoices.PROCESSING,
        analysis_uid='',
    ).update(analysis_uid=analysis_uid, updated_at=timezone.now())


def on_analysis_callback(study_id, outcome, source='webhook'):
    """
    Apply a terminal analysis outcome to a processing study.

    Already-terminal studies are returned unchanged (duplicate delivery).
    On success the result is stored and the next plan version created from
    the findings; findings that fail validation turn the outcome into a
    failure, so a failed study never has a plan.
    """
    with trace_span('on_analysis_callback', attributes={'study_id': str(study_id), 'source': source}):
        with transaction.atomic():
            study = Study.objects.select_for_update().filter(id=study_id).first()
            if study is None:
                raise NotFoundError('Study not found')

            if study.is_terminal:
                metrics.analysis_callbacks_total.labels(source=source, result='duplicate').inc()
                log_analysis_callback(study.id, source, 'duplicate', status=study.status)
                return study

            if not study.can_transition_to(StudyStatusChoices.COMPLETED):
                raise InvalidStateError(f"Study is '{study.status}', expected 'processing'")

            if outcome.analysis_uid and not study.analysis_uid:
                study.analysis_uid = outcome.analysis_uid

            findings = None
            if outcome.succeeded:
                try:
                    findings = validate_findings(outcome.findings)
                except ValidationError as e:
                    outcome = AnalysisOutcome.failure(f'Invalid analysis findings: {e}')

            now = timezone.now()
            previous = study.status
            study.completed_at = now

            if outcome.succeeded:
                study.status = StudyStatusChoices.COMPLETED
                study.analysis_result = outcome.result
                if outcome.report_pdf:
                    study.report.save(f'report_{study.id}.pdf', ContentFile(outcome.report_pdf), save=False)
                study.save()
                plan = create_plan_version(study, findings, source=PlanSourceChoices.DIAGNOCAT)
                record_audit(None, 'analysis_completed', study, {'plan_id': str(plan.id), 'source': source})
                result = 'completed'
            else:
                study.status = StudyStatusChoices.FAILED
                study.error_message = outcome.error
                study.save()
                record_audit(None, 'analysis_failed', study, {'error': outcome.error, 'source': source})
                result = 'failed'

        metrics.analysis_callbacks_total.labels(source=source, result=result).inc()
        metrics.study_transition_total.labels(from_status=previous, to_status=study.status, result='success').inc()
        log_analysis_callback(study.id, source, result)
        log_study_transition(study, previous, study.status, source=source)
        return study
