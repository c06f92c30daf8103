"""
Celery tasks for the study analysis pipeline.

Both tasks only deliver outcomes through ``on_analysis_callback``; they
never write a study status themselves.
"""
from celery import shared_task

from apps.core.observability.logging import get_sanitized_logger
from .analysis import AnalysisServiceError, get_analysis_client
from .models import Study, StudyStatusChoices
from .services import AnalysisOutcome, on_analysis_callback, record_analysis_uid

logger = get_sanitized_logger(__name__)


@shared_task(
    bind=True,
    name='apps.studies.tasks.submit_study_for_analysis',
    max_retries=3,
    default_retry_delay=60,
)
def submit_study_for_analysis(self, study_id):
    """
    Hand a processing study's artifact to the analysis service.

    Transient failures are retried; after the last attempt (or on a
    non-retryable error) the study is failed through the callback path.
    """
    study = Study.objects.filter(id=study_id).first()
    if study is None:
        logger.warning('Study vanished before submission', extra={'event': 'analysis_submit_skipped', 'study_id': study_id})
        return None

    if study.status != StudyStatusChoices.PROCESSING or study.analysis_uid:
        # Already submitted or already terminal
        return study.analysis_uid or None

    client = get_analysis_client()
    try:
        with study.artifact.open('rb') as artifact:
            analysis_uid = client.submit_study(
                patient_ref=str(study.patient_id),
                study=study,
                fileobj=artifact,
                filename=study.original_filename,
            )
    except AnalysisServiceError as e:
        if e.retryable and self.request.retries < self.max_retries:
            logger.warning(
                'Analysis submission failed, retrying',
                extra={'event': 'analysis_submit_retry', 'study_id': study_id, 'attempt': self.request.retries + 1}
            )
            raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))

        on_analysis_callback(study_id, AnalysisOutcome.failure(f'Submission failed: {e}'), source='submit')
        return None

    record_analysis_uid(study_id, analysis_uid)
    return analysis_uid


@shared_task(name='apps.studies.tasks.poll_processing_studies')
def poll_processing_studies():
    """
    Ask the analysis service about every processing study that has been
    submitted and feed terminal answers to the pipeline.

    Returns the number of outcomes delivered.
    """
    client = get_analysis_client()
    delivered = 0

    pending = (
        Study.objects
        .filter(status=StudyStatusChoices.PROCESSING)
        .exclude(analysis_uid='')
        .values_list('id', 'analysis_uid')
    )
    for study_id, analysis_uid in pending:
        try:
            remote = client.get_analysis(analysis_uid)
        except AnalysisServiceError as e:
            logger.warning(
                'Analysis status check failed',
                extra={'event': 'analysis_poll_failed', 'study_id': str(study_id), 'error': str(e)}
            )
            continue

        if not remote.is_terminal:
            continue

        if remote.failed:
            outcome = AnalysisOutcome.failure(remote.error, analysis_uid=analysis_uid)
        else:
            outcome = AnalysisOutcome.success(remote.findings, result=remote.raw, analysis_uid=analysis_uid)

        on_analysis_callback(study_id, outcome, source='poller')
        delivered += 1

    return delivered
