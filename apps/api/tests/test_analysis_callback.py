"""
on_analysis_callback: the single write path from the analysis service.

Covers completion (plan derived), failure (no plan), duplicate delivery
and out-of-order callbacks.
"""
import pytest

from apps.core.exceptions import InvalidStateError, NotFoundError
from apps.core.models import AuditLog
from apps.plans.models import TreatmentPlan
from apps.studies.models import Study
from apps.studies.services import AnalysisOutcome, on_analysis_callback


pytestmark = pytest.mark.django_db

FINDINGS = [
    {'specialty': 'therapy', 'procedure_code': 'THER-FILL', 'procedure_name': 'Composite filling',
     'tooth_number': 36, 'diagnosis': 'Caries'},
    {'specialty': 'hygiene', 'procedure_code': 'HYG-CLEAN', 'procedure_name': 'Professional cleaning'},
]


class TestCompletion:

    def test_success_completes_study_and_creates_first_plan(self, processing_study):
        study = on_analysis_callback(
            processing_study.id,
            AnalysisOutcome.success(FINDINGS, result={'score': 0.9}, report_pdf=b'%PDF-1.4 r'),
        )

        assert study.status == 'completed'
        assert study.completed_at is not None
        assert study.analysis_result == {'score': 0.9}
        assert bool(study.report)

        plans = TreatmentPlan.objects.filter(study=study)
        assert plans.count() == 1
        plan = plans.get()
        assert plan.version == 1
        assert plan.source == 'diagnocat'
        assert plan.items.count() == 2
        assert AuditLog.objects.filter(action='analysis_completed', entity_id=study.id).exists()

    def test_failure_marks_failed_without_plan(self, processing_study):
        study = on_analysis_callback(processing_study.id, AnalysisOutcome.failure('Unreadable archive'))

        assert study.status == 'failed'
        assert study.error_message == 'Unreadable archive'
        assert not TreatmentPlan.objects.filter(study=study).exists()

    def test_invalid_findings_fail_the_study(self, processing_study):
        bad = [{'specialty': 'therapy', 'procedure_name': 'Filling', 'tooth_number': 59}]

        study = on_analysis_callback(processing_study.id, AnalysisOutcome.success(bad))

        assert study.status == 'failed'
        assert 'Invalid analysis findings' in study.error_message
        assert not TreatmentPlan.objects.filter(study=study).exists()

    def test_analysis_uid_recorded_when_missing(self, patient, make_study):
        study = make_study(patient, status='processing')

        study = on_analysis_callback(study.id, AnalysisOutcome.success([], analysis_uid='late-uid'))

        assert study.analysis_uid == 'late-uid'


class TestIdempotency:

    def test_duplicate_success_is_noop(self, processing_study):
        on_analysis_callback(processing_study.id, AnalysisOutcome.success(FINDINGS))
        study = on_analysis_callback(processing_study.id, AnalysisOutcome.success(FINDINGS))

        assert study.status == 'completed'
        assert TreatmentPlan.objects.filter(study=study).count() == 1

    def test_failure_after_completion_is_ignored(self, processing_study):
        on_analysis_callback(processing_study.id, AnalysisOutcome.success(FINDINGS))
        on_analysis_callback(processing_study.id, AnalysisOutcome.failure('late failure'))

        study = Study.objects.get(id=processing_study.id)
        assert study.status == 'completed'
        assert study.error_message == ''

    def test_success_after_failure_is_ignored(self, processing_study):
        on_analysis_callback(processing_study.id, AnalysisOutcome.failure('timeout'))
        on_analysis_callback(processing_study.id, AnalysisOutcome.success(FINDINGS))

        study = Study.objects.get(id=processing_study.id)
        assert study.status == 'failed'
        assert not TreatmentPlan.objects.filter(study=study).exists()


class TestOutOfOrder:

    def test_callback_before_processing_is_invalid_state(self, study):
        with pytest.raises(InvalidStateError):
            on_analysis_callback(study.id, AnalysisOutcome.success(FINDINGS))

        study.refresh_from_db()
        assert study.status == 'created'

    def test_unknown_study(self, db):
        with pytest.raises(NotFoundError):
            on_analysis_callback('00000000-0000-0000-0000-000000000000', AnalysisOutcome.failure('x'))

    def test_callback_during_upload_is_invalid_state(self, patient, make_study):
        uploading = make_study(patient, status='uploading')

        with pytest.raises(InvalidStateError):
            on_analysis_callback(uploading.id, AnalysisOutcome.failure('x'))

        uploading.refresh_from_db()
        assert uploading.status == 'uploading'


class TestStudyStateMachine:

    @pytest.mark.parametrize('current, allowed', [
        ('created', ['uploading']),
        ('uploading', ['processing']),
        ('processing', ['completed', 'failed']),
        ('completed', []),
        ('failed', []),
    ])
    def test_allowed_transitions(self, patient, make_study, current, allowed):
        study = make_study(patient, status=current)

        for target in ('created', 'uploading', 'processing', 'completed', 'failed'):
            assert study.can_transition_to(target) == (target in allowed)
