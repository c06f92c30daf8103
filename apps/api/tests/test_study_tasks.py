"""
Celery tasks and the analysis service client.

The HTTP layer is mocked; tasks are called directly (synchronously).
"""
from unittest.mock import Mock, patch

import pytest
from django.core.files.base import ContentFile

from apps.plans.models import TreatmentPlan
from apps.studies.analysis import (
    AnalysisClient,
    AnalysisServiceError,
    AnalysisStatus,
    findings_from_diagnoses,
)
from apps.studies.models import Study
from apps.studies.tasks import poll_processing_studies, submit_study_for_analysis


pytestmark = pytest.mark.django_db


def json_response(payload, status_code=200):
    response = Mock(status_code=status_code)
    response.json.return_value = payload
    return response


@pytest.fixture
def uploaded_study(patient, make_study):
    study = make_study(patient, status='processing', original_filename='scan.zip')
    study.artifact.save('scan.zip', ContentFile(b'PK\x03\x04 archive'), save=True)
    return study


class TestSubmitTask:

    def test_success_records_analysis_uid(self, uploaded_study):
        client = Mock()
        client.submit_study.return_value = 'analysis-123'

        with patch('apps.studies.tasks.get_analysis_client', return_value=client):
            result = submit_study_for_analysis(str(uploaded_study.id))

        assert result == 'analysis-123'
        uploaded_study.refresh_from_db()
        assert uploaded_study.analysis_uid == 'analysis-123'
        assert uploaded_study.status == 'processing'
        assert client.submit_study.call_args.kwargs['filename'] == 'scan.zip'

    def test_already_submitted_study_is_skipped(self, uploaded_study):
        Study.objects.filter(id=uploaded_study.id).update(analysis_uid='existing')
        client = Mock()

        with patch('apps.studies.tasks.get_analysis_client', return_value=client):
            result = submit_study_for_analysis(str(uploaded_study.id))

        assert result == 'existing'
        client.submit_study.assert_not_called()

    def test_permanent_error_fails_study_through_callback(self, uploaded_study):
        client = Mock()
        client.submit_study.side_effect = AnalysisServiceError('rejected', retryable=False)

        with patch('apps.studies.tasks.get_analysis_client', return_value=client):
            submit_study_for_analysis(str(uploaded_study.id))

        uploaded_study.refresh_from_db()
        assert uploaded_study.status == 'failed'
        assert 'Submission failed' in uploaded_study.error_message
        assert not TreatmentPlan.objects.filter(study=uploaded_study).exists()

    def test_terminal_study_is_not_resubmitted(self, completed_study):
        client = Mock()

        with patch('apps.studies.tasks.get_analysis_client', return_value=client):
            submit_study_for_analysis(str(completed_study.id))

        client.submit_study.assert_not_called()


class TestPoller:

    def test_delivers_terminal_answers_only(self, patient, make_study):
        done = make_study(patient, status='processing', analysis_uid='uid-done')
        running = make_study(patient, status='processing', analysis_uid='uid-running')
        broken = make_study(patient, status='processing', analysis_uid='uid-broken')
        make_study(patient, status='processing')  # not yet submitted

        answers = {
            'uid-done': AnalysisStatus(
                uid='uid-done',
                complete=True,
                findings=[{'specialty': 'hygiene', 'procedure_name': 'Professional cleaning'}],
            ),
            'uid-running': AnalysisStatus(uid='uid-running'),
            'uid-broken': AnalysisStatus(uid='uid-broken', failed=True, error='corrupt series'),
        }
        client = Mock()
        client.get_analysis.side_effect = lambda uid: answers[uid]

        with patch('apps.studies.tasks.get_analysis_client', return_value=client):
            delivered = poll_processing_studies()

        assert delivered == 2
        assert Study.objects.get(id=done.id).status == 'completed'
        assert Study.objects.get(id=running.id).status == 'processing'
        assert Study.objects.get(id=broken.id).status == 'failed'
        assert TreatmentPlan.objects.filter(study=done).count() == 1
        assert client.get_analysis.call_count == 3

    def test_service_errors_leave_study_processing(self, processing_study):
        client = Mock()
        client.get_analysis.side_effect = AnalysisServiceError('HTTP 503')

        with patch('apps.studies.tasks.get_analysis_client', return_value=client):
            delivered = poll_processing_studies()

        assert delivered == 0
        processing_study.refresh_from_db()
        assert processing_study.status == 'processing'


class TestAnalysisClient:

    def make_client(self, session):
        return AnalysisClient(base_url='https://analysis.test/api', api_key='k', timeout=5, session=session)

    def test_submit_study_walks_upload_protocol(self, uploaded_study):
        session = Mock()
        session.request.side_effect = [
            json_response({'uid': 'remote-study'}),
            json_response({'session_id': 'sess-1'}),
            json_response({'upload_urls': [{'key': 'scan.zip', 'url': 'https://bucket.test/put'}]}),
            json_response({}),
            json_response({'uid': 'analysis-9'}),
        ]
        session.put.return_value = Mock(status_code=200)

        with uploaded_study.artifact.open('rb') as artifact:
            uid = self.make_client(session).submit_study('patient-1', uploaded_study, artifact, 'scan.zip')

        assert uid == 'analysis-9'
        first_call = session.request.call_args_list[0]
        assert first_call.args == ('POST', 'https://analysis.test/api/v2/patients/patient-1/studies')
        assert first_call.kwargs['headers']['Authorization'] == 'Bearer k'
        assert session.put.call_args.args[0] == 'https://bucket.test/put'

    def test_server_error_is_retryable(self):
        session = Mock()
        session.request.return_value = json_response({}, status_code=503)

        with pytest.raises(AnalysisServiceError) as exc:
            self.make_client(session).get_analysis('uid-1')

        assert exc.value.retryable is True

    def test_client_error_is_not_retryable(self):
        session = Mock()
        session.request.return_value = json_response({}, status_code=404)

        with pytest.raises(AnalysisServiceError) as exc:
            self.make_client(session).download_report_pdf('uid-1')

        assert exc.value.retryable is False

    def test_complete_analysis_fetches_diagnoses(self):
        session = Mock()
        session.request.side_effect = [
            json_response({'status': 'complete'}),
            json_response({'diagnoses': [{'tooth_number': 26, 'conditions': [{'code': 'caries'}]}]}),
        ]

        remote = self.make_client(session).get_analysis('uid-1')

        assert remote.is_terminal and not remote.failed
        assert remote.findings == [{
            'specialty': 'therapy',
            'procedure_code': 'THER-FILL',
            'procedure_name': 'Composite filling',
            'tooth_number': 26,
            'quantity': 1,
            'diagnosis': 'caries',
        }]


def test_unknown_conditions_are_skipped():
    findings = findings_from_diagnoses([
        {'tooth_number': 11, 'conditions': ['healthy', 'calculus']},
    ])

    assert [f['procedure_code'] for f in findings] == ['HYG-CLEAN']
