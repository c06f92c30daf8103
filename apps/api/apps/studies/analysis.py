"""
Client for the external imaging-analysis service.

Upload flow: create a remote study for the patient, open an upload
session, PUT the artifact to the presigned URL, close the session, then
request an analysis. The returned analysis uid is what status checks and
report downloads use.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

import requests
from django.conf import settings

from apps.core.observability import metrics
from apps.core.observability.logging import get_sanitized_logger
from apps.core.observability.tracing import trace_span

logger = get_sanitized_logger(__name__)


class AnalysisServiceError(Exception):
    """The analysis service rejected a call or could not be reached."""

    def __init__(self, message, retryable=True):
        super().__init__(message)
        self.retryable = retryable


# Diagnosis condition code -> (specialty, procedure_code, procedure_name)
CONDITION_PROCEDURES = {
    'caries': ('therapy', 'THER-FILL', 'Composite filling'),
    'pulpitis': ('therapy', 'THER-ENDO', 'Root canal treatment'),
    'periapical_lesion': ('therapy', 'THER-ENDO', 'Root canal treatment'),
    'missing_tooth': ('orthopedics', 'ORTH-IMPL-CROWN', 'Implant-supported crown'),
    'crown_destruction': ('orthopedics', 'ORTH-CROWN', 'Ceramic crown'),
    'impacted_tooth': ('surgery', 'SURG-EXTR', 'Tooth extraction'),
    'root_remnant': ('surgery', 'SURG-EXTR', 'Tooth extraction'),
    'calculus': ('hygiene', 'HYG-CLEAN', 'Professional cleaning'),
    'bone_loss': ('periodontics', 'PERIO-SRP', 'Scaling and root planing'),
}


@dataclass
class AnalysisStatus:
    """Snapshot of a remote analysis."""
    uid: str
    complete: bool = False
    failed: bool = False
    error: str = ''
    raw: Dict[str, Any] = field(default_factory=dict)
    findings: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_terminal(self):
        return self.complete or self.failed


def findings_from_diagnoses(diagnoses):
    """
    Turn per-tooth diagnoses into plan findings.

    Each diagnosis carries a tooth number and condition codes; conditions
    without a known procedure are skipped. Entries that already look like
    findings (they name a specialty) pass through unchanged.
    """
    findings = []
    for diagnosis in diagnoses or []:
        if diagnosis.get('specialty'):
            findings.append(dict(diagnosis))
            continue

        tooth = diagnosis.get('tooth_number')
        comment = diagnosis.get('text_comment', '')
        for condition in diagnosis.get('conditions', []):
            code = condition.get('code') if isinstance(condition, dict) else condition
            procedure = CONDITION_PROCEDURES.get(code)
            if procedure is None:
                continue
            specialty, procedure_code, procedure_name = procedure
            findings.append({
                'specialty': specialty,
                'procedure_code': procedure_code,
                'procedure_name': procedure_name,
                'tooth_number': tooth,
                'quantity': 1,
                'diagnosis': comment or code,
            })
    return findings


class AnalysisClient:
    """Thin HTTP client; all methods raise AnalysisServiceError on failure."""

    def __init__(self, base_url=None, api_key=None, timeout=None, session=None):
        self.base_url = (base_url or settings.ANALYSIS_API_URL).rstrip('/')
        self.api_key = api_key if api_key is not None else settings.ANALYSIS_API_KEY
        self.timeout = timeout or settings.ANALYSIS_REQUEST_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _headers(self, accept='application/json'):
        return {
            'Authorization': f'Bearer {self.api_key}',
            'Accept': accept,
        }

    def _request(self, operation, method, path, accept='application/json', **kwargs):
        url = f'{self.base_url}{path}'
        start = time.time()
        try:
            with trace_span(f'analysis.{operation}', kind='client', attributes={'http.method': method}):
                response = self.session.request(
                    method,
                    url,
                    headers=self._headers(accept),
                    timeout=self.timeout,
                    **kwargs
                )
        except requests.RequestException as e:
            metrics.analysis_requests_total.labels(operation=operation, result='network_error').inc()
            raise AnalysisServiceError(f'{operation} failed: {e}') from e
        finally:
            metrics.analysis_request_duration_seconds.labels(operation=operation).observe(time.time() - start)

        if response.status_code >= 400:
            metrics.analysis_requests_total.labels(operation=operation, result='http_error').inc()
            logger.warning(
                'Analysis service returned an error',
                extra={
                    'event': 'analysis_request_failed',
                    'operation': operation,
                    'status_code': response.status_code,
                }
            )
            # 4xx other than 429 will not get better on retry
            retryable = response.status_code >= 500 or response.status_code == 429
            raise AnalysisServiceError(
                f'{operation} failed: HTTP {response.status_code}',
                retryable=retryable
            )

        metrics.analysis_requests_total.labels(operation=operation, result='success').inc()
        return response

    def _json(self, operation, method, path, **kwargs):
        response = self._request(operation, method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise AnalysisServiceError(f'{operation} returned invalid JSON') from e

    def submit_study(self, patient_ref, study, fileobj, filename):
        """
        Upload the artifact and request an analysis.

        Returns the analysis uid.
        """
        remote_study = self._json(
            'create_study', 'POST', f'/v2/patients/{patient_ref}/studies',
            json={
                'study_type': study.modality,
                'study_date': study.study_date.isoformat(),
                'study_name': f'Study {study.id}',
            }
        )
        study_uid = remote_study.get('uid')
        if not study_uid:
            raise AnalysisServiceError('create_study returned no uid', retryable=False)

        session = self._json('open_session', 'POST', '/v1/upload/open-session', json={'study_uid': study_uid})
        session_id = session.get('session_id')
        if not session_id:
            raise AnalysisServiceError(f"open_session failed: {session.get('error', 'no session_id')}")

        urls = self._json(
            'request_upload_urls', 'POST', '/v1/upload/request-upload-urls',
            json={'session_id': session_id, 'keys': [filename]}
        )
        upload_urls = urls.get('upload_urls') or []
        if not upload_urls:
            raise AnalysisServiceError('request_upload_urls returned no URL')

        try:
            put = self.session.put(
                upload_urls[0]['url'],
                data=fileobj,
                headers={'Content-Type': 'application/octet-stream'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AnalysisServiceError(f'artifact upload failed: {e}') from e
        if put.status_code >= 400:
            raise AnalysisServiceError(f'artifact upload failed: HTTP {put.status_code}')

        self._json('close_session', 'POST', '/v1/upload/start-session-close', json={'session_id': session_id})

        analysis = self._json(
            'request_analysis', 'POST', f'/v2/studies/{study_uid}/analyses',
            json={'analysis_type': settings.ANALYSIS_TYPE}
        )
        analysis_uid = analysis.get('uid') or analysis.get('id')
        if not analysis_uid:
            raise AnalysisServiceError('request_analysis returned no uid', retryable=False)

        logger.info(
            'Study submitted for analysis',
            extra={'event': 'analysis_submitted', 'study_id': str(study.id), 'analysis_uid': analysis_uid}
        )
        return analysis_uid

    def get_analysis(self, analysis_uid) -> AnalysisStatus:
        """Fetch status; when complete, also fetch diagnoses and convert them to findings."""
        data = self._json('get_analysis', 'GET', f'/v2/analyses/{analysis_uid}')

        remote_status = (data.get('status') or '').lower()
        error = data.get('error') or ''
        status = AnalysisStatus(
            uid=analysis_uid,
            complete=bool(data.get('complete')) or remote_status == 'complete',
            failed=remote_status in ('failed', 'error') or bool(error),
            error=str(error),
            raw=data,
        )

        if status.complete and not status.failed:
            diagnoses = self._json('get_diagnoses', 'GET', f'/v2/analyses/{analysis_uid}/diagnoses')
            status.raw = {**data, 'diagnoses': diagnoses.get('diagnoses', [])}
            status.findings = findings_from_diagnoses(status.raw['diagnoses'])

        return status

    def download_report_pdf(self, analysis_uid) -> bytes:
        response = self._request(
            'download_report', 'GET', f'/v2/analyses/{analysis_uid}/pdf', accept='application/pdf'
        )
        return response.content


def get_analysis_client() -> AnalysisClient:
    return AnalysisClient()