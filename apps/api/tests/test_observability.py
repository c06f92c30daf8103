"""
Health probes, request correlation, log sanitizing and the error body.
"""
import pytest
from rest_framework.exceptions import ValidationError as DRFValidationError

from apps.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    UpstreamError,
    marketplace_exception_handler,
)
from apps.core.observability.logging import sanitize_dict


pytestmark = pytest.mark.django_db


class TestHealth:

    def test_healthz(self, client):
        response = client.get('/healthz')

        assert response.status_code == 200
        assert response.json()['status'] == 'ok'

    def test_readyz(self, client):
        response = client.get('/readyz')

        assert response.status_code == 200
        assert response.json() == {'status': 'ready', 'checks': {'database': True, 'storage': True}}


class TestCorrelation:

    def test_request_id_is_echoed(self, client):
        response = client.get('/healthz', HTTP_X_REQUEST_ID='req-123')
        assert response['X-Request-ID'] == 'req-123'

    def test_request_id_is_generated(self, client):
        response = client.get('/healthz')
        assert response['X-Request-ID']


class TestSanitize:

    def test_redacts_nested_secrets(self):
        data = {
            'study_id': 'c0ffee00-0000-4000-8000-000000000001',
            'password': 'hunter2',
            'nested': {'Authorization': 'Bearer abc', 'items': [{'token': 't'}]},
        }

        assert sanitize_dict(data) == {
            'study_id': 'c0ffee00-0000-4000-8000-000000000001',
            'password': '[REDACTED]',
            'nested': {'Authorization': '[REDACTED]', 'items': [{'token': '[REDACTED]'}]},
        }

    def test_redacts_contact_pii(self):
        assert sanitize_dict({'email': 'patient@test.com', 'role': 'patient'}) == {
            'email': '[REDACTED]',
            'role': 'patient',
        }


class TestExceptionHandler:

    @pytest.mark.parametrize('exc, status_code, error_type', [
        (NotFoundError('Study not found'), 404, 'not_found'),
        (InvalidStateError('Study is not completed'), 409, 'invalid_state'),
        (ConflictError('Already accepted'), 409, 'conflict'),
        (UpstreamError('Analysis service unavailable'), 502, 'upstream_error'),
    ])
    def test_domain_errors(self, exc, status_code, error_type):
        response = marketplace_exception_handler(exc, {})

        assert response.status_code == status_code
        assert response.data == {'error': exc.message, 'error_type': error_type}

    def test_details_included(self):
        exc = InvalidStateError('Cannot move order', details={'allowed': ['cancelled']})

        response = marketplace_exception_handler(exc, {})

        assert response.data['details'] == {'allowed': ['cancelled']}

    def test_serializer_errors_normalized(self):
        response = marketplace_exception_handler(DRFValidationError({'plan_id': ['This field is required.']}), {})

        assert response.status_code == 400
        assert response.data['error'] == 'plan_id: This field is required.'
        assert response.data['error_type'] == 'validation_error'
