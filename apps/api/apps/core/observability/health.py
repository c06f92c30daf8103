"""
Health check endpoints.

/healthz answers as long as the process is up; /readyz also checks the
database and the artifact storage backend.
"""
from django.conf import settings
from django.core.files.storage import default_storage
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.views import View

from .logging import get_sanitized_logger

logger = get_sanitized_logger(__name__)


class HealthzView(View):
    """Liveness probe. Does not check dependencies."""

    def get(self, request):
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """Readiness probe."""

    def get(self, request):
        checks = {
            'database': self._check_database(),
            'storage': self._check_storage(),
        }

        all_healthy = all(checks.values())

        return JsonResponse(
            {
                'status': 'ready' if all_healthy else 'not_ready',
                'checks': checks,
            },
            status=200 if all_healthy else 503,
        )

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
            return True
        except DatabaseError as e:
            logger.error(
                'Database health check failed',
                extra={'event': 'health_check_failed', 'check': 'database', 'error': str(e)}
            )
            return False

    def _check_storage(self):
        try:
            default_storage.exists('healthcheck')
            return True
        except Exception as e:  # storage backends raise backend-specific errors
            logger.error(
                'Storage health check failed',
                extra={'event': 'health_check_failed', 'check': 'storage', 'error': str(e)}
            )
            return False
