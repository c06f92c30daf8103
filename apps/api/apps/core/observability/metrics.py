"""
Prometheus metrics for the marketplace workflows.
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _setup_metrics(self):
        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.exceptions_total = Counter(
            'exceptions_total',
            'Domain exceptions returned to API clients',
            ['error_type', 'location']
        )

        # ===================================================================
        # Study Pipeline Metrics
        # ===================================================================
        self.study_transition_total = Counter(
            'study_transition_total',
            'Study status transitions',
            ['from_status', 'to_status', 'result']
        )

        self.study_upload_bytes = Histogram(
            'study_upload_bytes',
            'Size of uploaded study artifacts',
            buckets=[1e6, 10e6, 50e6, 100e6, 250e6, 500e6]
        )

        self.analysis_callbacks_total = Counter(
            'analysis_callbacks_total',
            'Analysis outcomes delivered to the pipeline',
            ['source', 'result']  # source: webhook|poller|submit; result: completed|failed|duplicate
        )

        self.analysis_requests_total = Counter(
            'analysis_requests_total',
            'Outbound calls to the analysis service',
            ['operation', 'result']
        )

        self.analysis_request_duration_seconds = Histogram(
            'analysis_request_duration_seconds',
            'Outbound analysis service call duration',
            ['operation'],
            buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
        )

        self.webhook_signature_failures_total = Counter(
            'webhook_signature_failures_total',
            'Rejected analysis webhook deliveries',
            ['reason']
        )

        # ===================================================================
        # Plan Metrics
        # ===================================================================
        self.plans_created_total = Counter(
            'plans_created_total',
            'Treatment plan versions created',
            ['source']
        )

        # ===================================================================
        # Offer Metrics
        # ===================================================================
        self.offer_requests_opened_total = Counter(
            'offer_requests_opened_total',
            'Offer requests opened by patients'
        )

        self.offers_submitted_total = Counter(
            'offers_submitted_total',
            'Offers submitted by clinics',
            ['mode']  # created|replaced
        )

        self.offers_accepted_total = Counter(
            'offers_accepted_total',
            'Offers accepted by patients'
        )

        self.offer_accept_conflicts_total = Counter(
            'offer_accept_conflicts_total',
            'Acceptance attempts that lost to a concurrent acceptance',
            ['reason']
        )

        self.offer_accept_duration_seconds = Histogram(
            'offer_accept_duration_seconds',
            'Duration of the acceptance transaction',
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
        )

        # ===================================================================
        # Order Metrics
        # ===================================================================
        self.order_transition_total = Counter(
            'order_transition_total',
            'Order status transitions',
            ['from_status', 'to_status', 'result']
        )

        # ===================================================================
        # Pricelist Metrics
        # ===================================================================
        self.pricelist_changes_total = Counter(
            'pricelist_changes_total',
            'Pricelist item additions and deletions',
            ['action']
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.offer_accept_duration_seconds)
            def accept_offer(caller, offer_id):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
