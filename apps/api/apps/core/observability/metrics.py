"""
Prometheus metrics for LabWise.

All counters live on a single registry object so modules share one
instance of each collector.
"""
import time
from functools import wraps

from django.http import HttpResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = Counter(
            'labwise_http_requests_total',
            'Total HTTP requests',
            ['route', 'method', 'status']
        )

        self.http_request_duration_seconds = Histogram(
            'labwise_http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['route', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = Counter(
            'labwise_exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Order Metrics
        # ===================================================================
        self.order_transitions_total = Counter(
            'labwise_order_transitions_total',
            'Order status transitions',
            ['from_status', 'to_status', 'result']
        )

        self.orders_created_total = Counter(
            'labwise_orders_created_total',
            'Orders created',
            ['case_type']
        )

        self.order_number_collisions_total = Counter(
            'labwise_order_number_collisions_total',
            'Order number unique-constraint collisions retried'
        )

        # ===================================================================
        # File Metrics
        # ===================================================================
        self.file_uploads_total = Counter(
            'labwise_file_uploads_total',
            'Order files registered after upload',
            ['category']
        )

        self.thumbnails_total = Counter(
            'labwise_thumbnails_total',
            'Thumbnail generation attempts',
            ['result']
        )

        # ===================================================================
        # Notification Metrics
        # ===================================================================
        self.alerts_created_total = Counter(
            'labwise_alerts_created_total',
            'Alerts created',
            ['reason']
        )

        self.emails_sent_total = Counter(
            'labwise_emails_sent_total',
            'Notification emails',
            ['template', 'result']
        )

        self.audit_log_failures_total = Counter(
            'labwise_audit_log_failures_total',
            'Audit log writes that failed'
        )

        # ===================================================================
        # Cleanup Metrics
        # ===================================================================
        self.cleanup_orders_deleted_total = Counter(
            'labwise_cleanup_orders_deleted_total',
            'Completed orders removed by retention cleanup'
        )

        self.cleanup_duration_seconds = Histogram(
            'labwise_cleanup_duration_seconds',
            'Duration of a retention cleanup run',
            buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0]
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.cleanup_duration_seconds)
            def cleanup_completed_orders(...):
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


def metrics_view(request):
    """Expose metrics in the Prometheus text format."""
    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)


# Global metrics instance
metrics = MetricsRegistry()
