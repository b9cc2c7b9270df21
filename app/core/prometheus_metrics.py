import logging
from prometheus_client import Counter, Histogram, Info, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Prometheus Registry
REGISTRY = CollectorRegistry()

# Business Metrics
booking_requests_total = Counter(
    'booking_requests_total',
    'Total booking requests by outcome',
    ['outcome'],
    registry=REGISTRY
)

center_assignments_total = Counter(
    'booking_center_assignments_total',
    'Center assignments by source (explicit, auto, fallback)',
    ['source'],
    registry=REGISTRY
)

audit_log_failures_total = Counter(
    'booking_audit_log_failures_total',
    'Audit log writes that failed after a successful booking write',
    registry=REGISTRY
)

mirror_updates_total = Counter(
    'booking_center_mirror_updates_total',
    'Center mirror updates by status',
    ['status'],
    registry=REGISTRY
)

service_duration_seconds = Histogram(
    'booking_service_duration_seconds',
    'Service method duration in seconds',
    ['service', 'method', 'status'],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
    registry=REGISTRY
)

system_info = Info(
    'booking_intake_info',
    'System information',
    registry=REGISTRY
)


class PrometheusMetricsCollector:
    """Thin facade over the booking-intake Prometheus registry"""

    def __init__(self):
        system_info.info({
            'version': '1.0.0',
            'service': 'booking-intake'
        })

    def record_service_call(
        self,
        service_name: str,
        method_name: str,
        duration_seconds: float,
        success: bool
    ):
        status = 'success' if success else 'error'
        service_duration_seconds.labels(
            service=service_name,
            method=method_name,
            status=status
        ).observe(duration_seconds)

    def record_booking_outcome(self, outcome: str):
        booking_requests_total.labels(outcome=outcome).inc()

    def record_center_assignment(self, source: str):
        center_assignments_total.labels(source=source).inc()

    def record_audit_log_failure(self):
        audit_log_failures_total.inc()

    def record_mirror_update(self, status: str):
        mirror_updates_total.labels(status=status).inc()

    def get_prometheus_metrics(self) -> bytes:
        """Get Prometheus metrics in text format"""
        return generate_latest(REGISTRY)


# Global instance
prometheus_collector = PrometheusMetricsCollector()
