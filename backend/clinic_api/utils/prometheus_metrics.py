from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Define metrics
REQUEST_COUNT = Counter(
    'clinic_requests_total',
    'Total number of requests',
    ['method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'clinic_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint']
)

DIAGNOSTIC_UPLOADS = Counter(
    'clinic_diagnostic_uploads_total',
    'Total number of diagnostic file uploads',
    ['status']
)

SLOT_CONFLICTS = Counter(
    'clinic_appointment_slot_conflicts_total',
    'Appointment requests rejected because the slot was taken'
)

STORAGE_ERRORS = Counter(
    'clinic_storage_errors_total',
    'Object storage failures',
    ['operation']
)

def get_metrics() -> bytes:
    """Get Prometheus metrics in text format"""
    return generate_latest()

def get_metrics_content_type() -> str:
    """Get Prometheus metrics content type"""
    return CONTENT_TYPE_LATEST

class MetricsCollector:
    """Centralized metrics collection"""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: str, duration: float):
        """Record HTTP request metrics"""
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_diagnostic_upload(success: bool = True):
        """Record diagnostic upload metrics"""
        status = "success" if success else "error"
        DIAGNOSTIC_UPLOADS.labels(status=status).inc()

    @staticmethod
    def record_slot_conflict():
        SLOT_CONFLICTS.inc()

    @staticmethod
    def record_storage_error(operation: str):
        STORAGE_ERRORS.labels(operation=operation).inc()

# Global metrics collector instance
metrics = MetricsCollector()
