"""
Prometheus Metrics for the Transit Points API
Exposes metrics for point operations, API performance, and database errors.
"""
from prometheus_client import Counter, Histogram, Info, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Application Info
# =============================================================================
app_info = Info('transit_points', 'Transit Points API Information')
app_info.info({
    'version': '1.0.0',
    'service': 'transit-points-api',
    'description': 'Ordered geo-points of traversals and stops'
})


# =============================================================================
# API Request Metrics
# =============================================================================
http_requests_total = Counter(
    'transit_points_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'transit_points_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)


# =============================================================================
# Point Store Metrics
# =============================================================================
point_operations_total = Counter(
    'transit_points_point_operations_total',
    'Total point store operations',
    ['operation', 'kind']  # kind: traversal or stop
)

points_written_total = Counter(
    'transit_points_points_written_total',
    'Points inserted through single, batch or append creates',
    ['kind']
)

db_errors_total = Counter(
    'transit_points_db_errors_total',
    'Total database errors',
    ['operation', 'error_type']
)


# =============================================================================
# Helper Functions
# =============================================================================
def get_metrics():
    """Generate metrics in Prometheus format"""
    return generate_latest()


def get_content_type():
    """Get the content type for Prometheus metrics"""
    return CONTENT_TYPE_LATEST


def record_http_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record a finished HTTP request"""
    http_requests_total.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)


def record_point_operation(operation: str, kind: str, written: int = 0):
    """Record a point store operation"""
    point_operations_total.labels(operation=operation, kind=kind).inc()
    if written:
        points_written_total.labels(kind=kind).inc(written)


def record_db_error(operation: str, error_type: str):
    """Record a database error"""
    db_errors_total.labels(operation=operation, error_type=error_type).inc()
