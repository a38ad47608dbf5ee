"""
Prometheus metrics definitions.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload metrics
uploads_total = Counter(
    'uploads_total',
    'Total upload attempts by outcome',
    ['outcome']  # success, rejected, failed
)

upload_bytes = Histogram(
    'upload_bytes',
    'Size of accepted uploads in bytes',
    buckets=[1024, 10 * 1024, 100 * 1024, 512 * 1024, 1024 ** 2, 5 * 1024 ** 2, 20 * 1024 ** 2, 100 * 1024 ** 2]
)

# Listing metrics
listings_total = Counter(
    'listings_total',
    'Total gallery listings served'
)

# Object store metrics
storage_requests_total = Counter(
    'storage_requests_total',
    'Total object store requests',
    ['operation']
)

storage_failures_total = Counter(
    'storage_failures_total',
    'Total object store failures',
    ['operation']
)

storage_latency_seconds = Histogram(
    'storage_latency_seconds',
    'Object store request latency in seconds',
    ['operation'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
)
