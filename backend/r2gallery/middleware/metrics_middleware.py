"""
ASGI middleware for tracking HTTP request metrics.
Records request count, duration, and errors.
"""
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from r2gallery.utils.metrics import errors_total, http_request_duration_seconds, http_requests_total

# Only known routes get their own label; anything else collapses to one value
KNOWN_PATHS = {"/", "/upload", "/list-files", "/health"}


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        """Process request and record metrics."""
        start_time = time.time()

        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = self._normalize_path(request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            errors_total.labels(error_type="exception").inc()
            raise

        status_code = response.status_code
        http_requests_total.labels(
            method=method,
            path=path,
            status=status_code
        ).inc()

        http_request_duration_seconds.labels(
            method=method,
            path=path
        ).observe(time.time() - start_time)

        # Track errors (4xx and 5xx)
        if status_code >= 400:
            errors_total.labels(error_type=f"{status_code // 100}xx").inc()

        return response

    def _normalize_path(self, path: str) -> str:
        """Collapse unknown paths to keep label cardinality bounded."""
        if path in KNOWN_PATHS:
            return path
        return "other"
