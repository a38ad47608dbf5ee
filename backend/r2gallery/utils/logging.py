"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- object_key
- content_type
- size_bytes
- duration_ms

Usage:
    from r2gallery.utils.logging import configure_logging, log_upload_completed

    configure_logging('r2-gallery', 'INFO')
    log_upload_completed(logger, object_key='1718000000000-cat.png', size_bytes=2048)
"""
import logging
import sys
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    object_key: Optional[str] = None,
    content_type: Optional[str] = None,
    size_bytes: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        object_key: Optional object key
        content_type: Optional MIME type
        size_bytes: Optional payload size
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if object_key:
        extra["object_key"] = object_key
    if content_type:
        extra["content_type"] = content_type
    if size_bytes is not None:
        extra["size_bytes"] = size_bytes
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Upload event functions

def log_upload_completed(
    logger: logging.Logger,
    object_key: str,
    size_bytes: int,
    content_type: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successful upload.

    Args:
        logger: Logger instance
        object_key: Generated key (required)
        size_bytes: Payload size (required)
        content_type: Stored content type
        duration_ms: Time spent in the store call
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_completed",
        object_key=object_key,
        content_type=content_type,
        size_bytes=size_bytes,
        duration_ms=duration_ms,
        **kwargs
    )

    logger.info(f"Upload completed: {object_key}", extra=extra)


def log_upload_rejected(
    logger: logging.Logger,
    reason: str,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
    size_bytes: Optional[int] = None,
    **kwargs
):
    """
    Log an upload rejected for a client error (no file, bad type, too large).

    Args:
        logger: Logger instance
        reason: Human-readable reason (required)
        filename: Client-declared filename
        content_type: Client-declared MIME type
        size_bytes: Payload size, when known
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_rejected",
        content_type=content_type,
        size_bytes=size_bytes,
        reason=reason,
        **kwargs
    )
    if filename:
        extra["upload_filename"] = filename

    logger.warning(f"Upload rejected: {reason}", extra=extra)


# Storage event functions

def log_storage_failure(
    logger: logging.Logger,
    operation: str,
    error: str,
    object_key: Optional[str] = None,
    duration_ms: Optional[float] = None,
    include_traceback: bool = True,
    **kwargs
):
    """
    Log an object store failure.

    The detail is only ever written to the logs; clients get a
    generic error message.

    Args:
        logger: Logger instance
        operation: Store operation (put_object, list_objects_v2, ...) (required)
        error: Error message (required)
        object_key: Key involved, if any
        duration_ms: Optional duration in milliseconds
        include_traceback: Whether to include stack trace (default: True)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="storage_failure",
        object_key=object_key,
        duration_ms=duration_ms,
        operation=operation,
        error=str(error),
        **kwargs
    )

    message = f"Storage failure: {operation} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
        else:
            logger.error(message, extra=extra)
    else:
        logger.error(message, extra=extra)


def log_listing_served(
    logger: logging.Logger,
    total: int,
    returned: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a listing request.

    Args:
        logger: Logger instance
        total: Objects returned by the store
        returned: Entries sent to the client after truncation
        duration_ms: Time spent in the store call
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="listing_served",
        duration_ms=duration_ms,
        total=total,
        returned=returned,
        **kwargs
    )

    logger.info(f"Listing served: {returned} of {total} objects", extra=extra)


# Convenience alias
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
