"""
Gallery service: upload validation, key generation and recency listing.

Flow for an upload:
1. Route rejects a declared Content-Length far above max_upload_bytes
2. Route streams the multipart body: the "file" part's declared type is
   checked as soon as its headers arrive, and reading stops once the part
   grows past max_upload_bytes
3. Service validates the IncomingFile, builds the key and writes it to the store
4. Service returns the key and its public URL

Flow for a listing:
1. Service lists up to list_max_keys objects from the store
2. Sorts by last_modified (newest first) and keeps list_limit entries
"""
import asyncio
import logging
import ntpath
import posixpath
import time
from typing import Any, Callable, List, Optional, Tuple

from r2gallery.config import Settings
from r2gallery.schemas.files import FileEntry, IncomingFile, UploadResponse
from r2gallery.storage.base import ObjectStore, StorageError
from r2gallery.utils.logging import (
    log_listing_served,
    log_storage_failure,
    log_upload_completed,
    log_upload_rejected,
)
from r2gallery.utils.metrics import (
    listings_total,
    storage_failures_total,
    storage_latency_seconds,
    storage_requests_total,
    upload_bytes,
    uploads_total,
)

logger = logging.getLogger(__name__)

UPLOAD_SUCCESS_MESSAGE = "File uploaded successfully"


class UploadRejected(Exception):
    """Client input error: missing file, disallowed type or oversized payload."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def current_millis() -> int:
    """Wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def format_size(num_bytes: int) -> str:
    """Render a byte count for error messages: 5242880 -> '5 MB'."""
    size = float(num_bytes)
    for unit in ("bytes", "KB", "MB"):
        if size < 1024:
            return f"{size:g} {unit}"
        size /= 1024
    return f"{size:g} GB"


def normalize_content_type(content_type: Optional[str]) -> str:
    """Strip MIME parameters and lowercase: 'image/PNG; x=y' -> 'image/png'."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def base_filename(filename: str) -> str:
    """Final path component of a client-supplied filename (Windows or POSIX separators)."""
    return posixpath.basename(ntpath.basename(filename)).strip()


class GalleryService:
    """
    Upload/list operations against an object store.

    One instance is built at startup with the settings and the shared
    store, then injected into the routes.
    """

    def __init__(
        self,
        store: ObjectStore,
        settings: Settings,
        clock: Callable[[], int] = current_millis,
    ):
        self._store = store
        self._settings = settings
        self._clock = clock
        self._allowed = frozenset(normalize_content_type(t) for t in settings.allowed_content_types)

    @property
    def max_upload_bytes(self) -> int:
        return self._settings.max_upload_bytes

    @property
    def allowed_content_types(self) -> List[str]:
        return sorted(self._allowed)

    def is_allowed_content_type(self, content_type: Optional[str]) -> bool:
        return normalize_content_type(content_type) in self._allowed

    def check_content_type(self, content_type: Optional[str], filename: Optional[str] = None) -> None:
        """Raise UploadRejected when the declared media type is not allow-listed."""
        if not self.is_allowed_content_type(content_type):
            self.reject(
                f"Unsupported file type: {content_type or 'unknown'}",
                filename=filename,
                content_type=content_type,
            )

    def check_size(self, size: Optional[int], filename: Optional[str] = None) -> None:
        """Raise UploadRejected when a known size exceeds the limit or is empty."""
        if size is None:
            return
        if size > self.max_upload_bytes:
            self.reject_too_large(size, filename=filename)
        if size == 0:
            self.reject("Uploaded file is empty", filename=filename, size_bytes=0)

    def reject_too_large(self, size: int, filename: Optional[str] = None) -> None:
        """Reject a payload, or a declared request length, above the limit."""
        self.reject(
            f"File too large: maximum size is {format_size(self.max_upload_bytes)} "
            f"({self.max_upload_bytes} bytes)",
            filename=filename,
            size_bytes=size,
        )

    def generate_object_key(self, filename: str) -> str:
        """
        Build the object key: <epoch-millis>-<original filename>.

        Two uploads only collide when they share both the millisecond
        and the filename.
        """
        name = base_filename(filename)
        if not name:
            self.reject("Invalid file name", filename=filename)
        return f"{self._clock()}-{name}"

    def public_url(self, key: str) -> str:
        """Public URL for an object key."""
        return f"{self._settings.public_base_url}/{key}"

    async def upload(self, incoming: IncomingFile) -> UploadResponse:
        """
        Validate and store one file.

        Raises:
            UploadRejected: For client input errors (nothing is written)
            StorageError: If the store write fails
        """
        self.check_content_type(incoming.content_type, filename=incoming.filename)
        self.check_size(incoming.size, filename=incoming.filename)

        key = self.generate_object_key(incoming.filename)
        try:
            _, duration_ms = await self._call_store(
                "put_object",
                self._store.put,
                key,
                incoming.content,
                incoming.content_type,
                object_key=key,
            )
        except StorageError:
            uploads_total.labels(outcome="failed").inc()
            raise

        uploads_total.labels(outcome="success").inc()
        upload_bytes.observe(incoming.size)
        log_upload_completed(
            logger,
            object_key=key,
            size_bytes=incoming.size,
            content_type=incoming.content_type,
            duration_ms=duration_ms,
        )

        return UploadResponse(
            message=UPLOAD_SUCCESS_MESSAGE,
            file_name=key,
            file_url=self.public_url(key),
        )

    async def list_recent(self) -> List[FileEntry]:
        """
        Most recently modified objects, newest first.

        Ties on last_modified are ordered by key (descending) so the
        result is stable across calls.

        Raises:
            StorageError: If the store listing fails
        """
        objects, duration_ms = await self._call_store(
            "list_objects_v2",
            self._store.list,
            self._settings.list_max_keys,
        )

        ordered = sorted(objects, key=lambda obj: (obj.last_modified, obj.key), reverse=True)
        entries = [
            FileEntry(
                name=obj.key,
                url=self.public_url(obj.key),
                size=obj.size,
                last_modified=obj.last_modified,
            )
            for obj in ordered[:self._settings.list_limit]
        ]

        listings_total.inc()
        log_listing_served(
            logger,
            total=len(objects),
            returned=len(entries),
            duration_ms=duration_ms,
            latest=[entry.name for entry in entries],
        )
        return entries

    async def check_storage(self) -> None:
        """Ping the store. Raises StorageError when unreachable."""
        await self._call_store("head_bucket", self._store.ping)

    async def _call_store(self, operation: str, func, *args, object_key: Optional[str] = None) -> Tuple[Any, float]:
        """
        Run a blocking store call in a worker thread and record metrics.

        Returns:
            Tuple of (call result, duration in milliseconds)
        """
        storage_requests_total.labels(operation=operation).inc()
        start = time.perf_counter()
        try:
            result = await asyncio.to_thread(func, *args)
        except StorageError as e:
            duration = time.perf_counter() - start
            storage_failures_total.labels(operation=operation).inc()
            storage_latency_seconds.labels(operation=operation).observe(duration)
            log_storage_failure(
                logger,
                operation=operation,
                error=e.message,
                object_key=object_key,
                duration_ms=duration * 1000,
            )
            raise

        duration = time.perf_counter() - start
        storage_latency_seconds.labels(operation=operation).observe(duration)
        return result, duration * 1000

    def reject(self, reason: str, **fields) -> None:
        """Record a client error and raise UploadRejected."""
        uploads_total.labels(outcome="rejected").inc()
        log_upload_rejected(logger, reason=reason, **fields)
        raise UploadRejected(reason)
