"""
Base class for object stores.
The gallery only needs two operations from a store: put and list.
"""
from abc import ABC, abstractmethod
from typing import List

from r2gallery.schemas.files import StoredObject


class StorageError(Exception):
    """Raised when the object store cannot complete an operation."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class ObjectStore(ABC):
    """
    Abstract interface for an S3-compatible object store.

    Implementations must raise StorageError for any failure
    (network, credentials, missing bucket) so callers can map it
    to a generic server error.
    """

    @abstractmethod
    def put(self, key: str, content: bytes, content_type: str) -> None:
        """
        Write one object.

        Args:
            key: Object key within the bucket
            content: Object payload
            content_type: MIME type stored with the object

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def list(self, max_keys: int) -> List[StoredObject]:
        """
        List up to max_keys objects in the bucket, in store order.

        Raises:
            StorageError: If the listing fails
        """
        pass

    def ping(self) -> None:
        """Check the store is reachable. Raises StorageError if not."""
        self.list(max_keys=1)
