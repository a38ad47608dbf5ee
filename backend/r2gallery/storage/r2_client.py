"""
Cloudflare R2 / S3-compatible storage client.

Uses boto3 with S3-compatible API to interact with Cloudflare R2.
This is storage-provider agnostic - works with any S3-compatible storage.

The client is created once per application and shared by every
request; boto3 clients are thread-safe, so the async routes call it
through asyncio.to_thread.
"""
import logging
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from r2gallery.config import Settings
from r2gallery.schemas.files import StoredObject
from r2gallery.storage.base import ObjectStore, StorageError

logger = logging.getLogger(__name__)


class R2Client(ObjectStore):
    """
    S3-compatible client for Cloudflare R2.

    Provides the put/list operations used by the gallery, plus a
    head_bucket based ping for the health check.
    """

    def __init__(self, settings: Settings, client=None):
        """
        Initialize R2 client with boto3.

        Args:
            settings: Application settings (endpoint, credentials, bucket)
            client: Pre-built boto3 S3 client, mainly for tests

        Missing configuration does not raise here; every operation
        raises StorageError instead so the app can still start and
        report itself unhealthy.
        """
        self._bucket = settings.r2_bucket_name
        self._client = client
        self._configured = client is not None

        if self._client is not None:
            return

        if not all([
            settings.storage_endpoint,
            settings.r2_access_key_id,
            settings.r2_secret_access_key,
        ]):
            logger.warning(
                "R2 storage not configured. "
                "Set ACCOUNT_ID (or R2_ENDPOINT), R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY."
            )
            return

        # Use signature_version='s3v4' for R2 compatibility
        self._client = boto3.client(
            's3',
            endpoint_url=settings.storage_endpoint,
            aws_access_key_id=settings.r2_access_key_id,
            aws_secret_access_key=settings.r2_secret_access_key,
            region_name=settings.r2_region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}  # R2 uses path-style
            )
        )
        self._configured = True
        logger.info(f"R2 client initialized for bucket: {self._bucket}")

    @property
    def is_configured(self) -> bool:
        """Check if R2 client is properly configured."""
        return self._configured and self._client is not None

    @property
    def bucket(self) -> str:
        """Get configured bucket name."""
        return self._bucket

    def _require_client(self, operation: str):
        if not self.is_configured:
            raise StorageError(operation, "R2 storage not configured")
        return self._client

    def put(self, key: str, content: bytes, content_type: str) -> None:
        """
        Upload an object with its content type preserved.

        Args:
            key: The S3 object key
            content: File bytes
            content_type: MIME type stored as the object's Content-Type

        Raises:
            StorageError: On any client or transport failure
        """
        client = self._require_client("put_object")

        try:
            client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError("put_object", str(e)) from e

        logger.debug(f"Uploaded {key} ({len(content)} bytes) to R2")

    def list(self, max_keys: int) -> List[StoredObject]:
        """
        List up to max_keys objects from the bucket.

        Single page only: the gallery never needs more than the
        first page of results.

        Raises:
            StorageError: On any client or transport failure
        """
        client = self._require_client("list_objects_v2")

        try:
            response = client.list_objects_v2(Bucket=self.bucket, MaxKeys=max_keys)
        except (ClientError, BotoCoreError) as e:
            raise StorageError("list_objects_v2", str(e)) from e

        contents = response.get('Contents', [])
        return [
            StoredObject(
                key=item['Key'],
                size=item.get('Size', 0),
                last_modified=item['LastModified'],
            )
            for item in contents
        ]

    def ping(self) -> None:
        """Verify the bucket exists and credentials are accepted."""
        client = self._require_client("head_bucket")

        try:
            client.head_bucket(Bucket=self.bucket)
        except (ClientError, BotoCoreError) as e:
            raise StorageError("head_bucket", str(e)) from e


def build_object_store(settings: Settings, client: Optional[object] = None) -> R2Client:
    """Create the process-wide R2 client from settings."""
    return R2Client(settings, client=client)
