"""
Test configuration and fixtures.
Uses an in-memory object store in place of R2.
"""
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"
for _name in ("ACCOUNT_ID", "R2_ENDPOINT", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY"):
    os.environ.pop(_name, None)

import itertools
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, List

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from r2gallery.config import Settings
from r2gallery.main import create_app
from r2gallery.schemas.files import StoredObject
from r2gallery.services.gallery_service import GalleryService
from r2gallery.storage.base import ObjectStore, StorageError


TEST_PUBLIC_URL = "pub.example.r2.dev"
TEST_MAX_UPLOAD_BYTES = 10 * 1024


class InMemoryObjectStore(ObjectStore):
    """Object store double; each put gets a strictly later last_modified."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)):
        self.objects: Dict[str, dict] = {}
        self.put_calls: List[str] = []
        self.list_calls: List[int] = []
        self.fail_with: str = ""
        self._ticks = itertools.count()
        self._start = start

    def put(self, key: str, content: bytes, content_type: str) -> None:
        self.put_calls.append(key)
        if self.fail_with:
            raise StorageError("put_object", self.fail_with)
        self.objects[key] = {
            "content": content,
            "content_type": content_type,
            "last_modified": self._start + timedelta(seconds=next(self._ticks)),
        }

    def add(self, key: str, size: int, last_modified: datetime) -> None:
        """Seed an object without going through put."""
        self.objects[key] = {
            "content": b"x" * size,
            "content_type": "image/png",
            "last_modified": last_modified,
        }

    def list(self, max_keys: int) -> List[StoredObject]:
        self.list_calls.append(max_keys)
        if self.fail_with:
            raise StorageError("list_objects_v2", self.fail_with)
        # S3 lists in key order
        return [
            StoredObject(key=key, size=len(obj["content"]), last_modified=obj["last_modified"])
            for key, obj in sorted(self.objects.items())
        ][:max_keys]


class TickingClock:
    """Millisecond clock that advances by one on every call."""

    def __init__(self, start: int = 1718000000000):
        self._counter = itertools.count(start)

    def __call__(self) -> int:
        return next(self._counter)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        r2_bucket_name="test-bucket",
        r2_public_url=TEST_PUBLIC_URL,
        max_upload_bytes=TEST_MAX_UPLOAD_BYTES,
    )


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def service(store: InMemoryObjectStore, settings: Settings, clock: TickingClock) -> GalleryService:
    return GalleryService(store, settings, clock=clock)


@pytest.fixture
def app(settings: Settings, store: InMemoryObjectStore, service: GalleryService) -> FastAPI:
    """App wired to the in-memory store and the ticking clock."""
    app = create_app(settings, store=store)
    app.state.gallery_service = service
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
