"""
Tests for service layer business logic.
"""
from datetime import datetime, timedelta, timezone

import pytest

from r2gallery.config import Settings
from r2gallery.schemas.files import IncomingFile
from r2gallery.services.gallery_service import (
    GalleryService,
    UploadRejected,
    base_filename,
    format_size,
    normalize_content_type,
)
from r2gallery.storage.base import StorageError
from tests.conftest import TEST_PUBLIC_URL, InMemoryObjectStore


def incoming(name: str = "cat.png", content: bytes = b"png-bytes", content_type: str = "image/png"):
    return IncomingFile(filename=name, content_type=content_type, content=content)


class TestHelpers:
    """Tests for module-level helpers."""

    @pytest.mark.parametrize("num_bytes,expected", [
        (512, "512 bytes"),
        (10 * 1024, "10 KB"),
        (5 * 1024 * 1024, "5 MB"),
        (2 * 1024 ** 3, "2 GB"),
    ])
    def test_format_size(self, num_bytes: int, expected: str):
        assert format_size(num_bytes) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("image/png", "image/png"),
        ("IMAGE/JPEG", "image/jpeg"),
        ("image/gif; charset=binary", "image/gif"),
        (None, ""),
        ("", ""),
    ])
    def test_normalize_content_type(self, raw, expected):
        assert normalize_content_type(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("cat.png", "cat.png"),
        ("C:\\fakepath\\cat.png", "cat.png"),
        ("photos/2024/cat.png", "cat.png"),
        ("../../etc/cat.png", "cat.png"),
        ("  spaced name.png ", "spaced name.png"),
    ])
    def test_base_filename(self, raw: str, expected: str):
        assert base_filename(raw) == expected


class TestKeysAndUrls:
    """Tests for key generation and public URLs."""

    def test_generate_object_key_uses_clock(self, store: InMemoryObjectStore, settings: Settings):
        service = GalleryService(store, settings, clock=lambda: 1718000000123)

        assert service.generate_object_key("cat.png") == "1718000000123-cat.png"

    def test_generate_object_key_strips_directories(self, service: GalleryService):
        key = service.generate_object_key("C:\\fakepath\\cat.png")

        assert key.endswith("-cat.png")
        assert "\\" not in key

    def test_generate_object_key_rejects_blank_name(self, service: GalleryService):
        with pytest.raises(UploadRejected):
            service.generate_object_key("some/dir/")

    def test_public_url_adds_scheme(self, service: GalleryService):
        assert service.public_url("1-cat.png") == f"https://{TEST_PUBLIC_URL}/1-cat.png"

    def test_public_url_keeps_explicit_base(self, store: InMemoryObjectStore):
        settings = Settings(_env_file=None, r2_public_url="http://localhost:9000/bucket/")
        service = GalleryService(store, settings)

        assert service.public_url("1-cat.png") == "http://localhost:9000/bucket/1-cat.png"


class TestValidation:
    """Tests for upload validation."""

    def test_check_content_type_allowed(self, service: GalleryService):
        service.check_content_type("image/jpeg")

    def test_check_content_type_rejected(self, service: GalleryService):
        with pytest.raises(UploadRejected) as exc_info:
            service.check_content_type("video/mp4")
        assert "video/mp4" in exc_info.value.message

    def test_check_content_type_missing(self, service: GalleryService):
        with pytest.raises(UploadRejected):
            service.check_content_type(None)

    def test_configured_allow_list(self, store: InMemoryObjectStore):
        settings = Settings(_env_file=None, allowed_content_types=["image/png", "video/mp4"])
        service = GalleryService(store, settings)

        service.check_content_type("video/mp4")
        with pytest.raises(UploadRejected):
            service.check_content_type("image/jpeg")

    def test_check_size_unknown_is_deferred(self, service: GalleryService):
        service.check_size(None)

    def test_check_size_over_limit(self, service: GalleryService):
        with pytest.raises(UploadRejected) as exc_info:
            service.check_size(service.max_upload_bytes + 1)
        assert "10 KB" in exc_info.value.message


class TestUpload:
    """Tests for GalleryService.upload."""

    @pytest.mark.asyncio
    async def test_upload_writes_object(self, service: GalleryService, store: InMemoryObjectStore):
        result = await service.upload(incoming())

        assert result.file_name.endswith("-cat.png")
        assert result.file_url == f"https://{TEST_PUBLIC_URL}/{result.file_name}"
        assert store.objects[result.file_name]["content"] == b"png-bytes"
        assert store.objects[result.file_name]["content_type"] == "image/png"

    @pytest.mark.asyncio
    async def test_upload_rejected_type_never_reaches_store(
        self, service: GalleryService, store: InMemoryObjectStore
    ):
        with pytest.raises(UploadRejected):
            await service.upload(incoming(content_type="text/html"))

        assert store.put_calls == []

    @pytest.mark.asyncio
    async def test_upload_oversized_never_reaches_store(
        self, service: GalleryService, store: InMemoryObjectStore
    ):
        with pytest.raises(UploadRejected):
            await service.upload(incoming(content=b"\x00" * (service.max_upload_bytes + 1)))

        assert store.put_calls == []

    @pytest.mark.asyncio
    async def test_upload_propagates_storage_error(
        self, service: GalleryService, store: InMemoryObjectStore
    ):
        store.fail_with = "endpoint unreachable"

        with pytest.raises(StorageError):
            await service.upload(incoming())

    @pytest.mark.asyncio
    async def test_upload_same_name_gives_distinct_keys(self, service: GalleryService):
        first = await service.upload(incoming())
        second = await service.upload(incoming())

        assert first.file_name != second.file_name


class TestListRecent:
    """Tests for GalleryService.list_recent."""

    @pytest.mark.asyncio
    async def test_list_recent_empty(self, service: GalleryService):
        assert await service.list_recent() == []

    @pytest.mark.asyncio
    async def test_list_recent_sorted_and_truncated(
        self, service: GalleryService, store: InMemoryObjectStore
    ):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for minute in [3, 9, 1, 7, 5, 2]:
            store.add(f"{minute}.png", size=minute, last_modified=base + timedelta(minutes=minute))

        entries = await service.list_recent()

        assert [entry.name for entry in entries] == ["9.png", "7.png", "5.png"]
        assert all(a.last_modified >= b.last_modified for a, b in zip(entries, entries[1:]))

    @pytest.mark.asyncio
    async def test_list_recent_ties_are_stable(
        self, service: GalleryService, store: InMemoryObjectStore
    ):
        same = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for key in ["b.png", "d.png", "a.png", "c.png"]:
            store.add(key, size=1, last_modified=same)

        entries = await service.list_recent()

        assert [entry.name for entry in entries] == ["d.png", "c.png", "b.png"]

    @pytest.mark.asyncio
    async def test_list_recent_respects_configured_limits(self, store: InMemoryObjectStore):
        settings = Settings(_env_file=None, list_max_keys=20, list_limit=2, r2_public_url="cdn.test")
        service = GalleryService(store, settings)
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for index in range(8):
            store.add(f"{index}.png", size=1, last_modified=base + timedelta(seconds=index))

        entries = await service.list_recent()

        assert store.list_calls == [20]
        assert len(entries) == 2
        assert entries[0].url == "https://cdn.test/7.png"

    @pytest.mark.asyncio
    async def test_list_recent_propagates_storage_error(
        self, service: GalleryService, store: InMemoryObjectStore
    ):
        store.fail_with = "AccessDenied"

        with pytest.raises(StorageError):
            await service.list_recent()
