"""
Tests for storage destination resolution.
"""

import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from mediacal.services.storage.blob_client import BlobStorageClient, BlobStorageError
from mediacal.services.storage.resolver import StorageError, StorageResolver


def test_public_dir_is_created_and_served(test_settings):
    storage = StorageResolver(test_settings)

    assert storage.is_public is True
    assert storage.storage_kind == "public"
    assert storage.local_dir == test_settings.public_uploads_dir().resolve()
    assert storage.local_dir.is_dir()


def test_missing_override_dir_falls_back_to_temp(make_settings, tmp_path):
    settings = make_settings(FALLBACK_UPLOAD_DIR=str(tmp_path / "does-not-exist"))

    storage = StorageResolver(settings)

    assert storage.is_public is False
    assert storage.storage_kind == "private"
    assert storage.local_dir == Path(tempfile.gettempdir()).resolve()
    assert storage.public_url_for("x.mp4") is None


def test_hosted_context_uses_private_temp_dir(make_settings):
    storage = StorageResolver(make_settings(VERCEL="1"))

    assert storage.is_public is False


def test_resolution_is_stable_across_calls(test_settings):
    first = StorageResolver(test_settings)
    second = StorageResolver(test_settings)

    assert (first.local_dir, first.is_public) == (second.local_dir, second.is_public)


@pytest.mark.asyncio
async def test_persist_writes_atomically_without_leftovers(test_settings):
    storage = StorageResolver(test_settings)

    stored = await storage.persist(b"hello", "1-a.txt")

    assert stored.public_url == "/uploads/1-a.txt"
    assert await storage.read(stored.storage_path) == b"hello"
    assert [p.name for p in storage.local_dir.iterdir()] == ["1-a.txt"]


@pytest.mark.asyncio
async def test_persist_prefers_blob_store(test_settings):
    blob = AsyncMock()
    blob.put.return_value = "https://blob.example/uploads/1-a.mp4"
    storage = StorageResolver(test_settings, blob_client=blob)

    stored = await storage.persist(b"data", "1-a.mp4", "video/mp4")

    assert stored.storage_kind == "blob"
    assert stored.public_url == "https://blob.example/uploads/1-a.mp4"
    blob.put.assert_awaited_once_with("uploads/1-a.mp4", b"data", "video/mp4")


@pytest.mark.asyncio
async def test_blob_failure_falls_back_to_local(test_settings):
    blob = AsyncMock()
    blob.put.side_effect = BlobStorageError("quota exceeded", status_code=403)
    storage = StorageResolver(test_settings, blob_client=blob)

    stored = await storage.persist(b"data", "1-a.mp4")

    assert stored.storage_kind == "public"
    assert Path(stored.storage_path).read_bytes() == b"data"


@pytest.mark.asyncio
async def test_blob_non_object_response_falls_back_to_local(test_settings, httpx_mock):
    blob = BlobStorageClient("tok")
    httpx_mock.add_response(
        method="PUT",
        url="https://blob.vercel-storage.com/uploads/1-a.mp4",
        json=["unexpected"],
    )
    storage = StorageResolver(test_settings, blob_client=blob)

    stored = await storage.persist(b"data", "1-a.mp4")
    await blob.close()

    assert stored.storage_kind == "public"
    assert Path(stored.storage_path).read_bytes() == b"data"


@pytest.mark.asyncio
async def test_failed_writes_raise_and_leave_nothing_behind(test_settings):
    storage = StorageResolver(test_settings)
    name = "1-write-failure-check.mp4"
    temp_dir = Path(tempfile.gettempdir())

    with patch("mediacal.services.storage.resolver.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StorageError):
            await storage.persist(b"data", name)

    for directory in (storage.local_dir, temp_dir):
        assert not (directory / name).exists()
        assert not (directory / f"{name}.part").exists()
