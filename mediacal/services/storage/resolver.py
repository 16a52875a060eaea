"""
Storage Resolver
Decides where uploaded bytes and derived transcript files are written.

Resolution happens once, at construction, so every upload in a deployment
lands in the same kind of place:

1. Remote blob store, when enabled and a client is supplied (tried first,
   falls back to local on failure).
2. The configured local directory when it exists and is writable. Files are
   public (served at /uploads) only when that directory is PUBLIC_DIR/uploads.
3. The OS temp directory otherwise (private, never served).
"""

import os
import tempfile
from pathlib import Path

import aiofiles

from mediacal.config import Settings
from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.domain.media_domain import StoredFile
from mediacal.services.storage.blob_client import BlobStorageClient, BlobStorageError

logger = get_logger(__name__)

PUBLIC_URL_PREFIX = "/uploads"


class StorageError(Exception):
    """Raised when bytes could not be persisted to any destination."""


def _is_writable_dir(path: Path) -> bool:
    return path.is_dir() and os.access(path, os.W_OK)


class StorageResolver:
    def __init__(self, settings: Settings, blob_client: BlobStorageClient | None = None):
        self._blob_client = blob_client
        self._blob_prefix = settings.BLOB_PREFIX
        self.public_dir = settings.public_uploads_dir().resolve()
        self.local_dir, self.is_public = self._resolve_local_dir(settings)

        logger.info(
            "Storage resolved",
            local_dir=str(self.local_dir),
            public=self.is_public,
            blob_enabled=self.blob_enabled,
        )

    def _resolve_local_dir(self, settings: Settings) -> tuple[Path, bool]:
        candidate = settings.upload_dir().resolve()

        # The public uploads dir is ours to create; explicit overrides must already exist
        if candidate == self.public_dir:
            try:
                candidate.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning("Could not create public uploads dir", path=str(candidate), error=str(e))

        if _is_writable_dir(candidate):
            return candidate, candidate == self.public_dir

        temp_dir = Path(tempfile.gettempdir()).resolve()
        logger.warning(
            "Upload dir not writable, using temp dir",
            requested=str(candidate),
            temp_dir=str(temp_dir),
        )
        return temp_dir, False

    @property
    def blob_enabled(self) -> bool:
        return self._blob_client is not None

    @property
    def storage_kind(self) -> str:
        if self.blob_enabled:
            return "blob"
        return "public" if self.is_public else "private"

    def public_url_for(self, filename: str) -> str | None:
        return f"{PUBLIC_URL_PREFIX}/{filename}" if self.is_public else None

    def is_writable(self) -> bool:
        return _is_writable_dir(self.local_dir)

    async def persist(self, data: bytes, filename: str, content_type: str | None = None) -> StoredFile:
        """
        Persist uploaded bytes, blob store first when configured.

        Raises:
            StorageError: If neither the blob store nor any local directory took the bytes
        """
        if self._blob_client is not None:
            try:
                blob_url = await self._blob_client.put(
                    self._blob_prefix + filename, data, content_type
                )
                return StoredFile(storage_kind="blob", storage_path=None, public_url=blob_url)
            except BlobStorageError as e:
                logger.warning(
                    "Blob upload failed, falling back to local storage",
                    filename=filename,
                    error=e.detail(),
                )

        return await self._write_local(filename, data)

    async def write_artifact(self, filename: str, text: str) -> StoredFile:
        """Write a derived text file (transcript, verbatim, provider JSON) next to the uploads."""
        return await self._write_local(filename, text.encode("utf-8"))

    async def _write_local(self, filename: str, data: bytes) -> StoredFile:
        targets = [self.local_dir]
        temp_dir = Path(tempfile.gettempdir()).resolve()
        if temp_dir != self.local_dir:
            targets.append(temp_dir)

        last_error: OSError | None = None
        for directory in targets:
            path = directory / filename
            try:
                await self._write_atomic(path, data)
            except OSError as e:
                last_error = e
                logger.error("Local write failed", path=str(path), error=str(e))
                continue

            public = directory == self.local_dir and self.is_public
            return StoredFile(
                storage_kind="public" if public else "private",
                storage_path=str(path),
                public_url=f"{PUBLIC_URL_PREFIX}/{filename}" if public else None,
            )

        raise StorageError(f"Could not store {filename}: {last_error}")

    async def _write_atomic(self, path: Path, data: bytes) -> None:
        # Write beside the target and rename so a failed write never leaves a file under the final name
        part_path = path.with_name(path.name + ".part")
        try:
            async with aiofiles.open(part_path, "wb") as f:
                await f.write(data)
            os.replace(part_path, path)
        except OSError:
            part_path.unlink(missing_ok=True)
            raise

    async def read(self, storage_path: str) -> bytes:
        async with aiofiles.open(storage_path, "rb") as f:
            return await f.read()
