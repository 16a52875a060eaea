"""
Upload Receiver
Accepts media over multipart form fields or raw request bodies, validates
type and size, and persists the bytes through the Storage Resolver.
"""

import re
import threading
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

from fastapi import UploadFile

from mediacal.config import Settings
from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.domain.media_domain import MimeCategory, StoredFile, UploadedAsset
from mediacal.services.storage.resolver import StorageResolver

logger = get_logger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024  # 1MB
UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9.\-_]", re.IGNORECASE)
DEFAULT_RAW_EXTENSIONS = {"video": ".mp4", "audio": ".wav"}


class UploadValidationError(Exception):
    """Client-side upload problem (missing, empty, wrong type, too large)."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def sanitize_filename(name: str) -> str:
    """Replace every character outside [a-z0-9.-_] with an underscore."""
    return UNSAFE_FILENAME_CHARS.sub("_", name)


class StoredNameFactory:
    """
    Produces "<millis>-<sanitized name>" stored names.

    The millisecond prefix is forced to increase on every call, so two
    uploads of the same file name in the same millisecond still differ.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last_stamp = 0
        self._lock = threading.Lock()

    def next_stamp(self) -> int:
        with self._lock:
            stamp = max(int(self._clock() * 1000), self._last_stamp + 1)
            self._last_stamp = stamp
            return stamp

    def __call__(self, original_name: str) -> str:
        return f"{self.next_stamp()}-{sanitize_filename(original_name)}"


@dataclass(slots=True)
class UploadRules:
    category: MimeCategory
    max_bytes: int

    def check_content_type(self, content_type: str | None) -> None:
        if not content_type:
            raise UploadValidationError("Unknown file type")
        if not content_type.lower().startswith(f"{self.category}/"):
            raise UploadValidationError(f"Only {self.category} files are accepted")


async def _iter_upload(upload: UploadFile) -> AsyncIterator[bytes]:
    while True:
        chunk = await upload.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


class UploadReceiver:
    def __init__(
        self,
        settings: Settings,
        storage: StorageResolver,
        name_factory: StoredNameFactory | None = None,
    ):
        self.storage = storage
        self.name_factory = name_factory or StoredNameFactory()
        self._rules = {
            "video": UploadRules("video", settings.MAX_VIDEO_UPLOAD_BYTES),
            "audio": UploadRules("audio", settings.MAX_AUDIO_UPLOAD_BYTES),
        }

    def rules_for(self, category: MimeCategory) -> UploadRules:
        return self._rules[category]

    async def receive_multipart(
        self, upload: UploadFile | None, category: MimeCategory
    ) -> tuple[UploadedAsset, bytes]:
        """
        Validate and store a multipart file field.

        Raises:
            UploadValidationError: Missing file, wrong MIME type, empty or oversized body
            StorageError: If no storage destination accepted the bytes
        """
        if upload is None or not upload.filename:
            raise UploadValidationError("No file uploaded")

        rules = self.rules_for(category)
        try:
            rules.check_content_type(upload.content_type)
            data = await self._collect(_iter_upload(upload), rules.max_bytes)
        finally:
            await upload.close()

        return await self._store(data, upload.filename, upload.content_type, category)

    async def receive_raw(
        self,
        chunks: AsyncIterator[bytes],
        category: MimeCategory,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> tuple[UploadedAsset, bytes]:
        """
        Store a raw request body. No MIME allowlist applies, only emptiness and size.

        Raises:
            UploadValidationError: Empty or oversized body
            StorageError: If no storage destination accepted the bytes
        """
        rules = self.rules_for(category)
        data = await self._collect(chunks, rules.max_bytes)
        original_name = filename or f"upload{DEFAULT_RAW_EXTENSIONS[category]}"
        return await self._store(data, original_name, content_type, category)

    async def receive_attachment(self, upload: UploadFile | None) -> StoredFile | None:
        """Store an optional form attachment such as an event backdrop image."""
        if upload is None or not upload.filename:
            return None
        try:
            data = await upload.read()
        finally:
            await upload.close()
        if not data:
            return None
        return await self.storage.persist(data, self.name_factory(upload.filename), upload.content_type)

    async def _collect(self, chunks: AsyncIterator[bytes], max_bytes: int) -> bytes:
        buffer = bytearray()
        async for chunk in chunks:
            buffer.extend(chunk)
            if len(buffer) > max_bytes:
                raise UploadValidationError(
                    f"File too large (max {max_bytes // (1024 * 1024)}MB)", status_code=413
                )
        if not buffer:
            raise UploadValidationError("No file uploaded")
        return bytes(buffer)

    async def _store(
        self,
        data: bytes,
        original_name: str,
        content_type: str | None,
        category: MimeCategory,
    ) -> tuple[UploadedAsset, bytes]:
        stored_name = self.name_factory(original_name)
        stored = await self.storage.persist(data, stored_name, content_type)

        asset = UploadedAsset(
            stored_name=stored_name,
            storage_path=stored.storage_path,
            public_url=stored.public_url,
            mime_category=category,
            size_bytes=len(data),
            content_type=content_type,
            storage_kind=stored.storage_kind,
        )
        logger.info(
            "Upload stored",
            stored_name=stored_name,
            size=asset.size_bytes,
            category=category,
            storage=asset.storage_kind,
        )
        return asset, data
