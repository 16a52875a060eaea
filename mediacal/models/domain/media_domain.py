"""
Media Domain Models
Uploaded assets, storage results and transcription jobs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

MimeCategory = Literal["video", "audio", "image", "other"]

TRANSCRIPT_PREVIEW_LIMIT = 5000
TRUNCATION_MARKER = "\n\n...[truncated]"


@dataclass(slots=True)
class StoredFile:
    """Where persisted bytes ended up."""

    storage_kind: str  # "blob", "public" or "private"
    storage_path: str | None
    public_url: str | None


@dataclass(slots=True)
class UploadedAsset:
    """A single uploaded media file. Never mutated after creation."""

    stored_name: str
    storage_path: str | None
    public_url: str | None
    mime_category: MimeCategory
    size_bytes: int
    content_type: str | None = None
    storage_kind: str = "private"

    @property
    def basename(self) -> str:
        """Stored name without its final extension; prefix for derived artifacts."""
        stem, dot, _ = self.stored_name.rpartition(".")
        return stem if dot and stem else self.stored_name


class JobStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


class InvalidJobTransition(Exception):
    """Raised when a terminal transcription job is moved again."""


@dataclass
class TranscriptionJob:
    """
    One transcription request against one provider.

    Status only moves forward: pending -> completed | failed | timed_out.
    result_text is only ever set together with the completed status.
    """

    provider: str
    external_id: str | None = None
    status: JobStatus = JobStatus.PENDING
    result_text: str | None = None
    words_verbatim: list[str] | None = None
    message: str | None = None
    provider_media_url: str | None = None
    raw_response: dict[str, Any] | None = field(default=None, repr=False)

    def _ensure_pending(self, target: JobStatus) -> None:
        if self.status.is_terminal:
            raise InvalidJobTransition(
                f"Transcription job already {self.status.value}, cannot move to {target.value}"
            )

    def complete(self, text: str, words: list[str] | None = None) -> None:
        self._ensure_pending(JobStatus.COMPLETED)
        self.status = JobStatus.COMPLETED
        self.result_text = text
        self.words_verbatim = words or None

    def fail(self, message: str) -> None:
        self._ensure_pending(JobStatus.FAILED)
        self.status = JobStatus.FAILED
        self.message = message

    def time_out(self, message: str) -> None:
        self._ensure_pending(JobStatus.TIMED_OUT)
        self.status = JobStatus.TIMED_OUT
        self.message = message


@dataclass(slots=True)
class TranscriptionOptions:
    """Per-request knobs collected from form fields or headers."""

    verbatim: bool = False
    long_running: bool = False
    language_code: str = "en-US"
    wait: bool = False


def truncate_transcript(text: str, limit: int = TRANSCRIPT_PREVIEW_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def is_truthy_flag(value: str | None) -> bool:
    """Interpret checkbox / header style flags ("1", "true", "on", "yes")."""
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "on", "yes"}
