"""
Transcription providers.

Each provider turns one stored asset into a TranscriptionJob. Providers
never raise for upstream failures; they record them on the job so the
orchestrator can degrade to a message.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.domain.media_domain import (
    TranscriptionJob,
    TranscriptionOptions,
    UploadedAsset,
)
from mediacal.services.transcription.assembly_client import AssemblyAIClient, AssemblyAIError
from mediacal.services.transcription.google_client import (
    GoogleSpeechClient,
    GoogleSpeechError,
    extract_transcript,
    extract_words,
)
from mediacal.services.transcription.polling import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    PollingTimeoutError,
    poll_until_done,
)

logger = get_logger(__name__)

GOOGLE_SYNC_MAX_BYTES = 5 * 1024 * 1024

ASSEMBLY_DONE_STATUSES = {"completed", "error"}


class TranscriptionConfigError(Exception):
    """No provider able to answer the request is configured."""


Sleep = Callable[[float], Awaitable[None]]


class TranscriptionProvider(ABC):
    """A transcription backend the orchestrator can hand an asset to."""

    name: str
    supports_status = False

    @abstractmethod
    async def submit(
        self, asset: UploadedAsset, media: bytes, options: TranscriptionOptions
    ) -> TranscriptionJob:
        """Start (and possibly finish) a transcription of the asset."""

    async def fetch_status(self, external_id: str) -> dict:
        raise TranscriptionConfigError(f"{self.name} does not expose job status")

    async def close(self) -> None:
        return None


def normalize_assembly_status(provider_status: str | None) -> str:
    if provider_status == "completed":
        return "completed"
    if provider_status == "error":
        return "failed"
    return "pending"


class AssemblyAIProvider(TranscriptionProvider):
    """
    AssemblyAI: ingest upload, then a transcript job.

    By default the job handle is returned immediately for the client to poll.
    With options.wait the job is polled locally up to the timeout.
    """

    name = "assembly"
    supports_status = True

    def __init__(
        self,
        client: AssemblyAIClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT_SECONDS,
        sleep: Sleep | None = None,
    ):
        self.client = client
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self._sleep = sleep

    async def close(self) -> None:
        await self.client.close()

    async def submit(
        self, asset: UploadedAsset, media: bytes, options: TranscriptionOptions
    ) -> TranscriptionJob:
        job = TranscriptionJob(provider=self.name)

        # Blob URLs are already public, the provider can fetch them directly
        if asset.storage_kind == "blob" and asset.public_url:
            audio_url = asset.public_url
        else:
            try:
                audio_url = await self.client.upload(media)
            except AssemblyAIError as e:
                logger.error("AssemblyAI upload failed", error=e.detail())
                job.fail(f"AssemblyAI upload failed: {e.detail()}")
                return job
            job.provider_media_url = audio_url

        try:
            created = await self.client.create_transcript(audio_url)
        except AssemblyAIError as e:
            logger.error("AssemblyAI create transcript failed", error=e.detail())
            job.fail(f"AssemblyAI create transcript failed: {e.detail()}")
            return job

        job.external_id = created["id"]
        if options.wait:
            await self._wait_for_completion(job, options)
        return job

    async def _wait_for_completion(self, job: TranscriptionJob, options: TranscriptionOptions) -> None:
        async def check():
            body = await self.client.get_transcript(job.external_id)
            return body if body.get("status") in ASSEMBLY_DONE_STATUSES else None

        poll_kwargs = {"interval": self.poll_interval, "timeout": self.poll_timeout}
        if self._sleep is not None:
            poll_kwargs["sleep"] = self._sleep

        try:
            body = await poll_until_done(check, **poll_kwargs)
        except PollingTimeoutError:
            logger.warning("AssemblyAI polling timed out", transcript_id=job.external_id)
            job.time_out("AssemblyAI transcription timed out")
            return
        except AssemblyAIError as e:
            job.fail(f"AssemblyAI status check failed: {e.detail()}")
            return

        job.raw_response = body
        if body.get("status") == "error" or not body.get("text"):
            job.fail(f"AssemblyAI transcription failed: {body.get('error') or 'empty transcript'}")
            return

        words = None
        if options.verbatim:
            words = [w.get("text") for w in body.get("words") or [] if w.get("text")]
        job.complete(body["text"], words)

    async def fetch_status(self, external_id: str) -> dict:
        body = await self.client.get_transcript(external_id)
        return {
            "id": body.get("id") or external_id,
            "status": normalize_assembly_status(body.get("status")),
            "provider_status": body.get("status"),
            "text": body.get("text") or None,
            "error": body.get("error") or None,
        }


class GoogleSpeechProvider(TranscriptionProvider):
    """
    Google Speech-to-Text: synchronous recognize for small assets, otherwise
    a long-running operation polled until done.
    """

    name = "google"

    def __init__(
        self,
        client: GoogleSpeechClient,
        sync_max_bytes: int = GOOGLE_SYNC_MAX_BYTES,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT_SECONDS,
        sleep: Sleep | None = None,
    ):
        self.client = client
        self.sync_max_bytes = sync_max_bytes
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self._sleep = sleep

    async def close(self) -> None:
        await self.client.close()

    def use_long_running(self, asset: UploadedAsset, options: TranscriptionOptions) -> bool:
        return options.long_running or asset.size_bytes >= self.sync_max_bytes

    async def submit(
        self, asset: UploadedAsset, media: bytes, options: TranscriptionOptions
    ) -> TranscriptionJob:
        job = TranscriptionJob(provider=self.name)
        long_running = self.use_long_running(asset, options)

        try:
            if long_running:
                operation = await self._run_long_running(media, options)
                if operation is None:
                    job.time_out("Longrunning transcription timed out")
                    return job
                job.raw_response = operation
                if operation.get("error"):
                    job.fail(
                        "Google longrunning transcription failed: "
                        + json.dumps(operation["error"])
                    )
                    return job
                body = operation.get("response") or operation
            else:
                body = await self.client.recognize(
                    media, options.language_code, options.verbatim
                )
                job.raw_response = body
        except GoogleSpeechError as e:
            logger.error("Google transcription failed", error=e.detail(), long_running=long_running)
            job.fail(f"Transcription failed: {e.detail()}")
            return job

        text = extract_transcript(body)
        if not text:
            job.fail(
                "Google longrunning transcription returned empty text"
                if long_running
                else "Google transcription returned empty text"
            )
            return job

        job.complete(text, extract_words(body) if options.verbatim else None)
        return job

    async def _run_long_running(self, media: bytes, options: TranscriptionOptions) -> dict | None:
        operation_name = await self.client.long_running_recognize(
            media, options.language_code, options.verbatim
        )

        async def check():
            operation = await self.client.get_operation(operation_name)
            return operation if operation.get("done") else None

        poll_kwargs = {"interval": self.poll_interval, "timeout": self.poll_timeout}
        if self._sleep is not None:
            poll_kwargs["sleep"] = self._sleep

        try:
            return await poll_until_done(check, **poll_kwargs)
        except PollingTimeoutError:
            logger.warning("Google longrunning polling timed out", operation=operation_name)
            return None
