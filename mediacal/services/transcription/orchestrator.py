"""
Transcription Orchestrator
Picks the first configured provider, submits the stored asset and turns
the resulting job into the upload response contract.

A job moves created -> submitted -> (polling) -> completed | failed | timed_out.
Nothing here raises for provider trouble: every failure becomes
transcriptAvailable=false with a readable message and the upload itself
still succeeds.
"""

import json

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.api.media_response import TranscriptStatusResponse, UploadResponse
from mediacal.models.domain.media_domain import (
    JobStatus,
    TranscriptionJob,
    TranscriptionOptions,
    UploadedAsset,
    truncate_transcript,
)
from mediacal.services.storage.resolver import StorageError, StorageResolver
from mediacal.services.transcription.assembly_client import AssemblyAIClient
from mediacal.services.transcription.google_client import GoogleSpeechClient
from mediacal.services.transcription.providers import (
    AssemblyAIProvider,
    GoogleSpeechProvider,
    TranscriptionConfigError,
    TranscriptionProvider,
)

logger = get_logger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Upload succeeded. Set GOOGLE_API_KEY or ASSEMBLY_API_KEY in the server environment "
    "to enable automatic transcription, or extract audio client-side and POST it to /upload/audio."
)
JOB_CREATED_MESSAGE = "Transcription job created; poll /transcript/status/{id} for updates."


class TranscriptionOrchestrator:
    def __init__(self, providers: list[TranscriptionProvider], storage: StorageResolver):
        # Priority order: the first entry wins
        self.providers = providers
        self.storage = storage

    @property
    def provider_name(self) -> str:
        provider = self.select_provider()
        return provider.name if provider else "none"

    def select_provider(self) -> TranscriptionProvider | None:
        return self.providers[0] if self.providers else None

    async def close(self) -> None:
        for provider in self.providers:
            try:
                await provider.close()
            except Exception as e:
                logger.error("Error closing transcription provider", provider=provider.name, error=str(e))

    async def transcribe(
        self, asset: UploadedAsset, media: bytes, options: TranscriptionOptions
    ) -> UploadResponse:
        """Run the selected provider for an already stored asset."""
        response = UploadResponse(url=asset.public_url, storage=asset.storage_kind)

        provider = self.select_provider()
        if provider is None:
            logger.info("No transcription provider configured", stored_name=asset.stored_name)
            response.message = NOT_CONFIGURED_MESSAGE
            return response

        logger.info(
            "Submitting transcription",
            provider=provider.name,
            stored_name=asset.stored_name,
            size=asset.size_bytes,
            verbatim=options.verbatim,
            wait=options.wait,
        )

        try:
            job = await provider.submit(asset, media, options)
        except Exception as e:
            logger.exception("Transcription error", provider=provider.name, error=str(e))
            response.message = f"Transcription failed: {e}"
            return response

        await self._apply_job(asset, job, response)
        return response

    async def _apply_job(
        self, asset: UploadedAsset, job: TranscriptionJob, response: UploadResponse
    ) -> None:
        # The provider copy may expire; it is offered separately, never as url
        if job.provider_media_url and not response.url:
            response.provider_media_url = job.provider_media_url

        if job.status is JobStatus.PENDING:
            response.transcript_id = job.external_id
            response.message = JOB_CREATED_MESSAGE.format(id=job.external_id)
            return

        if job.status is not JobStatus.COMPLETED:
            logger.warning(
                "Transcription did not complete",
                provider=job.provider,
                status=job.status.value,
                reason=job.message,
            )
            response.transcript_id = job.external_id
            response.message = job.message
            return

        response.transcript_available = True
        response.transcript_text = truncate_transcript(job.result_text)
        response.transcript_url = await self._write_artifact(f"{asset.basename}.txt", job.result_text)

        if job.raw_response is not None:
            response.transcription_json_url = await self._write_artifact(
                f"{asset.basename}.transcription.{job.provider}.json",
                json.dumps(job.raw_response, indent=2),
            )

        if job.words_verbatim:
            verbatim_path = f"{asset.basename}.verbatim.txt"
            verbatim_text = " ".join(job.words_verbatim)
            stored = await self._store_artifact(verbatim_path, verbatim_text)
            response.verbatim_available = stored is not None
            response.verbatim_url = stored.public_url if stored else None

    async def _store_artifact(self, filename: str, text: str):
        try:
            return await self.storage.write_artifact(filename, text)
        except StorageError as e:
            logger.error("Could not write transcript artifact", filename=filename, error=str(e))
            return None

    async def _write_artifact(self, filename: str, text: str) -> str | None:
        stored = await self._store_artifact(filename, text)
        return stored.public_url if stored else None

    async def get_status(self, external_id: str) -> TranscriptStatusResponse:
        """
        Ask the owning provider for the current state of a job. One poll, no loop.

        Raises:
            TranscriptionConfigError: If no provider with job handles is configured
            ExternalAPIError: If the provider call fails
        """
        provider = next((p for p in self.providers if p.supports_status), None)
        if provider is None:
            raise TranscriptionConfigError("No ASSEMBLY_API_KEY configured on server")

        status = await provider.fetch_status(external_id)
        return TranscriptStatusResponse(**status)


def build_providers(settings) -> list[TranscriptionProvider]:
    """Configured providers in priority order: AssemblyAI, then Google."""
    polling = settings.get_polling_config()
    providers: list[TranscriptionProvider] = []

    if settings.ASSEMBLY_API_KEY:
        providers.append(
            AssemblyAIProvider(
                AssemblyAIClient(
                    settings.ASSEMBLY_API_KEY, timeout=settings.PROVIDER_REQUEST_TIMEOUT_SECONDS
                ),
                poll_interval=polling["interval"],
                poll_timeout=polling["timeout"],
            )
        )
    if settings.GOOGLE_API_KEY:
        providers.append(
            GoogleSpeechProvider(
                GoogleSpeechClient(
                    settings.GOOGLE_API_KEY, timeout=settings.PROVIDER_REQUEST_TIMEOUT_SECONDS
                ),
                sync_max_bytes=settings.GOOGLE_SYNC_MAX_BYTES,
                poll_interval=polling["interval"],
                poll_timeout=polling["timeout"],
            )
        )
    return providers
