"""
Transcript API Routes
Single-poll job status and provider discovery for the browser client.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.api.media_response import ProviderResponse, TranscriptStatusResponse
from mediacal.routes.dependencies import get_orchestrator
from mediacal.services.errors import ExternalAPIError
from mediacal.services.transcription.orchestrator import (
    TranscriptionConfigError,
    TranscriptionOrchestrator,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/transcript", tags=["transcripts"])


@router.get("/status/{transcript_id}", response_model=TranscriptStatusResponse, response_model_by_alias=True)
async def get_transcript_status(
    transcript_id: str,
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
):
    """Query the provider once for the job's current state. Never loops."""
    try:
        return await orchestrator.get_status(transcript_id)

    except TranscriptionConfigError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except ExternalAPIError as e:
        logger.error(
            "Transcript status lookup failed",
            transcript_id=transcript_id,
            upstream_status=e.status_code,
            error=e.detail(),
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Could not fetch transcript status", "details": e.response_data or str(e)},
        )


@router.get("/provider", response_model=ProviderResponse)
async def get_transcription_provider(
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
):
    return ProviderResponse(provider=orchestrator.provider_name)
