"""
Upload API Routes
Multipart and raw-body media uploads, each followed by optional transcription.

Validation failures answer 4xx and storage failures 500; once the media is
stored the response is always 200, with transcription problems reported in
the message field.
"""

from urllib.parse import unquote

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.domain.media_domain import (
    TranscriptionOptions,
    UploadedAsset,
    is_truthy_flag,
)
from mediacal.routes.dependencies import get_orchestrator, get_receiver
from mediacal.services.storage.resolver import StorageError
from mediacal.services.transcription.orchestrator import TranscriptionOrchestrator
from mediacal.services.uploads.receiver import UploadReceiver, UploadValidationError

logger = get_logger(__name__)

router = APIRouter(prefix="/upload", tags=["uploads"])

DEFAULT_LANGUAGE_CODE = "en-US"


def build_options(
    verbatim: str | None = None,
    longrunning: str | None = None,
    language_code: str | None = None,
    wait: str | None = None,
) -> TranscriptionOptions:
    return TranscriptionOptions(
        verbatim=is_truthy_flag(verbatim),
        long_running=is_truthy_flag(longrunning),
        language_code=(language_code or "").strip() or DEFAULT_LANGUAGE_CODE,
        wait=is_truthy_flag(wait),
    )


def _raw_filename(request: Request) -> str | None:
    name = request.headers.get("x-filename") or request.headers.get("x_file_name")
    return unquote(name) if name else None


async def _store_or_raise(receive) -> tuple[UploadedAsset, bytes]:
    try:
        return await receive
    except UploadValidationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except StorageError as e:
        logger.error("Upload storage failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store upload",
        )


async def _respond(
    orchestrator: TranscriptionOrchestrator,
    asset: UploadedAsset,
    data: bytes,
    options: TranscriptionOptions,
) -> JSONResponse:
    result = await orchestrator.transcribe(asset, data, options)
    return JSONResponse(result.to_payload())


@router.post("/video")
async def upload_video(
    video: UploadFile | None = File(None),
    verbatim: str | None = Form(None),
    longrunning: str | None = Form(None),
    language_code: str | None = Form(None, alias="languageCode"),
    wait: str | None = Form(None),
    receiver: UploadReceiver = Depends(get_receiver),
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
):
    """Upload a video (multipart field "video") and transcribe it if a provider is configured."""
    asset, data = await _store_or_raise(receiver.receive_multipart(video, "video"))
    options = build_options(verbatim, longrunning, language_code, wait)
    return await _respond(orchestrator, asset, data, options)


@router.post("/audio")
async def upload_audio(
    audio: UploadFile | None = File(None),
    verbatim: str | None = Form(None),
    longrunning: str | None = Form(None),
    language_code: str | None = Form(None, alias="languageCode"),
    wait: str | None = Form(None),
    receiver: UploadReceiver = Depends(get_receiver),
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
):
    """Upload audio (multipart field "audio"), typically extracted in the browser."""
    asset, data = await _store_or_raise(receiver.receive_multipart(audio, "audio"))
    options = build_options(verbatim, longrunning, language_code, wait)
    return await _respond(orchestrator, asset, data, options)


@router.post("/video-raw")
async def upload_video_raw(
    request: Request,
    x_verbatim: str | None = Header(None),
    x_longrunning: str | None = Header(None),
    x_language_code: str | None = Header(None),
    x_wait_for_transcript: str | None = Header(None),
    receiver: UploadReceiver = Depends(get_receiver),
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
):
    """Raw request body upload for hosts where multipart parsing is unreliable."""
    asset, data = await _store_or_raise(
        receiver.receive_raw(
            request.stream(),
            "video",
            filename=_raw_filename(request),
            content_type=request.headers.get("content-type"),
        )
    )
    options = build_options(x_verbatim, x_longrunning, x_language_code, x_wait_for_transcript)
    return await _respond(orchestrator, asset, data, options)


@router.post("/audio-raw")
async def upload_audio_raw(
    request: Request,
    x_verbatim: str | None = Header(None),
    x_longrunning: str | None = Header(None),
    x_language_code: str | None = Header(None),
    x_wait_for_transcript: str | None = Header(None),
    receiver: UploadReceiver = Depends(get_receiver),
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
):
    asset, data = await _store_or_raise(
        receiver.receive_raw(
            request.stream(),
            "audio",
            filename=_raw_filename(request),
            content_type=request.headers.get("content-type"),
        )
    )
    options = build_options(x_verbatim, x_longrunning, x_language_code, x_wait_for_transcript)
    return await _respond(orchestrator, asset, data, options)
