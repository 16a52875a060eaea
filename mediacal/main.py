"""
Application factory: wires configuration, storage, transcription, calendar,
reminder and proxy services onto app.state and manages their lifecycle.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from mediacal.config import Settings
from mediacal.config import settings as default_settings
from mediacal.infrastructure.observability.logging import get_logger, log_request, setup_logging
from mediacal.jobs.upload_cleanup_job import UploadCleanupJob, start_upload_cleanup_scheduler
from mediacal.middleware import (
    CrossOriginIsolationMiddleware,
    RequestContextMiddleware,
    SiteAccessMiddleware,
)
from mediacal.routes import calendar, health, proxy, search, transcripts, uploads
from mediacal.services.calendar.ics_converter import ICSConverter
from mediacal.services.reminders.email_relay import EmailRelay
from mediacal.services.reminders.scheduler import ReminderScheduler
from mediacal.services.search.media_proxy import MediaProxy
from mediacal.services.search.youtube_service import InvidiousClient, YouTubeSearchClient
from mediacal.services.storage.blob_client import BlobStorageClient
from mediacal.services.storage.resolver import PUBLIC_URL_PREFIX, StorageResolver
from mediacal.services.transcription.orchestrator import TranscriptionOrchestrator, build_providers
from mediacal.services.uploads.receiver import UploadReceiver

logger = get_logger(__name__)


def _build_services(app: FastAPI, settings: Settings) -> None:
    blob_client = BlobStorageClient(settings.VERCEL_BLOB_TOKEN) if settings.blob_enabled() else None
    storage = StorageResolver(settings, blob_client=blob_client)

    state = app.state
    state.settings = settings
    state.blob_client = blob_client
    state.storage = storage
    state.receiver = UploadReceiver(settings, storage)
    state.orchestrator = TranscriptionOrchestrator(build_providers(settings), storage)
    state.converter = ICSConverter()
    state.reminder_scheduler = ReminderScheduler(EmailRelay.from_settings(settings))
    state.youtube = YouTubeSearchClient(settings.youtube_api_key())
    state.invidious = InvidiousClient(settings.INVIDIOUS_BASE)
    state.media_proxy = MediaProxy()
    state.cleanup_job = UploadCleanupJob.from_settings(settings, extra_dirs=[storage.local_dir])


async def _close_services(app: FastAPI) -> list[str]:
    state = app.state
    errors = []
    closers = [
        ("transcription", state.orchestrator.close),
        ("converter", state.converter.close),
        ("youtube", state.youtube.close),
        ("invidious", state.invidious.close),
        ("media_proxy", state.media_proxy.close),
    ]
    if state.blob_client is not None:
        closers.append(("blob", state.blob_client.close))

    for name, close in closers:
        try:
            await close()
        except Exception as e:
            logger.error("Error closing service", service=name, error=str(e))
            errors.append(f"{name}: {e}")
    return errors


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start background work on startup; cancel it and close HTTP clients on shutdown."""
    settings = app.state.settings
    logger.info(
        "Application starting",
        environment=settings.environment,
        transcription_provider=settings.transcription_provider(),
        assembly_key=bool(settings.ASSEMBLY_API_KEY),
        google_key=bool(settings.GOOGLE_API_KEY),
        smtp=settings.smtp_configured(),
        storage=app.state.storage.storage_kind,
    )

    await app.state.reminder_scheduler.start()
    cleanup_task = asyncio.create_task(
        start_upload_cleanup_scheduler(app.state.cleanup_job, settings)
    )

    yield

    logger.info("Application shutting down")

    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass

    await app.state.reminder_scheduler.shutdown()
    shutdown_errors = await _close_services(app)

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="MediaCal",
        description="ICS conversion, media upload and transcription gateway",
        version="0.1.0",
        lifespan=lifespan,
    )
    _build_services(app, settings)

    # Include routers
    app.include_router(health.router)
    app.include_router(uploads.router)
    app.include_router(transcripts.router)
    app.include_router(calendar.router)
    app.include_router(search.router)
    app.include_router(proxy.router)

    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Last added runs first: request context, then timing, then the access gate
    if settings.ENABLE_CROSS_ORIGIN_ISOLATION:
        app.add_middleware(CrossOriginIsolationMiddleware)
    app.add_middleware(SiteAccessMiddleware, secret=settings.SITE_ACCESS_SECRET)
    app.middleware("http")(log_requests)
    app.add_middleware(RequestContextMiddleware)

    storage: StorageResolver = app.state.storage
    if storage.is_public:
        app.mount(PUBLIC_URL_PREFIX, StaticFiles(directory=storage.local_dir), name="uploads")

    public_dir = Path(settings.PUBLIC_DIR)
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")

    return app


setup_logging(log_level=default_settings.LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
