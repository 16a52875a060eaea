"""
Calendar API Routes
ICS feed conversion plus the manual create-event flow (preview, then ICS
download with optional email reminders).
"""

from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import Response
from starlette.datastructures import UploadFile as StarletteUploadFile

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.api.calendar_request import EventForm
from mediacal.models.api.calendar_response import PreviewResponse
from mediacal.routes.dependencies import get_converter, get_receiver, get_reminder_scheduler
from mediacal.services.calendar.event_builder import (
    EventInputError,
    build_description,
    build_events,
    ics_filename,
    parse_due_date,
    preview_details,
    spotify_embed_url,
    youtube_embed_url,
)
from mediacal.services.calendar.ics_converter import (
    CalendarFeedError,
    ICSConverter,
    ICSParseError,
    NoEventsFoundError,
    build_ics,
)
from mediacal.services.reminders.scheduler import ReminderScheduler, plan_reminders
from mediacal.services.storage.resolver import StorageError
from mediacal.services.uploads.receiver import UploadReceiver, sanitize_filename

logger = get_logger(__name__)

router = APIRouter(tags=["calendar"])

EXPORT_FILENAME = "brightspace-export.ics"
ICS_MEDIA_TYPE = "text/calendar"


def _ics_download(body: bytes, filename: str) -> Response:
    return Response(
        content=body,
        media_type=ICS_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/convert")
async def convert_calendar(
    icsurl: str | None = Form(None),
    icsfile: UploadFile | None = File(None),
    converter: ICSConverter = Depends(get_converter),
):
    """Re-emit the events of an ICS feed URL or uploaded ICS file as a download."""
    if icsurl and icsurl.strip():
        try:
            raw = await converter.fetch_feed(icsurl.strip())
        except CalendarFeedError as e:
            logger.error("ICS feed fetch failed", url=icsurl.strip(), error=str(e))
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    elif icsfile is not None and icsfile.filename:
        try:
            raw = await icsfile.read()
        finally:
            await icsfile.close()
        logger.info("Received ICS upload", filename=icsfile.filename, size=len(raw))
        if not raw:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="No ICS URL or file provided"
            )
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No ICS URL or file provided"
        )

    try:
        body = converter.convert(raw)
    except ICSParseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NoEventsFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.exception("Error creating ICS", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error creating ICS"
        )

    return _ics_download(body, EXPORT_FILENAME)


async def _store_backdrop(form, receiver: UploadReceiver) -> tuple[str | None, str | None]:
    """Persist an uploaded backdropFile; returns (url, stored file name)."""
    upload = form.get("backdropFile")
    if not isinstance(upload, StarletteUploadFile):
        return None, None
    try:
        stored = await receiver.receive_attachment(upload)
    except StorageError as e:
        logger.error("Backdrop storage failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store backdrop"
        )
    if stored is None:
        return None, None
    name = Path(stored.storage_path).name if stored.storage_path else None
    return stored.public_url, name


@router.post("/preview", response_model=PreviewResponse, response_model_by_alias=True)
async def preview_event(
    request: Request,
    receiver: UploadReceiver = Depends(get_receiver),
):
    """Echo the create-event form with a readable summary and media embed URLs."""
    form = await request.form()
    event_form = EventForm.from_form(form)

    backdrop_url, backdrop_file_name = await _store_backdrop(form, receiver)
    backdrop_url = backdrop_url or event_form.backdrop_url

    return PreviewResponse(
        title=event_form.title,
        type=event_form.type,
        percentage=event_form.percentage,
        due_date=event_form.due_date,
        allocate_minutes=event_form.allocate_minutes,
        reminders=event_form.reminders,
        daily_reminders=event_form.daily_reminders,
        daily_time=event_form.daily_time,
        email=event_form.email,
        worth=event_form.worth,
        class_code=event_form.class_code,
        backdrop=backdrop_url,
        backdrop_file_name=backdrop_file_name,
        youtube=event_form.youtube,
        spotify=event_form.spotify,
        include_media_in_event=event_form.include_media_in_event,
        youtube_embed=youtube_embed_url(event_form.youtube),
        spotify_embed=spotify_embed_url(event_form.spotify),
        details=preview_details(event_form, backdrop_url),
    )


@router.post("/create")
async def create_event(
    request: Request,
    receiver: UploadReceiver = Depends(get_receiver),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    """Build the due (and allocation) events, schedule reminders and return the ICS."""
    form = await request.form()
    event_form = EventForm.from_form(form)

    try:
        due = parse_due_date(event_form.due_date)
    except EventInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    # Priority: fresh upload, then the file stored during preview, then a plain URL
    backdrop_url, _ = await _store_backdrop(form, receiver)
    if backdrop_url is None and event_form.backdrop_file_name:
        stored_name = sanitize_filename(event_form.backdrop_file_name)
        backdrop_url = receiver.storage.public_url_for(stored_name)
    if backdrop_url is None:
        backdrop_url = event_form.backdrop_url

    description = build_description(event_form, backdrop_url)
    events = build_events(event_form, due, description)

    if event_form.email and scheduler.enabled:
        jobs = plan_reminders(
            due=due,
            recipient=event_form.email,
            title=event_form.title,
            description=description,
            offsets=event_form.reminders,
            daily=event_form.daily_reminders,
            daily_time=event_form.daily_time,
        )
        scheduled = scheduler.schedule_all(jobs)
        logger.info("Reminders scheduled for event", title=event_form.title, count=scheduled)
    elif event_form.email:
        logger.info("SMTP not configured, skipping reminders", title=event_form.title)

    try:
        body = build_ics(events)
    except Exception as e:
        logger.exception("Error creating ICS", title=event_form.title, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error creating ICS"
        )

    return _ics_download(body, ics_filename(event_form.title))
