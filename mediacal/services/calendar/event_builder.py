"""
Event Builder
Turns the manual "create event" form into calendar events, a preview summary
and embed URLs for the attached media.
"""

import re
from datetime import datetime, timedelta

from mediacal.models.api.calendar_request import EventForm
from mediacal.models.domain.calendar_domain import CalendarEvent, to_date_tuple

_YOUTUBE_QUERY_ID = re.compile(r"v=([^&]+)")
_FILENAME_UNSAFE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


class EventInputError(Exception):
    """The form cannot produce an event (missing or unreadable due date)."""


def parse_due_date(value: str | None) -> datetime:
    """
    Parse the form's due date into an aware datetime.

    Values without an offset (what a datetime-local input submits) are taken
    as server local time.

    Raises:
        EventInputError: If the value is missing or not ISO 8601
    """
    if not value:
        raise EventInputError("Missing due date")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise EventInputError("Invalid due date") from e
    return parsed.astimezone()


def youtube_embed_url(url: str | None) -> str | None:
    if not url:
        return None
    match = _YOUTUBE_QUERY_ID.search(url)
    if match:
        video_id = match.group(1)
    else:
        _, _, video_id = url.partition("youtu.be/")
    return f"https://www.youtube.com/embed/{video_id}" if video_id else None


def spotify_embed_url(url: str | None) -> str | None:
    if not url:
        return None
    if "embed" in url:
        return url
    if any(kind in url for kind in ("track", "playlist", "album")):
        return url.replace("open.spotify.com", "open.spotify.com/embed", 1)
    return None


def _media_lines(form: EventForm, backdrop_url: str | None) -> list[str]:
    if not form.include_media_in_event:
        return []
    lines = []
    if backdrop_url:
        lines.append(f"Backdrop: {backdrop_url}")
    if form.youtube:
        lines.append(f"YouTube: {form.youtube}")
    if form.spotify:
        lines.append(f"Spotify: {form.spotify}")
    return lines


def build_description(form: EventForm, backdrop_url: str | None = None) -> str:
    lines = []
    if form.type:
        lines.append(f"Type: {form.type}")
    if form.percentage:
        lines.append(f"Percentage: {form.percentage}")
    if form.worth:
        lines.append(f"Worth: {form.worth}")
    if form.class_code:
        lines.append(f"Class: {form.class_code}")
    lines.extend(_media_lines(form, backdrop_url))
    return "\n".join(lines)


def preview_details(form: EventForm, backdrop_url: str | None = None) -> str:
    """Multi-line, human readable summary shown before the ICS is generated."""
    lines = [f"Type: {form.type}"]
    if form.percentage:
        lines.append(f"Percentage: {form.percentage}")
    if form.worth:
        lines.append(f"Worth: {form.worth}")
    if form.class_code:
        lines.append(f"Class: {form.class_code}")
    lines.append(f"Due: {form.due_date or ''}")
    if form.allocate_minutes:
        lines.append(f"Allocate (minutes): {form.allocate_minutes}")
    if form.reminders:
        lines.append(f"One-off reminders (min before): {form.reminders}")
    lines.append(
        f"Daily reminders: {'Yes' if form.daily_reminders else 'No'} at {form.daily_time}"
    )
    if form.email:
        lines.append(f"Email: {form.email}")
    lines.extend(_media_lines(form, backdrop_url))
    return "\n".join(lines)


def build_events(form: EventForm, due: datetime, description: str) -> list[CalendarEvent]:
    """
    The due event, plus a work-allocation block ending at the due time when
    allocateMinutes is positive.
    """
    events = [
        CalendarEvent(
            title=f"{form.title} (Due)",
            start=to_date_tuple(due),
            description=description,
        )
    ]

    minutes = form.allocate_minutes_value()
    if minutes > 0:
        planned = f"Planned work time for {form.title}"
        events.append(
            CalendarEvent(
                title=f"Allocate {minutes}m for {form.title}",
                start=to_date_tuple(due - timedelta(minutes=minutes)),
                end=to_date_tuple(due),
                description=f"{planned}\n\n{description}" if description else planned,
            )
        )
    return events


def ics_filename(title: str) -> str:
    return f"{_FILENAME_UNSAFE.sub('_', title)}.ics"
