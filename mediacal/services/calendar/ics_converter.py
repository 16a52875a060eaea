"""
Calendar Converter
Parses an ICS document (uploaded or fetched from a feed URL) into
CalendarEvent records and re-serializes them as a fresh ICS document.
"""

import uuid
from collections.abc import Iterable
from datetime import UTC, date, datetime

import httpx
from icalendar import Calendar, Event

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.domain.calendar_domain import CalendarEvent, DateTuple, to_date_tuple
from mediacal.services.errors import ExternalAPIError

logger = get_logger(__name__)

PRODID = "-//mediacal//ICS Converter//EN"
FEED_TIMEOUT = 30  # seconds
UID_DOMAIN = "mediacal"


class ICSParseError(Exception):
    """The document could not be parsed as iCalendar at all."""


class NoEventsFoundError(Exception):
    """The document parsed but held no usable events."""


class CalendarFeedError(ExternalAPIError):
    """Fetching a remote ICS feed failed."""


def parse_ics(raw: str | bytes) -> list[CalendarEvent]:
    """
    Extract events from an ICS document.

    VEVENTs without a usable start are skipped; other component types are ignored.

    Raises:
        ICSParseError: If the document is not valid iCalendar
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    try:
        calendar = Calendar.from_ical(raw)
    except Exception as e:
        sample = raw[:1000].replace("\r", "").replace("\n", "\\n")
        logger.error("Failed to parse ICS", error=str(e), sample=sample)
        raise ICSParseError("Invalid ICS content (could not parse)") from e

    if calendar.name != "VCALENDAR":
        raise ICSParseError("Invalid ICS content (no VCALENDAR)")

    events = []
    for component in calendar.walk("VEVENT"):
        try:
            event = _component_to_event(component)
        except Exception as e:
            logger.warning("Skipping unreadable VEVENT", error=str(e))
            continue
        if event is None:
            continue
        events.append(event)

    logger.info("Parsed ICS document", events=len(events))
    return events


def _component_to_event(component) -> CalendarEvent | None:
    dtstart = component.get("DTSTART")
    if dtstart is None:
        logger.debug("Skipping VEVENT without DTSTART", uid=str(component.get("UID", "")))
        return None

    dtend = component.get("DTEND")
    summary = str(component.get("SUMMARY") or "")
    description = str(component.get("DESCRIPTION") or "")
    location = component.get("LOCATION")
    uid = component.get("UID")

    return CalendarEvent(
        title=summary or "Untitled",
        start=to_date_tuple(dtstart.dt),
        end=to_date_tuple(dtend.dt) if dtend is not None else None,
        description=description or summary,
        location=str(location) if location else None,
        uid=str(uid) if uid else None,
    )


def _tuple_to_value(value: DateTuple) -> date | datetime:
    # Five-element tuples are local wall-clock times, written out in UTC
    if len(value) == 3:
        return date(*value)
    return datetime(*value[:5]).astimezone().astimezone(UTC)


def build_ics(events: Iterable[CalendarEvent]) -> bytes:
    """Serialize events into a single VCALENDAR document."""
    calendar = Calendar()
    calendar.add("prodid", PRODID)
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")

    stamp = datetime.now(UTC)
    for item in events:
        if item.start is None:
            continue
        event = Event()
        event.add("uid", item.uid or f"{uuid.uuid4()}@{UID_DOMAIN}")
        event.add("dtstamp", stamp)
        event.add("summary", item.title)
        event.add("dtstart", _tuple_to_value(item.start))
        if item.end is not None:
            event.add("dtend", _tuple_to_value(item.end))
        if item.description:
            event.add("description", item.description)
        if item.location:
            event.add("location", item.location)
        calendar.add_component(event)

    return calendar.to_ical()


class ICSConverter:
    """Fetches feeds and converts documents; owns the HTTP client for feed URLs."""

    def __init__(self, timeout: float = FEED_TIMEOUT):
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), follow_redirects=True
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_feed(self, url: str) -> str:
        """
        Download an ICS feed.

        Raises:
            CalendarFeedError: On network failure or a non-2xx response
        """
        logger.info("Fetching ICS feed", url=url)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise CalendarFeedError(f"Could not fetch ICS feed: {e}") from e

        if not response.is_success:
            raise CalendarFeedError(
                f"ICS feed returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.text

    def convert(self, raw: str | bytes) -> bytes:
        """
        Parse then re-emit.

        Raises:
            ICSParseError: Malformed document
            NoEventsFoundError: Valid document without events
        """
        events = parse_ics(raw)
        if not events:
            raise NoEventsFoundError("No events found in ICS")
        return build_ics(events)
