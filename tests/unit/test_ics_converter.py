from datetime import datetime

import pytest
from icalendar import Calendar

from mediacal.models.domain.calendar_domain import CalendarEvent, to_date_tuple
from mediacal.services.calendar.ics_converter import (
    ICSConverter,
    ICSParseError,
    NoEventsFoundError,
    build_ics,
    parse_ics,
)

ONE_EVENT = b"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example//Feed//EN
BEGIN:VEVENT
UID:evt-1@example.com
DTSTAMP:20250101T000000Z
DTSTART;VALUE=DATE:20250315
SUMMARY:Test
LOCATION:Room 4
END:VEVENT
END:VCALENDAR
"""

NO_EVENTS = b"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example//Feed//EN
BEGIN:VTODO
UID:todo-1
SUMMARY:Not an event
END:VTODO
END:VCALENDAR
"""


def test_parse_keeps_title_location_uid_and_falls_back_description():
    events = parse_ics(ONE_EVENT)

    assert len(events) == 1
    event = events[0]
    assert event.title == "Test"
    assert event.start == (2025, 3, 15)
    assert event.is_all_day()
    assert event.description == "Test"
    assert event.location == "Room 4"
    assert event.uid == "evt-1@example.com"


def test_parse_skips_events_without_start():
    raw = ONE_EVENT.replace(b"DTSTART;VALUE=DATE:20250315\n", b"")

    assert parse_ics(raw) == []


def test_parse_ignores_non_event_components():
    assert parse_ics(NO_EVENTS) == []


def test_malformed_document_raises_parse_error():
    with pytest.raises(ICSParseError):
        parse_ics(b"this is not a calendar")


def test_round_trip_preserves_title_and_date():
    output = ICSConverter().convert(ONE_EVENT)

    calendar = Calendar.from_ical(output)
    events = list(calendar.walk("VEVENT"))
    assert len(events) == 1
    assert str(events[0]["SUMMARY"]) == "Test"
    assert events[0]["DTSTART"].dt.isoformat() == "2025-03-15"
    assert str(events[0]["UID"]) == "evt-1@example.com"


def test_convert_without_events_raises_not_found():
    with pytest.raises(NoEventsFoundError):
        ICSConverter().convert(NO_EVENTS)


def test_build_assigns_uid_and_converts_local_times():
    start = to_date_tuple(datetime(2025, 3, 15, 9, 30))
    output = build_ics([CalendarEvent(title="Lecture", start=start, description="Week 3")])

    event = next(iter(Calendar.from_ical(output).walk("VEVENT")))
    assert str(event["UID"]).endswith("@mediacal")
    assert str(event["DESCRIPTION"]) == "Week 3"
    assert event["DTSTART"].dt.astimezone().replace(tzinfo=None) == datetime(2025, 3, 15, 9, 30)
