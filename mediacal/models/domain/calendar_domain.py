# mediacal/models/domain/calendar_domain.py
"""
Calendar Domain Models
Intermediate event records produced by ICS parsing and by the event builder,
and the reminder jobs derived from a created event.
"""

from dataclasses import dataclass
from datetime import date, datetime

# (year, month, day) for all-day events, (year, month, day, hour, minute) otherwise
DateTuple = tuple[int, ...]


@dataclass(slots=True)
class CalendarEvent:
    """Domain model for a single event on its way from one ICS document to another."""

    title: str
    start: DateTuple | None = None
    end: DateTuple | None = None
    description: str = ""
    location: str | None = None
    uid: str | None = None

    def is_all_day(self) -> bool:
        return self.start is not None and len(self.start) == 3


def to_date_tuple(value: date | datetime) -> DateTuple:
    """
    Convert a parsed DTSTART/DTEND value into the tuple form.

    Aware datetimes are shifted into the server's local time, matching how
    the output side interprets five-element tuples.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return (value.year, value.month, value.day, value.hour, value.minute)
    return (value.year, value.month, value.day)


@dataclass(slots=True)
class ReminderJob:
    """One email reminder. fires_at is always in the future when created."""

    fires_at: datetime
    recipient: str
    subject: str
    body: str
    kind: str = "one_off"  # "one_off" or "daily"
