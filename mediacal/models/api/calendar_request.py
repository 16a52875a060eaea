# mediacal/models/api/calendar_request.py
"""
Calendar API request models.
The create/preview forms are posted as multipart, so routes collect Form
fields and hand them to EventForm for normalisation.
"""

from pydantic import BaseModel, Field

from mediacal.models.domain.media_domain import is_truthy_flag


class EventForm(BaseModel):
    """Fields of the manual "create event" form."""

    title: str = Field(default="Untitled", description="Event title")
    type: str = Field(default="", description="Assessment type")
    percentage: str = ""
    due_date: str | None = Field(default=None, description="Due date/time, ISO 8601")
    allocate_minutes: str = ""
    reminders: str = Field(default="", description="Comma separated minutes-before offsets")
    daily_reminders: bool = False
    daily_time: str = "09:00"
    email: str | None = None
    worth: str = ""
    class_code: str = ""
    backdrop_url: str | None = None
    backdrop_file_name: str | None = None
    youtube: str | None = None
    spotify: str | None = None
    include_media_in_event: bool = False

    @classmethod
    def from_form(cls, form) -> "EventForm":
        """Build from a starlette FormData, applying the form's defaults."""

        def text(name: str) -> str | None:
            value = form.get(name)
            if value is None or not isinstance(value, str):
                return None
            value = value.strip()
            return value or None

        return cls(
            title=text("title") or "Untitled",
            type=text("type") or "",
            percentage=text("percentage") or "",
            due_date=text("dueDate"),
            allocate_minutes=text("allocateMinutes") or "",
            reminders=text("reminders") or "",
            daily_reminders=is_truthy_flag(text("dailyReminders")),
            daily_time=text("dailyTime") or "09:00",
            email=text("email"),
            worth=text("worth") or "",
            class_code=text("classCode") or "",
            backdrop_url=text("backdropUrl"),
            backdrop_file_name=text("backdropFileName"),
            youtube=text("youtube"),
            spotify=text("spotify"),
            include_media_in_event=is_truthy_flag(text("includeMediaInEvent")),
        )

    def allocate_minutes_value(self) -> int:
        try:
            return int(self.allocate_minutes or "0")
        except ValueError:
            return 0


class SearchRequest(BaseModel):
    """Body of the YouTube / Invidious search proxies."""

    q: str | None = Field(default=None, description="Search query")
