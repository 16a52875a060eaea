# mediacal/models/api/calendar_response.py
"""
Calendar API response models.
"""

from pydantic import BaseModel, ConfigDict, Field


class PreviewResponse(BaseModel):
    """Confirmation of the event form before the ICS is generated."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    type: str
    percentage: str
    due_date: str | None = Field(None, alias="dueDate")
    allocate_minutes: str = Field("", alias="allocateMinutes")
    reminders: str
    daily_reminders: bool = Field(..., alias="dailyReminders")
    daily_time: str = Field(..., alias="dailyTime")
    email: str | None = None
    worth: str
    class_code: str = Field("", alias="classCode")
    backdrop: str | None = None
    backdrop_file_name: str | None = Field(None, alias="backdropFileName")
    youtube: str | None = None
    spotify: str | None = None
    include_media_in_event: bool = Field(..., alias="includeMediaInEvent")
    youtube_embed: str | None = Field(None, alias="youtubeEmbed")
    spotify_embed: str | None = Field(None, alias="spotifyEmbed")
    details: str
