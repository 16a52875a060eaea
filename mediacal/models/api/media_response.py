# mediacal/models/api/media_response.py
"""
Media API response models.
Used by upload and transcript routes for output formatting.
Field names follow the camelCase contract the browser client reads.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    """Response for every upload endpoint, whatever the transcription outcome."""

    model_config = ConfigDict(populate_by_name=True)

    url: str | None = Field(None, description="Same-origin or blob URL of the stored media")
    transcript_available: bool = Field(False, alias="transcriptAvailable")
    transcript_url: str | None = Field(None, alias="transcriptUrl")
    transcript_text: str | None = Field(
        None, alias="transcriptText", description="Transcript, truncated to 5000 characters"
    )
    transcript_id: str | None = Field(
        None, alias="transcriptId", description="Provider job handle for async transcription"
    )
    transcription_json_url: str | None = Field(None, alias="transcriptionJsonUrl")
    verbatim_available: bool | None = Field(None, alias="verbatimAvailable")
    verbatim_url: str | None = Field(None, alias="verbatimUrl")
    provider_media_url: str | None = Field(
        None,
        alias="providerMediaUrl",
        description="Provider-hosted copy of the media; may expire, play it via /proxy/video",
    )
    storage: str | None = Field(None, description="Where the upload was stored")
    message: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize with aliases, dropping unset optionals but always keeping url."""
        payload = self.model_dump(by_alias=True, exclude_none=True)
        payload.setdefault("url", None)
        return payload


class TranscriptStatusResponse(BaseModel):
    """Normalized single-poll status of a provider transcription job."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: str = Field(..., description="pending, completed or failed")
    provider_status: str | None = Field(None, alias="providerStatus")
    text: str | None = None
    error: str | None = None


class ProviderResponse(BaseModel):
    provider: str = Field(..., description="assembly, google or none")
