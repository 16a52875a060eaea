import tempfile
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_PATH = PROJECT_ROOT / ".env"

MIB = 1024 * 1024


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Transcription providers (AssemblyAI wins when both are set)
    ASSEMBLY_API_KEY: str | None = Field(
        default=None, validation_alias=AliasChoices("ASSEMBLY_API_KEY", "ASSEMBLYAI_API_KEY")
    )
    GOOGLE_API_KEY: str | None = None

    # Search proxies
    YOUTUBE_API_KEY: str | None = None
    INVIDIOUS_BASE: str = "https://inv.nadeko.net"

    # Email relay for reminders
    SMTP_HOST: str | None = None
    SMTP_PORT: int | None = None
    SMTP_USER: str | None = None
    SMTP_PASS: str | None = None
    SMTP_SECURE: bool = False
    FROM_EMAIL: str | None = None

    # Upload storage
    PUBLIC_DIR: str = str(PROJECT_ROOT / "public")
    FALLBACK_UPLOAD_DIR: str | None = None
    VERCEL: str | None = None
    NOW_REGION: str | None = None
    BLOB_ENABLE: bool = False
    VERCEL_BLOB_TOKEN: str | None = Field(
        default=None, validation_alias=AliasChoices("VERCEL_BLOB_TOKEN", "BLOB_READ_WRITE_TOKEN")
    )
    BLOB_PREFIX: str = "uploads/"
    MAX_VIDEO_UPLOAD_BYTES: int = 200 * MIB
    MAX_AUDIO_UPLOAD_BYTES: int = 100 * MIB

    # Upload retention sweep
    UPLOAD_KEEP_DAYS: int = 7
    UPLOAD_CLEANUP_ENABLED: bool = True
    UPLOAD_CLEANUP_HOUR: int = 3
    UPLOAD_CLEANUP_MINUTE: int = 30

    # Access control and response headers
    SITE_ACCESS_SECRET: str | None = None
    ENABLE_CROSS_ORIGIN_ISOLATION: bool = False

    # =================================================================
    # TRANSCRIPTION TIMING
    # =================================================================
    TRANSCRIPTION_POLL_INTERVAL_SECONDS: float = 2.0
    TRANSCRIPTION_POLL_TIMEOUT_SECONDS: float = 300.0  # 5 minutes
    GOOGLE_SYNC_MAX_BYTES: int = 5 * MIB
    PROVIDER_REQUEST_TIMEOUT_SECONDS: float = 120.0

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator(
        "ASSEMBLY_API_KEY",
        "GOOGLE_API_KEY",
        "YOUTUBE_API_KEY",
        "VERCEL_BLOB_TOKEN",
        "SITE_ACCESS_SECRET",
        mode="before",
    )
    @classmethod
    def _strip_secret(cls, value):
        # Keys copied from example files often carry a trailing newline
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def transcription_provider(self) -> str:
        """Name of the provider uploads will be sent to."""
        if self.ASSEMBLY_API_KEY:
            return "assembly"
        if self.GOOGLE_API_KEY:
            return "google"
        return "none"

    def youtube_api_key(self) -> str | None:
        return self.YOUTUBE_API_KEY or self.GOOGLE_API_KEY

    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_PORT and self.SMTP_USER and self.SMTP_PASS)

    def sender_address(self) -> str | None:
        return self.FROM_EMAIL or self.SMTP_USER

    def is_hosted(self) -> bool:
        """Running on an ephemeral serverless host."""
        return bool(self.VERCEL or self.NOW_REGION)

    def is_production_like(self) -> bool:
        return self.environment == "production" or self.is_hosted()

    def blob_enabled(self) -> bool:
        return (self.BLOB_ENABLE or self.is_hosted()) and bool(self.VERCEL_BLOB_TOKEN)

    def public_uploads_dir(self) -> Path:
        return Path(self.PUBLIC_DIR) / "uploads"

    def upload_dir(self) -> Path:
        """
        Directory uploads are written to when blob storage is not used.

        FALLBACK_UPLOAD_DIR wins, production-like hosts get the OS temp dir,
        local development gets PUBLIC_DIR/uploads.
        """
        if self.FALLBACK_UPLOAD_DIR:
            return Path(self.FALLBACK_UPLOAD_DIR)
        if self.is_production_like():
            return Path(tempfile.gettempdir())
        return self.public_uploads_dir()

    def get_polling_config(self) -> dict:
        return {
            "interval": self.TRANSCRIPTION_POLL_INTERVAL_SECONDS,
            "timeout": self.TRANSCRIPTION_POLL_TIMEOUT_SECONDS,
        }


settings = Settings()
