"""
Upload Cleanup Background Job - Retention for stored uploads.

Deletes uploaded media and derived transcript files older than
UPLOAD_KEEP_DAYS from the local upload directories.

Schedule:
- Daily at UPLOAD_CLEANUP_HOUR:UPLOAD_CLEANUP_MINUTE server local time (03:30 by default)
- Manual: run_cleanup() or `python -m mediacal.jobs.worker upload_cleanup_once`

Only names carrying the stored-name stamp (`<digits>-...`) are touched, so a
shared temp directory is never emptied. Per-file failures are logged and
skipped; a failed sweep never stops the scheduler.

Usage:
    import asyncio
    from mediacal.jobs.upload_cleanup_job import start_upload_cleanup_scheduler

    asyncio.create_task(start_upload_cleanup_scheduler(job, settings))
"""

import asyncio
import re
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from pathlib import Path

from mediacal import config
from mediacal.config import Settings
from mediacal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

STORED_NAME_PATTERN = re.compile(r"^\d+-")
SECONDS_PER_DAY = 24 * 60 * 60
RETRY_AFTER_ERROR_SECONDS = 3600


class UploadCleanupJob:
    """Sweeps the upload directories for expired files."""

    def __init__(
        self,
        directories: Iterable[Path],
        keep_days: int = 7,
        clock: Callable[[], float] = time.time,
    ):
        # Dedupe while keeping order; the public dir and the active dir often coincide
        self.directories = list(dict.fromkeys(Path(d) for d in directories))
        self.keep_days = keep_days
        self._clock = clock
        self.is_running = False

    @classmethod
    def from_settings(cls, settings: Settings, extra_dirs: Iterable[Path] = ()) -> "UploadCleanupJob":
        return cls(
            [settings.public_uploads_dir(), *extra_dirs],
            keep_days=settings.UPLOAD_KEEP_DAYS,
        )

    async def run_cleanup(self) -> dict:
        """
        Run one sweep.

        Returns:
            dict: {"success": bool, "scanned": int, "deleted": int, "errors": list}
        """
        if self.is_running:
            logger.warning("Upload cleanup already running, skipping")
            return {"success": False, "error": "Already running"}

        self.is_running = True
        started = time.monotonic()
        result = {"success": True, "scanned": 0, "deleted": 0, "errors": []}

        try:
            for directory in self.directories:
                scanned, deleted, errors = await asyncio.to_thread(self._sweep, directory)
                result["scanned"] += scanned
                result["deleted"] += deleted
                result["errors"].extend(errors)
        except Exception as e:
            logger.error("Unexpected error in upload cleanup", error=str(e))
            result["success"] = False
            result["errors"].append(f"Unexpected error: {e}")
        finally:
            self.is_running = False

        logger.info(
            "Upload cleanup completed",
            duration_seconds=round(time.monotonic() - started, 3),
            keep_days=self.keep_days,
            scanned=result["scanned"],
            deleted=result["deleted"],
            errors=len(result["errors"]),
        )
        return result

    def _sweep(self, directory: Path) -> tuple[int, int, list[str]]:
        if not directory.is_dir():
            return 0, 0, []

        cutoff = self._clock() - self.keep_days * SECONDS_PER_DAY
        scanned = deleted = 0
        errors: list[str] = []

        for path in directory.iterdir():
            if not STORED_NAME_PATTERN.match(path.name):
                continue
            scanned += 1
            try:
                if not path.is_file() or path.stat().st_mtime >= cutoff:
                    continue
                path.unlink()
                deleted += 1
                logger.info("Removed old upload", path=str(path))
            except OSError as e:
                logger.error("Failed to remove upload", path=str(path), error=str(e))
                errors.append(f"{path.name}: {e}")

        return scanned, deleted, errors


# ==========================================================================
# SCHEDULER
# ==========================================================================


def seconds_until(hour: int, minute: int, now: datetime) -> float:
    next_run = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if now >= next_run:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def start_upload_cleanup_scheduler(
    job: UploadCleanupJob | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Run the sweep daily at the configured local time until cancelled.

    Started from the application lifespan as an asyncio task.
    """
    settings = settings or config.settings
    job = job or UploadCleanupJob.from_settings(settings)

    if not settings.UPLOAD_CLEANUP_ENABLED:
        logger.info("Upload cleanup scheduler DISABLED", environment=settings.environment)
        return

    hour, minute = settings.UPLOAD_CLEANUP_HOUR, settings.UPLOAD_CLEANUP_MINUTE
    logger.info(
        "Upload cleanup scheduler STARTED",
        schedule=f"{hour:02d}:{minute:02d}",
        keep_days=job.keep_days,
        directories=[str(d) for d in job.directories],
    )

    while True:
        try:
            sleep_seconds = seconds_until(hour, minute, datetime.now())
            logger.info("Upload cleanup scheduled", sleep_seconds=sleep_seconds)
            await asyncio.sleep(sleep_seconds)

            await job.run_cleanup()

        except asyncio.CancelledError:
            logger.info("Upload cleanup scheduler cancelled")
            break
        except Exception as e:
            logger.error("Error in upload cleanup scheduler, will retry", error=str(e))
            await asyncio.sleep(RETRY_AFTER_ERROR_SECONDS)


async def run_upload_cleanup_once() -> None:
    """One sweep with the process settings, for the worker CLI."""
    settings = config.settings
    job = UploadCleanupJob.from_settings(settings, extra_dirs=[settings.upload_dir()])
    result = await job.run_cleanup()
    logger.info("Manual upload cleanup finished", result=result)
