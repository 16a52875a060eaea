"""
Reminder Scheduler

Plans email reminders for a created event and fires them from asyncio tasks
owned by one scheduler instance.

Lifecycle:
- start() when the application starts
- schedule() / schedule_all() from the create-event route
- shutdown() cancels whatever has not fired yet (best effort, nothing is persisted)

Without a configured EmailRelay the scheduler is disabled and callers skip
reminder planning entirely; that is a normal outcome, not an error.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.domain.calendar_domain import ReminderJob
from mediacal.services.reminders.email_relay import EmailRelay

logger = get_logger(__name__)

DEFAULT_DAILY_TIME = (9, 0)
ONE_DAY = timedelta(days=1)


class ReminderConfigError(Exception):
    """Reminders were requested from a scheduler that has no email relay."""


def parse_offsets(value: str | None) -> list[int]:
    """Comma separated minutes-before values; blanks, non-numbers and negatives are dropped."""
    offsets = []
    for part in (value or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            minutes = int(part)
        except ValueError:
            continue
        if minutes >= 0:
            offsets.append(minutes)
    return offsets


def parse_daily_time(value: str | None) -> tuple[int, int]:
    try:
        hour_text, minute_text = (value or "").split(":", 1)
        hour, minute = int(hour_text), int(minute_text)
    except ValueError:
        return DEFAULT_DAILY_TIME
    if not (0 <= hour < 24 and 0 <= minute < 60):
        return DEFAULT_DAILY_TIME
    return hour, minute


def format_due(due: datetime) -> str:
    return due.strftime("%Y-%m-%d %H:%M")


def plan_reminders(
    *,
    due: datetime,
    recipient: str,
    title: str,
    description: str = "",
    offsets: str | None = None,
    daily: bool = False,
    daily_time: str | None = None,
    now: datetime | None = None,
) -> list[ReminderJob]:
    """
    Compute every reminder for one event.

    One job per offset at due - offset, plus (when daily) one job per day at
    daily_time from its next occurrence up to and including the due instant.
    Fire times at or before now are skipped.
    """
    now = now or datetime.now().astimezone()
    due_label = format_due(due)
    jobs: list[ReminderJob] = []

    for minutes in parse_offsets(offsets):
        fires_at = due - timedelta(minutes=minutes)
        if fires_at <= now:
            logger.info(
                "Skipping reminder in the past", minutes_before=minutes, fires_at=fires_at.isoformat()
            )
            continue
        jobs.append(
            ReminderJob(
                fires_at=fires_at,
                recipient=recipient,
                subject=f"Reminder: {title} due {due_label}",
                body=f"This is a reminder for {title} (due {due_label}).\n\n{description}",
            )
        )

    if daily:
        hour, minute = parse_daily_time(daily_time)
        current = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if current <= now:
            current += ONE_DAY
        while current <= due:
            jobs.append(
                ReminderJob(
                    fires_at=current,
                    recipient=recipient,
                    subject=f"Daily reminder: {title} (due {due_label})",
                    body=f"Daily reminder for {title}. Due: {due_label}\n\n{description}",
                    kind="daily",
                )
            )
            current += ONE_DAY

    return jobs


class ReminderScheduler:
    def __init__(
        self,
        relay: EmailRelay | None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] | None = None,
    ):
        self.relay = relay
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._tasks: set[asyncio.Task] = set()
        self.is_running = False

    @property
    def enabled(self) -> bool:
        return self.relay is not None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        self.is_running = True
        logger.info("Reminder scheduler started", enabled=self.enabled)

    def schedule(self, job: ReminderJob) -> asyncio.Task:
        if self.relay is None:
            raise ReminderConfigError("No SMTP relay configured for reminders")

        task = asyncio.create_task(self._fire(job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(
            "Reminder scheduled",
            kind=job.kind,
            recipient=job.recipient,
            fires_at=job.fires_at.isoformat(),
        )
        return task

    def schedule_all(self, jobs: list[ReminderJob]) -> int:
        for job in jobs:
            self.schedule(job)
        return len(jobs)

    async def _fire(self, job: ReminderJob) -> None:
        delay = (job.fires_at - self._clock()).total_seconds()
        if delay > 0:
            await self._sleep(delay)

        # Fire and forget: failures are logged, never retried
        try:
            await self.relay.send(job.recipient, job.subject, job.body)
        except Exception as e:
            logger.error(
                "Error sending reminder email",
                kind=job.kind,
                recipient=job.recipient,
                error=str(e),
            )

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self.is_running = False
        logger.info("Reminder scheduler stopped", cancelled=len(tasks))
