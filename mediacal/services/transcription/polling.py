"""
Deadline-bounded polling used while waiting on provider transcription jobs.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_POLL_TIMEOUT_SECONDS = 300.0


class PollingTimeoutError(Exception):
    """The job did not finish before the wait budget ran out."""


async def poll_until_done(
    check: Callable[[], Awaitable[T | None]],
    interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    timeout: float = DEFAULT_POLL_TIMEOUT_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Sleep, check, repeat until check() returns something other than None.

    Both the sleep and each check are bounded by what is left of the
    deadline, so the caller is released within `timeout` seconds.

    Raises:
        PollingTimeoutError: If the deadline passes first
    """
    deadline = clock() + timeout
    attempts = 0
    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            raise PollingTimeoutError(f"Gave up after {attempts} checks ({timeout:.0f}s)")

        await sleep(min(interval, remaining))
        attempts += 1

        remaining = deadline - clock()
        if remaining <= 0:
            raise PollingTimeoutError(f"Gave up after {attempts - 1} checks ({timeout:.0f}s)")
        try:
            result = await asyncio.wait_for(check(), remaining)
        except asyncio.TimeoutError as e:
            raise PollingTimeoutError(
                f"Check {attempts} still running at the deadline ({timeout:.0f}s)"
            ) from e
        if result is not None:
            return result
