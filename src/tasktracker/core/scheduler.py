"""In-process scheduler firing maintenance jobs on fixed UTC triggers.

Each job gets its own asyncio task that sleeps until the next fire time, runs
the job, then computes the following fire time. A job therefore never overlaps
itself; a run that outlasts its interval simply skips the missed slots.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from ..models.common import as_utc, utcnow
from .config import SchedulerDispatch
from .context import bind_job_name, reset_job_name

logger = logging.getLogger(__name__)

_ONE_HOUR = timedelta(hours=1)
# Any valid trigger fires within one week of hourly steps.
_MAX_STEPS = 24 * 8


@dataclass(frozen=True, slots=True)
class ScheduleTrigger:
    """Fire at ``minute`` past the hour, restricted to ``hours`` and ``weekdays``.

    ``None`` means "every": ``ScheduleTrigger(minute=0)`` fires hourly.
    Weekdays follow :meth:`datetime.weekday` (Monday is 0).
    """

    minute: int = 0
    hours: frozenset[int] | None = None
    weekdays: frozenset[int] | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.minute <= 59:
            raise ValueError("minute must be within 0..59")
        if self.hours is not None and (not self.hours or not all(0 <= h <= 23 for h in self.hours)):
            raise ValueError("hours must be a non-empty set within 0..23")
        if self.weekdays is not None and (
            not self.weekdays or not all(0 <= d <= 6 for d in self.weekdays)
        ):
            raise ValueError("weekdays must be a non-empty set within 0..6")

    @classmethod
    def daily(cls, hour: int, minute: int = 0) -> "ScheduleTrigger":
        return cls(minute=minute, hours=frozenset({hour}))

    @classmethod
    def every_hours(cls, step: int, minute: int = 0) -> "ScheduleTrigger":
        if not 1 <= step <= 24:
            raise ValueError("step must be within 1..24")
        return cls(minute=minute, hours=frozenset(range(0, 24, step)))

    @classmethod
    def weekly(cls, weekday: int, hour: int, minute: int = 0) -> "ScheduleTrigger":
        return cls(minute=minute, hours=frozenset({hour}), weekdays=frozenset({weekday}))

    def matches(self, moment: datetime) -> bool:
        moment = as_utc(moment)
        if moment.minute != self.minute:
            return False
        if self.hours is not None and moment.hour not in self.hours:
            return False
        if self.weekdays is not None and moment.weekday() not in self.weekdays:
            return False
        return True

    def next_fire_time(self, after: datetime) -> datetime:
        """Return the first matching instant strictly after ``after`` (UTC)."""

        after = as_utc(after)
        candidate = after.replace(minute=self.minute, second=0, microsecond=0)
        if candidate <= after:
            candidate += _ONE_HOUR
        for _ in range(_MAX_STEPS):
            if self.matches(candidate):
                return candidate
            candidate += _ONE_HOUR
        raise RuntimeError(f"Trigger {self!r} never fires")


@dataclass(frozen=True, slots=True)
class ScheduledJob:
    """A named job, when it fires, and the coroutine that performs it."""

    name: str
    trigger: ScheduleTrigger
    runner: Callable[[], Awaitable[Any]]


class JobScheduler:
    """Own one timer task per job with explicit ``start``/``stop``."""

    def __init__(
        self,
        jobs: Iterable[ScheduledJob],
        *,
        dispatch: SchedulerDispatch = "inline",
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        enqueue: Callable[[str], Any] | None = None,
    ) -> None:
        self._jobs = {job.name: job for job in jobs}
        self._dispatch = dispatch
        self._clock = clock
        self._sleep = sleep
        self._enqueue = enqueue
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def jobs(self) -> list[ScheduledJob]:
        return list(self._jobs.values())

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    def start(self) -> None:
        """Create the timer tasks; calling it twice is a no-op."""

        if self.running:
            return
        for job in self._jobs.values():
            self._tasks[job.name] = asyncio.create_task(
                self._run_forever(job),
                name=f"scheduler:{job.name}",
            )
        logger.info(
            "Scheduler started",
            extra={"jobs": sorted(self._jobs), "dispatch": self._dispatch},
        )

    async def stop(self) -> None:
        """Cancel every timer and wait for them to unwind."""

        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Scheduler stopped")

    async def _run_forever(self, job: ScheduledJob) -> None:
        while True:
            now = as_utc(self._clock())
            fire_at = job.trigger.next_fire_time(now)
            await self._sleep(max((fire_at - now).total_seconds(), 0.0))
            await self.run_once(job.name)

    async def run_once(self, name: str) -> Any:
        """Run or enqueue one execution of ``name``; failures are logged, not raised."""

        job = self._jobs[name]
        token = bind_job_name(name)
        try:
            return await self._execute(job)
        finally:
            reset_job_name(token)

    async def _execute(self, job: ScheduledJob) -> Any:
        logger.info("Scheduled job %s started", job.name)
        try:
            if self._dispatch == "queue":
                enqueue = self._enqueue or _default_enqueue
                result = await asyncio.to_thread(enqueue, job.name)
            else:
                result = await job.runner()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled job %s failed", job.name)
            return None
        logger.info("Scheduled job %s finished", job.name)
        return result


def _default_enqueue(name: str) -> Any:
    from .jobs import enqueue_scheduled_job

    return enqueue_scheduled_job(name)


__all__ = ["JobScheduler", "ScheduleTrigger", "ScheduledJob"]
