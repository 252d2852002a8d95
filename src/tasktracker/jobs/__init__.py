"""Scheduled maintenance jobs and their UTC triggers."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any

from ..core.config import Settings
from ..core.context import bind_job_name, clear_context
from ..core.scheduler import JobScheduler, ScheduledJob, ScheduleTrigger
from .maintenance import (
    run_completed_cleanup,
    run_daily_digest,
    run_overdue_check,
    run_task_statistics,
)

logger = logging.getLogger(__name__)

SUNDAY = 6

JOB_REGISTRY: dict[str, ScheduledJob] = {
    job.name: job
    for job in (
        ScheduledJob("daily_digest", ScheduleTrigger.daily(hour=8), run_daily_digest),
        ScheduledJob("overdue_check", ScheduleTrigger.every_hours(6), run_overdue_check),
        ScheduledJob(
            "completed_cleanup",
            ScheduleTrigger.weekly(weekday=SUNDAY, hour=2),
            run_completed_cleanup,
        ),
        ScheduledJob("task_statistics", ScheduleTrigger.daily(hour=0), run_task_statistics),
    )
}


def build_scheduler(settings: Settings) -> JobScheduler:
    """Return a scheduler for every registered job using the configured dispatch mode."""

    return JobScheduler(JOB_REGISTRY.values(), dispatch=settings.scheduler_dispatch)


def run_scheduled_job(name: str) -> dict[str, Any]:
    """RQ entry point: run one maintenance job to completion in a fresh event loop."""

    job = JOB_REGISTRY.get(name)
    if job is None:
        raise ValueError(f"Unknown scheduled job {name!r}")

    clear_context()
    bind_job_name(name)
    result = asyncio.run(job.runner())
    logger.info("Worker finished scheduled job %s", name)
    return dataclasses.asdict(result)


__all__ = ["JOB_REGISTRY", "SUNDAY", "build_scheduler", "run_scheduled_job"]
