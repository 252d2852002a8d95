"""Periodic maintenance jobs: digest, overdue check, cleanup and statistics."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..access import visible_tasks
from ..core.config import get_settings
from ..core.jobs import execute_in_job_session
from ..models import TaskPriority, TaskStatus
from ..models.common import as_utc, utcnow
from ..repositories import ProfileRepository, TaskRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserDigest:
    user_id: uuid.UUID
    completed_last_day: int
    overdue: int
    due_today: int


@dataclass(slots=True)
class DigestSummary:
    profiles_processed: int = 0
    failures: int = 0
    digests: list[UserDigest] = field(default_factory=list)


@dataclass(slots=True)
class OverdueSummary:
    total_overdue: int
    priority_breakdown: dict[str, int]


@dataclass(slots=True)
class CleanupSummary:
    cutoff: datetime
    eligible: int
    deleted: int


@dataclass(slots=True)
class StatisticsSummary:
    total_tasks: int
    by_status: dict[str, int]
    by_priority: dict[str, int]


async def generate_daily_digest(session: AsyncSession, *, now: datetime) -> DigestSummary:
    """Build each user's digest: completed in 24h, overdue, and due today (UTC)."""

    now = as_utc(now)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    tasks = TaskRepository(session)
    summary = DigestSummary()

    user_ids = [profile.id for profile in await ProfileRepository(session).list_all()]
    for user_id in user_ids:
        scope = visible_tasks(user_id)
        try:
            completed = await tasks.list_completed_since(now - timedelta(days=1), scope=scope)
            overdue = await tasks.count_overdue(now, scope=scope)
            due_today = await tasks.list_due_between(
                start_of_day,
                start_of_day + timedelta(days=1),
                scope=scope,
            )
        except SQLAlchemyError:
            logger.exception("Daily digest failed for user %s", user_id, extra={"target_user": str(user_id)})
            summary.failures += 1
            await session.rollback()
            continue

        digest = UserDigest(
            user_id=user_id,
            completed_last_day=len(completed),
            overdue=overdue,
            due_today=len(due_today),
        )
        summary.digests.append(digest)
        summary.profiles_processed += 1
        logger.info(
            "Daily digest prepared for user %s",
            user_id,
            extra={
                "target_user": str(user_id),
                "completed_last_day": digest.completed_last_day,
                "overdue": digest.overdue,
                "due_today": digest.due_today,
            },
        )

    logger.info(
        "Daily digest finished",
        extra={"profiles_processed": summary.profiles_processed, "failures": summary.failures},
    )
    return summary


async def check_overdue_tasks(session: AsyncSession, *, now: datetime) -> OverdueSummary:
    """Count overdue tasks across all users, broken down by priority."""

    records = await TaskRepository(session).list_overdue(as_utc(now))
    breakdown = {priority.value: 0 for priority in reversed(TaskPriority)}
    for record in records:
        breakdown[TaskPriority(record.task.priority).value] += 1

    summary = OverdueSummary(total_overdue=len(records), priority_breakdown=breakdown)
    if summary.total_overdue:
        logger.warning(
            "Found %s overdue tasks",
            summary.total_overdue,
            extra={"priority_breakdown": breakdown},
        )
    else:
        logger.info("No overdue tasks found")
    return summary


async def cleanup_completed_tasks(
    session: AsyncSession,
    *,
    now: datetime,
    retention_days: int,
    purge: bool = False,
) -> CleanupSummary:
    """Count, and optionally delete, tasks completed before the retention window."""

    cutoff = as_utc(now) - timedelta(days=retention_days)
    tasks = TaskRepository(session)
    eligible = await tasks.count_completed_before(cutoff)
    deleted = 0
    if purge and eligible:
        deleted = await tasks.delete_completed_before(cutoff)
        await session.commit()

    logger.info(
        "Completed task cleanup finished",
        extra={"cutoff": cutoff.isoformat(), "eligible": eligible, "deleted": deleted, "purge": purge},
    )
    return CleanupSummary(cutoff=cutoff, eligible=eligible, deleted=deleted)


async def update_task_statistics(session: AsyncSession) -> StatisticsSummary:
    """Compute global task totals by status and by priority."""

    tasks = TaskRepository(session)
    by_status_counts = await tasks.count_by_status()
    by_priority_counts = await tasks.count_by_priority()
    by_status = {status.value: by_status_counts.get(status, 0) for status in TaskStatus}
    by_priority = {priority.value: by_priority_counts.get(priority, 0) for priority in reversed(TaskPriority)}

    summary = StatisticsSummary(
        total_tasks=sum(by_status.values()),
        by_status=by_status,
        by_priority=by_priority,
    )
    logger.info(
        "Task statistics updated",
        extra={"total_tasks": summary.total_tasks, "by_status": by_status, "by_priority": by_priority},
    )
    return summary


async def run_daily_digest(now: datetime | None = None) -> DigestSummary:
    return await execute_in_job_session(
        lambda session: generate_daily_digest(session, now=now or utcnow())
    )


async def run_overdue_check(now: datetime | None = None) -> OverdueSummary:
    return await execute_in_job_session(
        lambda session: check_overdue_tasks(session, now=now or utcnow())
    )


async def run_completed_cleanup(now: datetime | None = None) -> CleanupSummary:
    settings = get_settings()
    return await execute_in_job_session(
        lambda session: cleanup_completed_tasks(
            session,
            now=now or utcnow(),
            retention_days=settings.cleanup_retention_days,
            purge=settings.cleanup_purge_enabled,
        )
    )


async def run_task_statistics() -> StatisticsSummary:
    return await execute_in_job_session(update_task_statistics)


__all__ = [
    "CleanupSummary",
    "DigestSummary",
    "OverdueSummary",
    "StatisticsSummary",
    "UserDigest",
    "check_overdue_tasks",
    "cleanup_completed_tasks",
    "generate_daily_digest",
    "run_completed_cleanup",
    "run_daily_digest",
    "run_overdue_check",
    "run_task_statistics",
    "update_task_statistics",
]
