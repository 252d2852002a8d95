from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from tasktracker.core.jobs import set_job_session_factory
from tasktracker.jobs.maintenance import (
    check_overdue_tasks,
    cleanup_completed_tasks,
    generate_daily_digest,
    run_overdue_check,
    run_task_statistics,
    update_task_statistics,
)
from tasktracker.models import Profile, Task, TaskPriority, TaskStatus

pytestmark = pytest.mark.asyncio

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def configure_job_sessions(session_factory: async_sessionmaker[AsyncSession]):
    @asynccontextmanager
    async def factory() -> AsyncIterator[AsyncSession]:
        async with session_factory() as db_session:
            yield db_session

    set_job_session_factory(factory)
    try:
        yield
    finally:
        set_job_session_factory(None)


async def _profile(session: AsyncSession, email: str) -> Profile:
    profile = Profile(id=uuid.uuid4(), email=email, full_name=email.split("@")[0])
    session.add(profile)
    await session.commit()
    return profile


async def _task(session: AsyncSession, owner_id: uuid.UUID, **fields) -> Task:
    fields.setdefault("title", "Job task")
    status = fields.get("status", TaskStatus.TODO)
    if status is TaskStatus.COMPLETED:
        fields.setdefault("completed_at", NOW - timedelta(hours=1))
    task = Task(created_by=owner_id, **fields)
    session.add(task)
    await session.commit()
    await session.refresh(task)
    return task


async def test_daily_digest_summarises_each_profile(session: AsyncSession) -> None:
    busy = await _profile(session, "busy@example.com")
    idle = await _profile(session, "idle@example.com")
    await _task(session, busy.id, status=TaskStatus.COMPLETED, completed_at=NOW - timedelta(hours=3))
    await _task(session, busy.id, status=TaskStatus.COMPLETED, completed_at=NOW - timedelta(days=3))
    await _task(session, busy.id, due_date=NOW - timedelta(days=1))
    await _task(session, busy.id, due_date=NOW + timedelta(hours=6))
    await _task(session, busy.id, due_date=NOW + timedelta(days=2))
    await _task(session, idle.id, assigned_to=busy.id, due_date=NOW + timedelta(hours=1))

    summary = await generate_daily_digest(session, now=NOW)

    assert summary.profiles_processed == 2
    assert summary.failures == 0
    digests = {digest.user_id: digest for digest in summary.digests}
    assert digests[busy.id].completed_last_day == 1
    assert digests[busy.id].overdue == 1
    assert digests[busy.id].due_today == 2
    assert digests[idle.id].due_today == 1
    assert digests[idle.id].overdue == 0


async def test_overdue_check_counts_across_users(session: AsyncSession) -> None:
    await _task(session, uuid.uuid4(), priority=TaskPriority.HIGH, due_date=NOW - timedelta(days=1))
    await _task(session, uuid.uuid4(), priority=TaskPriority.HIGH, due_date=NOW - timedelta(hours=1))
    await _task(session, uuid.uuid4(), priority=TaskPriority.LOW, due_date=NOW - timedelta(days=9))
    await _task(
        session,
        uuid.uuid4(),
        status=TaskStatus.COMPLETED,
        due_date=NOW - timedelta(days=2),
    )

    summary = await check_overdue_tasks(session, now=NOW)

    assert summary.total_overdue == 3
    assert summary.priority_breakdown == {"high": 2, "medium": 0, "low": 1}


async def test_cleanup_reports_and_optionally_purges(session: AsyncSession) -> None:
    owner = uuid.uuid4()
    stale = await _task(session, owner, status=TaskStatus.COMPLETED, completed_at=NOW - timedelta(days=40))
    await _task(session, owner, status=TaskStatus.COMPLETED, completed_at=NOW - timedelta(days=10))
    await _task(session, owner)

    dry_run = await cleanup_completed_tasks(session, now=NOW, retention_days=30)
    assert dry_run.cutoff == NOW - timedelta(days=30)
    assert (dry_run.eligible, dry_run.deleted) == (1, 0)

    purged = await cleanup_completed_tasks(session, now=NOW, retention_days=30, purge=True)
    assert (purged.eligible, purged.deleted) == (1, 1)

    session.expunge_all()
    remaining = (await session.exec(select(Task.id))).all()
    assert stale.id not in remaining
    assert len(remaining) == 2


async def test_statistics_cover_every_status_and_priority(session: AsyncSession) -> None:
    owner = uuid.uuid4()
    await _task(session, owner, priority=TaskPriority.HIGH)
    await _task(session, owner, priority=TaskPriority.HIGH, status=TaskStatus.IN_PROGRESS)
    await _task(session, owner, priority=TaskPriority.LOW, status=TaskStatus.COMPLETED)

    summary = await update_task_statistics(session)

    assert summary.total_tasks == 3
    assert summary.by_status == {"todo": 1, "in_progress": 1, "completed": 1}
    assert summary.by_priority == {"high": 2, "medium": 0, "low": 1}


async def test_runners_open_their_own_session(session: AsyncSession) -> None:
    await _task(session, uuid.uuid4(), due_date=NOW - timedelta(days=1))

    overdue = await run_overdue_check(now=NOW)
    statistics = await run_task_statistics()

    assert overdue.total_overdue == 1
    assert statistics.total_tasks == 1
