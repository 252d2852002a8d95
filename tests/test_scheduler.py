from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from tasktracker.core.config import Settings
from tasktracker.core.scheduler import JobScheduler, ScheduledJob, ScheduleTrigger
from tasktracker.jobs import JOB_REGISTRY, SUNDAY, build_scheduler

# Friday.
FRIDAY_MORNING = datetime(2024, 3, 15, 7, 30, tzinfo=timezone.utc)


def test_daily_trigger_fires_at_the_next_matching_hour() -> None:
    trigger = ScheduleTrigger.daily(hour=8)

    assert trigger.next_fire_time(FRIDAY_MORNING) == datetime(2024, 3, 15, 8, 0, tzinfo=timezone.utc)
    assert trigger.next_fire_time(datetime(2024, 3, 15, 8, 0, tzinfo=timezone.utc)) == datetime(
        2024, 3, 16, 8, 0, tzinfo=timezone.utc
    )
    assert trigger.next_fire_time(datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)) == datetime(
        2024, 3, 16, 8, 0, tzinfo=timezone.utc
    )


def test_six_hourly_trigger_walks_through_the_day() -> None:
    trigger = ScheduleTrigger.every_hours(6)
    fire_times = []
    moment = FRIDAY_MORNING
    for _ in range(4):
        moment = trigger.next_fire_time(moment)
        fire_times.append(moment.hour)

    assert fire_times == [12, 18, 0, 6]


def test_weekly_trigger_waits_for_sunday() -> None:
    trigger = ScheduleTrigger.weekly(weekday=SUNDAY, hour=2)

    fire_at = trigger.next_fire_time(FRIDAY_MORNING)

    assert fire_at == datetime(2024, 3, 17, 2, 0, tzinfo=timezone.utc)
    assert fire_at.weekday() == SUNDAY
    assert trigger.next_fire_time(fire_at) == fire_at + timedelta(days=7)


def test_naive_datetimes_are_treated_as_utc() -> None:
    trigger = ScheduleTrigger.daily(hour=0)

    assert trigger.next_fire_time(datetime(2024, 3, 15, 23, 59)) == datetime(
        2024, 3, 16, 0, 0, tzinfo=timezone.utc
    )


@pytest.mark.parametrize(
    "factory",
    [
        lambda: ScheduleTrigger(minute=60),
        lambda: ScheduleTrigger(hours=frozenset()),
        lambda: ScheduleTrigger(hours=frozenset({24})),
        lambda: ScheduleTrigger(weekdays=frozenset({7})),
        lambda: ScheduleTrigger.every_hours(0),
    ],
)
def test_invalid_triggers_are_rejected(factory) -> None:
    with pytest.raises(ValueError):
        factory()


def test_registry_schedules() -> None:
    assert set(JOB_REGISTRY) == {"daily_digest", "overdue_check", "completed_cleanup", "task_statistics"}
    assert JOB_REGISTRY["daily_digest"].trigger == ScheduleTrigger.daily(hour=8)
    assert JOB_REGISTRY["overdue_check"].trigger.hours == frozenset({0, 6, 12, 18})
    assert JOB_REGISTRY["completed_cleanup"].trigger == ScheduleTrigger.weekly(weekday=SUNDAY, hour=2)
    assert JOB_REGISTRY["task_statistics"].trigger == ScheduleTrigger.daily(hour=0)


def test_build_scheduler_registers_every_job() -> None:
    scheduler = build_scheduler(Settings(ENVIRONMENT="test"))

    assert {job.name for job in scheduler.jobs} == set(JOB_REGISTRY)
    assert scheduler.running is False


@pytest.mark.asyncio
async def test_run_once_inline_returns_the_result() -> None:
    async def runner() -> str:
        return "done"

    scheduler = JobScheduler([ScheduledJob("sample", ScheduleTrigger(), runner)])

    assert await scheduler.run_once("sample") == "done"


@pytest.mark.asyncio
async def test_run_once_logs_and_swallows_failures(caplog: pytest.LogCaptureFixture) -> None:
    async def runner() -> None:
        raise RuntimeError("job exploded")

    scheduler = JobScheduler([ScheduledJob("fragile", ScheduleTrigger(), runner)])

    with caplog.at_level("ERROR", logger="tasktracker.core.scheduler"):
        assert await scheduler.run_once("fragile") is None

    assert any("Scheduled job fragile failed" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_queue_dispatch_hands_the_job_to_enqueue() -> None:
    enqueued: list[str] = []

    async def runner() -> None:  # pragma: no cover - must not run inline
        raise AssertionError("runner should not be awaited in queue mode")

    def enqueue(name: str) -> str:
        enqueued.append(name)
        return f"job:{name}"

    scheduler = JobScheduler(
        [ScheduledJob("queued", ScheduleTrigger(), runner)],
        dispatch="queue",
        enqueue=enqueue,
    )

    assert await scheduler.run_once("queued") == "job:queued"
    assert enqueued == ["queued"]


@pytest.mark.asyncio
async def test_start_sleeps_until_the_trigger_then_runs() -> None:
    delays: list[float] = []
    ran = asyncio.Event()
    blocked = asyncio.Event()

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)
        if len(delays) > 1:
            await blocked.wait()

    async def runner() -> None:
        ran.set()

    scheduler = JobScheduler(
        [ScheduledJob("digest", ScheduleTrigger.daily(hour=8), runner)],
        clock=lambda: FRIDAY_MORNING,
        sleep=fake_sleep,
    )

    scheduler.start()
    scheduler.start()
    await asyncio.wait_for(ran.wait(), timeout=1)

    assert delays[0] == 30 * 60
    assert scheduler.running is True

    await scheduler.stop()
    assert scheduler.running is False


@pytest.mark.asyncio
async def test_failing_run_does_not_stop_later_runs() -> None:
    calls = 0
    second_run = asyncio.Event()
    blocked = asyncio.Event()

    async def fake_sleep(_: float) -> None:
        if calls >= 2:
            await blocked.wait()

    async def runner() -> None:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("first run fails")
        second_run.set()

    scheduler = JobScheduler(
        [ScheduledJob("flaky", ScheduleTrigger(), runner)],
        clock=lambda: FRIDAY_MORNING,
        sleep=fake_sleep,
    )

    scheduler.start()
    await asyncio.wait_for(second_run.wait(), timeout=1)
    await scheduler.stop()

    assert calls == 2
