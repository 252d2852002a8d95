"""Aggregations over the caller's visible tasks.

Every figure is computed fresh per call. ``now`` is injectable so the
day-bucketing and overdue arithmetic can be pinned in tests.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlmodel.ext.asyncio.session import AsyncSession

from ..access import visible_tasks
from ..errors import ValidationError
from ..models import TaskPriority, TaskStatus
from ..models.common import as_utc, utcnow
from ..repositories import CategoryRepository, CategorySummary, TaskRepository

UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_COLOR = "#6b7280"

MIN_PERIOD_DAYS = 1
MAX_PERIOD_DAYS = 365
DEFAULT_COMPLETION_PERIOD = 30
DEFAULT_PRODUCTIVITY_PERIOD = 7

_ONE_DAY = timedelta(days=1)
_ONE_HOUR = timedelta(hours=1)


def percentage(part: int, whole: int) -> float:
    """Return ``part / whole * 100`` rounded to two decimals, ``0.0`` when empty."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


def validate_period(period: int) -> int:
    if isinstance(period, bool) or not isinstance(period, int):
        raise ValidationError("period must be an integer")
    if not MIN_PERIOD_DAYS <= period <= MAX_PERIOD_DAYS:
        raise ValidationError(f"period must be between {MIN_PERIOD_DAYS} and {MAX_PERIOD_DAYS}")
    return period


@dataclass(slots=True)
class StatusDistribution:
    todo: int = 0
    in_progress: int = 0
    completed: int = 0


@dataclass(slots=True)
class OverviewStats:
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    todo_tasks: int
    overdue_tasks: int
    completion_rate: float
    status_distribution: StatusDistribution


@dataclass(slots=True)
class DailyCompletion:
    date: date
    completed_tasks: int


@dataclass(slots=True)
class CompletionRates:
    period_days: int
    total_completed: int
    daily_completions: list[DailyCompletion]


@dataclass(slots=True)
class PriorityBreakdown:
    high: int = 0
    medium: int = 0
    low: int = 0


@dataclass(slots=True)
class OverdueTask:
    id: int
    title: str
    due_date: datetime
    priority: TaskPriority
    status: TaskStatus
    category: CategorySummary | None
    days_overdue: int


@dataclass(slots=True)
class OverdueReport:
    total_overdue: int
    priority_breakdown: PriorityBreakdown
    overdue_tasks: list[OverdueTask]


@dataclass(slots=True)
class PriorityPerformance:
    created: int = 0
    completed: int = 0


@dataclass(slots=True)
class ProductivityStats:
    period_days: int
    tasks_created: int
    tasks_completed: int
    completion_rate: float
    average_completion_time_hours: float
    priority_performance: dict[str, PriorityPerformance] = field(default_factory=dict)


@dataclass(slots=True)
class CategoryStats:
    id: int | None
    name: str
    color: str
    total_tasks: int
    todo_tasks: int
    in_progress_tasks: int
    completed_tasks: int
    completion_rate: float


def _category_stats(
    *,
    category_id: int | None,
    name: str,
    color: str,
    counts: dict[TaskStatus, int],
) -> CategoryStats:
    todo = counts.get(TaskStatus.TODO, 0)
    in_progress = counts.get(TaskStatus.IN_PROGRESS, 0)
    completed = counts.get(TaskStatus.COMPLETED, 0)
    total = todo + in_progress + completed
    return CategoryStats(
        id=category_id,
        name=name,
        color=color,
        total_tasks=total,
        todo_tasks=todo,
        in_progress_tasks=in_progress,
        completed_tasks=completed,
        completion_rate=percentage(completed, total),
    )


class AnalyticsService:
    """Read-only analytics for a single caller."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._task_repository = TaskRepository(session)
        self._category_repository = CategoryRepository(session)

    async def overview(self, caller_id: uuid.UUID, *, now: datetime | None = None) -> OverviewStats:
        now = as_utc(now) or utcnow()
        scope = visible_tasks(caller_id)
        counts = await self._task_repository.count_by_status(scope=scope)
        overdue = await self._task_repository.count_overdue(now, scope=scope)

        distribution = StatusDistribution(
            todo=counts.get(TaskStatus.TODO, 0),
            in_progress=counts.get(TaskStatus.IN_PROGRESS, 0),
            completed=counts.get(TaskStatus.COMPLETED, 0),
        )
        total = distribution.todo + distribution.in_progress + distribution.completed
        return OverviewStats(
            total_tasks=total,
            completed_tasks=distribution.completed,
            in_progress_tasks=distribution.in_progress,
            todo_tasks=distribution.todo,
            overdue_tasks=overdue,
            completion_rate=percentage(distribution.completed, total),
            status_distribution=distribution,
        )

    async def completion_rates(
        self,
        caller_id: uuid.UUID,
        *,
        period: int = DEFAULT_COMPLETION_PERIOD,
        now: datetime | None = None,
    ) -> CompletionRates:
        """Daily completion counts for today and the ``period - 1`` preceding UTC days."""
        period = validate_period(period)
        now = as_utc(now) or utcnow()
        today = now.date()
        buckets = {today - timedelta(days=offset): 0 for offset in range(period)}

        completed = await self._task_repository.list_completed_since(
            now - timedelta(days=period),
            scope=visible_tasks(caller_id),
        )
        for task in completed:
            completed_at = as_utc(task.completed_at)
            if completed_at is None:
                continue
            day = completed_at.date()
            if day in buckets:
                buckets[day] += 1

        return CompletionRates(
            period_days=period,
            total_completed=len(completed),
            daily_completions=[
                DailyCompletion(date=day, completed_tasks=count)
                for day, count in sorted(buckets.items())
            ],
        )

    async def overdue_tasks(self, caller_id: uuid.UUID, *, now: datetime | None = None) -> OverdueReport:
        now = as_utc(now) or utcnow()
        records = await self._task_repository.list_overdue(now, scope=visible_tasks(caller_id))

        breakdown = PriorityBreakdown()
        items: list[OverdueTask] = []
        for record in records:
            task = record.task
            due_date = as_utc(task.due_date)
            priority = TaskPriority(task.priority)
            setattr(breakdown, priority.value, getattr(breakdown, priority.value) + 1)
            items.append(
                OverdueTask(
                    id=task.id,
                    title=task.title,
                    due_date=due_date,
                    priority=priority,
                    status=TaskStatus(task.status),
                    category=record.category,
                    days_overdue=int((now - due_date) // _ONE_DAY),
                )
            )
        return OverdueReport(total_overdue=len(items), priority_breakdown=breakdown, overdue_tasks=items)

    async def productivity(
        self,
        caller_id: uuid.UUID,
        *,
        period: int = DEFAULT_PRODUCTIVITY_PERIOD,
        now: datetime | None = None,
    ) -> ProductivityStats:
        """Creation and completion figures for tasks created within the window."""
        period = validate_period(period)
        now = as_utc(now) or utcnow()
        tasks = await self._task_repository.list_created_since(
            now - timedelta(days=period),
            scope=visible_tasks(caller_id),
        )

        performance = {priority.value: PriorityPerformance() for priority in reversed(TaskPriority)}
        completed_count = 0
        completion_hours = 0.0
        for task in tasks:
            stats = performance[TaskPriority(task.priority).value]
            stats.created += 1
            if task.status == TaskStatus.COMPLETED:
                completed_count += 1
                stats.completed += 1
                if task.completed_at is not None:
                    elapsed = as_utc(task.completed_at) - as_utc(task.created_at)
                    completion_hours += elapsed / _ONE_HOUR

        average = round(completion_hours / completed_count, 2) if completed_count else 0.0
        return ProductivityStats(
            period_days=period,
            tasks_created=len(tasks),
            tasks_completed=completed_count,
            completion_rate=percentage(completed_count, len(tasks)),
            average_completion_time_hours=average,
            priority_performance=performance,
        )

    async def categories(self, caller_id: uuid.UUID) -> list[CategoryStats]:
        """Per-category status rollup plus an ``Uncategorized`` bucket when non-empty."""
        categories = await self._category_repository.list_for_owner(caller_id)
        counts = await self._task_repository.count_by_category_and_status(visible_tasks(caller_id))

        rollup = [
            _category_stats(
                category_id=category.id,
                name=category.name,
                color=category.color,
                counts=counts.get(category.id, {}),
            )
            for category in sorted(categories, key=lambda item: item.id)
        ]
        uncategorized = _category_stats(
            category_id=None,
            name=UNCATEGORIZED_NAME,
            color=UNCATEGORIZED_COLOR,
            counts=counts.get(None, {}),
        )
        if uncategorized.total_tasks > 0:
            rollup.append(uncategorized)
        rollup.sort(key=lambda item: item.total_tasks, reverse=True)
        return rollup


__all__ = [
    "AnalyticsService",
    "CategoryStats",
    "CompletionRates",
    "DailyCompletion",
    "OverdueReport",
    "OverdueTask",
    "OverviewStats",
    "PriorityBreakdown",
    "PriorityPerformance",
    "ProductivityStats",
    "StatusDistribution",
    "UNCATEGORIZED_COLOR",
    "UNCATEGORIZED_NAME",
    "percentage",
    "validate_period",
]
