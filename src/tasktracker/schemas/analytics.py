"""Response models for the analytics endpoints."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict

from ..models import TaskPriority, TaskStatus
from .task import TaskCategoryRead


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class StatusDistributionRead(_FromAttributes):
    todo: int
    in_progress: int
    completed: int


class OverviewRead(_FromAttributes):
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    todo_tasks: int
    overdue_tasks: int
    completion_rate: float
    status_distribution: StatusDistributionRead


class DailyCompletionRead(_FromAttributes):
    date: dt.date
    completed_tasks: int


class CompletionRatesRead(_FromAttributes):
    period_days: int
    total_completed: int
    daily_completions: list[DailyCompletionRead]


class PriorityBreakdownRead(_FromAttributes):
    high: int
    medium: int
    low: int


class OverdueTaskRead(_FromAttributes):
    id: int
    title: str
    due_date: dt.datetime
    priority: TaskPriority
    status: TaskStatus
    category: TaskCategoryRead | None = None
    days_overdue: int


class OverdueReportRead(_FromAttributes):
    total_overdue: int
    priority_breakdown: PriorityBreakdownRead
    overdue_tasks: list[OverdueTaskRead]


class PriorityPerformanceRead(_FromAttributes):
    created: int
    completed: int


class ProductivityRead(_FromAttributes):
    period_days: int
    tasks_created: int
    tasks_completed: int
    completion_rate: float
    average_completion_time_hours: float
    priority_performance: dict[str, PriorityPerformanceRead]


class CategoryStatsRead(_FromAttributes):
    id: int | None
    name: str
    color: str
    total_tasks: int
    todo_tasks: int
    in_progress_tasks: int
    completed_tasks: int
    completion_rate: float


__all__ = [
    "CategoryStatsRead",
    "CompletionRatesRead",
    "DailyCompletionRead",
    "OverdueReportRead",
    "OverdueTaskRead",
    "OverviewRead",
    "PriorityBreakdownRead",
    "PriorityPerformanceRead",
    "ProductivityRead",
    "StatusDistributionRead",
]
