"""Repository for interacting with task persistence models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Sequence

import sqlalchemy as sa
from sqlalchemy import ColumnElement, func
from sqlmodel import select

from ..models import PRIORITY_RANK, Category, Task, TaskPriority, TaskStatus
from .base import BaseRepository


class TaskSortField(str, Enum):
    """Columns the task list can be ordered by."""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    DUE_DATE = "due_date"
    PRIORITY = "priority"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(slots=True, frozen=True)
class CategorySummary:
    """Name and colour of the category attached to a task."""

    name: str
    color: str


@dataclass(slots=True)
class TaskRecord:
    """A task together with its (optional) category summary."""

    task: Task
    category: CategorySummary | None = None


@dataclass(slots=True)
class TaskFilters:
    """Optional filters AND-combined when listing tasks."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    category_id: int | None = None
    assigned_to: uuid.UUID | None = None
    due_before: datetime | None = None
    due_after: datetime | None = None

    def conditions(self) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        if self.status is not None:
            clauses.append(Task.status == self.status)
        if self.priority is not None:
            clauses.append(Task.priority == self.priority)
        if self.category_id is not None:
            clauses.append(Task.category_id == self.category_id)
        if self.assigned_to is not None:
            clauses.append(Task.assigned_to == self.assigned_to)
        if self.due_before is not None:
            clauses.append(Task.due_date <= self.due_before)
        if self.due_after is not None:
            clauses.append(Task.due_date >= self.due_after)
        return clauses


def _priority_rank() -> ColumnElement[int]:
    return sa.case(
        *((Task.priority == priority, rank) for priority, rank in PRIORITY_RANK.items()),
        else_=0,
    )


def _order_by(sort_by: TaskSortField, sort_order: SortOrder) -> list[Any]:
    descending = sort_order is SortOrder.DESC

    def _direction(expression: Any) -> Any:
        return expression.desc() if descending else expression.asc()

    if sort_by is TaskSortField.PRIORITY:
        keys = [_direction(_priority_rank())]
    elif sort_by is TaskSortField.DUE_DATE:
        # Tasks without a due date go last whichever way the list is sorted.
        keys = [Task.due_date.is_(None).asc(), _direction(Task.due_date)]
    else:
        keys = [_direction(getattr(Task, sort_by.value))]
    keys.append(Task.id.asc())
    return keys


def _scoped(conditions: Sequence[ColumnElement[bool] | None]) -> list[ColumnElement[bool]]:
    return [condition for condition in conditions if condition is not None]


def _overdue(now: datetime) -> list[ColumnElement[bool]]:
    return [
        Task.due_date.is_not(None),
        Task.due_date < now,
        Task.status != TaskStatus.COMPLETED,
    ]


class TaskRepository(BaseRepository[Task]):
    """Concrete repository encapsulating ``Task`` persistence operations.

    Every query accepts a ``scope`` predicate from :mod:`tasktracker.access`;
    ``None`` means unscoped and is reserved for maintenance jobs.
    """

    model = Task

    @staticmethod
    def _with_category() -> Any:
        return select(Task, Category.name, Category.color).outerjoin(
            Category, Task.category_id == Category.id
        )

    @staticmethod
    def _records(rows: Sequence[Any]) -> list[TaskRecord]:
        records = []
        for task, name, color in rows:
            category = CategorySummary(name=name, color=color) if name is not None else None
            records.append(TaskRecord(task=task, category=category))
        return records

    async def list_filtered(
        self,
        *,
        scope: ColumnElement[bool],
        filters: TaskFilters | None = None,
        sort_by: TaskSortField = TaskSortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[TaskRecord], int]:
        """Return one page of tasks matching the filters and the total match count."""
        conditions = [scope, *(filters.conditions() if filters else [])]
        query = (
            self._with_category()
            .where(*conditions)
            .order_by(*_order_by(sort_by, sort_order))
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(query)
        records = self._records(result.all())

        count_query = select(func.count()).select_from(Task).where(*conditions)
        total_result = await self.session.execute(count_query)
        total = int(total_result.scalar_one())
        return records, total

    async def get_record(self, task_id: int, scope: ColumnElement[bool]) -> TaskRecord | None:
        """Retrieve a task with its category if ``scope`` admits it."""
        result = await self.session.execute(self._with_category().where(Task.id == task_id, scope))
        records = self._records(result.all())
        return records[0] if records else None

    async def get_in_scope(self, task_id: int, scope: ColumnElement[bool]) -> Task | None:
        """Retrieve a bare task by ID if ``scope`` admits it."""
        result = await self.session.execute(select(Task).where(Task.id == task_id, scope))
        return result.scalar_one_or_none()

    async def list_for_category(
        self,
        category_id: int,
        scope: ColumnElement[bool],
    ) -> list[TaskRecord]:
        """Return the tasks in a category, newest first."""
        result = await self.session.execute(
            self._with_category()
            .where(Task.category_id == category_id, scope)
            .order_by(Task.created_at.desc(), Task.id.asc())
        )
        return self._records(result.all())

    async def clear_category(self, category_id: int) -> int:
        """Detach every task from ``category_id`` and return how many were touched."""
        result = await self.session.execute(
            sa.update(Task)
            .where(Task.category_id == category_id)
            .values(category_id=None)
        )
        return int(result.rowcount or 0)

    async def count_by_status(
        self,
        *,
        scope: ColumnElement[bool] | None = None,
    ) -> dict[TaskStatus, int]:
        """Return task counts grouped by status."""
        query = (
            select(Task.status, func.count())
            .where(*_scoped([scope]))
            .group_by(Task.status)
        )
        result = await self.session.execute(query)
        return {TaskStatus(status): int(count) for status, count in result.all()}

    async def count_by_priority(
        self,
        *,
        scope: ColumnElement[bool] | None = None,
    ) -> dict[TaskPriority, int]:
        """Return task counts grouped by priority."""
        query = (
            select(Task.priority, func.count())
            .where(*_scoped([scope]))
            .group_by(Task.priority)
        )
        result = await self.session.execute(query)
        return {TaskPriority(priority): int(count) for priority, count in result.all()}

    async def count_by_category_and_status(
        self,
        scope: ColumnElement[bool],
    ) -> dict[int | None, dict[TaskStatus, int]]:
        """Return per-category status counts; ``None`` collects uncategorized tasks."""
        result = await self.session.execute(
            select(Task.category_id, Task.status, func.count())
            .where(scope)
            .group_by(Task.category_id, Task.status)
        )
        counts: dict[int | None, dict[TaskStatus, int]] = {}
        for category_id, status, count in result.all():
            counts.setdefault(category_id, {})[TaskStatus(status)] = int(count)
        return counts

    async def count_overdue(self, now: datetime, *, scope: ColumnElement[bool] | None = None) -> int:
        query = select(func.count()).select_from(Task).where(*_overdue(now), *_scoped([scope]))
        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def list_overdue(
        self,
        now: datetime,
        *,
        scope: ColumnElement[bool] | None = None,
    ) -> list[TaskRecord]:
        """Return unfinished tasks past their due date, earliest due first."""
        result = await self.session.execute(
            self._with_category()
            .where(*_overdue(now), *_scoped([scope]))
            .order_by(Task.due_date.asc(), Task.id.asc())
        )
        return self._records(result.all())

    async def list_completed_since(
        self,
        since: datetime,
        *,
        scope: ColumnElement[bool] | None = None,
    ) -> list[Task]:
        return await self._scalars(
            select(Task)
            .where(
                Task.status == TaskStatus.COMPLETED,
                Task.completed_at >= since,
                *_scoped([scope]),
            )
            .order_by(Task.completed_at.asc(), Task.id.asc())
        )

    async def list_created_since(
        self,
        since: datetime,
        *,
        scope: ColumnElement[bool] | None = None,
    ) -> list[Task]:
        return await self._scalars(
            select(Task)
            .where(Task.created_at >= since, *_scoped([scope]))
            .order_by(Task.created_at.asc(), Task.id.asc())
        )

    async def list_due_between(
        self,
        start: datetime,
        end: datetime,
        *,
        scope: ColumnElement[bool] | None = None,
    ) -> list[Task]:
        """Return unfinished tasks due in ``[start, end)``."""
        return await self._scalars(
            select(Task)
            .where(
                Task.due_date >= start,
                Task.due_date < end,
                Task.status != TaskStatus.COMPLETED,
                *_scoped([scope]),
            )
            .order_by(Task.due_date.asc(), Task.id.asc())
        )

    async def count_completed_before(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Task)
            .where(Task.status == TaskStatus.COMPLETED, Task.completed_at < cutoff)
        )
        return int(result.scalar_one())

    async def delete_completed_before(self, cutoff: datetime) -> int:
        """Delete completed tasks finished before ``cutoff`` and return the count."""
        result = await self.session.execute(
            sa.delete(Task)
            .where(Task.status == TaskStatus.COMPLETED, Task.completed_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)


__all__ = [
    "CategorySummary",
    "SortOrder",
    "TaskFilters",
    "TaskRecord",
    "TaskRepository",
    "TaskSortField",
]
