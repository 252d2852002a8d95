"""Service layer encapsulating task-related operations."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Mapping

from sqlmodel.ext.asyncio.session import AsyncSession

from ..access import TaskAction, permits, task_access, task_scope, visible_tasks
from ..errors import InvalidReferenceError, NotFoundError, ValidationError
from ..models import Task, TaskPriority, TaskStatus
from ..models.common import as_utc, utcnow
from ..repositories import (
    CategoryRepository,
    SortOrder,
    TaskFilters,
    TaskRecord,
    TaskRepository,
    TaskSortField,
)
from .categories import NOT_FOUND_MESSAGE as CATEGORY_NOT_FOUND_MESSAGE
from .transitions import apply_status, parse_status

logger = logging.getLogger(__name__)

TASK_NOT_FOUND_MESSAGE = "Task not found"
TASK_FORBIDDEN_MESSAGE = "Task not found or insufficient permissions"
INVALID_CATEGORY_MESSAGE = "Invalid category ID"

_UPDATABLE_FIELDS = frozenset(
    {"title", "description", "status", "priority", "due_date", "category_id", "assigned_to"}
)
_NON_NULLABLE_FIELDS = frozenset({"title", "status", "priority"})


class TaskService:
    """High-level business orchestration for ``Task`` entities.

    Each method takes the caller's id and narrows every query with the
    matching predicate from :mod:`tasktracker.access`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = TaskRepository(session)
        self._category_repository = CategoryRepository(session)

    async def _ensure_category(self, caller_id: uuid.UUID, category_id: int | None) -> None:
        if category_id is None:
            return
        category = await self._category_repository.get_for_owner(category_id, caller_id)
        if category is None:
            raise InvalidReferenceError(INVALID_CATEGORY_MESSAGE)

    async def _load_for(
        self,
        caller_id: uuid.UUID,
        task_id: int,
        action: TaskAction,
        missing_message: str = TASK_FORBIDDEN_MESSAGE,
    ) -> Task:
        task = await self._repository.get_in_scope(task_id, visible_tasks(caller_id))
        if task is None or not permits(task_access(caller_id, task), action):
            raise NotFoundError(missing_message)
        return task

    async def _reload(self, task: Task, caller_id: uuid.UUID) -> TaskRecord:
        await self._repository.refresh(task)
        record = await self._repository.get_record(task.id, visible_tasks(caller_id))
        if record is None:
            raise NotFoundError(TASK_NOT_FOUND_MESSAGE)
        return record

    async def list_tasks(
        self,
        caller_id: uuid.UUID,
        *,
        filters: TaskFilters | None = None,
        page: int = 1,
        limit: int = 10,
        sort_by: TaskSortField = TaskSortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> tuple[list[TaskRecord], int]:
        """Return one page of the caller's visible tasks and the total match count."""
        if page < 1:
            raise ValidationError("page must be greater than or equal to 1")
        if not 1 <= limit <= 100:
            raise ValidationError("limit must be between 1 and 100")
        return await self._repository.list_filtered(
            scope=task_scope(caller_id, TaskAction.READ),
            filters=filters,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=(page - 1) * limit,
        )

    async def get_task(self, caller_id: uuid.UUID, task_id: int) -> TaskRecord:
        record = await self._repository.get_record(task_id, task_scope(caller_id, TaskAction.READ))
        if record is None:
            raise NotFoundError(TASK_NOT_FOUND_MESSAGE)
        return record

    async def create_task(
        self,
        caller_id: uuid.UUID,
        *,
        title: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
        category_id: int | None = None,
        assigned_to: uuid.UUID | None = None,
    ) -> TaskRecord:
        """Create a task owned by the caller."""
        await self._ensure_category(caller_id, category_id)
        task = Task(
            title=title,
            description=description,
            priority=priority,
            due_date=as_utc(due_date),
            category_id=category_id,
            created_by=caller_id,
            assigned_to=assigned_to,
        )
        apply_status(task, status)
        await self._repository.add(task)
        await self._session.commit()
        logger.info("Created task %s", task.id, extra={"task_id": task.id})
        return await self._reload(task, caller_id)

    async def update_task(
        self,
        caller_id: uuid.UUID,
        task_id: int,
        changes: Mapping[str, Any],
    ) -> TaskRecord:
        """Apply a partial update; only the creator may edit a task."""
        updates = {key: value for key, value in changes.items() if key in _UPDATABLE_FIELDS}
        if not updates:
            raise ValidationError("At least one field must be provided for update")
        for key in _NON_NULLABLE_FIELDS & updates.keys():
            if updates[key] is None:
                raise ValidationError(f"{key} cannot be null")

        task = await self._load_for(caller_id, task_id, TaskAction.UPDATE, TASK_NOT_FOUND_MESSAGE)
        if "category_id" in updates:
            await self._ensure_category(caller_id, updates["category_id"])

        status = updates.pop("status", None)
        for key, value in updates.items():
            if key == "due_date":
                value = as_utc(value)
            setattr(task, key, value)
        if status is not None:
            apply_status(task, parse_status(status))
        task.updated_at = utcnow()
        await self._session.commit()
        return await self._reload(task, caller_id)

    async def delete_task(self, caller_id: uuid.UUID, task_id: int) -> None:
        task = await self._load_for(caller_id, task_id, TaskAction.DELETE)
        await self._repository.delete(task)
        await self._session.commit()
        logger.info("Deleted task %s", task_id, extra={"task_id": task_id})

    async def set_status(self, caller_id: uuid.UUID, task_id: int, status: object) -> TaskRecord:
        """Move a task to ``status``; creators and assignees may do this."""
        new_status = parse_status(status)
        task = await self._load_for(caller_id, task_id, TaskAction.CHANGE_STATUS)
        apply_status(task, new_status)
        task.updated_at = utcnow()
        await self._session.commit()
        return await self._reload(task, caller_id)

    async def assign_task(
        self,
        caller_id: uuid.UUID,
        task_id: int,
        assignee_id: uuid.UUID | None,
    ) -> TaskRecord:
        """Assign or unassign a task.

        The assignee is not checked against known users.
        """
        task = await self._load_for(caller_id, task_id, TaskAction.ASSIGN)
        task.assigned_to = assignee_id
        task.updated_at = utcnow()
        await self._session.commit()
        logger.info(
            "Assigned task %s",
            task_id,
            extra={"task_id": task_id, "assigned_to": str(assignee_id) if assignee_id else None},
        )
        return await self._reload(task, caller_id)

    async def list_category_tasks(self, caller_id: uuid.UUID, category_id: int) -> list[TaskRecord]:
        """Return visible tasks filed under one of the caller's categories."""
        category = await self._category_repository.get_for_owner(category_id, caller_id)
        if category is None:
            raise NotFoundError(CATEGORY_NOT_FOUND_MESSAGE)
        return await self._repository.list_for_category(
            category_id,
            task_scope(caller_id, TaskAction.READ),
        )


__all__ = [
    "INVALID_CATEGORY_MESSAGE",
    "TASK_FORBIDDEN_MESSAGE",
    "TASK_NOT_FOUND_MESSAGE",
    "TaskService",
]
