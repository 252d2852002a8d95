"""Task-related Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models import TaskPriority, TaskStatus
from ..repositories import SortOrder, TaskFilters, TaskRecord, TaskSortField

TASK_READ_EXAMPLE = {
    "id": 1,
    "title": "Draft product documentation",
    "description": "Outline sections for the public API guide.",
    "status": TaskStatus.TODO.value,
    "priority": TaskPriority.HIGH.value,
    "due_date": "2024-01-05T17:00:00Z",
    "completed_at": None,
    "category_id": 3,
    "created_by": "2f1c7a52-5a86-4c0b-9f51-54d7d7c9a1b0",
    "assigned_to": None,
    "created_at": "2024-01-01T12:00:00Z",
    "updated_at": "2024-01-02T08:30:00Z",
    "category": {"name": "Work", "color": "#6366f1"},
}


class TaskCreate(BaseModel):
    """Payload for creating a new task."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "title": "Draft product documentation",
                "priority": TaskPriority.HIGH.value,
                "due_date": "2024-01-05T17:00:00Z",
            }
        },
    )

    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    status: TaskStatus = Field(default=TaskStatus.TODO)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    due_date: datetime | None = None
    category_id: int | None = Field(default=None, ge=1)
    assigned_to: uuid.UUID | None = None


class TaskUpdate(BaseModel):
    """Payload for partially updating an existing task."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "title": "Update API documentation",
                "status": TaskStatus.IN_PROGRESS.value,
            }
        },
    )

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    category_id: int | None = Field(default=None, ge=1)
    assigned_to: uuid.UUID | None = None

    @model_validator(mode="after")
    def _ensure_payload_valid(self) -> "TaskUpdate":
        provided = self.model_dump(exclude_unset=True)
        if not provided:
            raise ValueError("At least one field must be provided for update.")
        for name in ("title", "status", "priority"):
            if name in provided and provided[name] is None:
                raise ValueError(f"{name} cannot be null.")
        return self


class TaskStatusUpdate(BaseModel):
    """Body of the status endpoint; the value is checked by the service."""

    status: str | None = None


class TaskAssign(BaseModel):
    """Body of the assign endpoint; ``null`` unassigns."""

    assigned_to: uuid.UUID | None = None


class TaskListQuery(BaseModel):
    """Filters, pagination and ordering accepted by ``GET /tasks``."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    category_id: int | None = Field(default=None, ge=1)
    assigned_to: uuid.UUID | None = None
    due_before: datetime | None = None
    due_after: datetime | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: TaskSortField = TaskSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    def to_filters(self) -> TaskFilters:
        return TaskFilters(
            status=self.status,
            priority=self.priority,
            category_id=self.category_id,
            assigned_to=self.assigned_to,
            due_before=self.due_before,
            due_after=self.due_after,
        )


class TaskCategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    color: str


class TaskRead(BaseModel):
    """Public representation of a task."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={"example": TASK_READ_EXAMPLE},
    )

    id: int
    title: str
    description: str | None = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    completed_at: datetime | None = None
    category_id: int | None = None
    created_by: uuid.UUID
    assigned_to: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    category: TaskCategoryRead | None = None

    @classmethod
    def from_record(cls, record: TaskRecord) -> "TaskRead":
        """Build the read model from a task and its joined category summary."""
        payload = cls.model_validate(record.task)
        if record.category is not None:
            payload.category = TaskCategoryRead.model_validate(record.category)
        return payload


__all__ = [
    "TaskAssign",
    "TaskCategoryRead",
    "TaskCreate",
    "TaskListQuery",
    "TaskRead",
    "TaskStatusUpdate",
    "TaskUpdate",
]
