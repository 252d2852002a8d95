"""Task domain models built with SQLModel."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field

from .common import TimestampMixin, UTCDateTime, enum_values


class TaskStatus(str, Enum):
    """Enumeration of possible task states."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Task priorities, declared from lowest to highest rank."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
}


class Task(TimestampMixin, table=True):
    """Persistent task model."""

    __tablename__ = "tasks"
    __table_args__ = (
        sa.CheckConstraint("length(title) > 0", name="ck_tasks_title_length"),
        sa.CheckConstraint(
            "(status = 'completed' AND completed_at IS NOT NULL)"
            " OR (status <> 'completed' AND completed_at IS NULL)",
            name="ck_tasks_completed_at_matches_status",
        ),
        sa.Index("ix_tasks_created_by", "created_by"),
        sa.Index("ix_tasks_assigned_to", "assigned_to"),
        sa.Index("ix_tasks_category_id", "category_id"),
        sa.Index("ix_tasks_due_date", "due_date"),
    )

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(
        max_length=200,
        sa_column=sa.Column(sa.String(length=200), nullable=False),
    )
    description: str | None = Field(
        default=None,
        sa_column=sa.Column(sa.String(length=1000), nullable=True),
    )
    status: TaskStatus = Field(
        default=TaskStatus.TODO,
        sa_column=sa.Column(
            sa.Enum(
                TaskStatus,
                name="task_status",
                native_enum=False,
                validate_strings=True,
                values_callable=enum_values,
            ),
            nullable=False,
            server_default=TaskStatus.TODO.value,
        ),
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=sa.Column(
            sa.Enum(
                TaskPriority,
                name="task_priority",
                native_enum=False,
                validate_strings=True,
                values_callable=enum_values,
            ),
            nullable=False,
            server_default=TaskPriority.MEDIUM.value,
        ),
    )
    due_date: datetime | None = Field(
        default=None,
        sa_column=sa.Column(UTCDateTime(), nullable=True),
    )
    completed_at: datetime | None = Field(
        default=None,
        sa_column=sa.Column(UTCDateTime(), nullable=True),
    )
    category_id: int | None = Field(
        default=None,
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    created_by: uuid.UUID = Field(sa_column=sa.Column(sa.Uuid(), nullable=False))
    assigned_to: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid(), nullable=True),
    )


__all__ = ["PRIORITY_RANK", "Task", "TaskPriority", "TaskStatus"]
