"""Ownership and assignment rules for tasks and categories.

Every task query is filtered through one of the predicates below, so a record
the caller may not touch is indistinguishable from a record that does not
exist.
"""

from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import ColumnElement, or_

from .models import Category, Task


class AccessLevel(str, Enum):
    """Capability a caller holds over a record."""

    NO_ACCESS = "no_access"
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


class TaskAction(str, Enum):
    """Operations that can be attempted against a task."""

    READ = "read"
    CHANGE_STATUS = "change_status"
    UPDATE = "update"
    ASSIGN = "assign"
    DELETE = "delete"


_ASSIGNEE_ACTIONS = frozenset({TaskAction.READ, TaskAction.CHANGE_STATUS})


def task_access(caller_id: uuid.UUID, task: Task) -> AccessLevel:
    """Return the caller's capability over ``task``.

    Assignees get ``READ_ONLY`` which still includes changing the status.
    """

    if task.created_by == caller_id:
        return AccessLevel.READ_WRITE
    if task.assigned_to is not None and task.assigned_to == caller_id:
        return AccessLevel.READ_ONLY
    return AccessLevel.NO_ACCESS


def category_access(caller_id: uuid.UUID, category: Category) -> AccessLevel:
    if category.owner_id == caller_id:
        return AccessLevel.READ_WRITE
    return AccessLevel.NO_ACCESS


def permits(level: AccessLevel, action: TaskAction) -> bool:
    """Return whether ``level`` allows ``action`` on a task."""

    if level is AccessLevel.READ_WRITE:
        return True
    if level is AccessLevel.READ_ONLY:
        return action in _ASSIGNEE_ACTIONS
    return False


def visible_tasks(caller_id: uuid.UUID) -> ColumnElement[bool]:
    """Tasks the caller created or is assigned to."""

    return or_(Task.created_by == caller_id, Task.assigned_to == caller_id)


def created_tasks(caller_id: uuid.UUID) -> ColumnElement[bool]:
    """Tasks the caller created."""

    return Task.created_by == caller_id


def task_scope(caller_id: uuid.UUID, action: TaskAction) -> ColumnElement[bool]:
    """Return the SQL predicate selecting tasks on which ``action`` is allowed."""

    if action in _ASSIGNEE_ACTIONS:
        return visible_tasks(caller_id)
    return created_tasks(caller_id)


def category_scope(caller_id: uuid.UUID) -> ColumnElement[bool]:
    return Category.owner_id == caller_id


__all__ = [
    "AccessLevel",
    "TaskAction",
    "category_access",
    "category_scope",
    "created_tasks",
    "permits",
    "task_access",
    "task_scope",
    "visible_tasks",
]
