"""Domain models for the task tracker."""

from __future__ import annotations

from .category import DEFAULT_CATEGORY_COLOR, Category
from .common import TimestampMixin, utcnow
from .profile import Profile, ProfileRole
from .task import PRIORITY_RANK, Task, TaskPriority, TaskStatus

__all__ = [
    "Category",
    "DEFAULT_CATEGORY_COLOR",
    "PRIORITY_RANK",
    "Profile",
    "ProfileRole",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TimestampMixin",
    "utcnow",
]
