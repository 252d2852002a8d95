"""Database repositories for encapsulating persistence logic."""

from __future__ import annotations

from .categories import CategoryRepository
from .profiles import ProfileRepository
from .tasks import (
    CategorySummary,
    SortOrder,
    TaskFilters,
    TaskRecord,
    TaskRepository,
    TaskSortField,
)

__all__ = [
    "CategoryRepository",
    "CategorySummary",
    "ProfileRepository",
    "SortOrder",
    "TaskFilters",
    "TaskRecord",
    "TaskRepository",
    "TaskSortField",
]
