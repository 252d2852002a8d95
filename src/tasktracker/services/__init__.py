"""Service layer orchestrating repositories and domain rules."""

from __future__ import annotations

from .analytics import AnalyticsService
from .auth import AuthService
from .categories import CategoryService
from .profiles import ProfileService
from .tasks import TaskService

__all__ = [
    "AnalyticsService",
    "AuthService",
    "CategoryService",
    "ProfileService",
    "TaskService",
]
