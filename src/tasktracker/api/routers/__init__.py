"""Router registrations for the task tracker API."""

from __future__ import annotations

from fastapi import APIRouter

from .analytics import router as analytics_router
from .auth import router as auth_router
from .categories import router as categories_router
from .health import router as health_router
from .tasks import router as tasks_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(tasks_router)
api_router.include_router(categories_router)
api_router.include_router(analytics_router)

__all__ = [
    "analytics_router",
    "api_router",
    "auth_router",
    "categories_router",
    "health_router",
    "tasks_router",
]
