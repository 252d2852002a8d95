"""Entry point for the task tracker FastAPI application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import api_router, health_router
from .core.config import Settings, get_settings
from .core.identity import GoTrueIdentityProvider
from .core.jobs import close_job_connection
from .core.logging import configure_logging
from .core.middleware import CorrelationIdMiddleware, SecurityHeadersMiddleware
from .deps import SettingsDependency
from .errors import register_exception_handlers
from .jobs import build_scheduler
from .schemas.system import RootResponse

logger = logging.getLogger(__name__)


def _normalise_prefix(raw_prefix: str) -> str:
    router_prefix = raw_prefix.strip()
    if router_prefix and not router_prefix.startswith("/"):
        router_prefix = f"/{router_prefix}"
    router_prefix = router_prefix.rstrip("/")
    return "" if router_prefix == "/" else router_prefix


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    settings: Settings = application.state.settings
    scheduler = application.state.scheduler
    if settings.scheduler_enabled:
        scheduler.start()
    else:
        logger.info("Scheduler disabled for environment %s", settings.environment)
    try:
        yield
    finally:
        await scheduler.stop()
        await application.state.identity_provider.aclose()
        close_job_connection()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Instantiate and configure the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings)

    router_prefix = _normalise_prefix(settings.api_prefix)
    openapi_url = "/openapi.json" if not router_prefix else f"{router_prefix}/openapi.json"

    application = FastAPI(
        title=settings.project_name,
        version=settings.version,
        summary="Multi-tenant task tracking API.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url=openapi_url,
        lifespan=_lifespan,
    )

    application.state.settings = settings
    application.state.identity_provider = GoTrueIdentityProvider(settings)
    application.state.scheduler = build_scheduler(settings)

    application.add_middleware(CorrelationIdMiddleware)
    if settings.security_headers_enabled:
        application.add_middleware(SecurityHeadersMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    if router_prefix:
        application.include_router(api_router, prefix=router_prefix)
    else:
        application.include_router(api_router)
    application.include_router(health_router)

    @application.get("/", response_model=RootResponse, summary="Service metadata")
    async def read_root(app_settings: SettingsDependency) -> RootResponse:
        """Expose minimal service metadata for API clients."""

        return RootResponse(
            name=app_settings.project_name,
            environment=app_settings.environment,
            version=app_settings.version,
            api_prefix=router_prefix or "/",
        )

    register_exception_handlers(application)
    return application


app = create_app()


def run() -> None:
    """Convenience entry point for ``tasktracker-api``."""

    settings: Settings = get_settings()
    uvicorn.run(
        "tasktracker.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.reload,
        log_config=None,
    )
