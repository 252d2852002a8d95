"""Read-only analytics over the caller's visible tasks."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from ...deps import CurrentIdentityDependency, DatabaseSessionDependency
from ...schemas.analytics import (
    CategoryStatsRead,
    CompletionRatesRead,
    OverdueReportRead,
    OverviewRead,
    ProductivityRead,
)
from ...schemas.envelope import ApiResponse
from ...services import AnalyticsService
from ...services.analytics import (
    DEFAULT_COMPLETION_PERIOD,
    DEFAULT_PRODUCTIVITY_PERIOD,
    MAX_PERIOD_DAYS,
    MIN_PERIOD_DAYS,
)

router = APIRouter(prefix="/analytics", tags=["analytics"])


PeriodQuery = Annotated[
    int,
    Query(ge=MIN_PERIOD_DAYS, le=MAX_PERIOD_DAYS, description="Window length in days."),
]


@router.get("/overview", response_model=ApiResponse[OverviewRead], summary="Task totals and completion rate")
async def read_overview(
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[OverviewRead]:
    stats = await AnalyticsService(session).overview(identity.id)
    return ApiResponse(data=OverviewRead.model_validate(stats))


@router.get(
    "/completion-rates",
    response_model=ApiResponse[CompletionRatesRead],
    summary="Daily completions over a window",
)
async def read_completion_rates(
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
    period: PeriodQuery = DEFAULT_COMPLETION_PERIOD,
) -> ApiResponse[CompletionRatesRead]:
    rates = await AnalyticsService(session).completion_rates(identity.id, period=period)
    return ApiResponse(data=CompletionRatesRead.model_validate(rates))


@router.get(
    "/overdue-tasks",
    response_model=ApiResponse[OverdueReportRead],
    summary="Unfinished tasks past their due date",
)
async def read_overdue_tasks(
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[OverdueReportRead]:
    report = await AnalyticsService(session).overdue_tasks(identity.id)
    return ApiResponse(data=OverdueReportRead.model_validate(report))


@router.get(
    "/productivity",
    response_model=ApiResponse[ProductivityRead],
    summary="Creation and completion figures over a window",
)
async def read_productivity(
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
    period: PeriodQuery = DEFAULT_PRODUCTIVITY_PERIOD,
) -> ApiResponse[ProductivityRead]:
    stats = await AnalyticsService(session).productivity(identity.id, period=period)
    return ApiResponse(data=ProductivityRead.model_validate(stats))


@router.get(
    "/categories",
    response_model=ApiResponse[list[CategoryStatsRead]],
    summary="Per-category status rollup",
)
async def read_category_stats(
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[list[CategoryStatsRead]]:
    stats = await AnalyticsService(session).categories(identity.id)
    return ApiResponse(data=[CategoryStatsRead.model_validate(item) for item in stats])
