"""Dashboard statistics endpoints."""

from typing import Literal

from fastapi import APIRouter, Query

from devstack.auth import CurrentUser
from devstack.database import DbSession
from devstack.schemas.analytics import AnalyticsSummary, DashboardStats, DetailedStats
from devstack.schemas.responses import SuccessResponse
from devstack.services import stats_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=SuccessResponse[DashboardStats], summary="Dashboard overview")
async def dashboard_stats(db: DbSession, user: CurrentUser) -> SuccessResponse[DashboardStats]:
    """Totals, this month's views and clicks, top project and recent activity."""
    return SuccessResponse(data=await stats_service.dashboard_stats(db, user))


@router.get(
    "/analytics",
    response_model=SuccessResponse[AnalyticsSummary | DetailedStats],
    summary="Analytics summary or detailed project stats",
)
async def dashboard_analytics(
    db: DbSession,
    user: CurrentUser,
    days: int = Query(30, ge=1, le=365),
    view: Literal["summary", "detailed"] = Query("summary", alias="type"),
) -> SuccessResponse[AnalyticsSummary | DetailedStats]:
    if view == "detailed":
        return SuccessResponse(data=await stats_service.detailed_stats(db, user))
    return SuccessResponse(data=await stats_service.analytics_summary(db, user, days))
