import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError

from storydash.database import async_session
from storydash.schemas import (
    EarningsPoint,
    EarningsReport,
    EngagementPoint,
    OverviewResult,
    ReadsPoint,
    StatsResult,
    TopContentItem,
    UserStory,
)
from storydash.services import DashboardService

logger = logging.getLogger(__name__)

router = APIRouter()

TIME_RANGE_DESCRIPTION = "7days, 30days, 90days, year or all (unknown values mean 30days)"
CHART_TIME_RANGE_DESCRIPTION = "Accepted for consistency; charts always cover the trailing 7 months"


def get_dashboard_service() -> DashboardService:
    return DashboardService(async_session)


def fetch_failed(what: str, user_id: str, error: SQLAlchemyError) -> HTTPException:
    logger.error(f"Error fetching {what} for user {user_id}: {error}")
    return HTTPException(status_code=500, detail=f"Failed to fetch {what}")


@router.get("/{user_id}/stats", response_model=StatsResult)
async def dashboard_stats(
    user_id: str,
    time_range: str = Query("30days", description=TIME_RANGE_DESCRIPTION),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get totals and period-over-period changes."""
    try:
        return await service.get_stats(user_id, time_range)
    except SQLAlchemyError as e:
        raise fetch_failed("dashboard stats", user_id, e)


@router.get("/{user_id}/overview", response_model=OverviewResult)
async def dashboard_overview(
    user_id: str,
    time_range: str = Query("30days", description=TIME_RANGE_DESCRIPTION),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get stats, top stories and the reads/engagement charts in one payload."""
    try:
        return await service.get_overview(user_id, time_range)
    except SQLAlchemyError as e:
        raise fetch_failed("dashboard overview", user_id, e)


@router.get("/{user_id}/stories", response_model=list[TopContentItem])
async def top_stories(
    user_id: str,
    limit: int = Query(5, ge=1, le=100),
    sort_by: str = Query("reads", description="reads, likes, comments or earnings"),
    time_range: str = Query("30days", description=TIME_RANGE_DESCRIPTION),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get the user's top stories ranked by a windowed metric."""
    try:
        return await service.get_top_content(user_id, limit, sort_by, time_range)
    except SQLAlchemyError as e:
        raise fetch_failed("top stories", user_id, e)


@router.get("/{user_id}/user-stories", response_model=list[UserStory])
async def user_stories(
    user_id: str,
    time_range: str = Query("all", description=TIME_RANGE_DESCRIPTION),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get every story of the user with windowed metrics."""
    try:
        return await service.get_user_stories(user_id, time_range)
    except SQLAlchemyError as e:
        raise fetch_failed("user stories", user_id, e)


@router.get("/{user_id}/charts/reads", response_model=list[ReadsPoint])
async def reads_chart(
    user_id: str,
    time_range: str = Query("30days", description=CHART_TIME_RANGE_DESCRIPTION),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get combined story and chapter reads per month."""
    try:
        return await service.get_reads_chart_data(user_id, time_range)
    except SQLAlchemyError as e:
        raise fetch_failed("reads chart data", user_id, e)


@router.get("/{user_id}/charts/engagement", response_model=list[EngagementPoint])
async def engagement_chart(
    user_id: str,
    time_range: str = Query("30days", description=CHART_TIME_RANGE_DESCRIPTION),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get likes and comments per month."""
    try:
        return await service.get_engagement_chart_data(user_id, time_range)
    except SQLAlchemyError as e:
        raise fetch_failed("engagement chart data", user_id, e)


@router.get("/{user_id}/charts/earnings", response_model=list[EarningsPoint])
async def earnings_chart(
    user_id: str,
    time_range: str = Query("30days", description=CHART_TIME_RANGE_DESCRIPTION),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get collected donations per month."""
    try:
        return await service.get_earnings_chart_data(user_id, time_range)
    except SQLAlchemyError as e:
        raise fetch_failed("earnings chart data", user_id, e)


@router.get("/{user_id}/earnings", response_model=EarningsReport)
async def earnings(
    user_id: str,
    time_range: str = Query("30days", description=TIME_RANGE_DESCRIPTION),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get earnings totals, per-story breakdown and paginated donations."""
    try:
        return await service.get_earnings_data(user_id, time_range, page, page_size)
    except SQLAlchemyError as e:
        raise fetch_failed("earnings data", user_id, e)
