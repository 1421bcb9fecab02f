import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError

from storydash.database import async_session
from storydash.services import ViewService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_view_service() -> ViewService:
    return ViewService(async_session)


@router.get("/most-viewed", response_model=list[str])
async def most_viewed_stories(
    limit: int = Query(10, ge=1, le=100),
    time_range: str | None = Query(None, description="7days, 30days, 90days, year or all"),
    service: ViewService = Depends(get_view_service),
):
    """Get ids of published stories ranked by combined reads."""
    try:
        return await service.get_most_viewed_stories(limit, time_range)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching most viewed stories: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch most viewed stories")
