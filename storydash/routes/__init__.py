from fastapi import APIRouter

from storydash.routes import dashboard, stories

api_router = APIRouter()

api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(stories.router, prefix="/stories", tags=["Stories"])
