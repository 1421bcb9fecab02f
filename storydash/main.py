import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storydash.config import settings
from storydash.database import engine, init_db
from storydash.routes import api_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting dashboard analytics service...")
    if settings.debug:
        await init_db()
    yield
    await engine.dispose()
    logger.info("Dashboard analytics service stopped")


app = FastAPI(
    title=settings.api_title,
    description="""
## Storydash - Author Dashboard API

Read-only analytics over an author's stories.

### Features
- **Stats**: Reads, likes, comments, followers and earnings with period-over-period change
- **Stories**: Top stories ranked by reads, likes, comments or earnings
- **Charts**: Monthly reads, engagement and earnings for the trailing seven months
- **Earnings**: Lifetime and monthly earnings with paginated donation history
    """,
    version=settings.api_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "dashboard"}
