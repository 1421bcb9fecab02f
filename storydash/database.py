from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from storydash.config import settings

engine = create_async_engine(settings.database_url, echo=settings.db_echo)

# Services open one short-lived session per query so fetches can run concurrently
async_session = async_sessionmaker(engine, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    """Create tables that do not exist yet (local development only)."""
    # Import models so they are registered on the metadata
    import storydash.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
