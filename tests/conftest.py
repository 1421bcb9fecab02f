from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import storydash.models  # noqa: F401
from storydash.database import Base
from storydash.services import DashboardService, ViewService

# Fixed reference instant so month and window boundaries are deterministic
NOW = datetime(2026, 10, 18, 12, 0, 0)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh file-backed SQLite database with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'storydash.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def view_service(session_factory) -> ViewService:
    return ViewService(session_factory)


@pytest.fixture
def dashboard(session_factory) -> DashboardService:
    return DashboardService(session_factory)


@pytest.fixture
def select_statements(engine):
    """Records every SELECT sent to the database."""
    executed = []

    def record(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("SELECT"):
            executed.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", record)
    yield executed
    event.remove(engine.sync_engine, "before_cursor_execute", record)


async def seed(session, *objects):
    """Persist ORM objects and commit."""
    session.add_all(objects)
    await session.commit()
