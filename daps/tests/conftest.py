"""
Shared pytest configuration for Daps tests.

Service tests run against an in-memory SQLite database (aiosqlite) so they
need no external services. Route tests swap the app's engine for a
file-backed SQLite database created inside the TestClient's event loop.
Email and Redis are disabled; provider calls are faked per test.
"""

import os

# Must be set before any daps module reads its configuration
os.environ["ENV"] = "test"
os.environ["ENABLE_EMAIL"] = "false"
os.environ["ENABLE_REDIS"] = "false"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool, NullPool  # noqa: E402

from daps.database import db  # noqa: E402
from daps.database.db import Base  # noqa: E402
from daps.services import auth_service, schedule_service  # noqa: E402


@pytest.fixture(autouse=True)
def reset_refresh_locks():
    """asyncio locks must not leak between tests (each test has its own loop)."""
    schedule_service._refresh_locks.clear()
    yield
    schedule_service._refresh_locks.clear()


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """A session on the in-memory database."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def app_database(tmp_path, monkeypatch):
    """
    Point the app at a throwaway SQLite file.

    The engine is created here but only connects inside the TestClient's
    event loop; the app lifespan creates the tables.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'daps_test.db'}", poolclass=NullPool)
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(
        db,
        "AsyncSessionLocal",
        async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False),
    )
    return engine


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {auth_service.ADMIN_TOKEN}"}
