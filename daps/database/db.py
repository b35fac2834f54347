"""
Async database engine and session plumbing for Daps.

Production runs on PostgreSQL via asyncpg. A `sqlite+aiosqlite://` URL is also
accepted for local development and the test-suite.
"""

import os
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine
)
from sqlalchemy.orm import DeclarativeBase
from dotenv import load_dotenv

load_dotenv()


def _default_url() -> str:
    user = os.getenv("POSTGRES_USER", "daps")
    password = os.getenv("POSTGRES_PASSWORD", "daps")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    name = os.getenv("POSTGRES_DB", "daps")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"


DATABASE_URL = os.getenv("DATABASE_URL") or _default_url()


def _engine_options(url: str) -> dict:
    """Engine kwargs for the given URL; SQLite has no sized connection pool."""
    options = {"echo": os.getenv("SQL_ECHO", "false").lower() == "true"}
    if url.startswith("sqlite"):
        return options
    options.update(
        pool_pre_ping=True,
        pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
    )
    return options


engine: AsyncEngine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Instances stay readable after commit; services build response dicts post-commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by every Daps table."""


# Registers the tables on Base.metadata; must follow the Base definition
from daps.database import models  # noqa: F401, E402


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    The session commits when the route returns and rolls back if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_database():
    """Create any missing tables. Alembic owns schema changes after that."""
    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: Base.metadata.create_all(sync_conn, checkfirst=True))


async def dispose_engine():
    """Close all pooled connections (called on shutdown)."""
    await engine.dispose()
