"""
Alembic migration environment for the Daps schema.

    alembic -c daps/alembic.ini upgrade head
    alembic -c daps/alembic.ini -x url=sqlite+aiosqlite:///daps.db upgrade head

The target database is DATABASE_URL unless overridden with `-x url=...`.
"""

from logging.config import fileConfig
import asyncio
import logging
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from daps.database.db import Base, DATABASE_URL
from daps.database import models  # noqa: F401

logger = logging.getLogger(__name__)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _target_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("url") or DATABASE_URL


def _redacted(url: str) -> str:
    """Strip credentials before a URL reaches the logs."""
    return url.split("@", 1)[1] if "@" in url else url


def _configure(**kwargs) -> None:
    url = _target_url()
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without a live connection."""
    _configure(url=_target_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    settings = config.get_section(config.config_ini_section) or {}
    settings["sqlalchemy.url"] = _target_url()
    connectable = async_engine_from_config(settings, prefix="sqlalchemy.", poolclass=pool.NullPool)

    try:
        async with connectable.connect() as connection:
            await connection.run_sync(_migrate)
        logger.info("Schema is at head")
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        raise
    finally:
        await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    logger.info(f"Migrating {_redacted(_target_url())}")
    asyncio.run(run_async_migrations())
