"""Async SQLAlchemy engine for Postgres (asyncpg).

``engine`` and ``async_session_factory`` exist only when DATABASE_URL is
set.  Without it both are None and repos.stores hands out the in-memory
repositories instead.  Sessions are opened per request by
``repos.stores.get_stores``, which owns commit and rollback.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from vcanchor.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def sync_database_url() -> str | None:
    """DATABASE_URL with the asyncpg driver swapped out, for alembic."""
    if not SETTINGS.database_url:
        return None
    return SETTINGS.database_url.replace("+asyncpg", "+psycopg2", 1)


def _create_engine(url: str) -> AsyncEngine:
    return create_async_engine(
        url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        # Ledger writes hold a session open while waiting for a receipt.
        pool_pre_ping=True,
    )


engine: AsyncEngine | None = (
    _create_engine(SETTINGS.database_url) if SETTINGS.database_url else None
)
async_session_factory = (
    async_sessionmaker(engine, expire_on_commit=False) if engine is not None else None
)


async def ping_database() -> bool:
    """Readiness probe helper.  True when no database is configured."""
    if engine is None:
        return True
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("No DATABASE_URL configured - using in-memory repositories")
        yield
        return

    logger.info("Database engine ready: %s", engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed")
