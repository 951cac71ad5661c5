from __future__ import annotations

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # Rows are handed out as snapshots after commit, keep their loaded state.
    return async_sessionmaker(engine, expire_on_commit=False)


async def wait_for_database(engine: AsyncEngine, max_attempts: int, sleep_seconds: float = 1) -> None:
    """
    Retry a trivial query until the engine can open a connection,
    giving up after max_attempts. Startup calls this before create_tables
    since the database may come up after the app.
    """
    last_err: Exception | None = None
    for attempt in range(max_attempts):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return
        except Exception as e:
            last_err = e
            logger.warning("database not reachable (attempt %d/%d): %s", attempt + 1, max_attempts, e)
            await asyncio.sleep(sleep_seconds)

    raise RuntimeError(f"Database not reachable after {max_attempts} attempts") from last_err


async def create_tables(engine: AsyncEngine) -> None:
    # Import registers the mapped tables on Base.metadata.
    from app import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
