"""
Database Configuration

Structures are kept as whole documents: one row per structure with the
floor/flat/component tree in a JSON column, written in a single statement.
The only other table is the per-location sequence counter.
"""

import logging
import time

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from app.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """Pool sizing only applies to PostgreSQL; SQLite (tests, local runs) uses the dialect default."""
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


def install_query_timing(sync_engine: Engine, threshold_ms: int) -> None:
    """Log statements slower than ``threshold_ms`` (document writes are the usual suspects)."""

    def before_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info["query_start_time"] = time.monotonic()

    def after_execute(conn, cursor, statement, parameters, context, executemany):
        start = conn.info.pop("query_start_time", None)
        if start is None:
            return
        duration_ms = (time.monotonic() - start) * 1000
        if duration_ms < threshold_ms:
            return
        truncated = statement[:200] + ("..." if len(statement) > 200 else "")
        logger.warning("Slow query (%.0fms): %s", duration_ms, truncated)

    event.listen(sync_engine, "before_cursor_execute", before_execute)
    event.listen(sync_engine, "after_cursor_execute", after_execute)


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.sqlalchemy_echo,
    **_engine_options(settings.DATABASE_URL),
)
install_query_timing(engine.sync_engine, settings.SLOW_QUERY_THRESHOLD_MS)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for the structure tables."""


async def get_db() -> AsyncSession:
    """Request-scoped session; structure_service commits each document save itself."""
    async with async_session_maker() as session:
        yield session


async def init_db():
    """Create any missing tables (alembic owns real migrations)."""
    import app.models  # noqa: F401  registers the tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db():
    await engine.dispose()
