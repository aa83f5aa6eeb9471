"""
Database engine and request-scoped sessions.

Production runs on PostgreSQL through asyncpg. SQLite URLs (used by the test
suite) take no pool sizing.
"""

from collections.abc import AsyncGenerator
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings, get_settings

settings = get_settings()
log = structlog.get_logger()


def _engine_options(config: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": config.debug, "future": True}
    if make_url(config.database_url).get_backend_name() != "sqlite":
        options.update(
            pool_pre_ping=True,
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
        )
    return options


def build_engine(config: Settings) -> AsyncEngine:
    return create_async_engine(config.database_url, **_engine_options(config))


engine = build_engine(settings)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def database_ready(session: AsyncSession) -> bool:
    """Round-trip a trivial query; False when the store cannot answer."""
    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        await session.rollback()
        log.warning("database.unavailable", error=repr(exc))
        return False
    return True
