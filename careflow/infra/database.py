"""
Database Engine and Sessions

The API process and the one-shot reminder CLI share the module-level
engine and session factory below. Tests build their own engine and wrap
it with create_session_factory().
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from careflow.config import settings
from careflow.models.database import Base

logger = logging.getLogger(__name__)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Async engine without a connection pool.

    Each session opens its own connection and closes it when done.
    """
    return create_async_engine(database_url, echo=echo, poolclass=NullPool)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the reminder repository.

    Objects stay usable after commit; the repository converts them to
    plain records before the session closes anyway.
    """
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine(settings.database_url, echo=settings.debug)
async_session_factory = create_session_factory(engine)


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """
    Create missing tables.

    WARNING: development only. Production schemas are managed by migrations.
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine. Called on shutdown and at the end of CLI runs."""
    await engine.dispose()


async def check_db_health() -> bool:
    """
    Check database connectivity for the readiness probe.

    Returns:
        bool: True if the database answers a trivial query
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False
    return True
