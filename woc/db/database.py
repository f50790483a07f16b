from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from woc.core.config import settings


def _engine_options(url: str) -> dict[str, Any]:
    """Pool sizing only applies to server databases; SQLite uses its own pool."""
    options: dict[str, Any] = {"echo": settings.debug}
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
        options["pool_pre_ping"] = True
    return options


# =============================================================================
# Async Engine & Session (for FastAPI)
# =============================================================================
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def create_worker_session_maker() -> async_sessionmaker[AsyncSession]:
    """Create a fresh async engine and session maker for worker tasks.

    Celery workers run each task in a new event loop, so they cannot share
    the engine created at import time.
    """
    worker_engine = create_async_engine(
        settings.database_url,
        **_engine_options(settings.database_url),
    )
    return async_sessionmaker(
        worker_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Initialize database tables."""
    from woc.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
