"""Async SQLAlchemy engine and session management."""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from unisearch.common.config import get_settings


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Return a cached async engine (created on first call)."""
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=False,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return a cached session factory (created on first call)."""
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


def reset_database() -> None:
    """Clear cached engine and session factory so they are re-created on next use."""
    get_engine.cache_clear()
    get_session_factory.cache_clear()


async def dispose_engine() -> None:
    """Close pooled connections held by the cached engine, if one was created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
    reset_database()
