"""Database session management."""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from planboard.config import get_settings


@lru_cache
def get_engine() -> AsyncEngine | None:
    """Create the async engine, or None when no database is configured."""
    settings = get_settings()
    if not settings.database_url:
        return None

    url = make_url(settings.database_url)
    options: dict = {"pool_pre_ping": True, "echo": settings.debug}
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
        )
    return create_async_engine(url, **options)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession] | None:
    """Session factory bound to the configured engine."""
    engine = get_engine()
    if engine is None:
        return None
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db() -> None:
    """Verify database connectivity at startup."""
    engine = get_engine()
    if engine is None:
        return
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Close database connection pool."""
    engine = get_engine()
    if engine is not None:
        await engine.dispose()


async def get_db_session() -> AsyncGenerator[AsyncSession | None, None]:
    """Get database session for dependency injection.

    Yields None when no database is configured so services can degrade.
    """
    factory = get_session_factory()
    if factory is None:
        yield None
        return

    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type alias for dependency injection
DBSession = Annotated[AsyncSession | None, Depends(get_db_session)]
