"""Backend-availability guards for service methods.

Services hold ``self.db``, an ``AsyncSession`` or None when no database is
configured. Reads and deletes degrade to an empty result; creates raise
``BackendUnavailableError``. Either way the session is rolled back after a
connection failure so later statements in the same request can run.
"""

from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from sqlalchemy.exc import InterfaceError, OperationalError, PendingRollbackError
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.exceptions import BackendUnavailableError

logger = structlog.get_logger()

T = TypeVar("T")

# Connection-level failures; query/programming errors still propagate.
# PendingRollbackError is what a session left by a dropped connection raises.
BACKEND_ERRORS = (OperationalError, InterfaceError, PendingRollbackError)


async def reset_session(db: AsyncSession) -> None:
    """Roll back an invalidated transaction, tolerating a dead connection."""
    try:
        await db.rollback()
    except BACKEND_ERRORS as exc:
        logger.warning("backend_rollback_failed", error=str(exc))


def soft_fail(default: Callable[[], Any]) -> Callable:
    """Return ``default()`` instead of raising when the backend is unavailable."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            if self.db is None:
                logger.warning("backend_unavailable", operation=func.__qualname__)
                return default()
            try:
                return await func(self, *args, **kwargs)
            except BACKEND_ERRORS as exc:
                logger.warning(
                    "backend_unavailable",
                    operation=func.__qualname__,
                    error=str(exc),
                )
                await reset_session(self.db)
                return default()

        return wrapper

    return decorator


def require_backend(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Raise ``BackendUnavailableError`` when a write cannot reach the backend."""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        if self.db is None:
            raise BackendUnavailableError(func.__name__)
        try:
            return await func(self, *args, **kwargs)
        except BACKEND_ERRORS as exc:
            logger.error("backend_write_failed", operation=func.__qualname__, error=str(exc))
            await reset_session(self.db)
            raise BackendUnavailableError(func.__name__, str(exc)) from exc

    return wrapper
