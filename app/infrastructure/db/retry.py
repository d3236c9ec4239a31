"""
Database retry utilities for handling transient failures.

Provides helpers for automatically retrying a whole transactional operation
when it fails due to a deadlock or an optimistic-concurrency conflict on a
booking. Each attempt must open its own transaction so it re-reads fresh state.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from app.domain.errors import ConcurrentModificationError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# MySQL error codes
MYSQL_DEADLOCK_ERROR = "1213"
MYSQL_LOCK_WAIT_TIMEOUT = "1205"
SQLITE_BUSY_MESSAGE = "database is locked"


def is_deadlock_error(error: Exception) -> bool:
    """
    Check if an exception is a deadlock / lock timeout error.

    Args:
        error: The exception to check

    Returns:
        True if the error is a deadlock that should be retried
    """
    if isinstance(error, (OperationalError, DBAPIError)):
        error_str = str(error)
        return (
            MYSQL_DEADLOCK_ERROR in error_str
            or MYSQL_LOCK_WAIT_TIMEOUT in error_str
            or SQLITE_BUSY_MESSAGE in error_str
        )
    return False


def is_retryable_conflict(error: Exception) -> bool:
    """Deadlocks and lost optimistic-concurrency races are retried against fresh state."""
    return isinstance(error, ConcurrentModificationError) or is_deadlock_error(error)


async def _retry(
    func: Callable[[], Awaitable[T]],
    should_retry: Callable[[Exception], bool],
    max_attempts: int,
    base_delay: float,
    label: str,
) -> T:
    for attempt in range(max_attempts):
        try:
            return await func()
        except Exception as e:
            if not should_retry(e):
                raise

            if attempt >= max_attempts - 1:
                logger.error(
                    f"{label} persists after max retries",
                    extra={
                        "attempts": max_attempts,
                        "error": str(e),
                    }
                )
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"{label} detected, retrying",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "retry_delay": delay,
                    "error": str(e),
                }
            )
            await asyncio.sleep(delay)

    raise RuntimeError(f"Unexpected state in retry ({label})")


async def retry_on_deadlock(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.1,
) -> T:
    """
    Retry a function if it fails due to a database deadlock.

    Uses exponential backoff: base_delay * (2 ** attempt)

    Raises:
        The original exception if max attempts exceeded or non-deadlock error
    """
    return await _retry(func, is_deadlock_error, max_attempts, base_delay, "Database deadlock")


async def retry_on_conflict(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 2,
    base_delay: float = 0.05,
) -> T:
    """
    Retry a transactional operation on ConcurrentModificationError or deadlock.

    The default of two attempts means one internal retry before the conflict
    is surfaced to the caller.

    Example:
        async def confirm():
            async with tx.start():
                ...

        await retry_on_conflict(confirm)
    """
    return await _retry(func, is_retryable_conflict, max_attempts, base_delay, "Concurrent modification")

