"""
Tests del reintento ante deadlocks y conflictos de concurrencia optimista.

- Detecta errores MySQL 1213 (Deadlock) y 1205 (Lock wait timeout) y SQLite ocupado
- Reintenta con exponential backoff
- ConcurrentModificationError se reintenta una vez por defecto
- Se rinde después de max_attempts
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.domain.errors import ConcurrentModificationError, InvalidTransitionError
from app.infrastructure.db.retry import (
    is_deadlock_error,
    is_retryable_conflict,
    retry_on_conflict,
    retry_on_deadlock,
)

pytestmark = pytest.mark.deadlock


def _deadlock(code: str = "1213", message: str = "Deadlock found") -> OperationalError:
    return OperationalError(
        "statement",
        "params",
        f"(asyncmy.errors.OperationalError) ({code}, '{message}')",
        connection_invalidated=False,
    )


class TestDeadlockDetection:
    def test_detect_mysql_deadlock_error_1213(self):
        assert is_deadlock_error(_deadlock("1213"))

    def test_detect_mysql_lock_timeout_error_1205(self):
        assert is_deadlock_error(_deadlock("1205", "Lock wait timeout exceeded"))

    def test_detect_sqlite_busy(self):
        error = OperationalError("statement", "params", "database is locked", connection_invalidated=False)

        assert is_deadlock_error(error)

    def test_ignore_non_deadlock_errors(self):
        assert not is_deadlock_error(Exception("Generic error"))
        assert not is_deadlock_error(_deadlock("2013", "Lost connection to MySQL server"))

    def test_concurrency_conflict_is_retryable(self):
        assert is_retryable_conflict(ConcurrentModificationError("B1", 3))
        assert not is_retryable_conflict(InvalidTransitionError("Booking", "B1", "EXPIRED", "CONFIRMED"))


@pytest.mark.asyncio
class TestRetryLogic:
    async def test_retry_succeeds_on_first_attempt(self):
        call_count = 0

        async def successful_func():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await retry_on_deadlock(successful_func, max_attempts=3)

        assert result == "success"
        assert call_count == 1

    async def test_retry_on_deadlock_until_success(self):
        call_count = 0

        async def fails_twice_then_succeeds():
            nonlocal call_count
            call_count += 1
            if call_count <= 2:
                raise _deadlock()
            return "success_after_retries"

        result = await retry_on_deadlock(fails_twice_then_succeeds, max_attempts=3, base_delay=0.01)

        assert result == "success_after_retries"
        assert call_count == 3

    async def test_retry_fails_after_max_attempts(self):
        call_count = 0

        async def always_fails():
            nonlocal call_count
            call_count += 1
            raise _deadlock()

        with pytest.raises(OperationalError):
            await retry_on_deadlock(always_fails, max_attempts=3, base_delay=0.01)

        assert call_count == 3

    async def test_deadlock_retry_ignores_concurrency_conflicts(self):
        call_count = 0

        async def conflicting():
            nonlocal call_count
            call_count += 1
            raise ConcurrentModificationError("B1", 0)

        with pytest.raises(ConcurrentModificationError):
            await retry_on_deadlock(conflicting, max_attempts=3, base_delay=0)

        assert call_count == 1

    async def test_conflict_retried_once_by_default(self):
        call_count = 0

        async def always_conflicts():
            nonlocal call_count
            call_count += 1
            raise ConcurrentModificationError("B1", call_count)

        with pytest.raises(ConcurrentModificationError):
            await retry_on_conflict(always_conflicts, base_delay=0)

        assert call_count == 2

    async def test_domain_errors_not_retried(self):
        call_count = 0

        async def invalid():
            nonlocal call_count
            call_count += 1
            raise InvalidTransitionError("Booking", "B1", "EXPIRED", "CANCELLED")

        with pytest.raises(InvalidTransitionError):
            await retry_on_conflict(invalid, max_attempts=3, base_delay=0)

        assert call_count == 1

    async def test_exponential_backoff(self):
        delays = []

        async def fake_sleep(delay):
            delays.append(delay)

        async def always_fails():
            raise _deadlock()

        with patch("app.infrastructure.db.retry.asyncio.sleep", fake_sleep):
            with pytest.raises(OperationalError):
                await retry_on_deadlock(always_fails, max_attempts=3, base_delay=0.1)

        assert delays == [0.1, 0.2]

    async def test_logging_on_retry(self):
        with patch("app.infrastructure.db.retry.logger") as mock_logger:
            call_count = 0

            async def fails_once():
                nonlocal call_count
                call_count += 1
                if call_count == 1:
                    raise _deadlock()
                return "success"

            await retry_on_deadlock(fails_once, max_attempts=3, base_delay=0.01)

            assert mock_logger.warning.called
            assert "deadlock" in mock_logger.warning.call_args[0][0].lower()

