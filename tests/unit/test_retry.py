"""
Unit tests for recorder.core.retry module.

Tests:
- RetryConfig validation
- Backoff schedule
- Success, permanent failure, exhaustion and recovery paths
- Identity of the propagated error
"""

from typing import Any
from unittest.mock import AsyncMock

import asyncpg
import pytest
from pydantic import ValidationError

from recorder.core.faults import is_transient
from recorder.core.retry import RetryConfig, backoff_delay, error_fields, retry_async


class TestRetryConfig:
    """Tests for RetryConfig Pydantic model."""

    def test_default_values(self) -> None:
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0

    def test_max_attempts_at_least_one(self) -> None:
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=0)

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RetryConfig(base_delay=-1.0)


class TestBackoffDelay:
    """Delay before attempt k is 2^(k-1) base units."""

    @pytest.mark.parametrize(("attempt", "expected"), [(1, 2.0), (2, 4.0), (3, 8.0), (4, 16.0)])
    def test_default_base(self, attempt: int, expected: float) -> None:
        assert backoff_delay(attempt) == expected

    def test_scaled_base(self) -> None:
        assert backoff_delay(2, base_delay=0.5) == 2.0


class TestRetryAsync:
    """Tests for the retry combinator."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, fake_sleep: Any, sleep_calls: list[float]) -> None:
        operation = AsyncMock(return_value="rows")

        result = await retry_async(operation, is_transient=is_transient, sleep=fake_sleep)

        assert result == "rows"
        assert operation.await_count == 1
        assert sleep_calls == []

    @pytest.mark.asyncio
    async def test_permanent_error_single_attempt(self, fake_sleep: Any, sleep_calls: list[float]) -> None:
        error = ValueError("duplicate key")
        operation = AsyncMock(side_effect=error)

        with pytest.raises(ValueError) as exc_info:
            await retry_async(
                operation,
                config=RetryConfig(max_attempts=10),
                is_transient=is_transient,
                sleep=fake_sleep,
            )

        assert exc_info.value is error
        assert operation.await_count == 1
        assert sleep_calls == []

    @pytest.mark.asyncio
    async def test_recovers_on_third_attempt(self, fake_sleep: Any, sleep_calls: list[float]) -> None:
        operation = AsyncMock(
            side_effect=[ConnectionResetError("reset"), ConnectionResetError("reset"), "third"]
        )

        result = await retry_async(operation, is_transient=is_transient, sleep=fake_sleep)

        assert result == "third"
        assert operation.await_count == 3
        assert sleep_calls == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_last_error(self, fake_sleep: Any, sleep_calls: list[float]) -> None:
        errors = [
            ConnectionResetError("first"),
            ConnectionRefusedError("second"),
            TimeoutError("third"),
        ]
        operation = AsyncMock(side_effect=errors)

        with pytest.raises(TimeoutError) as exc_info:
            await retry_async(operation, is_transient=is_transient, sleep=fake_sleep)

        assert exc_info.value is errors[-1]
        assert operation.await_count == 3
        assert sleep_calls == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_single_attempt_ceiling(self, fake_sleep: Any, sleep_calls: list[float]) -> None:
        operation = AsyncMock(side_effect=ConnectionResetError("reset"))

        with pytest.raises(ConnectionResetError):
            await retry_async(
                operation,
                config=RetryConfig(max_attempts=1),
                is_transient=is_transient,
                sleep=fake_sleep,
            )

        assert operation.await_count == 1
        assert sleep_calls == []

    @pytest.mark.asyncio
    async def test_custom_predicate(self, fake_sleep: Any, sleep_calls: list[float]) -> None:
        """The classifier is a parameter, not hardwired."""
        operation = AsyncMock(side_effect=[KeyError("flaky"), "ok"])

        result = await retry_async(
            operation,
            is_transient=lambda e: isinstance(e, KeyError),
            sleep=fake_sleep,
        )

        assert result == "ok"
        assert sleep_calls == [2.0]

    @pytest.mark.asyncio
    async def test_independent_calls_share_no_state(self, fake_sleep: Any, sleep_calls: list[float]) -> None:
        config = RetryConfig(max_attempts=2)
        failing = AsyncMock(side_effect=[ConnectionResetError(), "a"])
        healthy = AsyncMock(return_value="b")

        assert await retry_async(failing, config=config, is_transient=is_transient, sleep=fake_sleep) == "a"
        assert await retry_async(healthy, config=config, is_transient=is_transient, sleep=fake_sleep) == "b"
        assert healthy.await_count == 1


class TestErrorFields:
    """Log fields for failed attempts."""

    def test_transient_fault_kind(self) -> None:
        fields = error_fields(ConnectionResetError("reset by peer while sending 'abc'"))

        assert fields == {"error_type": "ConnectionResetError", "fault": "connection_reset"}

    def test_sqlstate_included(self) -> None:
        fields = error_fields(asyncpg.UniqueViolationError("duplicate key value"))

        assert fields["sqlstate"] == "23505"
        assert fields["fault"] == "none"

    def test_message_excluded(self) -> None:
        error = asyncpg.exceptions.DataError("invalid input for query argument $1: 'tok-123' (bad)")

        assert "tok-123" not in str(error_fields(error))
