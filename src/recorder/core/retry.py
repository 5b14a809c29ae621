"""
Retry combinator with exponential backoff.

The policy is a plain function parameterised by a classifier predicate:

    result = await retry_async(
        lambda: run_query(),
        config=RetryConfig(max_attempts=3),
        is_transient=is_transient,
    )

A failure is re-raised as-is when it is permanent or when the attempt
ceiling is reached. Between attempts the caller is suspended for
``base_delay * 2**attempt`` seconds (2s, 4s, ... with the default base).
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .faults import classify_fault
from .logger import Logger

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class RetryConfig(BaseModel):
    """Retry configuration for database operations."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1, le=10, description="Total attempts per operation")
    base_delay: float = Field(default=1.0, ge=0.0, description="Backoff base (seconds)")


@dataclass
class AttemptState:
    """Per-call retry state. Never shared between calls."""

    attempt: int = 0
    last_error: Optional[BaseException] = None


def backoff_delay(attempt: int, base_delay: float = 1.0) -> float:
    """Delay after the given failed attempt (1-based)."""
    return base_delay * (2**attempt)


def error_fields(error: BaseException) -> dict[str, Any]:
    """
    Log fields describing a failed attempt.

    The exception message is left out: driver messages can quote the bind
    value that failed to encode. The exception itself still reaches the
    caller unchanged.
    """
    fault = classify_fault(error)
    fields: dict[str, Any] = {
        "error_type": type(error).__name__,
        "fault": fault.value if fault is not None else "none",
    }
    sqlstate = getattr(error, "sqlstate", None)
    if sqlstate:
        fields["sqlstate"] = sqlstate
    return fields


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    config: Optional[RetryConfig] = None,
    is_transient: Callable[[BaseException], bool],
    sleep: SleepFn = asyncio.sleep,
    logger: Optional[Logger] = None,
    operation_name: str = "database operation",
) -> T:
    """
    Run an async operation, retrying transient failures.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        config: Attempt ceiling and backoff base
        is_transient: Predicate deciding whether a failure may be retried
        sleep: Awaitable delay function (injectable for tests)
        logger: Logger for attempt reporting
        operation_name: Label used in log records

    Returns:
        Result of the first successful attempt

    Raises:
        The last underlying exception if the error is permanent or the
        attempts are exhausted
    """
    config = config or RetryConfig()
    logger = logger or Logger("retry")
    state = AttemptState()

    while True:
        state.attempt += 1
        try:
            result = await operation()
        except Exception as e:
            state.last_error = e
            transient = is_transient(e)

            if not transient:
                logger.error(
                    "operation_failed_permanent",
                    operation=operation_name,
                    attempt=state.attempt,
                    **error_fields(e),
                )
                raise

            if state.attempt >= config.max_attempts:
                logger.error(
                    "operation_retries_exhausted",
                    operation=operation_name,
                    attempts=state.attempt,
                    **error_fields(e),
                )
                raise

            delay = backoff_delay(state.attempt, config.base_delay)
            logger.warning(
                "operation_retry",
                operation=operation_name,
                attempt=state.attempt,
                max_attempts=config.max_attempts,
                delay=delay,
                **error_fields(e),
            )
            await sleep(delay)
            continue

        if state.attempt > 1:
            logger.info(
                "operation_recovered",
                operation=operation_name,
                attempts=state.attempt,
            )
        return result
