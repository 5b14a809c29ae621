"""
Resilient Query Executor.

Entry point for every SQL statement issued by the dashboard API.

Features:
- Read queries returning rows as column -> value mappings
- Write statements returning affected row count and inserted id
- Bind value validation before any round trip
- Retry of connectivity faults with exponential backoff
- Structured logging (bind values are never logged)
"""

import asyncio
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Final, Optional

import asyncpg
import yaml
from pydantic import BaseModel, ConfigDict, Field

from .faults import is_transient
from .logger import Logger
from .params import BindValue, has_returning_clause, validate_params
from .pool import Pool
from .retry import RetryConfig, SleepFn, retry_async

Row = dict[str, Any]

# Trailing row count of a command status tag, e.g. "INSERT 0 3" or "UPDATE 2"
_STATUS_COUNT: Final = re.compile(r"(\d+)\s*$")


# ============================================================================
# Configuration Models
# ============================================================================


class ExecutorTimeoutsConfig(BaseModel):
    """Statement timeouts."""

    model_config = ConfigDict(frozen=True)

    query: float = Field(default=60.0, ge=0.1, description="Statement timeout (seconds)")


class ExecutorConfig(BaseModel):
    """Complete executor configuration."""

    model_config = ConfigDict(frozen=True)

    retry: RetryConfig = Field(default_factory=RetryConfig)
    timeouts: ExecutorTimeoutsConfig = Field(default_factory=ExecutorTimeoutsConfig)


@dataclass(frozen=True)
class WriteResult:
    """Summary of a write statement."""

    affected_rows: int
    insert_id: Optional[int] = None


def parse_affected_rows(status: str) -> int:
    """Extract the row count from a command status tag (0 for DDL)."""
    match = _STATUS_COUNT.search(status or "")
    return int(match.group(1)) if match else 0


# ============================================================================
# Executor Class
# ============================================================================


class Executor:
    """
    Resilient query executor over a Pool.

    Every call acquires its own connection per attempt and keeps no state
    between calls, so concurrent callers never coordinate.

    Usage:
        executor = Executor.from_yaml("yaml/core/database.yaml")

        async with executor:
            rows = await executor.execute_read(
                "SELECT id, branch_name FROM branches WHERE branch_city = $1",
                ["Lahore"],
            )
            result = await executor.execute_write(
                "UPDATE devices SET device_status = $1 WHERE id = $2",
                ["active", device_id],
            )
    """

    def __init__(
        self,
        pool: Optional[Pool] = None,
        config: Optional[ExecutorConfig] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """
        Initialize executor.

        Args:
            pool: Database pool (creates default if not provided)
            config: Executor configuration (uses defaults if not provided)
            sleep: Backoff delay function
        """
        self.pool = pool or Pool()
        self._config = config or ExecutorConfig()
        self._sleep = sleep
        self._logger = Logger("executor")

    @classmethod
    def from_yaml(cls, config_path: str) -> "Executor":
        """
        Create Executor from YAML configuration.

        Expected structure:
            pool:
              database: {...}
              limits: {...}
            retry:
              max_attempts: 3
            timeouts:
              query: 60.0
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with path.open(encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "Executor":
        """Create Executor from dictionary configuration."""
        pool = Pool.from_dict(config_dict.get("pool") or {})

        executor_config_dict = {k: v for k, v in config_dict.items() if k != "pool"}
        config = ExecutorConfig(**executor_config_dict) if executor_config_dict else None

        return cls(pool=pool, config=config)

    # -------------------------------------------------------------------------
    # Public Operations
    # -------------------------------------------------------------------------

    async def execute_read(
        self, statement: str, params: Sequence[BindValue] = ()
    ) -> list[Row]:
        """
        Run a query and return its rows.

        Args:
            statement: SQL with $1..$n placeholders
            params: Bind values

        Returns:
            Rows as column name -> value mappings

        Raises:
            QueryParameterError: If the bind values do not fit the statement
            Exception: The underlying driver error, after retries if transient
        """
        values = validate_params(statement, params)
        timeout = self._config.timeouts.query

        async def attempt() -> list[Row]:
            async with self.pool.acquire() as conn:
                records = await conn.fetch(statement, *values, timeout=timeout)
            return [dict(record) for record in records]

        return await self._run(attempt, "execute_read")

    async def execute_write(
        self, statement: str, params: Sequence[BindValue] = ()
    ) -> WriteResult:
        """
        Run an INSERT/UPDATE/DELETE/DDL statement.

        With a RETURNING clause, affected_rows is the number of returned rows
        and insert_id the first column of the first row when it is an int.

        Raises:
            QueryParameterError: If the bind values do not fit the statement
            Exception: The underlying driver error, after retries if transient
        """
        values = validate_params(statement, params)
        timeout = self._config.timeouts.query
        returning = has_returning_clause(statement)

        async def attempt() -> WriteResult:
            async with self.pool.acquire() as conn:
                if returning:
                    records = await conn.fetch(statement, *values, timeout=timeout)
                    return _returning_result(records)
                status = await conn.execute(statement, *values, timeout=timeout)
            return WriteResult(affected_rows=parse_affected_rows(status))

        return await self._run(attempt, "execute_write")

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    async def _run(self, attempt: Callable[[], Any], operation_name: str) -> Any:
        return await retry_async(
            attempt,
            config=self._config.retry,
            is_transient=is_transient,
            sleep=self._sleep,
            logger=self._logger,
            operation_name=operation_name,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> ExecutorConfig:
        """Get configuration."""
        return self._config

    # -------------------------------------------------------------------------
    # Context Manager (delegates to Pool)
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "Executor":
        """Async context manager entry - connects the pool."""
        await self.pool.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit - closes the pool."""
        await self.pool.close()

    def __repr__(self) -> str:
        """String representation."""
        db = self.pool.config.database
        return f"Executor(host={db.host}, database={db.database}, connected={self.pool.is_connected})"


def _returning_result(records: list[asyncpg.Record]) -> WriteResult:
    insert_id: Optional[int] = None
    if records:
        first = records[0][0]
        if isinstance(first, int) and not isinstance(first, bool):
            insert_id = first
    return WriteResult(affected_rows=len(records), insert_id=insert_id)
