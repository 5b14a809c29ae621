"""
Schema Initializer Service.

Creates the tables the dashboard depends on, including the password reset
token table owned by the authentication flow.

This is a one-shot service that runs once at startup. Each table is created
independently: a failure is logged and the remaining tables are still
attempted. The result is reported through InitializerState rather than an
exception.

Usage:
    from recorder.core import Executor
    from recorder.services import SchemaInitializer

    executor = Executor.from_yaml("yaml/core/database.yaml")
    initializer = SchemaInitializer.from_yaml(
        "yaml/services/initializer.yaml", executor=executor
    )

    async with executor:
        state = await initializer.run()
"""

from __future__ import annotations

import time
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recorder.core.base_service import BaseService

from .schema import TABLES, TABLES_BY_NAME

if TYPE_CHECKING:
    from recorder.core.executor import Executor

SERVICE_NAME = "initializer"


# =============================================================================
# Configuration
# =============================================================================


class InitializerConfig(BaseModel):
    """Which tables to create."""

    model_config = ConfigDict(frozen=True)

    tables: list[str] = Field(
        default_factory=lambda: [table.name for table in TABLES],
        description="Tables to create, in order",
    )

    @field_validator("tables")
    @classmethod
    def validate_tables(cls, v: list[str]) -> list[str]:
        """Only tables with a built-in definition can be created."""
        unknown = [name for name in v if name not in TABLES_BY_NAME]
        if unknown:
            raise ValueError(f"Unknown tables: {', '.join(unknown)}")
        return v


class InitializerState(str, Enum):
    """Lifecycle of a schema initialization."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


# =============================================================================
# Service
# =============================================================================


class SchemaInitializer(BaseService[InitializerConfig]):
    """
    Idempotent table bootstrap.

    Runs at most once per instance; later calls return the terminal state
    without touching the database.
    """

    SERVICE_NAME = SERVICE_NAME
    CONFIG_CLASS = InitializerConfig

    def __init__(
        self,
        executor: Executor,
        config: Optional[InitializerConfig] = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            executor: Executor used for the DDL statements
            config: Service configuration (uses defaults if not provided)
        """
        super().__init__(executor=executor, config=config or InitializerConfig())
        self._config: InitializerConfig
        self._state = InitializerState.NOT_STARTED
        self._failures: dict[str, str] = {}

    # -------------------------------------------------------------------------
    # BaseService Implementation
    # -------------------------------------------------------------------------

    async def run(self) -> InitializerState:
        """
        Create every configured table.

        Returns:
            COMPLETED if all tables were created (or already existed),
            COMPLETED_WITH_ERRORS otherwise
        """
        if self._state is not InitializerState.NOT_STARTED:
            self._logger.warning("already_ran", state=self._state.value)
            return self._state

        self._state = InitializerState.RUNNING
        self._logger.info("run_started", tables=len(self._config.tables))
        start_time = time.time()

        for name in self._config.tables:
            await self._create_table(name)

        if self._failures:
            self._state = InitializerState.COMPLETED_WITH_ERRORS
        else:
            self._state = InitializerState.COMPLETED

        duration = time.time() - start_time
        self._logger.info(
            "run_completed",
            state=self._state.value,
            failed=len(self._failures),
            duration_s=round(duration, 2),
        )
        return self._state

    async def _create_table(self, name: str) -> None:
        table = TABLES_BY_NAME[name]
        try:
            for statement in table.statements:
                await self._executor.execute_write(statement)
        except Exception as e:
            self._failures[name] = str(e)
            self._logger.error(
                "table_failed",
                table=name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return

        self._logger.info("table_ready", table=name)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> InitializerState:
        """Current lifecycle state."""
        return self._state

    @property
    def failures(self) -> dict[str, str]:
        """Table name -> error message for tables that could not be created."""
        return dict(self._failures)
