"""
PostgreSQL Connection Pool using asyncpg.

Manages database connections with:
- Async pooling with configurable sizes
- Bounded wait queue for callers when every connection is checked out
- Connection settings resolved from the environment, credentials required
- Structured logging (passwords are never logged)
- Context manager support
"""

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Final, Optional

import asyncpg
import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from .logger import Logger

DEFAULT_HOST: Final[str] = "localhost"
DEFAULT_PORT: Final[int] = 5432
DEFAULT_DATABASE: Final[str] = "recorder"

# Config field -> environment variable
ENV_VARS: Final[dict[str, str]] = {
    "host": "DB_HOST",
    "port": "DB_PORT",
    "database": "DB_NAME",
    "user": "DB_USER",
    "password": "DB_PASS",
}

CREDENTIAL_FIELDS: Final[tuple[str, ...]] = ("user", "password")


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseConfig(BaseModel):
    """
    Database connection configuration.

    Values not given explicitly are read from DB_HOST, DB_PORT, DB_NAME,
    DB_USER and DB_PASS. Host, port and database name have fallbacks;
    user and password do not.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(default=DEFAULT_HOST, min_length=1, description="Database hostname")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Database port")
    database: str = Field(default=DEFAULT_DATABASE, min_length=1, description="Database name")
    user: str = Field(min_length=1, description="Database user (from DB_USER env)")
    password: SecretStr = Field(description="Database password (from DB_PASS env)")

    @model_validator(mode="before")
    @classmethod
    def load_from_env(cls, data: Any) -> Any:
        """Fill unset fields from the environment, failing on missing credentials."""
        if not isinstance(data, dict):
            return data

        resolved = dict(data)
        for field, env_var in ENV_VARS.items():
            if resolved.get(field) in (None, ""):
                value = os.getenv(env_var)
                if value:
                    resolved[field] = value
                else:
                    resolved.pop(field, None)

        for field in CREDENTIAL_FIELDS:
            if field not in resolved:
                raise ValueError(f"{ENV_VARS[field]} environment variable not set")

        return resolved


class PoolLimitsConfig(BaseModel):
    """Pool size and resource limits."""

    model_config = ConfigDict(frozen=True)

    min_size: int = Field(default=1, ge=1, le=100, description="Minimum connections")
    max_size: int = Field(default=10, ge=1, le=200, description="Maximum concurrent connections")
    queue_limit: int = Field(
        default=50, ge=0, description="Maximum callers waiting for a connection (0 = no waiting)"
    )
    max_queries: int = Field(default=50000, ge=100, description="Queries before recycling")
    max_inactive_connection_lifetime: float = Field(
        default=300.0, ge=0.0, description="Idle timeout (seconds)"
    )

    @field_validator("max_size")
    @classmethod
    def validate_max_size(cls, v: int, info) -> int:
        """Ensure max_size >= min_size."""
        min_size = info.data.get("min_size", 1)
        if v < min_size:
            raise ValueError(f"max_size ({v}) must be >= min_size ({min_size})")
        return v


class PoolTimeoutsConfig(BaseModel):
    """Pool timeout configuration."""

    model_config = ConfigDict(frozen=True)

    acquisition: float = Field(default=10.0, ge=0.1, description="Max wait for a free connection")
    health_check: float = Field(default=5.0, ge=0.1, description="Liveness probe timeout")


class ServerSettingsConfig(BaseModel):
    """PostgreSQL server settings."""

    model_config = ConfigDict(frozen=True)

    application_name: str = Field(default="recorder", description="Application name")
    timezone: str = Field(default="UTC", description="Timezone")


class PoolConfig(BaseModel):
    """Complete pool configuration."""

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    limits: PoolLimitsConfig = Field(default_factory=PoolLimitsConfig)
    timeouts: PoolTimeoutsConfig = Field(default_factory=PoolTimeoutsConfig)
    server_settings: ServerSettingsConfig = Field(default_factory=ServerSettingsConfig)


# ============================================================================
# Pool Class
# ============================================================================


class Pool:
    """
    PostgreSQL connection pool manager.

    At most ``limits.max_size`` connections are checked out at once. Further
    callers wait in a queue of at most ``limits.queue_limit`` entries; a
    caller arriving at a full queue, or waiting longer than
    ``timeouts.acquisition``, gets PoolExhausted. The pool never retries.

    Usage:
        pool = Pool.from_yaml("config.yaml")

        async with pool:
            async with pool.acquire() as conn:
                rows = await conn.fetch("SELECT * FROM branches")
    """

    def __init__(self, config: Optional[PoolConfig] = None) -> None:
        """
        Initialize pool.

        Args:
            config: Pool configuration (uses defaults if not provided)
        """
        self._config = config or PoolConfig()
        self._pool: Optional[asyncpg.Pool] = None
        self._is_connected: bool = False
        self._connection_lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(self._config.limits.max_size)
        self._in_use: int = 0
        self._waiting: int = 0
        self._logger = Logger("pool")

    @classmethod
    def from_yaml(cls, config_path: str) -> "Pool":
        """Create pool from YAML configuration file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with path.open(encoding="utf-8") as f:
            config_data = yaml.safe_load(f)

        return cls.from_dict(config_data or {})

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "Pool":
        """Create pool from dictionary configuration."""
        config = PoolConfig(**config_dict)
        return cls(config=config)

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Create the underlying asyncpg pool.

        A single attempt is made; errors propagate to the caller.
        """
        async with self._connection_lock:
            if self._is_connected:
                return

            db = self._config.database
            limits = self._config.limits

            self._logger.info(
                "connecting",
                host=db.host,
                port=db.port,
                database=db.database,
            )

            self._pool = await asyncpg.create_pool(
                host=db.host,
                port=db.port,
                database=db.database,
                user=db.user,
                password=db.password.get_secret_value(),
                min_size=limits.min_size,
                max_size=limits.max_size,
                max_queries=limits.max_queries,
                max_inactive_connection_lifetime=limits.max_inactive_connection_lifetime,
                server_settings={
                    "application_name": self._config.server_settings.application_name,
                    "timezone": self._config.server_settings.timezone,
                },
            )
            self._is_connected = True
            self._logger.info("connected", max_size=limits.max_size)

    async def close(self) -> None:
        """Close pool and release resources."""
        async with self._connection_lock:
            if self._pool is not None:
                try:
                    await self._pool.close()
                    self._logger.info("closed")
                finally:
                    self._pool = None
                    self._is_connected = False

    # -------------------------------------------------------------------------
    # Connection Acquisition
    # -------------------------------------------------------------------------

    async def _admit(self) -> None:
        """Take a connection slot, queueing if needed."""
        limits = self._config.limits

        if self._slots.locked() and self._waiting >= limits.queue_limit:
            self._logger.warning(
                "pool_exhausted",
                in_use=self._in_use,
                waiting=self._waiting,
                queue_limit=limits.queue_limit,
            )
            raise PoolExhausted(
                f"All {limits.max_size} connections in use and "
                f"{self._waiting} callers already waiting (queue_limit={limits.queue_limit})"
            )

        self._waiting += 1
        try:
            await asyncio.wait_for(
                self._slots.acquire(), timeout=self._config.timeouts.acquisition
            )
        except asyncio.TimeoutError as e:
            raise PoolExhausted(
                f"Timed out after {self._config.timeouts.acquisition}s waiting for a connection"
            ) from e
        finally:
            self._waiting -= 1

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Acquire a connection from the pool.

        The connection goes back to the pool when the block exits, whether
        it completes, raises or is cancelled.

        Raises:
            RuntimeError: If pool is not connected
            PoolExhausted: If the wait queue is full or the wait times out
        """
        if not self._is_connected or self._pool is None:
            raise RuntimeError("Pool not connected. Call connect() first.")

        await self._admit()
        self._in_use += 1
        try:
            async with self._pool.acquire() as conn:
                yield conn
        finally:
            self._in_use -= 1
            self._slots.release()

    async def probe(self) -> None:
        """
        Check liveness: acquire one connection, run SELECT 1, release it.

        Raises whatever the acquisition or the query raised.
        """
        async with self.acquire() as conn:
            await conn.fetchval("SELECT 1", timeout=self._config.timeouts.health_check)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        """Check if pool is connected."""
        return self._is_connected

    @property
    def in_use(self) -> int:
        """Connections currently checked out."""
        return self._in_use

    @property
    def waiting(self) -> int:
        """Callers currently queued for a connection."""
        return self._waiting

    @property
    def config(self) -> PoolConfig:
        """Get configuration."""
        return self._config

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "Pool":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        """String representation."""
        db = self._config.database
        return f"Pool(host={db.host}, database={db.database}, connected={self._is_connected})"


class PoolExhausted(Exception):
    """Raised when no connection can be handed out without unbounded waiting."""

    pass
