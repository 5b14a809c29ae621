"""
Pytest configuration and shared fixtures for recorder tests.

Provides:
- Mock fixtures for asyncpg connections and pools
- Pool and Executor instances wired to the mocks
- A recording sleep so backoff delays are observable without waiting
- Custom pytest markers for test categorization
"""

import logging
import sys
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from recorder.core.executor import Executor
from recorder.core.pool import DatabaseConfig, Pool, PoolConfig

DB_ENV_VARS = ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASS")


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


@pytest.fixture(autouse=True)
def clean_db_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without database environment variables."""
    for name in DB_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# Records
# ============================================================================


class FakeRecord(dict):
    """Dict that also supports positional access, like asyncpg.Record."""

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, int):
            return list(self.values())[key]
        return super().__getitem__(key)


@pytest.fixture
def make_record() -> type[FakeRecord]:
    """Factory for asyncpg-like records."""
    return FakeRecord


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_connection() -> MagicMock:
    """Create a mock asyncpg connection."""
    conn = MagicMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=1)
    conn.execute = AsyncMock(return_value="OK")
    return conn


@pytest.fixture
def mock_asyncpg_pool(mock_connection: MagicMock) -> MagicMock:
    """Create a mock asyncpg pool."""
    pool = MagicMock()
    pool.close = AsyncMock()

    # Mock acquire context manager
    mock_acquire = MagicMock()
    mock_acquire.__aenter__ = AsyncMock(return_value=mock_connection)
    mock_acquire.__aexit__ = AsyncMock(return_value=None)
    pool.acquire = MagicMock(return_value=mock_acquire)

    return pool


@pytest.fixture
def database_config() -> DatabaseConfig:
    """Explicit database configuration (no environment needed)."""
    return DatabaseConfig(
        host="localhost",
        port=5432,
        database="test_db",
        user="test_user",
        password="test_password",
    )


@pytest.fixture
def mock_pool(
    mock_asyncpg_pool: MagicMock, mock_connection: MagicMock, database_config: DatabaseConfig
) -> Pool:
    """Create a Pool with mocked internals."""
    pool = Pool(config=PoolConfig(database=database_config))
    pool._pool = mock_asyncpg_pool
    pool._is_connected = True

    # Store mock connection for easy access in tests
    pool._mock_connection = mock_connection  # type: ignore[attr-defined]

    return pool


@pytest.fixture
def sleep_calls() -> list[float]:
    """Delays requested by the executor, in order."""
    return []


@pytest.fixture
def fake_sleep(sleep_calls: list[float]) -> Any:
    """Sleep replacement that records the delay and returns immediately."""

    async def _sleep(delay: float) -> None:
        sleep_calls.append(delay)

    return _sleep


@pytest.fixture
def mock_executor(mock_pool: Pool, fake_sleep: Any) -> Executor:
    """Create an Executor over the mocked pool with a recording sleep."""
    return Executor(pool=mock_pool, sleep=fake_sleep)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def pool_config_dict() -> dict[str, Any]:
    """Sample pool configuration dictionary."""
    return {
        "database": {
            "host": "localhost",
            "port": 5432,
            "database": "test_db",
            "user": "test_user",
        },
        "limits": {
            "min_size": 2,
            "max_size": 10,
            "queue_limit": 5,
            "max_queries": 1000,
            "max_inactive_connection_lifetime": 60.0,
        },
        "timeouts": {
            "acquisition": 5.0,
            "health_check": 3.0,
        },
        "server_settings": {
            "application_name": "test_app",
            "timezone": "UTC",
        },
    }


@pytest.fixture
def executor_config_dict(pool_config_dict: dict[str, Any]) -> dict[str, Any]:
    """Sample executor configuration dictionary."""
    return {
        "pool": pool_config_dict,
        "retry": {
            "max_attempts": 4,
            "base_delay": 0.5,
        },
        "timeouts": {
            "query": 30.0,
        },
    }


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests requiring database"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (no external dependencies)"
    )
    config.addinivalue_line("markers", "slow: marks tests as slow running")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
