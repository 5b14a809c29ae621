"""
Recorder Core Layer.

Database access components used by every API route:
- Pool: PostgreSQL connection pooling with asyncpg and a bounded wait queue
- Executor: Read/write entry points with retry of connectivity faults
- faults: Transient vs. permanent error classification
- retry: Exponential backoff retry combinator
- params: Bind value validation
- Logger: Structured logging with credential redaction

Example:
    from recorder.core import Executor

    executor = Executor.from_yaml("yaml/core/database.yaml")

    async with executor:
        rows = await executor.execute_read("SELECT * FROM branches")
"""

from .base_service import (
    BaseService,
    ConfigT,
)
from .executor import (
    Executor,
    ExecutorConfig,
    ExecutorTimeoutsConfig,
    WriteResult,
)
from .faults import (
    FaultKind,
    classify_fault,
    is_transient,
)
from .logger import Logger
from .params import (
    BindValue,
    QueryParameterError,
    validate_params,
)
from .pool import (
    DatabaseConfig,
    Pool,
    PoolConfig,
    PoolExhausted,
    PoolLimitsConfig,
    PoolTimeoutsConfig,
    ServerSettingsConfig,
)
from .retry import (
    RetryConfig,
    backoff_delay,
    retry_async,
)

__all__ = [
    # Base Service
    "BaseService",
    "ConfigT",
    # Executor
    "Executor",
    "ExecutorConfig",
    "ExecutorTimeoutsConfig",
    "WriteResult",
    # Faults
    "FaultKind",
    "classify_fault",
    "is_transient",
    # Logger
    "Logger",
    # Params
    "BindValue",
    "QueryParameterError",
    "validate_params",
    # Pool
    "DatabaseConfig",
    "Pool",
    "PoolConfig",
    "PoolExhausted",
    "PoolLimitsConfig",
    "PoolTimeoutsConfig",
    "ServerSettingsConfig",
    # Retry
    "RetryConfig",
    "backoff_delay",
    "retry_async",
]
