"""
Recorder Services Package.

Process-level services built on the core layer:
- SchemaInitializer: Idempotent table bootstrap
- initialize_database: Connectivity probe then schema bootstrap
- HealthServer: /api/ping, /health and /ready endpoints

Example:
    from recorder.core import Executor
    from recorder.services import SchemaInitializer, initialize_database

    executor = Executor.from_yaml("yaml/core/database.yaml")
    initializer = SchemaInitializer(executor=executor)

    await initialize_database(executor.pool, initializer)
"""

from .health import HealthServer
from .initializer import (
    InitializerConfig,
    InitializerState,
    SchemaInitializer,
)
from .startup import (
    StartupError,
    initialize_database,
)

__all__ = [
    # Health
    "HealthServer",
    # Initializer
    "InitializerConfig",
    "InitializerState",
    "SchemaInitializer",
    # Startup
    "StartupError",
    "initialize_database",
]
