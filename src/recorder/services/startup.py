"""
Startup orchestration for the database layer.

Sequence:
1. Create the pool and probe connectivity (acquire, SELECT 1, release)
2. On failure, log where the database was expected and raise StartupError;
   the process cannot serve anything without a database
3. On success, run the schema initializer; its failure is logged and
   startup continues, since the tables may already exist
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from recorder.core.logger import Logger

from .initializer import InitializerState

if TYPE_CHECKING:
    from recorder.core.pool import Pool

    from .initializer import SchemaInitializer

logger = Logger("startup")


class StartupError(Exception):
    """Raised when the database is unreachable at startup."""

    pass


async def initialize_database(
    pool: Pool,
    initializer: Optional[SchemaInitializer] = None,
) -> Optional[InitializerState]:
    """
    Connect, probe, and bootstrap the schema.

    Args:
        pool: Pool built from the process configuration
        initializer: Schema initializer to run after a successful probe

    Returns:
        Initializer state, or None if no initializer ran to completion

    Raises:
        StartupError: If the pool cannot be created or the probe fails
    """
    db = pool.config.database
    logger.info("initializing_database", host=db.host, port=db.port, database=db.database)

    try:
        await pool.connect()
        await pool.probe()
    except Exception as e:
        # Location only; credentials stay out of the log
        logger.critical(
            "database_unreachable",
            host=db.host,
            port=db.port,
            database=db.database,
            error_type=type(e).__name__,
            error=str(e),
        )
        logger.critical(
            "check_configuration",
            variables="DB_HOST,DB_PORT,DB_NAME,DB_USER,DB_PASS",
        )
        raise StartupError(
            f"Cannot reach database {db.database} at {db.host}:{db.port}"
        ) from e

    logger.info("database_connected", database=db.database)

    if initializer is None:
        return None

    try:
        state = await initializer.run()
    except Exception as e:
        logger.error(
            "schema_initialization_failed",
            error_type=type(e).__name__,
            error=str(e),
        )
        return None

    if state is InitializerState.COMPLETED_WITH_ERRORS:
        logger.warning("schema_initialized_with_errors", failed=",".join(initializer.failures))
    else:
        logger.info("database_initialized")
    return state
