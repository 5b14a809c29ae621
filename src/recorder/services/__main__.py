"""
CLI Entry Point for the recorder database layer.

Usage:
    python -m recorder.services <command> [options]

Examples:
    python -m recorder.services probe
    python -m recorder.services init
    python -m recorder.services serve --port 8080 --log-level DEBUG

Exit codes: 0 success, 1 database unreachable, 2 invalid configuration.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from recorder.core import Executor, Logger
from recorder.core.logger import setup_logging

from .health import HealthServer
from .initializer import SchemaInitializer
from .startup import StartupError, initialize_database

# =============================================================================
# Configuration
# =============================================================================

YAML_BASE = Path("yaml")
CORE_CONFIG = YAML_BASE / "core" / "database.yaml"
INITIALIZER_CONFIG = YAML_BASE / "services" / "initializer.yaml"

COMMANDS = ("probe", "init", "serve")

EXIT_OK = 0
EXIT_UNREACHABLE = 1
EXIT_CONFIG = 2

logger = Logger("cli")


# =============================================================================
# Loading
# =============================================================================


def load_executor(config_path: Path) -> Executor:
    """Load Executor (and its Pool) from config file."""
    if config_path.exists():
        return Executor.from_yaml(str(config_path))

    logger.warning("database_config_not_found", path=str(config_path))
    return Executor()


def load_initializer(config_path: Path, executor: Executor) -> SchemaInitializer:
    """Load SchemaInitializer from config file."""
    if config_path.exists():
        return SchemaInitializer.from_yaml(str(config_path), executor=executor)

    logger.warning("initializer_config_not_found", path=str(config_path))
    return SchemaInitializer(executor=executor)


# =============================================================================
# Commands
# =============================================================================


async def serve(server: HealthServer) -> None:
    """Run the HTTP server until SIGINT/SIGTERM."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await server.start()
    try:
        await stop.wait()
        logger.info("shutdown_signal")
    finally:
        await server.stop()


async def run_command(
    command: str,
    executor: Executor,
    initializer: Optional[SchemaInitializer],
    host: str,
    port: int,
) -> int:
    """
    Run a CLI command against a loaded executor.

    Returns:
        Exit code
    """
    try:
        try:
            await initialize_database(executor.pool, initializer)
        except StartupError as e:
            logger.error("startup_failed", error=str(e))
            return EXIT_UNREACHABLE

        if command == "serve":
            await serve(HealthServer(executor.pool, host=host, port=port))
        logger.info(f"{command}_completed")
        return EXIT_OK
    finally:
        await executor.pool.close()


def describe_validation_error(error: ValidationError) -> str:
    """Summarise a config error without echoing input values."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
        for err in error.errors(include_url=False, include_input=False)
    )


# =============================================================================
# CLI
# =============================================================================


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="python -m recorder.services",
        description="Recorder database bootstrap",
    )

    parser.add_argument(
        "command",
        choices=COMMANDS,
        help="probe: check connectivity, init: also create tables, serve: init then run health server",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=CORE_CONFIG,
        help=f"Pool/executor config path (default: {CORE_CONFIG})",
    )

    parser.add_argument(
        "--initializer-config",
        type=Path,
        default=INITIALIZER_CONFIG,
        help=f"Initializer config path (default: {INITIALIZER_CONFIG})",
    )

    parser.add_argument("--host", default="0.0.0.0", help="HTTP bind address for serve")
    parser.add_argument("--port", type=int, default=8080, help="HTTP port for serve")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    return parser.parse_args(argv)


async def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        executor = load_executor(args.config)
        initializer = None
        if args.command != "probe":
            initializer = load_initializer(args.initializer_config, executor)
    except ValidationError as e:
        logger.error("invalid_configuration", error=describe_validation_error(e))
        return EXIT_CONFIG

    try:
        return await run_command(args.command, executor, initializer, args.host, args.port)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
