"""
Transient fault classification for database errors.

Only connectivity faults are retryable: connection reset, connection
refused, host not found, timed out, and connection lost mid-protocol.
Everything else (constraint violations, syntax errors, authentication
failures, pool exhaustion, bad parameters) is permanent.

Retrying a permanent error can duplicate side effects, e.g. an INSERT that
failed on a unique constraint.
"""

import asyncio
import errno
import socket
from enum import Enum
from typing import Final, Optional

import asyncpg

from .pool import PoolExhausted


class FaultKind(str, Enum):
    """Recognised connectivity faults."""

    CONNECTION_RESET = "connection_reset"
    CONNECTION_REFUSED = "connection_refused"
    HOST_NOT_FOUND = "host_not_found"
    TIMED_OUT = "timed_out"
    CONNECTION_LOST = "connection_lost"


_ERRNO_KINDS: Final[dict[int, FaultKind]] = {
    errno.ECONNRESET: FaultKind.CONNECTION_RESET,
    errno.ECONNREFUSED: FaultKind.CONNECTION_REFUSED,
    errno.ETIMEDOUT: FaultKind.TIMED_OUT,
}

# Error codes as reported by drivers and proxies in `code` or the message
_CODE_KINDS: Final[dict[str, FaultKind]] = {
    "ECONNRESET": FaultKind.CONNECTION_RESET,
    "ECONNREFUSED": FaultKind.CONNECTION_REFUSED,
    "ENOTFOUND": FaultKind.HOST_NOT_FOUND,
    "ETIMEDOUT": FaultKind.TIMED_OUT,
    "PROTOCOL_CONNECTION_LOST": FaultKind.CONNECTION_LOST,
}

_MAX_CAUSE_DEPTH: Final[int] = 5


def _classify_one(error: BaseException) -> Optional[FaultKind]:
    # Subclass checks come before the generic OSError/errno checks
    if isinstance(error, ConnectionResetError):
        return FaultKind.CONNECTION_RESET
    if isinstance(error, ConnectionRefusedError):
        return FaultKind.CONNECTION_REFUSED
    if isinstance(error, socket.gaierror):
        return FaultKind.HOST_NOT_FOUND
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return FaultKind.TIMED_OUT
    if isinstance(error, (asyncpg.ConnectionDoesNotExistError, ConnectionAbortedError, BrokenPipeError)):
        return FaultKind.CONNECTION_LOST

    if isinstance(error, OSError) and error.errno in _ERRNO_KINDS:
        return _ERRNO_KINDS[error.errno]

    code = getattr(error, "code", None)
    if isinstance(code, str) and code in _CODE_KINDS:
        return _CODE_KINDS[code]

    message = str(error)
    for name, kind in _CODE_KINDS.items():
        if name in message:
            return kind

    return None


def classify_fault(error: BaseException) -> Optional[FaultKind]:
    """
    Classify an error raised by pool acquisition or query execution.

    Follows the explicit ``__cause__`` chain, so a driver error raised
    from a socket error is classified by the socket error.

    Args:
        error: Exception to classify

    Returns:
        The connectivity fault kind, or None if the error is permanent
    """
    # Raised from the acquisition wait timeout, but never retried
    if isinstance(error, PoolExhausted):
        return None

    current: Optional[BaseException] = error
    depth = 0
    while current is not None and depth < _MAX_CAUSE_DEPTH:
        kind = _classify_one(current)
        if kind is not None:
            return kind
        current = current.__cause__
        depth += 1
    return None


def is_transient(error: BaseException) -> bool:
    """Check if an error is a retryable connectivity fault."""
    return classify_fault(error) is not None
