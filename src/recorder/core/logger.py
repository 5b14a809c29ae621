"""
Structured Logging for the recorder database layer.

Supports two output formats:
- Key-value pairs (default): message key1=value1 key2="value with spaces"
- JSON (for cloud/production): {"message": "...", "key1": "value1", ...}

Fields whose name looks like a credential are never written out.

Usage:
    from recorder.core.logger import Logger

    logger = Logger("executor")
    logger.info("query_retry", attempt=1, delay=2.0)

    # JSON output for production
    json_logger = Logger("executor", json_output=True)
    json_logger.info("connected")  # {"message": "connected"}
"""

import json
import logging
from typing import Any

REDACTED = "***"

# Substrings of field names whose values are replaced by REDACTED
SENSITIVE_FIELDS = ("password", "secret", "token", "credential", "dsn")


class Logger:
    """
    Logger wrapper that supports keyword arguments as extra fields.

    Features:
    - Automatic value escaping for key=value format
    - Optional JSON output for structured logging systems
    - Redaction of credential-like fields

    Example:
        logger = Logger("pool")
        logger.info("connecting", host="db.local", port=5432)
        # Output: connecting host=db.local port=5432

        logger.error("auth_failed", password="hunter2")
        # Output: auth_failed password=***
    """

    def __init__(self, name: str, json_output: bool = False) -> None:
        """
        Initialize logger.

        Args:
            name: Logger name (typically component/service name)
            json_output: If True, output JSON instead of key=value format
        """
        self._logger = logging.getLogger(name)
        self._json_output = json_output

    @staticmethod
    def _is_sensitive(key: str) -> bool:
        lowered = key.lower()
        return any(marker in lowered for marker in SENSITIVE_FIELDS)

    def _redact(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        return {k: (REDACTED if self._is_sensitive(k) else v) for k, v in kwargs.items()}

    def _format_value(self, value: Any) -> str:
        """Format a single value, quoting if necessary."""
        s = str(value)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        return s

    def _format_message(self, msg: str, kwargs: dict[str, Any]) -> str:
        """Format message with kwargs in appropriate format."""
        fields = self._redact(kwargs)

        if self._json_output:
            return json.dumps({"message": msg, **fields}, default=str)

        if not fields:
            return msg

        pairs = " ".join(f"{k}={self._format_value(v)}" for k, v in fields.items())
        return f"{msg} {pairs}"

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._logger.debug(self._format_message(msg, kwargs))

    def info(self, msg: str, **kwargs: Any) -> None:
        self._logger.info(self._format_message(msg, kwargs))

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._logger.warning(self._format_message(msg, kwargs))

    def error(self, msg: str, **kwargs: Any) -> None:
        self._logger.error(self._format_message(msg, kwargs))

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._logger.critical(self._format_message(msg, kwargs))

    def exception(self, msg: str, **kwargs: Any) -> None:
        self._logger.exception(self._format_message(msg, kwargs))


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
