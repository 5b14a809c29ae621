"""
Bind value validation for parameterized statements.

Statements use positional ``$n`` placeholders. Bind values are restricted
to scalars the driver maps directly: str, int, float, bool, None and
datetime. A placeholder/value mismatch is a programming error and is
reported before any database round trip.
"""

import re
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Final, Union

BindValue = Union[str, int, float, bool, None, datetime]

SCALAR_TYPES: Final[tuple[type, ...]] = (str, int, float, bool, datetime, type(None))

# String literals, quoted identifiers, comments and dollar-quoted bodies
_NON_CODE = re.compile(
    r"'(?:[^']|'')*'"
    r'|"(?:[^"]|"")*"'
    r"|--[^\n]*"
    r"|/\*.*?\*/"
    r"|\$([A-Za-z_]\w*|)\$.*?\$\1\$",
    re.DOTALL,
)
_PLACEHOLDER = re.compile(r"\$(\d+)")
_RETURNING = re.compile(r"\bRETURNING\b", re.IGNORECASE)


class QueryParameterError(ValueError):
    """Raised when bind values do not fit the statement."""

    pass


def strip_non_code(statement: str) -> str:
    """Blank out literals and comments so only SQL tokens remain."""
    return _NON_CODE.sub(" ", statement)


def count_placeholders(statement: str) -> int:
    """Return the number of positional parameters a statement expects."""
    indexes = [int(m) for m in _PLACEHOLDER.findall(strip_non_code(statement))]
    return max(indexes, default=0)


def has_returning_clause(statement: str) -> bool:
    """Check whether a write statement returns rows."""
    return _RETURNING.search(strip_non_code(statement)) is not None


def validate_params(statement: str, params: Sequence[Any] = ()) -> tuple[BindValue, ...]:
    """
    Validate bind values against a statement.

    Args:
        statement: SQL with $1..$n placeholders
        params: Ordered bind values

    Returns:
        The values as a tuple, ready to splat into the driver call

    Raises:
        QueryParameterError: On a non-scalar value or a count mismatch
    """
    if isinstance(params, (str, bytes)) or not isinstance(params, Sequence):
        raise QueryParameterError(
            f"Bind values must be a sequence, got {type(params).__name__}"
        )

    for position, value in enumerate(params, start=1):
        if not isinstance(value, SCALAR_TYPES):
            raise QueryParameterError(
                f"Unsupported bind value type at ${position}: {type(value).__name__}"
            )

    expected = count_placeholders(statement)
    if expected != len(params):
        raise QueryParameterError(
            f"Statement expects {expected} bind values, got {len(params)}"
        )

    return tuple(params)
