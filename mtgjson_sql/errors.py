"""
Exception hierarchy for the schema adaptation and query layer.

Every error carries enough context (view name, column, identifier, query)
to diagnose a failure without re-running with verbose logging.
"""

from __future__ import annotations

from typing import Any, Sequence


class MtgjsonSqlError(Exception):
    """Root of all errors raised by mtgjson_sql."""


class InvalidArgumentError(MtgjsonSqlError, ValueError):
    """Raised when a caller passes a value the query layer cannot accept."""


class IdentifierNotAllowedError(InvalidArgumentError):
    """Raised when a column or table name fails validation while building SQL."""

    def __init__(self, identifier: str, reason: str = "not in the allowed column set"):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Identifier {identifier!r} rejected: {reason}")


class TransformFailureError(MtgjsonSqlError):
    """Raised when a derived view cannot be built from malformed raw data."""

    def __init__(self, view_name: str, detail: str):
        self.view_name = view_name
        self.detail = detail
        super().__init__(f"[{view_name}] {detail}")


class EngineExecutionError(MtgjsonSqlError):
    """Raised when DuckDB rejects a statement. The engine message is kept verbatim."""

    def __init__(self, message: str, query: str, params: Sequence[Any] | None = None):
        self.query = query
        self.params = list(params or [])
        super().__init__(message)


class StaleViewConflictError(MtgjsonSqlError):
    """Raised when a build finishes after the registry was invalidated."""

    def __init__(self, view_name: str, started: int, current: int):
        self.view_name = view_name
        self.started_generation = started
        self.current_generation = current
        super().__init__(
            f"[{view_name}] build started at generation {started} "
            f"but registry is at generation {current}"
        )


class NotFoundError(MtgjsonSqlError, LookupError):
    """Raised for unknown views, missing artifacts, and unreadable cache files."""
