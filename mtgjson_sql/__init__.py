"""
MTGJSON SQL: query MTGJSON data through DuckDB
"""

from .classifier import ColumnShape, ColumnVerdict, RawColumnDescriptor, classify_column
from .connection import Connection
from .errors import (
    EngineExecutionError,
    IdentifierNotAllowedError,
    InvalidArgumentError,
    MtgjsonSqlError,
    NotFoundError,
    StaleViewConflictError,
    TransformFailureError,
)
from .session import MtgjsonSql
from .sql_builder import SqlBuilder

__all__ = [
    "ColumnShape",
    "ColumnVerdict",
    "Connection",
    "EngineExecutionError",
    "IdentifierNotAllowedError",
    "InvalidArgumentError",
    "MtgjsonSql",
    "MtgjsonSqlError",
    "NotFoundError",
    "RawColumnDescriptor",
    "SqlBuilder",
    "StaleViewConflictError",
    "TransformFailureError",
    "classify_column",
]
