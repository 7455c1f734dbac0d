"""
Base view registration over raw parquet artifacts.

Columns the classifier marks ARRAY but that arrive as delimited text are
split into VARCHAR[]; serialized JSON columns are cast to JSON. Everything
else passes through unchanged.
"""

from __future__ import annotations

import logging
import pathlib
from typing import Iterable, Mapping

import duckdb

from ..classifier import ColumnShape, ColumnVerdict, RawColumnDescriptor
from ..consts import DELIMITED_TEXT_TYPES, JSON_CAST_COLUMNS, LIST_DELIMITER
from ..utils import quote_identifier, quote_literal

LOGGER = logging.getLogger(__name__)


def parquet_source(path: pathlib.Path) -> str:
    """
    FROM-clause expression reading one parquet artifact
    """
    return f"read_parquet({quote_literal(path.as_posix())})"


def describe_source(
    cursor: duckdb.DuckDBPyConnection, source_sql: str
) -> list[RawColumnDescriptor]:
    """
    Column names and storage types of a raw source, without reading rows
    :param cursor: Engine cursor
    :param source_sql: FROM-clause expression (read_parquet(...), a view name)
    :return One descriptor per column, in source order
    """
    rows = cursor.execute(f"DESCRIBE SELECT * FROM {source_sql}").fetchall()
    return [RawColumnDescriptor.from_describe(row[0], row[1]) for row in rows]


def column_rewrites(
    descriptors: Iterable[RawColumnDescriptor],
    verdicts: Mapping[str, ColumnVerdict],
    json_columns: Iterable[str] = JSON_CAST_COLUMNS,
) -> list[str]:
    """
    REPLACE expressions for columns that need reshaping
    """
    json_columns = frozenset(json_columns)
    delimiter = quote_literal(LIST_DELIMITER)
    rewrites = []
    for descriptor in descriptors:
        if descriptor.storage_type.upper() not in DELIMITED_TEXT_TYPES:
            continue
        column = quote_identifier(descriptor.name)
        verdict = verdicts.get(descriptor.name)
        if verdict is not None and verdict.shape is ColumnShape.ARRAY:
            rewrites.append(
                f"CASE WHEN {column} IS NULL OR TRIM({column}) = '' "
                f"THEN []::VARCHAR[] ELSE string_split({column}, {delimiter}) END "
                f"AS {column}"
            )
        elif descriptor.name in json_columns:
            rewrites.append(f"TRY_CAST({column} AS JSON) AS {column}")
    return rewrites


def build_base_view_sql(view_name: str, source_sql: str, rewrites: list[str]) -> str:
    """
    Single CREATE OR REPLACE VIEW statement, so the view is never half built
    """
    select = "SELECT *"
    if rewrites:
        select += f" REPLACE ({', '.join(rewrites)})"
    return f"CREATE OR REPLACE VIEW {quote_identifier(view_name)} AS {select} FROM {source_sql}"


def register_base_view(
    cursor: duckdb.DuckDBPyConnection,
    view_name: str,
    source_sql: str,
    verdicts: Mapping[str, ColumnVerdict],
    descriptors: list[RawColumnDescriptor],
) -> None:
    """
    Publish a base view with array and JSON columns resolved
    """
    rewrites = column_rewrites(descriptors, verdicts)
    cursor.execute(build_base_view_sql(view_name, source_sql, rewrites))
    LOGGER.info(
        f"Registered view: {view_name} ({len(descriptors)} columns, "
        f"{len(rewrites)} rewritten)"
    )
