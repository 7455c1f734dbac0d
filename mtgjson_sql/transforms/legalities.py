"""
Legality unpivot.

Turns one wide row per card (one column per play format) into long
(uuid, format, status) rows. Format columns are discovered from the
live schema: nothing here names a format.
"""

from __future__ import annotations

import logging
import re
from typing import AbstractSet, Iterable, Sequence

import duckdb

from ..classifier import RawColumnDescriptor
from ..consts import (
    ARRAY_COLUMN_BASELINE,
    DELIMITED_TEXT_TYPES,
    LEGALITY_STATUSES,
    NON_LEGALITY_COLUMNS,
    SCALAR_COLUMN_BLOCKLIST,
)
from ..errors import TransformFailureError
from ..utils import quote_identifier, quote_literal
from .base_views import describe_source

LOGGER = logging.getLogger(__name__)

LONG_FORM_COLUMNS = frozenset({"uuid", "format", "status"})

FORMAT_SQL = "lower(regexp_replace({column}, '[^A-Za-z0-9]', '', 'g'))"
STATUS_SQL = "lower(replace(trim({column}), ' ', '_'))"


def normalize_format_name(column: str) -> str:
    """
    Canonical format identifier: "Modern" -> "modern", "pre_modern" -> "premodern"
    """
    return re.sub(r"[^a-z0-9]", "", column.lower())


def normalize_status(status: str) -> str:
    """
    "Not Legal" -> "not_legal"
    """
    return status.strip().replace(" ", "_").lower()


def candidate_columns(
    descriptors: Iterable[RawColumnDescriptor],
    excluded: AbstractSet[str] = NON_LEGALITY_COLUMNS,
) -> list[str]:
    """
    Columns that could hold one format's legality: string typed and
    not claimed by any other rule
    """
    return [
        descriptor.name
        for descriptor in descriptors
        if descriptor.name not in excluded
        and descriptor.name not in SCALAR_COLUMN_BLOCKLIST
        and descriptor.name not in ARRAY_COLUMN_BASELINE
        and not descriptor.is_nested
        and descriptor.storage_type.upper() in DELIMITED_TEXT_TYPES
    ]


def discover_legality_formats(
    cursor: duckdb.DuckDBPyConnection,
    source_sql: str,
    descriptors: Sequence[RawColumnDescriptor],
    statuses: Sequence[str] = LEGALITY_STATUSES,
) -> list[str]:
    """
    Find the columns whose every non-null value is a legality status
    :param cursor: Engine cursor
    :param source_sql: FROM-clause expression of the wide relation
    :param descriptors: Schema of the wide relation
    :param statuses: Allowed (normalized) status values
    :return Raw column names, in schema order
    """
    candidates = candidate_columns(descriptors)
    if not candidates:
        return []

    placeholders = ", ".join("?" for _ in statuses)
    checks = []
    params: list[str] = []
    for column in candidates:
        quoted = quote_identifier(column)
        checks.append(
            f"coalesce(bool_and({quoted} IS NULL OR "
            f"{STATUS_SQL.format(column=quoted)} IN ({placeholders})), true)"
        )
        params.extend(statuses)

    row = cursor.execute(
        f"SELECT {', '.join(checks)} FROM {source_sql}", params
    ).fetchone()
    if row is None:
        return []

    formats = [column for column, is_legality in zip(candidates, row) if is_legality]
    rejected = sorted(set(candidates) - set(formats))
    if rejected:
        LOGGER.debug(f"Columns rejected as legality formats: {rejected}")
    return formats


def build_legalities_sql(table: str, source_sql: str, formats: Sequence[str]) -> str:
    """
    One CREATE OR REPLACE TABLE statement unpivoting the format columns.
    Nulls are dropped; (uuid, format) is unique.
    """
    target = quote_identifier(table)
    if not formats:
        return (
            f"CREATE OR REPLACE TABLE {target} "
            "(uuid VARCHAR, format VARCHAR, status VARCHAR)"
        )

    columns = ", ".join(quote_identifier(column) for column in formats)
    return "\n".join(
        [
            f"CREATE OR REPLACE TABLE {target} AS",
            "SELECT uuid, format, min(status) AS status FROM (",
            f"  SELECT uuid, {FORMAT_SQL.format(column='format')} AS format,",
            f"         {STATUS_SQL.format(column='status')} AS status",
            f"  FROM (SELECT uuid, {columns} FROM {source_sql})",
            f"  UNPIVOT (status FOR format IN ({columns}))",
            "  WHERE status IS NOT NULL",
            ")",
            "GROUP BY uuid, format",
        ]
    )


def build_long_form_sql(table: str, source_sql: str) -> str:
    """
    Pass-through for a source that is already (uuid, format, status)
    """
    statuses = ", ".join(quote_literal(status) for status in LEGALITY_STATUSES)
    return "\n".join(
        [
            f"CREATE OR REPLACE TABLE {quote_identifier(table)} AS",
            "SELECT uuid, format, min(status) AS status FROM (",
            f"  SELECT uuid, {FORMAT_SQL.format(column='format')} AS format,",
            f"         {STATUS_SQL.format(column='status')} AS status",
            f"  FROM {source_sql}",
            "  WHERE status IS NOT NULL",
            f"    AND {STATUS_SQL.format(column='status')} IN ({statuses})",
            ")",
            "GROUP BY uuid, format",
        ]
    )


def build_legalities(
    cursor: duckdb.DuckDBPyConnection, table: str, source_sql: str
) -> list[str]:
    """
    Materialize the long legality relation from a wide (or long) source
    :param cursor: Engine cursor
    :param table: Name of the table to publish
    :param source_sql: FROM-clause expression of the raw legality data
    :return Normalized format names now present in the relation
    """
    descriptors = describe_source(cursor, source_sql)
    names = {descriptor.name for descriptor in descriptors}
    if "uuid" not in names:
        raise TransformFailureError(table, "legality source has no uuid column")

    if LONG_FORM_COLUMNS <= names:
        LOGGER.info(f"Legality source for {table} is already long form")
        cursor.execute(build_long_form_sql(table, source_sql))
        rows = cursor.execute(
            f"SELECT DISTINCT format FROM {quote_identifier(table)} ORDER BY format"
        ).fetchall()
        return [row[0] for row in rows]

    formats = discover_legality_formats(cursor, source_sql, descriptors)
    if not formats:
        LOGGER.warning(f"No legality format columns discovered for {table}")

    cursor.execute(build_legalities_sql(table, source_sql, formats))
    normalized = sorted({normalize_format_name(column) for column in formats})
    LOGGER.info(f"Registered view: {table} ({len(normalized)} formats: {normalized})")
    return normalized
