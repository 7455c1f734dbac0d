"""
MTGJSON SQL Constants Module.

Centralized column-classification and legality constants.

Usage:
    from mtgjson_sql.consts import ARRAY_COLUMN_BASELINE, SCALAR_COLUMN_BLOCKLIST
"""

from __future__ import annotations

from mtgjson_sql.consts.columns import (
    ARRAY_COLUMN_BASELINE,
    DELIMITED_TEXT_TYPES,
    FALSE_PLURAL_NOUNS,
    JSON_CAST_COLUMNS,
    LEGALITY_STATUSES,
    LIST_DELIMITER,
    NON_LEGALITY_COLUMNS,
    SCALAR_COLUMN_BLOCKLIST,
    SINGULAR_SUFFIXES,
)

__all__ = [
    "ARRAY_COLUMN_BASELINE",
    "DELIMITED_TEXT_TYPES",
    "FALSE_PLURAL_NOUNS",
    "JSON_CAST_COLUMNS",
    "LEGALITY_STATUSES",
    "LIST_DELIMITER",
    "NON_LEGALITY_COLUMNS",
    "SCALAR_COLUMN_BLOCKLIST",
    "SINGULAR_SUFFIXES",
]
