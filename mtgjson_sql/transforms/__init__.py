"""
View builders: base views, legality unpivot, price flattening.
"""

from .base_views import build_base_view_sql, describe_source, parquet_source, register_base_view
from .legalities import (
    build_legalities,
    build_legalities_sql,
    discover_legality_formats,
    normalize_format_name,
)
from .prices import (
    PRICE_SCHEMA,
    FlattenStats,
    PriceRecord,
    build_prices,
    flatten_entity_prices,
    flatten_prices,
    iter_price_entities,
    load_prices,
)

__all__ = [
    "PRICE_SCHEMA",
    "FlattenStats",
    "PriceRecord",
    "build_base_view_sql",
    "build_legalities",
    "build_legalities_sql",
    "build_prices",
    "describe_source",
    "discover_legality_formats",
    "flatten_entity_prices",
    "flatten_prices",
    "iter_price_entities",
    "load_prices",
    "normalize_format_name",
    "parquet_source",
    "register_base_view",
]
