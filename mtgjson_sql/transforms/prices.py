"""
Price flattening.

Streams AllPrices-style files (uuid -> nested provider/finish/date trees)
one entity at a time and bulk-appends flat rows into DuckDB. Peak memory
is one entity subtree plus one batch.

Accepted tree shapes per entity, at any mix of depths:
    {provider: {finish: {date: price}}}
    {source: {provider: {price_type: {finish: {date: price}}, "currency": "USD"}}}
"""

from __future__ import annotations

import logging
import numbers
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

import duckdb
import ijson
import polars as pl

from ..errors import TransformFailureError
from ..utils import batched, open_artifact, quote_identifier

LOGGER = logging.getLogger(__name__)

SOURCE_KEYS = frozenset({"paper", "mtgo"})
PRICE_TYPE_KEYS = frozenset({"buylist", "retail"})
CURRENCY_KEY = "currency"


class PriceRecord(NamedTuple):
    uuid: str
    source: Optional[str]
    provider: str
    price_type: Optional[str]
    finish: str
    date: str
    price: float
    currency: Optional[str]


# Column order matches PriceRecord
PRICE_SCHEMA = {
    "uuid": pl.String,
    "source": pl.String,
    "provider": pl.String,
    "price_type": pl.String,  # "buylist" or "retail"
    "finish": pl.String,  # "normal", "foil", "etched"
    "date": pl.String,
    "price": pl.Float64,
    "currency": pl.String,
}

PRICE_TABLE_DDL = ", ".join(
    [
        "uuid VARCHAR",
        "source VARCHAR",
        "provider VARCHAR",
        "price_type VARCHAR",
        "finish VARCHAR",
        "date VARCHAR",
        "price DOUBLE",
        "currency VARCHAR",
    ]
)


@dataclass
class FlattenStats:
    """Counters collected while flattening, for logging."""

    entities: int = 0
    records: int = 0
    null_prices: int = 0
    non_positive_prices: int = 0
    duplicate_entities: int = 0

    def summary(self) -> dict[str, int]:
        return {
            "entities": self.entities,
            "records": self.records,
            "null_prices": self.null_prices,
            "non_positive_prices": self.non_positive_prices,
            "duplicate_entities": self.duplicate_entities,
        }


def iter_price_entities(path: pathlib.Path) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Stream (uuid, price tree) pairs from the "data" object of a price file
    :param path: .json, .json.gz, .json.xz or .json.bz2
    """
    with open_artifact(path) as file:
        yield from ijson.kvitems(file, "data", use_float=True)


def _record_from_path(
    view_name: str,
    uuid: str,
    path: List[str],
    price: float,
    currency: Optional[str],
) -> PriceRecord:
    if len(path) < 3:
        raise TransformFailureError(
            view_name,
            f"price for {uuid} at {'/'.join(path)} is missing provider or finish level",
        )

    *prefix, finish, date = path
    source = None
    price_type = None
    providers = []
    for key in prefix:
        if key in SOURCE_KEYS and source is None:
            source = key
        elif key in PRICE_TYPE_KEYS and price_type is None:
            price_type = key
        else:
            providers.append(key)

    if len(providers) != 1:
        raise TransformFailureError(
            view_name,
            f"price for {uuid} at {'/'.join(path)} does not name exactly one provider",
        )

    return PriceRecord(
        uuid, source, providers[0], price_type, finish, date, float(price), currency
    )


def flatten_entity_prices(
    uuid: str,
    tree: Any,
    stats: Optional[FlattenStats] = None,
    view_name: str = "prices",
) -> Iterator[PriceRecord]:
    """
    Walk one entity's price tree, yielding a record per non-null leaf
    :param uuid: Entity id
    :param tree: Nested mapping ending in {date: price}
    :param stats: Counters to update
    :param view_name: Used in error messages
    """
    if not isinstance(tree, dict):
        raise TransformFailureError(
            view_name, f"price tree for {uuid} is {type(tree).__name__}, not an object"
        )

    stats = stats if stats is not None else FlattenStats()
    seen = set()
    # (path so far, subtree, inherited currency)
    stack: List[Tuple[List[str], Dict[str, Any], Optional[str]]] = [([], tree, None)]
    while stack:
        path, node, currency = stack.pop()
        node_currency = node.get(CURRENCY_KEY)
        if isinstance(node_currency, str):
            currency = node_currency

        for key, value in node.items():
            if key == CURRENCY_KEY and isinstance(value, str):
                continue
            if isinstance(value, dict):
                stack.append((path + [key], value, currency))
                continue
            if value is None:
                stats.null_prices += 1
                continue
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise TransformFailureError(
                    view_name,
                    f"price for {uuid} at {'/'.join(path + [key])} is "
                    f"{type(value).__name__} {value!r}, expected a number",
                )
            if value <= 0:
                stats.non_positive_prices += 1
                continue

            record = _record_from_path(view_name, uuid, path + [key], value, currency)
            identity = record[:6]
            if identity in seen:
                continue
            seen.add(identity)
            stats.records += 1
            yield record


def flatten_prices(
    entities: Iterable[Tuple[str, Any]],
    stats: Optional[FlattenStats] = None,
    view_name: str = "prices",
) -> Iterator[PriceRecord]:
    """
    Chain every entity's records; a repeated entity id is skipped
    """
    stats = stats if stats is not None else FlattenStats()
    # One id per entity is kept for the whole stream to detect repeats
    seen_uuids = set()
    for uuid, tree in entities:
        if uuid in seen_uuids:
            stats.duplicate_entities += 1
            continue
        seen_uuids.add(uuid)
        stats.entities += 1
        yield from flatten_entity_prices(uuid, tree, stats, view_name)


def load_prices(
    cursor: duckdb.DuckDBPyConnection,
    table: str,
    records: Iterable[PriceRecord],
    batch_size: int = 50_000,
) -> int:
    """
    Bulk-append records into a staging table, then swap it in under
    the final name inside one transaction
    :param cursor: Engine cursor
    :param table: Final table name
    :param records: Flattened price stream
    :param batch_size: Rows per append
    :return Rows loaded
    """
    target = quote_identifier(table)
    staging = quote_identifier(f"{table}__staging")
    batch_view = f"{table}__batch"

    cursor.execute(f"CREATE OR REPLACE TABLE {staging} ({PRICE_TABLE_DDL})")
    total = 0
    try:
        for batch in batched(records, batch_size):
            frame = pl.DataFrame(batch, schema=PRICE_SCHEMA, orient="row")
            cursor.register(batch_view, frame)
            try:
                cursor.execute(
                    f"INSERT INTO {staging} SELECT {', '.join(PRICE_SCHEMA)} "
                    f"FROM {quote_identifier(batch_view)}"
                )
            finally:
                cursor.unregister(batch_view)
            total += len(batch)
            LOGGER.debug(f"Appended {total:,} rows into {table} staging")

        cursor.execute("BEGIN TRANSACTION")
        try:
            cursor.execute(f"DROP TABLE IF EXISTS {target}")
            cursor.execute(f"ALTER TABLE {staging} RENAME TO {target}")
            cursor.execute("COMMIT")
        except BaseException:
            cursor.execute("ROLLBACK")
            raise
    except BaseException:
        cursor.execute(f"DROP TABLE IF EXISTS {staging}")
        raise

    return total


def build_prices(
    cursor: duckdb.DuckDBPyConnection,
    table: str,
    path: pathlib.Path,
    batch_size: int = 50_000,
) -> FlattenStats:
    """
    Flatten a price file into a published table
    """
    stats = FlattenStats()
    records = flatten_prices(iter_price_entities(path), stats, view_name=table)
    try:
        load_prices(cursor, table, records, batch_size)
    except ijson.JSONError as error:
        raise TransformFailureError(table, f"{path.name} is not valid JSON: {error}") from error

    if stats.non_positive_prices:
        LOGGER.warning(
            f"{table}: skipped {stats.non_positive_prices:,} non-positive prices"
        )
    if stats.duplicate_entities:
        LOGGER.warning(
            f"{table}: skipped {stats.duplicate_entities:,} repeated entities"
        )
    LOGGER.debug(f"{table} flatten stats: {stats.summary()}")
    LOGGER.info(f"Registered view: {table} ({stats.records:,} price points)")
    return stats
