"""
MtgjsonSql session: one cache, one DuckDB connection, and the accessors.
"""

from __future__ import annotations

import logging
import pathlib
from typing import Any, Dict, List, Optional, Sequence

import polars as pl

from .cache import CacheManager
from .classifier import ColumnShape
from .connection import Connection
from .models import DatasetMeta
from .queries import CardQuery, LegalityQuery, PriceQuery, SetQuery

LOGGER = logging.getLogger(__name__)


class MtgjsonSql:
    """
    Entry point for querying MTGJSON data

        with MtgjsonSql() as session:
            session.cards.search(name="Lightning Bolt")
    """

    def __init__(
        self,
        cache_dir: Optional[pathlib.Path] = None,
        offline: Optional[bool] = None,
        timeout: Optional[float] = None,
        database: str = ":memory:",
    ) -> None:
        self.cache = CacheManager(cache_dir=cache_dir, offline=offline, timeout=timeout)
        self.connection = Connection(self.cache, database=database)
        self.cards = CardQuery(self.connection)
        self.sets = SetQuery(self.connection)
        self.legalities = LegalityQuery(self.connection)
        self.prices = PriceQuery(self.connection)

    def __enter__(self) -> MtgjsonSql:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def meta(self) -> DatasetMeta:
        """
        Version and build date of the cached dataset
        """
        content = self.cache.load_json("meta")
        return DatasetMeta(**(content.get("data") or content.get("meta") or {}))

    @property
    def views(self) -> List[str]:
        return self.connection.views()

    def sql(
        self,
        query: str,
        params: Optional[Sequence[Any]] = None,
        views: Sequence[str] = (),
        as_dataframe: bool = False,
    ) -> List[Dict[str, Any]] | pl.DataFrame:
        """
        Run caller-written SQL with bound parameters
        :param views: Views to build before running
        """
        self.connection.ensure_views(*views)
        if as_dataframe:
            return self.connection.execute_df(query, params)
        return self.connection.execute(query, params)

    def column_shape(self, column_name: str, view_name: str = "cards") -> ColumnShape:
        return self.connection.column_shape(column_name, view_name)

    def refresh(self) -> bool:
        """
        Adopt a newer dataset when the CDN has one; views rebuild lazily
        :return Was a newer version adopted
        """
        if not self.cache.refresh_available():
            return False
        changed = self.cache.refresh()
        if changed:
            self.connection.reset_views()
        return changed

    def close(self) -> None:
        self.connection.close()
        self.cache.close()
