"""
Card lookups over the ``cards`` view.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import polars as pl

from ..connection import Connection
from ..constants import LEGALITIES_VIEW
from ..mtgjson_config import MtgjsonSqlConfig
from ..sql_builder import SqlBuilder
from ..transforms.legalities import normalize_format_name

CARDS_VIEW = "cards"


class CardQuery:
    """Query interface for cards."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    def _builder(self) -> SqlBuilder:
        return self.connection.builder(CARDS_VIEW)

    def get_by_uuid(self, uuid: str) -> Optional[Dict[str, Any]]:
        sql, params = self._builder().where_eq("uuid", uuid).limit(1).build()
        rows = self.connection.execute(sql, params)
        return rows[0] if rows else None

    def get_by_uuids(self, uuids: Iterable[str]) -> List[Dict[str, Any]]:
        sql, params = self._builder().where_in("uuid", list(uuids)).build()
        return self.connection.execute(sql, params)

    def get_by_name(
        self, name: str, set_code: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Every printing with an exact name, optionally within one set
        """
        builder = self._builder().where_eq("name", name)
        if set_code:
            builder.where_eq("setCode", set_code.upper())
        sql, params = builder.order_by("setCode", "number").build()
        return self.connection.execute(sql, params)

    def search(
        self,
        name: Optional[str] = None,
        fuzzy_name: Optional[str] = None,
        fuzzy_threshold: Optional[float] = None,
        set_code: Optional[str] = None,
        colors: Optional[Iterable[str]] = None,
        color_identity: Optional[Iterable[str]] = None,
        types: Optional[str] = None,
        rarity: Optional[str] = None,
        legal_in: Optional[str] = None,
        mana_value: Optional[float] = None,
        mana_value_gte: Optional[float] = None,
        mana_value_lte: Optional[float] = None,
        text: Optional[str] = None,
        text_regex: Optional[str] = None,
        artist: Optional[str] = None,
        keyword: Optional[str] = None,
        limit: Optional[int] = 100,
        offset: Optional[int] = None,
        as_dataframe: bool = False,
    ) -> List[Dict[str, Any]] | pl.DataFrame:
        """
        Search cards by any combination of filters. All filters are ANDed.
        :param name: Exact name, or a LIKE pattern when it contains "%"
        :param fuzzy_name: Typo tolerant name, results ordered by similarity
        :param fuzzy_threshold: Jaro-Winkler cutoff (config default when None)
        :param colors: Every listed color must be present
        :param legal_in: Format in which the card must be legal
        :param as_dataframe: Return a polars DataFrame instead of dicts
        """
        if legal_in:
            self.connection.ensure_view(LEGALITIES_VIEW)

        builder = self.connection.builder(CARDS_VIEW).select("cards.*")

        if name:
            if "%" in name:
                builder.where_like("cards.name", name)
            else:
                builder.where_eq("cards.name", name)

        if fuzzy_name:
            threshold = (
                MtgjsonSqlConfig().fuzzy_threshold
                if fuzzy_threshold is None
                else fuzzy_threshold
            )
            builder.select_expr(
                'jaro_winkler_similarity("cards"."name", ?)', "similarity", fuzzy_name
            )
            builder.where_fuzzy("cards.name", fuzzy_name, threshold)

        if set_code:
            builder.where_eq("cards.setCode", set_code.upper())
        for color in colors or []:
            builder.where_contains("cards.colors", color)
        for color in color_identity or []:
            builder.where_contains("cards.colorIdentity", color)
        if types:
            builder.where_like("cards.type", f"%{types}%")
        if rarity:
            builder.where_eq("cards.rarity", rarity.lower())

        if legal_in:
            builder.join(
                f'JOIN "{LEGALITIES_VIEW}" "cl" ON "cards"."uuid" = "cl"."uuid"',
                columns=["format", "status"],
            )
            builder.where_eq("cl.format", normalize_format_name(legal_in))
            builder.where_eq("cl.status", "legal")

        if mana_value is not None:
            builder.where_eq("cards.manaValue", mana_value)
        if mana_value_gte is not None:
            builder.where_gte("cards.manaValue", mana_value_gte)
        if mana_value_lte is not None:
            builder.where_lte("cards.manaValue", mana_value_lte)
        if text:
            builder.where_like("cards.text", f"%{text}%")
        if text_regex:
            builder.where_regex("cards.text", text_regex)
        if artist:
            builder.where_like("cards.artist", f"%{artist}%")
        if keyword:
            builder.where_contains("cards.keywords", keyword)

        if fuzzy_name:
            builder.order_by("similarity DESC", "cards.name")
        else:
            builder.order_by("cards.name", "cards.number")
        if limit is not None:
            builder.limit(limit)
        if offset is not None:
            builder.offset(offset)

        sql, params = builder.build()
        if as_dataframe:
            return self.connection.execute_df(sql, params)
        return self.connection.execute(sql, params)

    def count(self, **filters: Any) -> int:
        """
        Number of cards matching exact column filters, e.g. count(setCode="MH3")
        """
        builder = self._builder().select_expr("COUNT(*)", "total")
        for column, value in filters.items():
            builder.where_eq(column, value)
        sql, params = builder.build()
        return int(self.connection.execute_scalar(sql, params) or 0)
