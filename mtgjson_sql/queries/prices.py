"""
Price lookups over the flattened ``all_prices_today`` and ``all_prices`` tables.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..connection import Connection
from ..models import PricePoint, PriceTrend

TODAY_VIEW = "all_prices_today"
HISTORY_VIEW = "all_prices"


class PriceQuery:
    """Query interface for card prices."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    def get(self, uuid: str) -> Dict[str, Any]:
        """
        Rebuild the nested price tree for one card:
        source -> provider -> price_type -> finish -> {date: price},
        with "currency" beside each provider's price types
        """
        sql, params = (
            self.connection.builder(TODAY_VIEW)
            .where_eq("uuid", uuid)
            .order_by("date DESC")
            .build()
        )
        tree: Dict[str, Any] = {}
        for row in self.connection.execute(sql, params):
            provider_node = tree.setdefault(row["source"] or "", {}).setdefault(
                row["provider"], {}
            )
            if row["currency"]:
                provider_node["currency"] = row["currency"]
            finish_node = provider_node.setdefault(row["price_type"] or "", {})
            finish_node.setdefault(row["finish"], {})[row["date"]] = row["price"]
        return tree

    def today(
        self,
        uuid: str,
        provider: Optional[str] = None,
        finish: Optional[str] = None,
        price_type: Optional[str] = None,
    ) -> List[PricePoint]:
        """
        Prices at the most recent date present for a card
        """
        builder = self.connection.builder(TODAY_VIEW).where_eq("uuid", uuid)
        if provider:
            builder.where_eq("provider", provider)
        if finish:
            builder.where_eq("finish", finish)
        if price_type:
            builder.where_eq("price_type", price_type)
        builder.where(
            f'"date" = (SELECT MAX("date") FROM {TODAY_VIEW} WHERE "uuid" = ?)', uuid
        )
        sql, params = builder.order_by("provider", "finish").build()
        return [PricePoint(**row) for row in self.connection.execute(sql, params)]

    def history(
        self,
        uuid: str,
        provider: Optional[str] = None,
        finish: Optional[str] = None,
        price_type: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[PricePoint]:
        """
        Full price history for a card, oldest first
        :param date_from: Inclusive ISO date
        :param date_to: Inclusive ISO date
        """
        builder = self.connection.builder(HISTORY_VIEW).where_eq("uuid", uuid)
        if provider:
            builder.where_eq("provider", provider)
        if finish:
            builder.where_eq("finish", finish)
        if price_type:
            builder.where_eq("price_type", price_type)
        if date_from:
            builder.where_gte("date", date_from)
        if date_to:
            builder.where_lte("date", date_to)
        sql, params = builder.order_by("date ASC", "provider", "finish").build()
        return [PricePoint(**row) for row in self.connection.execute(sql, params)]

    def price_trend(
        self,
        uuid: str,
        provider: Optional[str] = None,
        finish: Optional[str] = None,
        price_type: Optional[str] = "retail",
    ) -> List[PriceTrend]:
        """
        Min/max/average over the history, one entry per provider and finish
        """
        builder = (
            self.connection.builder(HISTORY_VIEW)
            .select("uuid", "provider", "finish", "price_type")
            .select_expr("MIN(price)", "min_price")
            .select_expr("MAX(price)", "max_price")
            .select_expr("AVG(price)", "avg_price")
            .select_expr("MIN(date)", "first_date")
            .select_expr("MAX(date)", "last_date")
            .select_expr("COUNT(*)", "data_points")
            .where_eq("uuid", uuid)
        )
        if provider:
            builder.where_eq("provider", provider)
        if finish:
            builder.where_eq("finish", finish)
        if price_type:
            builder.where_eq("price_type", price_type)
        sql, params = (
            builder.group_by("uuid", "provider", "finish", "price_type")
            .order_by("provider", "finish")
            .build()
        )
        return [PriceTrend(**row) for row in self.connection.execute(sql, params)]

    def _printings_by_price(
        self,
        name: str,
        limit: int,
        finish: Optional[str],
        price_type: str,
        descending: bool,
    ) -> List[Dict[str, Any]]:
        self.connection.ensure_view("cards")
        builder = (
            self.connection.builder(TODAY_VIEW, alias="p")
            .join(
                'JOIN "cards" "c" ON "c"."uuid" = "p"."uuid"',
                columns=["name", "setCode", "number"],
            )
            .select(
                "c.uuid",
                "c.name",
                "c.setCode",
                "c.number",
                "p.provider",
                "p.finish",
                "p.price",
                "p.currency",
                "p.date",
            )
            .where_eq("c.name", name)
            .where_eq("p.price_type", price_type)
            .where(
                f'"p"."date" = (SELECT MAX("date") FROM {TODAY_VIEW} WHERE "uuid" = "p"."uuid")'
            )
        )
        if finish:
            builder.where_eq("p.finish", finish)
        direction = "DESC" if descending else "ASC"
        sql, params = builder.order_by(f"price {direction}", "setCode").limit(limit).build()
        return self.connection.execute(sql, params)

    def cheapest_printings(
        self,
        name: str,
        limit: int = 10,
        finish: Optional[str] = None,
        price_type: str = "retail",
    ) -> List[Dict[str, Any]]:
        """
        Printings of a card name ordered by their latest price, cheapest first
        """
        return self._printings_by_price(name, limit, finish, price_type, descending=False)

    def cheapest_printing(
        self,
        name: str,
        finish: Optional[str] = None,
        price_type: str = "retail",
    ) -> Optional[Dict[str, Any]]:
        """
        The single cheapest priced printing of a card name, or None when
        no printing has a price
        """
        rows = self._printings_by_price(name, 1, finish, price_type, descending=False)
        return rows[0] if rows else None

    def most_expensive_printings(
        self,
        name: str,
        limit: int = 10,
        finish: Optional[str] = None,
        price_type: str = "retail",
    ) -> List[Dict[str, Any]]:
        return self._printings_by_price(name, limit, finish, price_type, descending=True)
