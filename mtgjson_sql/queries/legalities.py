"""
Format legality lookups over the long-form ``card_legalities`` relation.
"""

from __future__ import annotations

from typing import Any, Dict, List

from ..connection import Connection
from ..constants import LEGALITIES_VIEW
from ..models import LegalityEntry
from ..transforms.legalities import normalize_format_name


class LegalityQuery:
    """Query interface for card legalities."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    def formats_for_card(self, uuid: str) -> List[LegalityEntry]:
        """
        Every (format, status) the dataset lists for one card
        """
        sql, params = (
            self.connection.builder(LEGALITIES_VIEW)
            .where_eq("uuid", uuid)
            .order_by("format")
            .build()
        )
        return [LegalityEntry(**row) for row in self.connection.execute(sql, params)]

    def is_legal(self, uuid: str, format_name: str) -> bool:
        sql, params = (
            self.connection.builder(LEGALITIES_VIEW)
            .select_expr("COUNT(*)", "total")
            .where_eq("uuid", uuid)
            .where_eq("format", normalize_format_name(format_name))
            .where_eq("status", "legal")
            .build()
        )
        return bool(self.connection.execute_scalar(sql, params))

    def _cards_with_status(self, format_name: str, status: str) -> List[Dict[str, Any]]:
        """
        Distinct cards (uuid, name) with a given status in a format
        """
        self.connection.ensure_view("cards")
        sql, params = (
            self.connection.builder(LEGALITIES_VIEW, alias="cl")
            .join('JOIN "cards" "c" ON "c"."uuid" = "cl"."uuid"', columns=["name"])
            .select("cl.uuid", "c.name")
            .distinct()
            .where_eq("cl.format", normalize_format_name(format_name))
            .where_eq("cl.status", status)
            .order_by("name")
            .build()
        )
        return self.connection.execute(sql, params)

    def legal_in(self, format_name: str) -> List[Dict[str, Any]]:
        return self._cards_with_status(format_name, "legal")

    def banned_in(self, format_name: str) -> List[Dict[str, Any]]:
        return self._cards_with_status(format_name, "banned")

    def restricted_in(self, format_name: str) -> List[Dict[str, Any]]:
        return self._cards_with_status(format_name, "restricted")

    def suspended_in(self, format_name: str) -> List[Dict[str, Any]]:
        return self._cards_with_status(format_name, "suspended")

    def not_legal_in(self, format_name: str) -> List[Dict[str, Any]]:
        return self._cards_with_status(format_name, "not_legal")
