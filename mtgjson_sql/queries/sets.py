"""
Set lookups over the ``sets`` view.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..connection import Connection

SETS_VIEW = "sets"


class SetQuery:
    """Query interface for sets."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    def get(self, code: str) -> Optional[Dict[str, Any]]:
        sql, params = (
            self.connection.builder(SETS_VIEW)
            .where_eq("code", code.upper())
            .limit(1)
            .build()
        )
        rows = self.connection.execute(sql, params)
        return rows[0] if rows else None

    def list(
        self,
        set_type: Optional[str] = None,
        name: Optional[str] = None,
        released_after: Optional[str] = None,
        released_before: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Sets ordered newest first
        :param name: Substring of the set name, case-insensitive
        :param released_after: Inclusive ISO date
        :param released_before: Inclusive ISO date
        """
        builder = self.connection.builder(SETS_VIEW)
        if set_type:
            builder.where_eq("type", set_type)
        if name:
            builder.where_like("name", f"%{name}%")
        if released_after:
            builder.where_gte("releaseDate", released_after)
        if released_before:
            builder.where_lte("releaseDate", released_before)
        builder.order_by("releaseDate DESC", "code")
        if limit is not None:
            builder.limit(limit)
        if offset is not None:
            builder.offset(offset)

        sql, params = builder.build()
        return self.connection.execute(sql, params)

    def count(self, set_type: Optional[str] = None) -> int:
        builder = self.connection.builder(SETS_VIEW).select_expr("COUNT(*)", "total")
        if set_type:
            builder.where_eq("type", set_type)
        sql, params = builder.build()
        return int(self.connection.execute_scalar(sql, params) or 0)
