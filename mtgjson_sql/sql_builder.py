"""
Parameterized SQL construction.

Every caller-supplied value becomes a ``?`` placeholder with a bound
parameter. Identifiers are embedded as text only after validation: they
must be bare names (optionally ``alias.column``) and, when the builder has
an allow-list, a member of it.

    sql, params = (
        SqlBuilder("cards", allowed_columns=schema)
        .where_eq("rarity", "mythic")
        .where_in("setCode", ["MH3", "LTR"])
        .limit(10)
        .build()
    )
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import AbstractSet, Any, Iterable, Sequence

from .errors import IdentifierNotAllowedError, InvalidArgumentError
from .utils import is_safe_identifier, quote_identifier

ORDER_CLAUSE_REGEX = re.compile(
    r"^\s*(?P<column>[A-Za-z_][A-Za-z0-9_.]*)"
    r"(?:\s+(?P<direction>ASC|DESC))?"
    r"(?:\s+NULLS\s+(?P<nulls>FIRST|LAST))?\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Condition:
    """
    A single predicate awaiting identifier validation.
    ``template`` holds ``{column}`` where the rendered identifier goes
    and one ``?`` per entry of ``params``.
    """

    column: str
    template: str
    params: tuple[Any, ...] = ()


def eq(column: str, value: Any) -> Condition:
    return Condition(column, "{column} = ?", (value,))


def ne(column: str, value: Any) -> Condition:
    return Condition(column, "{column} != ?", (value,))


def gt(column: str, value: Any) -> Condition:
    return Condition(column, "{column} > ?", (value,))


def gte(column: str, value: Any) -> Condition:
    return Condition(column, "{column} >= ?", (value,))


def lt(column: str, value: Any) -> Condition:
    return Condition(column, "{column} < ?", (value,))


def lte(column: str, value: Any) -> Condition:
    return Condition(column, "{column} <= ?", (value,))


def between(column: str, low: Any, high: Any) -> Condition:
    return Condition(column, "{column} BETWEEN ? AND ?", (low, high))


def like(column: str, pattern: str) -> Condition:
    """Case-insensitive LIKE"""
    return Condition(column, "LOWER({column}) LIKE LOWER(?)", (pattern,))


def in_(column: str, values: Iterable[Any]) -> Condition:
    values = tuple(values)
    if not values:
        return Condition(column, "FALSE")
    placeholders = ", ".join("?" for _ in values)
    return Condition(column, f"{{column}} IN ({placeholders})", values)


def not_in(column: str, values: Iterable[Any]) -> Condition:
    values = tuple(values)
    if not values:
        return Condition(column, "TRUE")
    placeholders = ", ".join("?" for _ in values)
    return Condition(column, f"{{column}} NOT IN ({placeholders})", values)


def is_null(column: str) -> Condition:
    return Condition(column, "{column} IS NULL")


def is_not_null(column: str) -> Condition:
    return Condition(column, "{column} IS NOT NULL")


def contains(column: str, value: Any) -> Condition:
    """Membership in a list column"""
    return Condition(column, "list_contains({column}, ?)", (value,))


def regex(column: str, pattern: str) -> Condition:
    return Condition(column, "regexp_matches({column}, ?)", (pattern,))


def fuzzy(column: str, value: str, threshold: float = 0.8) -> Condition:
    """Jaro-Winkler similarity above a threshold in [0, 1]"""
    return Condition(
        column,
        "jaro_winkler_similarity({column}, ?) > ?",
        (value, validate_threshold(threshold)),
    )


def validate_threshold(threshold: Any) -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise InvalidArgumentError(f"Fuzzy threshold must be a number, got {threshold!r}")
    if not 0.0 <= threshold <= 1.0:
        raise InvalidArgumentError(f"Fuzzy threshold must be in [0, 1], got {threshold}")
    return float(threshold)


def validate_count(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def check_placeholders(fragment: str, params: Sequence[Any]) -> None:
    """
    Raise unless the fragment has exactly one ``?`` per parameter
    """
    placeholders = fragment.count("?")
    if placeholders != len(params):
        raise InvalidArgumentError(
            f"Fragment {fragment!r} has {placeholders} placeholder(s) "
            f"but {len(params)} parameter(s)"
        )


class SqlBuilder:
    """
    Chainable SELECT builder. ``build()`` has no side effects and may be
    called any number of times.
    """

    def __init__(
        self,
        table: str,
        alias: str | None = None,
        allowed_columns: AbstractSet[str] | None = None,
    ) -> None:
        if not is_safe_identifier(table):
            raise IdentifierNotAllowedError(table, "not a valid table name")
        if alias is not None and not is_safe_identifier(alias):
            raise IdentifierNotAllowedError(alias, "not a valid table alias")
        self._table = table
        self._alias = alias
        self._allowed: set[str] | None = (
            set(allowed_columns) if allowed_columns is not None else None
        )
        self._select: list[str] = []
        self._select_params: list[Any] = []
        self._distinct = False
        self._joins: list[str] = []
        self._where: list[tuple[str, tuple[Any, ...]]] = []
        self._group_by: list[str] = []
        self._having: list[tuple[str, tuple[Any, ...]]] = []
        self._order_by: list[str] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def allow(self, *columns: str) -> SqlBuilder:
        """
        Extend the allow-list, e.g. with columns of a joined relation
        """
        if self._allowed is not None:
            for column in columns:
                if not is_safe_identifier(column):
                    raise IdentifierNotAllowedError(column, "not a valid column name")
                self._allowed.add(column)
        return self

    def _identifier(self, name: str) -> str:
        """
        Validate and render a column reference, optionally alias-qualified
        """
        if not isinstance(name, str):
            raise IdentifierNotAllowedError(repr(name), "identifier must be a string")
        parts = name.split(".")
        if len(parts) > 2 or not all(is_safe_identifier(part) for part in parts):
            raise IdentifierNotAllowedError(name, "not a valid identifier")
        column = parts[-1]
        if self._allowed is not None and column not in self._allowed:
            raise IdentifierNotAllowedError(name)
        return ".".join(quote_identifier(part) for part in parts)

    def _render(self, condition: Condition) -> tuple[str, tuple[Any, ...]]:
        rendered_column = self._identifier(condition.column)
        return condition.template.format(column=rendered_column), condition.params

    def _add_where(self, condition: Condition) -> SqlBuilder:
        self._where.append(self._render(condition))
        return self

    def select(self, *columns: str) -> SqlBuilder:
        for column in columns:
            if column == "*":
                self._select.append("*")
            elif column.endswith(".*") and is_safe_identifier(column[:-2]):
                self._select.append(f"{quote_identifier(column[:-2])}.*")
            else:
                self._select.append(self._identifier(column))
        return self

    def select_expr(self, expression: str, alias: str, *params: Any) -> SqlBuilder:
        """
        Select a trusted expression (aggregate, function call) under an alias.
        The expression is library-authored text; values go through ``params``.
        """
        if not is_safe_identifier(alias):
            raise IdentifierNotAllowedError(alias, "not a valid column alias")
        check_placeholders(expression, params)
        self._select_params.extend(params)
        self._select.append(f"{expression} AS {quote_identifier(alias)}")
        if self._allowed is not None:
            self._allowed.add(alias)
        return self

    def distinct(self) -> SqlBuilder:
        self._distinct = True
        return self

    def join(self, clause: str, columns: Iterable[str] = ()) -> SqlBuilder:
        """
        Add a trusted JOIN clause, e.g. ``JOIN sets s ON cards.setCode = s.code``
        :param clause: Full join expression, library-authored
        :param columns: Columns the joined relation contributes to the allow-list
        """
        check_placeholders(clause, ())
        self._joins.append(clause)
        return self.allow(*columns)

    def where(self, condition: str, *params: Any) -> SqlBuilder:
        """
        Add a trusted predicate fragment with one ``?`` per parameter
        """
        check_placeholders(condition, params)
        self._where.append((condition, tuple(params)))
        return self

    def where_eq(self, column: str, value: Any) -> SqlBuilder:
        return self._add_where(eq(column, value))

    def where_ne(self, column: str, value: Any) -> SqlBuilder:
        return self._add_where(ne(column, value))

    def where_gt(self, column: str, value: Any) -> SqlBuilder:
        return self._add_where(gt(column, value))

    def where_gte(self, column: str, value: Any) -> SqlBuilder:
        return self._add_where(gte(column, value))

    def where_lt(self, column: str, value: Any) -> SqlBuilder:
        return self._add_where(lt(column, value))

    def where_lte(self, column: str, value: Any) -> SqlBuilder:
        return self._add_where(lte(column, value))

    def where_between(self, column: str, low: Any, high: Any) -> SqlBuilder:
        return self._add_where(between(column, low, high))

    def where_like(self, column: str, pattern: str) -> SqlBuilder:
        return self._add_where(like(column, pattern))

    def where_in(self, column: str, values: Iterable[Any]) -> SqlBuilder:
        """Empty ``values`` matches nothing."""
        return self._add_where(in_(column, values))

    def where_not_in(self, column: str, values: Iterable[Any]) -> SqlBuilder:
        return self._add_where(not_in(column, values))

    def where_null(self, column: str) -> SqlBuilder:
        return self._add_where(is_null(column))

    def where_not_null(self, column: str) -> SqlBuilder:
        return self._add_where(is_not_null(column))

    def where_contains(self, column: str, value: Any) -> SqlBuilder:
        return self._add_where(contains(column, value))

    def where_regex(self, column: str, pattern: str) -> SqlBuilder:
        return self._add_where(regex(column, pattern))

    def where_fuzzy(self, column: str, value: str, threshold: float = 0.8) -> SqlBuilder:
        return self._add_where(fuzzy(column, value, threshold))

    def where_or(self, *conditions: Condition) -> SqlBuilder:
        """
        OR together several predicates built with the module constructors.
        No conditions is a no-op.
        """
        if not conditions:
            return self
        fragments: list[str] = []
        params: list[Any] = []
        for condition in conditions:
            if not isinstance(condition, Condition):
                raise InvalidArgumentError(
                    f"where_or expects Condition objects, got {condition!r}"
                )
            fragment, condition_params = self._render(condition)
            fragments.append(fragment)
            params.extend(condition_params)
        self._where.append((f"({' OR '.join(fragments)})", tuple(params)))
        return self

    def group_by(self, *columns: str) -> SqlBuilder:
        self._group_by.extend(self._identifier(column) for column in columns)
        return self

    def having(self, condition: str, *params: Any) -> SqlBuilder:
        check_placeholders(condition, params)
        self._having.append((condition, tuple(params)))
        return self

    def order_by(self, *clauses: str) -> SqlBuilder:
        """
        Accepts ``"column"``, ``"column DESC"``, ``"column ASC NULLS LAST"``
        """
        for clause in clauses:
            match = ORDER_CLAUSE_REGEX.match(clause)
            if not match:
                raise IdentifierNotAllowedError(clause, "not a valid ORDER BY clause")
            rendered = self._identifier(match.group("column"))
            if match.group("direction"):
                rendered += f" {match.group('direction').upper()}"
            if match.group("nulls"):
                rendered += f" NULLS {match.group('nulls').upper()}"
            self._order_by.append(rendered)
        return self

    def limit(self, n: int) -> SqlBuilder:
        self._limit = validate_count("limit", n)
        return self

    def offset(self, n: int) -> SqlBuilder:
        self._offset = validate_count("offset", n)
        return self

    def build(self) -> tuple[str, list[Any]]:
        """
        Render the query
        :return (sql text, positional params in placeholder order)
        """
        columns = ", ".join(self._select) if self._select else "*"
        table = quote_identifier(self._table)
        if self._alias:
            table += f" {quote_identifier(self._alias)}"

        parts = [
            f"SELECT {'DISTINCT ' if self._distinct else ''}{columns}",
            f"FROM {table}",
        ]
        parts.extend(self._joins)

        params: list[Any] = list(self._select_params)
        if self._where:
            parts.append("WHERE " + " AND ".join(fragment for fragment, _ in self._where))
            for _, fragment_params in self._where:
                params.extend(fragment_params)
        if self._group_by:
            parts.append("GROUP BY " + ", ".join(self._group_by))
        if self._having:
            parts.append(
                "HAVING " + " AND ".join(fragment for fragment, _ in self._having)
            )
            for _, fragment_params in self._having:
                params.extend(fragment_params)
        if self._order_by:
            parts.append("ORDER BY " + ", ".join(self._order_by))
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        if self._offset is not None:
            parts.append(f"OFFSET {self._offset}")

        return "\n".join(parts), params
