"""
Array-column classifier.

Decides, per raw column, whether values are ordered sequences (ARRAY) or
scalars. Three ordered tiers: blocklist override, static baseline, then a
plural-noun heuristic gated on list-compatible storage.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import AbstractSet, Iterable

from .consts import (
    ARRAY_COLUMN_BASELINE,
    DELIMITED_TEXT_TYPES,
    FALSE_PLURAL_NOUNS,
    SCALAR_COLUMN_BLOCKLIST,
    SINGULAR_SUFFIXES,
)
from .utils import split_camel_case

LOGGER = logging.getLogger(__name__)


class ColumnShape(enum.Enum):
    SCALAR = "scalar"
    ARRAY = "array"


class Tier(enum.Enum):
    """Which rule produced a verdict."""

    BLOCKLIST = "blocklist"
    BASELINE = "baseline"
    NATIVE = "native"
    HEURISTIC = "heuristic"
    DEFAULT = "default"


@dataclass(frozen=True)
class RawColumnDescriptor:
    """One column of a raw artifact, as reported by DESCRIBE."""

    name: str
    storage_type: str
    is_nested: bool = False

    @classmethod
    def from_describe(cls, name: str, storage_type: str) -> RawColumnDescriptor:
        return cls(name, storage_type, is_list_type(storage_type))


@dataclass(frozen=True)
class SchemaAmbiguity:
    """A column whose name says ARRAY but whose storage cannot hold a list."""

    column: str
    storage_type: str
    rejected: ColumnShape
    tier: Tier

    def __str__(self) -> str:
        return (
            f"column {self.column!r} looks {self.rejected.value} ({self.tier.value}) "
            f"but is stored as {self.storage_type}; treating as scalar"
        )


@dataclass(frozen=True)
class ColumnVerdict:
    column: str
    shape: ColumnShape
    tier: Tier
    ambiguity: SchemaAmbiguity | None = None


def is_list_type(storage_type: str) -> bool:
    """
    Is this DuckDB type a native list (VARCHAR[], INTEGER[3], LIST(...))
    """
    normalized = storage_type.strip().upper()
    return normalized.endswith("]") or normalized.startswith("LIST")


def is_list_compatible(storage_type: str) -> bool:
    """
    Can this storage type hold a list, natively or as delimited text
    """
    normalized = storage_type.strip().upper()
    return is_list_type(normalized) or normalized in DELIMITED_TEXT_TYPES


def is_plural_noun(name: str, false_plurals: AbstractSet[str] = FALSE_PLURAL_NOUNS) -> bool:
    """
    Check whether the last camelCase (or snake_case) word of a column
    name is a plural noun.
    "promoTypes" -> True, "status" -> False, "colorIdentity" -> False
    """
    words = split_camel_case(name)
    if not words:
        return False
    last_word = words[-1]
    if len(last_word) < 3 or not last_word.endswith("s"):
        return False
    if last_word in false_plurals:
        return False
    return not last_word.endswith(SINGULAR_SUFFIXES)


def classify_column(
    descriptor: RawColumnDescriptor,
    baseline: AbstractSet[str] = ARRAY_COLUMN_BASELINE,
    blocklist: AbstractSet[str] = SCALAR_COLUMN_BLOCKLIST,
    false_plurals: AbstractSet[str] = FALSE_PLURAL_NOUNS,
) -> ColumnVerdict:
    """
    Produce the shape verdict for a single column. Pure: no engine access.
    :param descriptor: Column name and declared storage
    :param baseline: Names known to be array valued
    :param blocklist: Names always treated as scalar (wins over baseline)
    :param false_plurals: Words ending in "s" that are not plurals
    :return Verdict with the deciding tier
    """
    name = descriptor.name

    if name in blocklist:
        return ColumnVerdict(name, ColumnShape.SCALAR, Tier.BLOCKLIST)

    if name in baseline:
        if descriptor.is_nested or is_list_compatible(descriptor.storage_type):
            return ColumnVerdict(name, ColumnShape.ARRAY, Tier.BASELINE)
        ambiguity = SchemaAmbiguity(
            name, descriptor.storage_type, ColumnShape.ARRAY, Tier.BASELINE
        )
        LOGGER.warning(f"Schema ambiguity: {ambiguity}")
        return ColumnVerdict(name, ColumnShape.SCALAR, Tier.BASELINE, ambiguity)

    if descriptor.is_nested:
        return ColumnVerdict(name, ColumnShape.ARRAY, Tier.NATIVE)

    if is_plural_noun(name, false_plurals) and is_list_compatible(
        descriptor.storage_type
    ):
        return ColumnVerdict(name, ColumnShape.ARRAY, Tier.HEURISTIC)

    return ColumnVerdict(name, ColumnShape.SCALAR, Tier.DEFAULT)


class ColumnClassifier:
    """
    Session-scoped verdict cache, keyed by (artifact version, view, column).
    Two artifacts may share a column name with different storage, so each
    view keeps its own verdicts. A new version recomputes every verdict on
    next use.
    """

    def __init__(
        self,
        baseline: AbstractSet[str] = ARRAY_COLUMN_BASELINE,
        blocklist: AbstractSet[str] = SCALAR_COLUMN_BLOCKLIST,
        false_plurals: AbstractSet[str] = FALSE_PLURAL_NOUNS,
    ) -> None:
        self.baseline = frozenset(baseline)
        self.blocklist = frozenset(blocklist)
        self.false_plurals = frozenset(false_plurals)
        self._verdicts: dict[tuple[str, str, str], ColumnVerdict] = {}
        self._lock = threading.Lock()

    def classify(
        self,
        descriptors: Iterable[RawColumnDescriptor],
        version: str,
        view_name: str = "",
    ) -> dict[str, ColumnVerdict]:
        """
        Classify every column of one artifact
        :param descriptors: Columns from DESCRIBE
        :param version: Artifact version the columns belong to
        :param view_name: Artifact the columns belong to
        :return column name -> verdict
        """
        results: dict[str, ColumnVerdict] = {}
        for descriptor in descriptors:
            key = (version, view_name, descriptor.name)
            with self._lock:
                verdict = self._verdicts.get(key)
            if verdict is None:
                verdict = classify_column(
                    descriptor, self.baseline, self.blocklist, self.false_plurals
                )
                LOGGER.debug(
                    f"Column {view_name}.{descriptor.name} ({descriptor.storage_type}) -> "
                    f"{verdict.shape.value} via {verdict.tier.value}"
                )
                with self._lock:
                    verdict = self._verdicts.setdefault(key, verdict)
            results[descriptor.name] = verdict
        return results

    def verdict(
        self, column_name: str, version: str, view_name: str = ""
    ) -> ColumnVerdict | None:
        with self._lock:
            return self._verdicts.get((version, view_name, column_name))

    def column_shape(
        self, column_name: str, version: str, view_name: str = ""
    ) -> ColumnShape | None:
        """
        Look up a previously classified column
        :return Shape, or None when the column has not been seen in that view
        at this version
        """
        verdict = self.verdict(column_name, version, view_name)
        return verdict.shape if verdict else None

    def shapes(self, column_name: str, version: str) -> dict[str, ColumnShape]:
        """
        Shape of a column in every view that has it, at one version
        :return view name -> shape
        """
        with self._lock:
            return {
                view_name: verdict.shape
                for (verdict_version, view_name, name), verdict in self._verdicts.items()
                if verdict_version == version and name == column_name
            }

    def ambiguities(
        self, version: str, view_name: str | None = None
    ) -> list[SchemaAmbiguity]:
        with self._lock:
            return [
                verdict.ambiguity
                for (verdict_version, verdict_view, _), verdict in self._verdicts.items()
                if verdict_version == version
                and (view_name is None or verdict_view == view_name)
                and verdict.ambiguity is not None
            ]

    def forget(self, keep_version: str | None = None) -> None:
        """
        Drop cached verdicts, optionally keeping one version
        """
        with self._lock:
            self._verdicts = {
                key: verdict
                for key, verdict in self._verdicts.items()
                if key[0] == keep_version
            }
