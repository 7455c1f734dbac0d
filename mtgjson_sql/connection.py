"""
DuckDB connection wrapper with lazy view registration.

Views are built on first use through the ViewRegistry: parquet artifacts
become base views (array and JSON columns resolved by the classifier),
the legality artifact is unpivoted, and price files are flattened.
"""

from __future__ import annotations

import logging
import pathlib
import threading
from typing import Any, Dict, List, Optional, Sequence

import duckdb
import polars as pl

from . import constants
from .cache import CacheManager
from .classifier import ColumnClassifier, ColumnShape, RawColumnDescriptor
from .errors import EngineExecutionError, InvalidArgumentError, NotFoundError
from .mtgjson_config import MtgjsonSqlConfig
from .sql_builder import SqlBuilder
from .transforms import (
    build_legalities,
    build_prices,
    describe_source,
    parquet_source,
    register_base_view,
)
from .utils import quote_identifier, quote_literal
from .view_registry import RegisteredView, ViewRegistry

LOGGER = logging.getLogger(__name__)


class Connection:
    """
    Owns one DuckDB database, the column classifier, and the view registry
    for a session. Every statement runs on its own cursor, so a Connection
    may be shared between threads.
    """

    def __init__(
        self,
        cache: CacheManager,
        database: str = ":memory:",
        price_batch_size: Optional[int] = None,
    ) -> None:
        self.cache = cache
        self.price_batch_size = price_batch_size or MtgjsonSqlConfig().price_batch_size
        self._conn = duckdb.connect(database)
        self._classifier = ColumnClassifier()
        self._registry = ViewRegistry(self._materialize, cache.fingerprint)
        self._external_tables: set[str] = set()
        self._lock = threading.Lock()

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def registry(self) -> ViewRegistry:
        return self._registry

    @property
    def classifier(self) -> ColumnClassifier:
        return self._classifier

    def cursor(self) -> duckdb.DuckDBPyConnection:
        return self._conn.cursor()

    def _materialize(self, view_name: str) -> None:
        """
        Build one view; called by the registry, at most once at a time per view
        """
        with self._lock:
            if view_name in self._external_tables:
                return

        if view_name not in constants.PARQUET_FILES and view_name not in constants.PRICE_FILES:
            raise NotFoundError(f"Unknown view: {view_name}")

        path = self.cache.ensure_artifact(view_name)
        cursor = self.cursor()
        try:
            if view_name == constants.LEGALITIES_VIEW:
                build_legalities(cursor, view_name, parquet_source(path))
            elif view_name in constants.PRICE_FILES:
                build_prices(cursor, view_name, path, self.price_batch_size)
            else:
                self._register_parquet_view(cursor, view_name, path)
        except duckdb.Error as error:
            raise EngineExecutionError(
                str(error), f"-- materialize {view_name} from {path}"
            ) from error
        finally:
            cursor.close()

    def _register_parquet_view(
        self, cursor: duckdb.DuckDBPyConnection, view_name: str, path: pathlib.Path
    ) -> None:
        source_sql = parquet_source(path)
        descriptors = describe_source(cursor, source_sql)
        verdicts = self._classifier.classify(
            descriptors, self.cache.fingerprint(), view_name
        )
        register_base_view(cursor, view_name, source_sql, verdicts, descriptors)

    def ensure_view(self, view_name: str) -> RegisteredView:
        """
        Build a view on first use; later calls are no-ops until a refresh
        """
        return self._registry.ensure(view_name)

    def ensure_views(self, *view_names: str) -> None:
        for view_name in view_names:
            self.ensure_view(view_name)

    def execute(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Run a query and return rows as dicts
        :param sql: Query text with ? placeholders
        :param params: Values bound in placeholder order
        """
        cursor = self.cursor()
        try:
            result = cursor.execute(sql, list(params or []))
            if result.description is None:
                return []
            columns = [column[0] for column in result.description]
            return [dict(zip(columns, row)) for row in result.fetchall()]
        except duckdb.Error as error:
            raise EngineExecutionError(str(error), sql, params) from error
        finally:
            cursor.close()

    def execute_df(self, sql: str, params: Optional[Sequence[Any]] = None) -> pl.DataFrame:
        """
        Run a query and return a polars DataFrame
        """
        cursor = self.cursor()
        try:
            return cursor.execute(sql, list(params or [])).pl()
        except duckdb.Error as error:
            raise EngineExecutionError(str(error), sql, params) from error
        finally:
            cursor.close()

    def execute_scalar(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        cursor = self.cursor()
        try:
            row = cursor.execute(sql, list(params or [])).fetchone()
        except duckdb.Error as error:
            raise EngineExecutionError(str(error), sql, params) from error
        finally:
            cursor.close()
        return row[0] if row else None

    def describe(self, view_name: str) -> List[RawColumnDescriptor]:
        """
        Schema of a view, building it first if needed
        """
        self.ensure_view(view_name)
        cursor = self.cursor()
        try:
            return describe_source(cursor, quote_identifier(view_name))
        except duckdb.Error as error:
            raise EngineExecutionError(str(error), f"DESCRIBE {view_name}") from error
        finally:
            cursor.close()

    def builder(self, view_name: str, alias: Optional[str] = None) -> SqlBuilder:
        """
        SqlBuilder whose allow-list is the live schema of the view
        """
        columns = {descriptor.name for descriptor in self.describe(view_name)}
        return SqlBuilder(view_name, alias=alias, allowed_columns=columns)

    def column_shape(self, column_name: str, view_name: Optional[str] = None) -> ColumnShape:
        """
        Whether a raw column is exposed as a list or a scalar
        :param column_name: Raw column name
        :param view_name: Base view the column belongs to; built first if needed.
        Without one, every classified view is searched and must agree.
        """
        if view_name is not None:
            self.ensure_view(view_name)
            shape = self._classifier.column_shape(
                column_name, self.cache.fingerprint(), view_name
            )
            if shape is None:
                raise NotFoundError(f"View {view_name} has no column {column_name}")
            return shape

        shapes = self._classifier.shapes(column_name, self.cache.fingerprint())
        if not shapes:
            raise NotFoundError(
                f"Column {column_name} has not been classified; "
                "ensure a view that contains it first"
            )
        distinct = set(shapes.values())
        if len(distinct) > 1:
            detail = ", ".join(f"{view}={shape.value}" for view, shape in sorted(shapes.items()))
            raise InvalidArgumentError(
                f"Column {column_name} differs between views ({detail}); pass a view name"
            )
        return distinct.pop()

    def register_table_from_ndjson(self, table_name: str, path: pathlib.Path) -> None:
        """
        Load a newline-delimited JSON file into a table, streamed by DuckDB
        """
        target = quote_identifier(table_name)
        cursor = self.cursor()
        try:
            cursor.execute(
                f"CREATE OR REPLACE TABLE {target} AS SELECT * FROM "
                f"read_json_auto({quote_literal(path.as_posix())}, "
                "format='newline_delimited')"
            )
        except duckdb.Error as error:
            raise EngineExecutionError(str(error), f"-- load {path}") from error
        finally:
            cursor.close()

        with self._lock:
            self._external_tables.add(table_name)
        self._registry.mark_registered(table_name)
        LOGGER.info(f"Registered table: {table_name} -> {path}")

    def views(self) -> List[str]:
        return self._registry.registered()

    def has_view(self, view_name: str) -> bool:
        return self._registry.get(view_name) is not None

    def reset_views(self) -> int:
        """
        Mark every view stale so it is rebuilt on next access
        """
        invalidated = self._registry.invalidate_all()
        self._classifier.forget(keep_version=self.cache.fingerprint())
        return invalidated

    def raw(self) -> duckdb.DuckDBPyConnection:
        return self._conn

    def close(self) -> None:
        self._conn.close()
