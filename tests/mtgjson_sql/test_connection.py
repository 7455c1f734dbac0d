import orjson
import polars as pl
import pytest

from mtgjson_sql import connection as connection_module, constants
from mtgjson_sql.classifier import ColumnShape
from mtgjson_sql.errors import (
    EngineExecutionError,
    IdentifierNotAllowedError,
    InvalidArgumentError,
    NotFoundError,
)
from mtgjson_sql.view_registry import ViewState


def test_cards_view_splits_delimited_columns(connection):
    connection.ensure_view("cards")
    rows = connection.execute(
        'SELECT colors, keywords, availability FROM cards WHERE uuid = ?', ["u-bolt-m10"]
    )
    assert rows == [{"colors": ["R"], "keywords": [], "availability": ["paper", "mtgo"]}]


def test_column_shapes(connection):
    assert connection.column_shape("colors", "cards") is ColumnShape.ARRAY
    assert connection.column_shape("printings", "cards") is ColumnShape.ARRAY
    assert connection.column_shape("text") is ColumnShape.SCALAR
    assert connection.column_shape("power") is ColumnShape.SCALAR
    assert connection.column_shape("name") is ColumnShape.SCALAR


def test_unclassified_column_is_not_found(connection):
    with pytest.raises(NotFoundError):
        connection.column_shape("colors")


def test_same_column_name_is_classified_per_view(connection, cache_dir):
    sets_path = cache_dir.joinpath(constants.PARQUET_FILES["sets"])
    pl.DataFrame({"code": ["LEA", "M10"], "printings": [1, 2]}).write_parquet(sets_path)

    connection.ensure_view("sets")
    connection.ensure_view("cards")

    assert connection.execute_scalar(
        "SELECT printings FROM cards WHERE uuid = ?", ["u-bolt-lea"]
    ) == ["LEA", "M10"]
    assert connection.execute_scalar(
        "SELECT printings FROM sets WHERE code = ?", ["M10"]
    ) == 2
    assert connection.column_shape("printings", "sets") is ColumnShape.SCALAR
    assert connection.column_shape("printings", "cards") is ColumnShape.ARRAY
    with pytest.raises(InvalidArgumentError, match="sets=scalar"):
        connection.column_shape("printings")


def test_column_missing_from_named_view(connection):
    with pytest.raises(NotFoundError):
        connection.column_shape("colors", "sets")


def test_json_columns_are_queryable(connection):
    connection.ensure_view("cards")
    value = connection.execute_scalar(
        "SELECT identifiers->>'scryfallId' FROM cards WHERE uuid = ?", ["u-dragon"]
    )
    assert value == "a3"


def test_unknown_view(connection):
    with pytest.raises(NotFoundError):
        connection.ensure_view("not_a_view")
    assert connection.registry.state("not_a_view") is ViewState.UNREGISTERED


def test_engine_errors_keep_query_and_cause(connection):
    with pytest.raises(EngineExecutionError) as error:
        connection.execute("SELECT * FROM nowhere WHERE x = ?", [1])
    assert error.value.query == "SELECT * FROM nowhere WHERE x = ?"
    assert error.value.params == [1]
    assert error.value.__cause__ is not None
    assert "nowhere" in str(error.value)


def test_builder_uses_live_schema(connection):
    builder = connection.builder("sets")
    with pytest.raises(IdentifierNotAllowedError):
        builder.where_eq("password", "x")

    sql, params = builder.select("code").where_eq("type", "core").order_by("code").build()
    assert [row["code"] for row in connection.execute(sql, params)] == ["LEA", "M10"]


def test_legalities_are_unpivoted(connection):
    connection.ensure_view("card_legalities")
    rows = connection.execute(
        "SELECT format, status FROM card_legalities WHERE uuid = ? ORDER BY format",
        ["u-ragavan"],
    )
    assert rows == [
        {"format": "legacy", "status": "legal"},
        {"format": "modern", "status": "banned"},
        {"format": "vintage", "status": "legal"},
    ]
    formats = connection.execute("SELECT DISTINCT format FROM card_legalities ORDER BY 1")
    assert [row["format"] for row in formats] == ["legacy", "modern", "standard", "vintage"]


def test_price_views_are_flattened(connection):
    connection.ensure_views("all_prices_today", "all_prices")
    assert connection.execute_scalar("SELECT COUNT(*) FROM all_prices_today") == 6
    assert connection.execute_scalar("SELECT COUNT(*) FROM all_prices") == 3
    assert connection.execute_scalar(
        "SELECT COUNT(*) FROM all_prices_today WHERE price IS NULL"
    ) == 0


def test_views_build_once(connection, mocker):
    spy = mocker.spy(connection_module, "register_base_view")
    connection.ensure_view("cards")
    connection.ensure_view("cards")
    connection.describe("cards")
    assert spy.call_count == 1
    assert connection.views() == ["cards"]


def test_reset_views_rebuilds_on_next_access(connection, mocker):
    spy = mocker.spy(connection_module, "register_base_view")
    connection.ensure_views("cards", "sets")

    assert connection.reset_views() == 2
    assert connection.views() == []
    assert not connection.has_view("cards")

    connection.ensure_view("cards")
    assert spy.call_count == 3
    assert connection.registry.generation == 1


def test_execute_df(connection):
    connection.ensure_view("sets")
    frame = connection.execute_df("SELECT code FROM sets ORDER BY code")
    assert frame["code"].to_list() == ["LEA", "M10", "MH2"]


def test_ndjson_table_survives_reset(connection, tmp_path):
    path = tmp_path.joinpath("decks.ndjson")
    path.write_bytes(
        b"\n".join(
            orjson.dumps(deck)
            for deck in [
                {"code": "D1", "name": "Burn", "size": 60},
                {"code": "D2", "name": "Control", "size": 60},
            ]
        )
    )
    connection.register_table_from_ndjson("decks", path)
    assert connection.has_view("decks")

    connection.reset_views()
    connection.ensure_view("decks")
    assert connection.execute_scalar("SELECT COUNT(*) FROM decks") == 2
