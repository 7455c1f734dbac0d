"""Pytest configuration and fixtures for mtgjson_sql tests."""

import gzip
import pathlib
from typing import Any, Dict, Generator

import orjson
import polars as pl
import pytest

from mtgjson_sql import constants
from mtgjson_sql.mtgjson_config import MtgjsonSqlConfig

DATASET_VERSION = "5.2.2+20240101"

CARDS = {
    "uuid": ["u-bolt-lea", "u-bolt-m10", "u-dragon", "u-counter", "u-ragavan"],
    "name": [
        "Lightning Bolt",
        "Lightning Bolt",
        "Shivan Dragon",
        "Counterspell",
        "Ragavan, Nimble Pilferer",
    ],
    "setCode": ["LEA", "M10", "LEA", "LEA", "MH2"],
    "number": ["161", "146", "174", "54", "138"],
    "rarity": ["common", "common", "rare", "uncommon", "mythic"],
    "colors": ["R", "R", "R", "U", "R"],
    "colorIdentity": ["R", "R", "R", "U", "R"],
    "keywords": [None, None, "Flying", None, "Dash"],
    "type": [
        "Instant",
        "Instant",
        "Creature — Dragon",
        "Instant",
        "Legendary Creature — Monkey Pirate",
    ],
    "types": ["Instant", "Instant", "Creature", "Instant", "Creature"],
    "text": [
        "Lightning Bolt deals 3 damage to any target.",
        "Lightning Bolt deals 3 damage to any target.",
        "Flying\n{R}: Shivan Dragon gets +1/+0 until end of turn.",
        "Counter target spell.",
        "Whenever Ragavan, Nimble Pilferer deals combat damage to a player, "
        "create a Treasure token.",
    ],
    "manaValue": [1.0, 1.0, 6.0, 2.0, 1.0],
    "artist": [
        "Christopher Rush",
        "Christopher Moeller",
        "Melissa Benson",
        "Mark Poole",
        "Simon Dominic",
    ],
    "power": [None, None, "5", None, "2"],
    "availability": ["paper", "paper, mtgo", "paper", "paper", "paper, mtgo"],
    "printings": ["LEA, M10", "LEA, M10", "LEA", "LEA", "MH2"],
    "identifiers": [
        '{"scryfallId": "a1"}',
        '{"scryfallId": "a2"}',
        '{"scryfallId": "a3"}',
        '{"scryfallId": "a4"}',
        '{"scryfallId": "a5"}',
    ],
}

SETS = {
    "code": ["LEA", "M10", "MH2"],
    "name": ["Limited Edition Alpha", "Magic 2010", "Modern Horizons 2"],
    "type": ["core", "core", "draft_innovation"],
    "releaseDate": ["1993-08-05", "2009-07-17", "2021-06-18"],
    "totalSetSize": [295, 249, 303],
}

LEGALITIES = {
    "uuid": ["u-bolt-lea", "u-bolt-m10", "u-dragon", "u-counter", "u-ragavan"],
    "modern": [None, "Legal", None, None, "Banned"],
    "standard": [None, "Not Legal", None, None, None],
    "vintage": ["Legal", "Legal", "Legal", "Legal", "Legal"],
    "legacy": ["Legal", "Legal", "Legal", "Legal", "Legal"],
    "notes": ["first print", None, None, None, None],
}

PRICES_TODAY: Dict[str, Any] = {
    "meta": {"version": DATASET_VERSION, "date": "2024-01-01"},
    "data": {
        "u-bolt-lea": {
            "paper": {
                "tcgplayer": {
                    "retail": {"normal": {"2024-01-01": 450.0}},
                    "currency": "USD",
                }
            }
        },
        "u-bolt-m10": {
            "paper": {
                "tcgplayer": {
                    "retail": {
                        "normal": {"2024-01-01": 2.5, "2023-12-31": None},
                        "foil": {"2024-01-01": 12.0},
                    },
                    "buylist": {"normal": {"2024-01-01": 1.0}},
                    "currency": "USD",
                },
                "cardkingdom": {
                    "retail": {"normal": {"2024-01-01": 2.99}},
                    "currency": "USD",
                },
            },
            "mtgo": {
                "cardhoarder": {
                    "retail": {"normal": {"2024-01-01": 0.05}},
                    "currency": "TIX",
                }
            },
        },
    },
}

PRICES_HISTORY: Dict[str, Any] = {
    "meta": {"version": DATASET_VERSION, "date": "2024-01-01"},
    "data": {
        "u-bolt-m10": {
            "paper": {
                "tcgplayer": {
                    "retail": {
                        "normal": {
                            "2023-12-30": 2.0,
                            "2023-12-31": 2.25,
                            "2024-01-01": 2.5,
                        }
                    },
                    "currency": "USD",
                }
            }
        }
    },
}


def write_json_gz(path: pathlib.Path, content: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, "wb") as file:
        file.write(orjson.dumps(content))


@pytest.fixture(autouse=True)
def reset_config(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Fresh config singleton per test, never pointing at the real cache."""
    monkeypatch.setenv("MTGJSON_SQL_CACHE_DIR", str(tmp_path.joinpath("default-cache")))
    monkeypatch.delenv("MTGJSON_SQL_OFFLINE", raising=False)
    if hasattr(MtgjsonSqlConfig, "_instance"):
        MtgjsonSqlConfig._instance = None
    yield
    if hasattr(MtgjsonSqlConfig, "_instance"):
        MtgjsonSqlConfig._instance = None


@pytest.fixture
def cache_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """A populated cache directory, usable offline."""
    root = tmp_path.joinpath("cache")
    parquet = {
        "cards": CARDS,
        "sets": SETS,
        "card_legalities": LEGALITIES,
    }
    for view_name, columns in parquet.items():
        path = root.joinpath(constants.PARQUET_FILES[view_name])
        path.parent.mkdir(parents=True, exist_ok=True)
        pl.DataFrame(columns).write_parquet(path)

    write_json_gz(root.joinpath(constants.PRICE_FILES["all_prices_today"]), PRICES_TODAY)
    write_json_gz(root.joinpath(constants.PRICE_FILES["all_prices"]), PRICES_HISTORY)
    root.joinpath(constants.JSON_FILES["meta"]).write_bytes(
        orjson.dumps({"data": {"version": DATASET_VERSION, "date": "2024-01-01"}})
    )
    root.joinpath(constants.VERSION_FILE_NAME).write_text(DATASET_VERSION)
    return root


@pytest.fixture
def session(cache_dir: pathlib.Path) -> Generator[Any, None, None]:
    from mtgjson_sql import MtgjsonSql

    with MtgjsonSql(cache_dir=cache_dir, offline=True) as opened:
        yield opened


@pytest.fixture
def connection(session: Any) -> Any:
    return session.connection
