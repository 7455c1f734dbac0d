import pathlib

from mtgjson_sql import constants
from mtgjson_sql.mtgjson_config import MtgjsonSqlConfig


def test_shipped_defaults(tmp_path):
    config = MtgjsonSqlConfig()
    assert config.version == "1.0.0"
    assert config.offline is False
    assert config.timeout == 120.0
    assert config.price_batch_size == 50_000
    assert config.fuzzy_threshold == 0.8
    assert config.cache_dir == tmp_path.joinpath("default-cache").resolve()


def test_is_singleton():
    assert MtgjsonSqlConfig() is MtgjsonSqlConfig()


def test_custom_file(tmp_path, monkeypatch):
    monkeypatch.delenv("MTGJSON_SQL_CACHE_DIR")
    config_file = tmp_path.joinpath("custom.properties")
    config_file.write_text(
        "[MTGJSON_SQL]\n"
        f"cache_dir={tmp_path.joinpath('from-file').as_posix()}\n"
        "offline=true\n"
        "price_batch_size=not-a-number\n"
        "fuzzy_threshold=0.9\n"
    )
    config = MtgjsonSqlConfig(config_path=config_file)
    assert config.cache_dir == tmp_path.joinpath("from-file").resolve()
    assert config.offline is True
    assert config.price_batch_size == 50_000
    assert config.fuzzy_threshold == 0.9
    assert config.version == "0.0.0+fallback"


def test_missing_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("MTGJSON_SQL_CACHE_DIR")
    config = MtgjsonSqlConfig(config_path=tmp_path.joinpath("nope.properties"))
    assert config.cache_dir == pathlib.Path(constants.DEFAULT_CACHE_PATH).resolve()
    assert config.timeout == 120.0


def test_env_offline_override(monkeypatch):
    monkeypatch.setenv("MTGJSON_SQL_OFFLINE", "1")
    assert MtgjsonSqlConfig().offline is True


def test_empty_option_is_unset():
    config = MtgjsonSqlConfig()
    assert not config.has_option("MTGJSON_SQL", "cache_dir")
    assert config.get("MTGJSON_SQL", "cache_dir", fallback="x") == "x"
    assert config.has_section("MTGJSON_SQL")
