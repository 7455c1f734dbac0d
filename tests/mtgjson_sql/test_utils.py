import gzip
import hashlib
import logging

import pytest

from mtgjson_sql import utils


@pytest.mark.parametrize(
    "camel, snake",
    [("colorIdentity", "color_identity"), ("uuid", "uuid"), ("PreModern", "pre_modern")],
)
def test_to_snake_case(camel, snake):
    assert utils.to_snake_case(camel) == snake


def test_split_camel_case():
    assert utils.split_camel_case("otherFaceIds") == ["other", "face", "ids"]
    assert utils.split_camel_case("pre_modern") == ["pre", "modern"]


@pytest.mark.parametrize("name", ["cards", "setCode", "_hidden", "col_2"])
def test_safe_identifiers(name):
    assert utils.is_safe_identifier(name)


@pytest.mark.parametrize("name", ["", "2col", "a b", 'a"b', "a;b", "a.b"])
def test_unsafe_identifiers(name):
    assert not utils.is_safe_identifier(name)


def test_quoting():
    assert utils.quote_identifier('we"ird') == '"we""ird"'
    assert utils.quote_literal("/tmp/o'brien.parquet") == "'/tmp/o''brien.parquet'"


def test_batched():
    assert list(utils.batched(range(5), 2)) == [[0, 1], [2, 3], [4]]
    assert list(utils.batched([], 3)) == []


def test_get_file_hash(tmp_path, caplog):
    path = tmp_path.joinpath("file.bin")
    path.write_bytes(b"mtgjson")
    assert utils.get_file_hash(path, block_size=3) == hashlib.sha256(b"mtgjson").hexdigest()

    with caplog.at_level(logging.WARNING):
        assert utils.get_file_hash(tmp_path.joinpath("missing")) == ""
    assert "missing" in caplog.text


def test_open_artifact_plain_and_gzip(tmp_path):
    plain = tmp_path.joinpath("Meta.json")
    plain.write_bytes(b"{}")
    packed = tmp_path.joinpath("Meta.json.gz")
    with gzip.open(packed, "wb") as file:
        file.write(b"{}")

    for path in (plain, packed):
        with utils.open_artifact(path) as file:
            assert file.read() == b"{}"
