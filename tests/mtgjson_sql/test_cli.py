import sys

import pytest

from mtgjson_sql import __main__ as cli
from mtgjson_sql.arg_parser import parse_args


def test_parse_args_defaults():
    args = parse_args([])
    assert args.cache_dir is None
    assert args.offline is False
    assert args.param == []
    assert args.view == []


def test_parse_repeatable_options():
    args = parse_args(
        ["--sql", "SELECT ?, ?", "-p", "a", "--param", "b", "--view", "cards", "--view", "sets"]
    )
    assert args.param == ["a", "b"]
    assert args.view == ["cards", "sets"]


def test_param_requires_sql():
    with pytest.raises(SystemExit):
        parse_args(["--param", "x"])


def run_main(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["mtgjson-sql", "--no-log-file", *argv])
    cli.main()


def test_main_runs_query(cache_dir, monkeypatch, capsys):
    run_main(
        monkeypatch,
        "--cache-dir",
        str(cache_dir),
        "--offline",
        "--view",
        "cards",
        "--sql",
        "SELECT name FROM cards WHERE setCode = ? ORDER BY name",
        "-p",
        "MH2",
    )
    output = capsys.readouterr().out
    assert "Ragavan" in output
    assert "colorIdentity" in output
    assert "array" in output


def test_main_exits_on_library_error(cache_dir, monkeypatch):
    with pytest.raises(SystemExit) as error:
        run_main(monkeypatch, "--cache-dir", str(cache_dir), "--offline", "--sql", "SELECT * FROM nowhere")
    assert error.value.code == 1


def test_main_exits_on_missing_artifact(tmp_path, monkeypatch):
    with pytest.raises(SystemExit) as error:
        run_main(monkeypatch, "--cache-dir", str(tmp_path), "--offline", "--view", "tokens")
    assert error.value.code == 1
