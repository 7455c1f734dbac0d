import importlib.util
import pathlib

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
PACKAGE_FILES = sorted(ROOT.joinpath("mtgjson_sql").rglob("*.py"))


@pytest.fixture(scope="module")
def style_plugin():
    spec = importlib.util.spec_from_file_location(
        "style_plugin", ROOT.joinpath("flake8-style", "style_plugin.py")
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.parametrize(
    "path", PACKAGE_FILES, ids=[str(path.relative_to(ROOT)) for path in PACKAGE_FILES]
)
def test_package_follows_import_style(style_plugin, path):
    assert style_plugin.check_source(path.read_text(), str(path)) == []


def test_third_party_from_import_is_flagged(style_plugin):
    violations = style_plugin.check_source("from polars import DataFrame\nimport duckdb\n")
    assert len(violations) == 1
    line, _, message = violations[0]
    assert line == 1
    assert message.startswith("IMP001")


def test_allowed_forms(style_plugin):
    source = (
        "from __future__ import annotations\n"
        "from typing import Any\n"
        "from .errors import NotFoundError\n"
        "from mtgjson_sql.utils import batched\n"
        "import urllib.parse\n"
    )
    assert style_plugin.check_source(source) == []
