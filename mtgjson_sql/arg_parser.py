"""
MTGJSON SQL Arg Parser to determine what actions to take
"""

import argparse
import logging
import pathlib
from typing import List, Optional

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments from user to determine which
    queries to run against the local MTGJSON cache.
    :param argv: Arguments to parse (defaults to sys.argv)
    :return: Namespace of requests
    """
    parser = argparse.ArgumentParser("mtgjson_sql")

    parser.add_argument(
        "--cache-dir",
        type=pathlib.Path,
        default=None,
        help="Directory holding downloaded MTGJSON artifacts.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Never contact the CDN; only use files already in the cache.",
    )
    parser.add_argument(
        "--sql",
        metavar="QUERY",
        help="SQL to run. Use ? placeholders with --param for values. "
        "Views the query reads must be named with --view.",
    )
    parser.add_argument(
        "--param",
        "-p",
        action="append",
        default=[],
        metavar="VALUE",
        help="Value bound to the next ? placeholder of --sql. Repeatable.",
    )
    parser.add_argument(
        "--view",
        action="append",
        default=[],
        metavar="NAME",
        help="Build a view, print its schema and column shapes. Repeatable.",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Adopt the newest dataset version if the CDN has one.",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Only log to the console.",
    )

    parsed_args = parser.parse_args(argv)

    if parsed_args.param and not parsed_args.sql:
        parser.error("--param requires --sql")

    return parsed_args
