"""
MTGJSON SQL Main Executor
"""

import argparse
import logging
import sys
import traceback

import polars as pl

from mtgjson_sql.arg_parser import parse_args
from mtgjson_sql.errors import MtgjsonSqlError
from mtgjson_sql.session import MtgjsonSql
from mtgjson_sql.utils import init_logger

LOGGER: logging.Logger = logging.getLogger(__name__)


def describe_view(session: MtgjsonSql, view_name: str) -> pl.DataFrame:
    """
    Schema of a view with the classifier's verdict per column
    """
    descriptors = session.connection.describe(view_name)
    shapes = []
    for descriptor in descriptors:
        verdict = session.connection.classifier.verdict(
            descriptor.name, session.cache.fingerprint(), view_name
        )
        shapes.append(verdict.shape.value if verdict else None)
    return pl.DataFrame(
        {
            "column": [descriptor.name for descriptor in descriptors],
            "type": [descriptor.storage_type for descriptor in descriptors],
            "shape": shapes,
        }
    )


def dispatcher(args: argparse.Namespace) -> None:
    """
    MTGJSON SQL Dispatcher
    """
    with MtgjsonSql(cache_dir=args.cache_dir, offline=args.offline or None) as session:
        if args.refresh:
            if session.refresh():
                LOGGER.info(f"Now at version {session.cache.local_version()}")
            else:
                LOGGER.info("No newer dataset available")

        for view_name in args.view:
            with pl.Config(tbl_rows=-1):
                print(describe_view(session, view_name))

        if args.sql:
            print(session.sql(args.sql, args.param, views=args.view, as_dataframe=True))


def main() -> None:
    """
    MTGJSON SQL safe main call
    """
    args = parse_args()
    init_logger(log_to_file=not args.no_log_file)

    try:
        dispatcher(args)
    except MtgjsonSqlError as error:
        LOGGER.error(f"{error.__class__.__name__}: {error}")
        sys.exit(1)
    except Exception as error:
        LOGGER.fatal(f"Exception caught: {error} {traceback.format_exc()}")
        sys.exit(2)


if __name__ == "__main__":
    main()
