"""
MTGJSON SQL simple utilities
"""

import bz2
import gzip
import hashlib
import logging
import lzma
import os
import pathlib
import re
import time
from typing import IO, Any, Iterable, Iterator, List

from . import constants

LOGGER = logging.getLogger(__name__)

SAFE_IDENTIFIER_REGEX = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def init_logger(log_to_file: bool = True) -> None:
    """
    Initialize the main system logger
    :param log_to_file: Also write a timestamped log file under the log dir
    """
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        constants.LOG_PATH.mkdir(parents=True, exist_ok=True)
        start_time = time.strftime("%Y-%m-%d_%H.%M.%S")
        handlers.append(
            logging.FileHandler(
                str(constants.LOG_PATH.joinpath(f"mtgjson_sql_{start_time}.log"))
            )
        )

    logging.basicConfig(
        level=(
            logging.DEBUG
            if os.environ.get("MTGJSON_SQL_DEBUG", "").lower() in ["true", "1"]
            else logging.INFO
        ),
        format="[%(levelname)s] %(asctime)s: %(message)s",
        handlers=handlers,
    )
    logging.getLogger("urllib3").setLevel(logging.ERROR)
    logging.getLogger("requests_cache").setLevel(logging.ERROR)


def to_snake_case(camel_str: str) -> str:
    """
    Convert "camelCase" => "snake_case"
    :param camel_str: Camel String
    :return: Snake String
    """
    return "".join(
        ["_" + char.lower() if char.isupper() else char for char in camel_str]
    ).lstrip("_")


def split_camel_case(camel_str: str) -> List[str]:
    """
    Split "colorIdentity" => ["color", "identity"]
    :param camel_str: Camel String
    :return: Lower-cased words
    """
    return [word for word in to_snake_case(camel_str).split("_") if word]


def get_file_hash(file_to_hash: pathlib.Path, block_size: int = 65536) -> str:
    """
    Given a file, generate a hash of the contents
    :param file_to_hash: File to generate the hash of
    :param block_size: How big a chunk to read in at a time
    :return file hash
    """
    if not file_to_hash.is_file():
        LOGGER.warning(f"Unable to find {file_to_hash}, no hashes generated")
        return ""

    hash_operation = hashlib.sha256()
    with file_to_hash.open("rb") as file:
        while True:
            data = file.read(block_size)
            if not data:
                break
            hash_operation.update(data)

    return hash_operation.hexdigest()


def open_artifact(path: pathlib.Path) -> IO[bytes]:
    """
    Open a (possibly compressed) raw artifact for binary streaming
    :param path: .json, .json.gz, .json.xz, or .json.bz2 file
    :return Binary file handle
    """
    suffix = path.suffix.lower()
    if suffix == ".gz":
        return gzip.open(path, "rb")
    if suffix == ".xz":
        return lzma.open(path, "rb")
    if suffix == ".bz2":
        return bz2.open(path, "rb")
    return path.open("rb")


def batched(iterable: Iterable[Any], n: int) -> Iterator[List[Any]]:
    """Yield batches of n items."""
    batch: List[Any] = []
    for item in iterable:
        batch.append(item)
        if len(batch) >= n:
            yield batch
            batch = []
    if batch:
        yield batch


def is_safe_identifier(name: str) -> bool:
    """
    Is this a bare SQL identifier (letters, digits, underscores)
    """
    return bool(SAFE_IDENTIFIER_REGEX.match(name))


def quote_identifier(name: str) -> str:
    """
    Double-quote an identifier for DuckDB, escaping embedded quotes
    :param name: Column or relation name
    :return Quoted identifier
    """
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """
    Single-quote a string literal for DuckDB. Only used for file paths
    in DDL, which cannot be bound as parameters.
    :param value: Literal text
    :return Quoted literal
    """
    return "'" + value.replace("'", "''") + "'"
