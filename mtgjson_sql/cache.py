"""
Local cache of raw MTGJSON artifacts.

Files are fetched from the CDN on first use and kept under the cache
directory. ``version.txt`` holds the dataset version the cache follows;
``manifest.json`` records which version each file was downloaded at, so
a refresh only re-downloads files as they are next needed.
"""

import logging
import pathlib
import shutil
import threading
from typing import Any, Dict, Optional, Union

import orjson
import requests
import requests_cache

from . import constants
from .errors import NotFoundError
from .mtgjson_config import MtgjsonSqlConfig
from .retryable_session import retryable_session
from .utils import get_file_hash, open_artifact

LOGGER = logging.getLogger(__name__)

UNVERSIONED = "unversioned"


def artifact_file_name(name: str) -> str:
    """
    Map a logical artifact name to its path under the CDN base
    :param name: "cards", "all_prices_today", "meta", ...
    :return Relative file path
    """
    for mapping in (constants.PARQUET_FILES, constants.PRICE_FILES, constants.JSON_FILES):
        if name in mapping:
            return mapping[name]
    raise NotFoundError(f"Unknown artifact: {name}")


class CacheManager:
    """
    Downloads and caches MTGJSON data files, tracking the dataset version
    """

    cache_dir: pathlib.Path
    offline: bool
    timeout: float
    __session: Optional[Union[requests.Session, requests_cache.CachedSession]]
    __remote_version: Optional[str]
    __local_version: Optional[str]

    def __init__(
        self,
        cache_dir: Optional[pathlib.Path] = None,
        offline: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> None:
        config = MtgjsonSqlConfig()
        self.cache_dir = pathlib.Path(cache_dir or config.cache_dir).expanduser()
        self.offline = config.offline if offline is None else offline
        self.timeout = timeout or config.timeout
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.__session = None
        self.__remote_version = None
        self.__local_version = None
        self.__remote_checked = False
        self.__lock = threading.RLock()
        self.__file_locks: Dict[str, threading.Lock] = {}

    @property
    def session(self) -> Union[requests.Session, requests_cache.CachedSession]:
        with self.__lock:
            if self.__session is None:
                self.__session = retryable_session(timeout=self.timeout)
            return self.__session

    def artifact_path(self, name: str) -> pathlib.Path:
        return self.cache_dir.joinpath(artifact_file_name(name))

    def local_version(self) -> Optional[str]:
        """
        Version string in version.txt, if any
        """
        with self.__lock:
            if self.__local_version is None:
                version_file = self.cache_dir.joinpath(constants.VERSION_FILE_NAME)
                if version_file.is_file():
                    self.__local_version = (
                        version_file.read_text(encoding="utf-8").strip() or None
                    )
            return self.__local_version

    def _save_version(self, version: str) -> None:
        with self.__lock:
            self.cache_dir.joinpath(constants.VERSION_FILE_NAME).write_text(
                version, encoding="utf-8"
            )
            self.__local_version = version

    def remote_version(self, force: bool = False) -> Optional[str]:
        """
        Current dataset version published in Meta.json on the CDN
        :param force: Ignore the value fetched earlier this session
        :return Version (e.g. "5.2.2+20240101") or None when offline/unreachable
        """
        if self.offline:
            return None

        with self.__lock:
            if self.__remote_checked and not force:
                return self.__remote_version

        try:
            response = self.session.get(constants.META_URL)
            response.raise_for_status()
            content = orjson.loads(response.content)
        except (requests.RequestException, orjson.JSONDecodeError) as error:
            LOGGER.warning(f"Unable to fetch MTGJSON version from CDN: {error}")
            return None

        version = (content.get("data") or {}).get("version") or (
            content.get("meta") or {}
        ).get("version")

        with self.__lock:
            self.__remote_version = version
            self.__remote_checked = True
        return version

    def fingerprint(self) -> str:
        """
        Identity of the artifacts views are built from. Without a version.txt
        (a hand-populated offline cache), the hash of Meta.json stands in.
        """
        version = self.local_version()
        if version:
            return version
        meta_file = self.cache_dir.joinpath(constants.JSON_FILES["meta"])
        if meta_file.is_file():
            return f"sha256:{get_file_hash(meta_file)[:16]}"
        return UNVERSIONED

    def refresh_available(self) -> bool:
        """
        Does the CDN publish a newer dataset than the one cached
        """
        if self.offline:
            return False
        remote = self.remote_version(force=True)
        if remote is None:
            return False
        return self.local_version() != remote

    def refresh(self) -> bool:
        """
        Adopt the newest remote version. Files are re-downloaded lazily.
        :return Did the version change
        """
        remote = self.remote_version(force=True)
        if remote is None or remote == self.local_version():
            LOGGER.info("Cache already at latest version")
            return False
        LOGGER.info(f"Cache version {self.local_version()} -> {remote}")
        self._save_version(remote)
        return True

    def _read_manifest(self) -> Dict[str, str]:
        manifest_file = self.cache_dir.joinpath(constants.MANIFEST_FILE_NAME)
        if not manifest_file.is_file():
            return {}
        try:
            manifest: Dict[str, str] = orjson.loads(manifest_file.read_bytes())
        except orjson.JSONDecodeError:
            LOGGER.warning(f"Corrupt cache manifest {manifest_file}, ignoring")
            return {}
        return manifest

    def _update_manifest(self, file_name: str, version: Optional[str]) -> None:
        with self.__lock:
            manifest = self._read_manifest()
            if version is None:
                manifest.pop(file_name, None)
            else:
                manifest[file_name] = version
            self.cache_dir.joinpath(constants.MANIFEST_FILE_NAME).write_bytes(
                orjson.dumps(manifest, option=orjson.OPT_SORT_KEYS)
            )

    def _file_lock(self, file_name: str) -> threading.Lock:
        with self.__lock:
            return self.__file_locks.setdefault(file_name, threading.Lock())

    def _download(self, file_name: str, destination: pathlib.Path) -> None:
        """
        Stream a CDN file to a temp path, then rename into place
        """
        url = f"{constants.CDN_BASE}/{file_name}"
        LOGGER.info(f"Downloading {url}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        temp_destination = destination.with_name(destination.name + ".tmp")

        try:
            with self.session.get(url, stream=True) as response:
                response.raise_for_status()
                with temp_destination.open("wb") as file:
                    for chunk in response.iter_content(chunk_size=1 << 20):
                        file.write(chunk)
            temp_destination.replace(destination)
        except requests.RequestException as error:
            temp_destination.unlink(missing_ok=True)
            raise NotFoundError(f"Unable to download {file_name}: {error}") from error

    def ensure_artifact(self, name: str) -> pathlib.Path:
        """
        Local path of an artifact, downloading it when missing or stale
        :param name: Logical artifact name
        :return Path under the cache dir
        """
        file_name = artifact_file_name(name)
        local_path = self.cache_dir.joinpath(file_name)

        with self._file_lock(file_name):
            if self.offline:
                if local_path.is_file():
                    return local_path
                raise NotFoundError(
                    f"{file_name} is not cached and offline mode is enabled"
                )

            if self.local_version() is None:
                remote = self.remote_version()
                if remote is not None:
                    self._save_version(remote)

            current = self.local_version()
            if local_path.is_file() and (
                current is None or self._read_manifest().get(file_name) == current
            ):
                return local_path

            self._download(file_name, local_path)
            self._update_manifest(file_name, current)
            return local_path

    def load_json(self, name: str) -> Any:
        """
        Parse a cached JSON artifact (.gz aware). A corrupt file is removed
        so the next call downloads a fresh copy.
        """
        path = self.ensure_artifact(name)
        try:
            with open_artifact(path) as file:
                return orjson.loads(file.read())
        except (orjson.JSONDecodeError, OSError, EOFError) as error:
            LOGGER.warning(f"Corrupt cache file {path}: {error} -- removing")
            path.unlink(missing_ok=True)
            self._update_manifest(path.relative_to(self.cache_dir).as_posix(), None)
            raise NotFoundError(
                f"Cache file {path.name} was corrupt and has been removed. "
                f"Retry to re-download. Original error: {error}"
            ) from error

    def clear(self) -> None:
        """
        Remove every cached file
        """
        with self.__lock:
            if self.cache_dir.exists():
                shutil.rmtree(self.cache_dir)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.__local_version = None
            self.__remote_version = None
            self.__remote_checked = False

    def close(self) -> None:
        with self.__lock:
            if self.__session is not None:
                self.__session.close()
                self.__session = None
