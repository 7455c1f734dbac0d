"""
MTGJSON SQL Configuration Service
"""

import configparser
import logging
import os
import pathlib
from typing import Optional

from singleton_decorator import singleton

from . import constants

SECTION = "MTGJSON_SQL"


@singleton
class MtgjsonSqlConfig:
    """
    Configuration Class that loads in the appropriate configuration file
    and provides the contents for the running program
    """

    logger: logging.Logger
    config_parser: configparser.ConfigParser
    version: str
    cache_dir: pathlib.Path
    offline: bool
    timeout: float
    use_cache: bool
    price_batch_size: int
    fuzzy_threshold: float

    def __init__(self, config_path: Optional[pathlib.Path] = None):
        self.logger = logging.getLogger(__name__)
        self.config_parser = configparser.ConfigParser()
        self.__load_config_from_local_file(config_path or constants.CONFIG_PATH)

        self.version = self.get(SECTION, "version", fallback="0.0.0+fallback")
        self.cache_dir = (
            pathlib.Path(
                os.environ.get("MTGJSON_SQL_CACHE_DIR")
                or self.get(SECTION, "cache_dir")
                or constants.DEFAULT_CACHE_PATH
            )
            .expanduser()
            .resolve()
        )
        if "MTGJSON_SQL_OFFLINE" in os.environ:
            self.offline = os.environ["MTGJSON_SQL_OFFLINE"].lower() in ["true", "1"]
        else:
            self.offline = self.get_boolean(SECTION, "offline", False)
        self.timeout = self.get_float(SECTION, "timeout", 120.0)
        self.use_cache = self.get_boolean(SECTION, "use_cache", False)
        self.price_batch_size = self.get_int(SECTION, "price_batch_size", 50_000)
        self.fuzzy_threshold = self.get_float(SECTION, "fuzzy_threshold", 0.8)

    def __load_config_from_local_file(self, file_path: pathlib.Path) -> None:
        """
        Load local file from resources as configuration file
        :param file_path: Path to Configuration file
        """
        if not file_path.is_file():
            self.logger.warning(f"Config file {file_path} not found, using defaults")
            return
        self.config_parser.read(str(file_path))

    def get(self, section: str, option: str, fallback: str = "") -> str:
        """
        Get a specific value from configuration
        :param section: Section header
        :param option: Key in section
        :param fallback: Default value to use if key not found in section
        :returns Configuration value to use
        """
        if self.has_option(section, option):
            return self.config_parser.get(section, option, fallback=fallback)
        return fallback

    def get_boolean(self, section: str, option: str, fallback: bool = False) -> bool:
        """
        Get a specific value from configuration
        :param section: Section header
        :param option: Key in section
        :param fallback: Default value to use if key not found in section
        :returns Configuration value to use (as a Boolean)
        """
        if self.has_option(section, option):
            return self.config_parser.getboolean(section, option, fallback=fallback)
        return fallback

    def get_int(self, section: str, option: str, fallback: int = 0) -> int:
        """
        Get a specific integer value from configuration
        :param section: Section header
        :param option: Key in section
        :param fallback: Default value to use if key not found or malformed
        :returns Configuration value to use (as an int)
        """
        if self.has_option(section, option):
            try:
                return self.config_parser.getint(section, option)
            except ValueError:
                self.logger.warning(f"[{section}] {option} is not an integer")
        return fallback

    def get_float(self, section: str, option: str, fallback: float = 0.0) -> float:
        """
        Get a specific float value from configuration
        :param section: Section header
        :param option: Key in section
        :param fallback: Default value to use if key not found or malformed
        :returns Configuration value to use (as a float)
        """
        if self.has_option(section, option):
            try:
                return self.config_parser.getfloat(section, option)
            except ValueError:
                self.logger.warning(f"[{section}] {option} is not a number")
        return fallback

    def has_section(self, section: str) -> bool:
        """
        Check if Configuration has a specific section
        :param section: Section header to find
        :return Does Section header exist
        """
        return self.config_parser.has_section(section)

    def has_option(self, section: str, option: str) -> bool:
        """
        Check if Configuration has a specific option in a specific section
        and has a defined value (ala not VAR=)
        :param section: Section header to find
        :param option: Option to find in section
        :return Does option exist in section
        """
        return (
            self.config_parser.has_option(section, option)
            and len(str(self.config_parser.get(section, option))) > 0
        )
