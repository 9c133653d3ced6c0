#!/usr/bin/env python3
"""
File: local_config.py
Author: Bastian Cerf
Date: 15/08/2025
Description:
    Read, parse and validate the local configuration file
    `local_config.ini` against its schema under
    `assets/config/local_config_schema.json`.

    A `LocalConfig` is created once by the bootstrap and handed to the
    components that need it. Per-feature toggles live in the `[features]`
    section and are exposed through `FeatureFlags`.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
from dataclasses import dataclass
from os.path import join
from pathlib import Path
from types import MappingProxyType
from typing import Any, Optional, TextIO

# Internal libraries
from common.config_parser import ConfigParser

logger = logging.getLogger(__name__)

# The schema ships with the sources, the configuration lives in the working
# directory
SCHEMA_FILE_PATH = str(
    Path(__file__).resolve().parent.parent / "assets" / "config" / "local_config_schema.json"
)
CONFIG_FILE_PATH = join("local_config.ini")


@dataclass(frozen=True)
class FeatureFlags:
    """
    Per-feature toggles, scoped to the running session.

    Attributes:
        system_notifications (bool): Raise a system notification on top
            of the in-app prompt when a shift is about to start.
        location_tracking (bool): Capture the device location on
            clock-in and clock-out.
    """

    system_notifications: bool = True
    location_tracking: bool = False


class LocalConfig:
    """
    Typed, read-only access to the local configuration.
    """

    def __init__(
        self,
        path: Optional[str | Path | TextIO] = None,
        schema: str | Path | TextIO = SCHEMA_FILE_PATH,
    ):
        """
        Args:
            path (Optional[str | Path | TextIO]): Configuration file path
                or stream. Defaults to `CONFIG_FILE_PATH`, created from
                the schema if missing.
            schema (str | Path | TextIO): Schema file path or stream.

        Raises:
            ConfigError: The configuration is invalid.
        """
        self._config_path = path if path is not None else CONFIG_FILE_PATH
        self._config = ConfigParser(schema, self._config_path, gen_default=True)
        self._view = self._config.get_view()

    def section(self, section: str) -> MappingProxyType[str, Any]:
        """
        Returns:
            MappingProxyType: A read-only view on a data section.
        """
        return self._view[section]

    @property
    def features(self) -> FeatureFlags:
        section = self.section("features")
        return FeatureFlags(
            system_notifications=bool(section["system_notifications"]),
            location_tracking=bool(section["location_tracking"]),
        )

    def set_feature(self, name: str, enabled: bool):
        """
        Toggle a feature and persist the choice.

        Raises:
            ConfigError: Unknown feature.
        """
        self.persist("features", name, enabled)
        logger.info(f"Feature '{name}' {'enabled' if enabled else 'disabled'}.")

    def persist(self, section: str, key: str, value: Any):
        """
        Persist a value in the local configuration.
        """
        self._config.set_value(section, key, value)

    def show_config(self):
        """
        Log the local configuration in use, section by section.
        """
        logger.info(f"Using local configuration '{self._config.name}'.")
        for section, values in self._view.items():
            logger.info(f"Section [{section}] = {dict(values)}")
