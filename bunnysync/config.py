"""Configuration management for bunnysync.

Credentials are resolved from environment variables first, then from an
INI file at ``~/.config/bunnysync/config``::

    [default]
    storage_zone = my-zone
    access_key = ...
    region = de

    [profile staging]
    storage_zone = my-zone-staging
    access_key = ...
"""

import configparser
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import ConfigError
from .utils import DEFAULT_REGION

logger = logging.getLogger(__name__)

ENV_ACCESS_KEY = "BUNNY_ACCESS_KEY"
ENV_STORAGE_ZONE = "BUNNY_STORAGE_ZONE"
ENV_REGION = "BUNNY_REGION"
ENV_CONFIG_PATH = "BUNNYSYNC_CONFIG"

DEFAULT_PROFILE = "default"


@dataclass
class Profile:
    """Storage credentials loaded from the config file or environment."""

    storage_zone: Optional[str] = None
    access_key: Optional[str] = None
    region: str = DEFAULT_REGION


def _section_name(profile: str) -> str:
    if profile == DEFAULT_PROFILE:
        return DEFAULT_PROFILE
    return f"profile {profile}"


class Config:
    """Reads and writes the bunnysync configuration file."""

    def get_config_path(self) -> Path:
        """Path of the config file (``BUNNYSYNC_CONFIG`` overrides it)."""
        override = os.environ.get(ENV_CONFIG_PATH)
        if override:
            return Path(override).expanduser()
        return Path.home() / ".config" / "bunnysync" / "config"

    def _read(self) -> configparser.ConfigParser:
        # Access keys may contain "%"
        parser = configparser.ConfigParser(interpolation=None)
        path = self.get_config_path()
        if path.exists():
            try:
                parser.read(path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigError(f"Invalid config file {path}: {e}") from e
        return parser

    def list_profiles(self) -> list[str]:
        """Names of all profiles in the config file."""
        names = []
        for section in self._read().sections():
            if section == DEFAULT_PROFILE:
                names.append(DEFAULT_PROFILE)
            elif section.startswith("profile "):
                names.append(section[len("profile ") :].strip())
        return names

    def load_profile(self, profile: Optional[str] = None) -> Profile:
        """Load credentials, with environment variables taking precedence.

        Args:
            profile: Profile name (None or "default" for the default section)

        Returns:
            Profile with whatever values could be resolved

        Raises:
            ConfigError: If a named profile does not exist
        """
        name = profile or DEFAULT_PROFILE
        parser = self._read()
        section = _section_name(name)

        values: dict[str, str] = {}
        if parser.has_section(section):
            values = dict(parser.items(section))
        elif profile and name != DEFAULT_PROFILE:
            raise ConfigError(
                f"Profile '{name}' not found in {self.get_config_path()}"
            )

        result = Profile(
            storage_zone=os.environ.get(ENV_STORAGE_ZONE)
            or values.get("storage_zone"),
            access_key=os.environ.get(ENV_ACCESS_KEY) or values.get("access_key"),
            region=os.environ.get(ENV_REGION)
            or values.get("region")
            or DEFAULT_REGION,
        )
        logger.debug(
            "Loaded profile %s (zone=%s, region=%s)",
            name,
            result.storage_zone,
            result.region,
        )
        return result

    def save_profile(
        self,
        storage_zone: str,
        access_key: str,
        region: str = DEFAULT_REGION,
        profile: Optional[str] = None,
    ) -> Path:
        """Write a profile to the config file (created with mode 0600).

        Returns:
            Path of the written config file
        """
        parser = self._read()
        section = _section_name(profile or DEFAULT_PROFILE)
        if not parser.has_section(section):
            parser.add_section(section)
        parser.set(section, "storage_zone", storage_zone)
        parser.set(section, "access_key", access_key)
        parser.set(section, "region", region)

        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            parser.write(f)
        path.chmod(0o600)
        return path


config = Config()
