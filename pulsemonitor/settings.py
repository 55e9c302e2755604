"""Persistent application settings: the sensor's IP address."""

from __future__ import annotations

import configparser
import os
from pathlib import Path

_SECTION = "General"
_IP_KEY = "ipAddress"


def default_settings_path() -> Path:
    """Location of the settings file in the user's configuration directory."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "pulsemonitor" / "settings.ini"


class Settings:
    """INI-file backed settings store."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_settings_path()

    def _read(self) -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # keep key case
        if self.path.exists():
            parser.read(self.path, encoding="utf-8")
        return parser

    def load_ip_address(self, default: str = "") -> str:
        """Saved IP address, or ``default`` when none is stored."""
        return self._read().get(_SECTION, _IP_KEY, fallback=default)

    def save_ip_address(self, ip: str) -> None:
        """Store the IP address, keeping any other settings in the file."""
        parser = self._read()
        if not parser.has_section(_SECTION):
            parser.add_section(_SECTION)
        parser.set(_SECTION, _IP_KEY, ip)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as out:
            parser.write(out)