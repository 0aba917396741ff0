"""Module to read connection settings from configuration files."""

import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bootdisk.constants import UPLOAD_TIMEOUT

DEFAULT_CONFIG_PATH = Path("~/.config/bootdisk.ini")
SECTION = "xapi"


@dataclass
class ConnectionSettings:
    """Dataclass to store settings for connecting to the pool master."""

    url: str
    username: str
    password: str
    verify: bool = True
    timeout: float = UPLOAD_TIMEOUT


class ConfigParser(configparser.ConfigParser):
    """
    ConfigParser subclass for bootdisk configuration files.

    Example:
        [xapi]
        url = https://xenserver.example.com
        username = root
        password = secret
        verify = no
    """

    def __init__(self, path: str | Path | None = None, *args, **kwargs) -> None:
        """Initialise parser, reading path if it exists."""
        super().__init__(*args, interpolation=kwargs.pop("interpolation", None), **kwargs)
        if path:
            self.read(Path(path).expanduser())

    def get_settings(self, **overrides: Any) -> ConnectionSettings:
        """
        Return connection settings, preferring non-None overrides.

        Raises ValueError if url, username or password is not set.
        """
        values: dict[str, Any] = {}
        if self.has_section(SECTION):
            section = self[SECTION]
            for key in ("url", "username", "password"):
                if key in section:
                    values[key] = section.get(key)
            if "verify" in section:
                values["verify"] = section.getboolean("verify")
            if "timeout" in section:
                values["timeout"] = section.getfloat("timeout")
        values.update(
            {key: value for key, value in overrides.items() if value is not None}
        )
        missing = [
            key for key in ("url", "username", "password") if not values.get(key)
        ]
        if missing:
            raise ValueError(f"Missing connection settings: {', '.join(missing)}")
        return ConnectionSettings(**values)
