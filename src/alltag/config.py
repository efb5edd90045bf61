"""Configuration management for Alltag."""

import getpass
import logging
import os
from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

ALLTAG_HOME = Path(os.environ.get("ALLTAG_HOME", Path.home() / "alltag"))
CONFIG_FILE = ALLTAG_HOME / "config" / "alltag.conf"
DATA_DIR = ALLTAG_HOME / "data"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def local_zone() -> tzinfo:
    """
    The system's local zone, with its DST rules.

    Looks at TZ, then at the /etc/localtime link. A fixed offset for the
    current moment is the last resort.
    """
    key = os.environ.get("TZ", "").lstrip(":")
    if not key:
        localtime = Path("/etc/localtime")
        if localtime.is_symlink():
            key = str(localtime.resolve())
    if "zoneinfo/" in key:
        key = key.split("zoneinfo/", 1)[1]

    if key:
        try:
            return ZoneInfo(key)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            logger.debug(f"No zone data for local zone {key!r}")
    return datetime.now().astimezone().tzinfo


@dataclass
class Config:
    """Alltag configuration."""

    store_path: str = ""
    # IANA zone name; empty means the system's local zone
    timezone: str = ""
    user: str = ""
    debug: bool = False

    def resolved_store_path(self) -> Path:
        if self.store_path:
            return Path(self.store_path).expanduser()
        return DATA_DIR / "alltag.json"

    def resolved_user(self) -> str:
        return self.user or getpass.getuser()

    def now(self) -> datetime:
        """Sample the clock in the configured timezone."""
        if not self.timezone:
            return datetime.now(local_zone())
        try:
            return datetime.now(ZoneInfo(self.timezone))
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown TIMEZONE {self.timezone!r}, using local time")
            return datetime.now(local_zone())


def _parse_bool(key: str, value: str) -> bool | None:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    logger.warning(f"Ignoring invalid boolean for {key.upper()}: {value!r}")
    return None


def _strip_value(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def load_config() -> Config:
    """Load configuration from alltag.conf, then apply environment overrides."""
    config = Config()

    if CONFIG_FILE.exists():
        for line in CONFIG_FILE.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _strip_value(value.strip())

            match key:
                case "store_path":
                    config.store_path = value
                case "timezone":
                    config.timezone = value
                case "user":
                    config.user = value
                case "debug":
                    debug = _parse_bool(key, value)
                    if debug is not None:
                        config.debug = debug

    if os.environ.get("ALLTAG_STORE_PATH"):
        config.store_path = os.environ["ALLTAG_STORE_PATH"]
    if os.environ.get("ALLTAG_USER"):
        config.user = os.environ["ALLTAG_USER"]
    if "ALLTAG_DEBUG" in os.environ:
        debug = _parse_bool("alltag_debug", os.environ["ALLTAG_DEBUG"])
        if debug is not None:
            config.debug = debug

    return config
