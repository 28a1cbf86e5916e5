"""
config.py — Settings for the tinywiki service.

Settings come from three layers, later ones winning:

  1. Built-in defaults (the standard English Wikipedia multistream file names)
  2. An optional YAML file, given by --config or $TINYWIKI_CONFIG
  3. Command-line flags

Example settings file:

    index: /data/enwiki-latest-pages-articles-multistream-index.txt.bz2
    content: /data/enwiki-latest-pages-articles-multistream.xml.bz2
    port: 8080
    static_dir: static
    suggestions: true
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tinywiki.errors import ConfigError


DEFAULT_INDEX_FILE = "enwiki-latest-pages-articles-multistream-index.txt.bz2"
DEFAULT_CONTENT_FILE = "enwiki-latest-pages-articles-multistream.xml.bz2"
DEFAULT_PORT = 8080

CONFIG_ENV_VAR = "TINYWIKI_CONFIG"

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Settings:
    index_path: Path = Path(DEFAULT_INDEX_FILE)
    content_path: Path = Path(DEFAULT_CONTENT_FILE)
    host: str = ""
    port: int = DEFAULT_PORT
    static_dir: Path = Path("static")
    suggestions: bool = False
    suggest_limit: int = 10
    log_level: str = "INFO"

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level)


# Settings-file key -> Settings field
SETTING_KEYS = {
    "index": "index_path",
    "content": "content_path",
    "host": "host",
    "port": "port",
    "static_dir": "static_dir",
    "suggestions": "suggestions",
    "suggest_limit": "suggest_limit",
    "log_level": "log_level",
}

PATH_FIELDS = {"index_path", "content_path", "static_dir"}


def _coerce(field_name: str, value: Any, source: str) -> Any:
    """Validate and convert one setting value."""
    if field_name in PATH_FIELDS:
        if not isinstance(value, (str, Path)) or not str(value):
            raise ConfigError(f"{source}: '{field_name}' must be a non-empty path, got {value!r}")
        return Path(value).expanduser()

    if field_name == "host":
        if not isinstance(value, str):
            raise ConfigError(f"{source}: 'host' must be a string, got {value!r}")
        return value

    if field_name == "port":
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 65535:
            raise ConfigError(f"{source}: 'port' must be an integer in 0-65535, got {value!r}")
        return value

    if field_name == "suggestions":
        if not isinstance(value, bool):
            raise ConfigError(f"{source}: 'suggestions' must be true or false, got {value!r}")
        return value

    if field_name == "suggest_limit":
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"{source}: 'suggest_limit' must be a positive integer, got {value!r}")
        return value

    if field_name == "log_level":
        if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
            raise ConfigError(
                f"{source}: 'log_level' must be one of {', '.join(sorted(LOG_LEVELS))}, got {value!r}"
            )
        return value.upper()

    raise ConfigError(f"{source}: unknown setting '{field_name}'")


def apply_settings(settings: Settings, values: Dict[str, Any], source: str = "settings") -> Settings:
    """
    Apply settings-file style keys onto `settings` in place.

    None values are ignored so that unset command-line flags leave the
    underlying value alone.

    Raises:
        ConfigError: On unknown keys or invalid values
    """
    unknown = sorted(set(values) - set(SETTING_KEYS))
    if unknown:
        raise ConfigError(f"{source}: unknown setting(s): {', '.join(unknown)}")

    for key, value in values.items():
        if value is None:
            continue
        field_name = SETTING_KEYS[key]
        setattr(settings, field_name, _coerce(field_name, value, source))

    return settings


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings from a YAML file on top of the defaults.

    With no path, $TINYWIKI_CONFIG is consulted; with neither, the defaults
    are returned.

    Raises:
        ConfigError: If the file is missing, unparseable or invalid
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            path = Path(env_path)

    settings = Settings()
    if path is None:
        return settings

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"settings file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse settings file {path}: {e}") from e

    if data is None:
        return settings
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping of settings, got {type(data).__name__}")

    return apply_settings(settings, data, source=str(path))
