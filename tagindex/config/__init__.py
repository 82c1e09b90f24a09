"""
Configuration management for tagindex.

Settings come from an optional TOML file plus two overrides for the store
location. Store target priority, highest first:

1. `DATABASE_URL` environment variable
2. `--database-url` command line option
3. `[database] url` in the config file
4. `sqlite:tags.db`
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from tagindex.core.reconciler import ScanConfig

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:tags.db"
DATABASE_URL_ENV = "DATABASE_URL"
CONFIG_PATH_ENV = "TAGINDEX_CONFIG"


class ConfigError(ValueError):
    """Raised for unreadable config files or unusable database URLs."""


@dataclass
class AppConfig:
    """Loaded configuration."""

    database_url: str | None = None
    scan: ScanConfig = field(default_factory=ScanConfig)


def _parse_scan(data: Mapping[str, object]) -> ScanConfig:
    follow = data.get("follow_symlinks", False)
    if not isinstance(follow, bool):
        raise ConfigError("[scan] follow_symlinks must be a boolean")

    extensions = data.get("extra_extensions", [])
    if not isinstance(extensions, list) or not all(isinstance(e, str) for e in extensions):
        raise ConfigError("[scan] extra_extensions must be a list of strings")

    return ScanConfig(follow_symlinks=follow, extra_extensions=frozenset(extensions))


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML file. If None, `TAGINDEX_CONFIG` is
            consulted; with neither set, defaults are returned.

    Returns:
        Loaded AppConfig instance.
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if not env_path:
            return AppConfig()
        config_path = Path(env_path)

    logger.debug("Loading config from %s", config_path)

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    database = data.get("database", {})
    url = database.get("url") if isinstance(database, dict) else None
    if url is not None and not isinstance(url, str):
        raise ConfigError("[database] url must be a string")

    scan = data.get("scan", {})
    if not isinstance(scan, dict):
        raise ConfigError("[scan] must be a table")

    return AppConfig(database_url=url, scan=_parse_scan(scan))


def resolve_database_url(
    cli_value: str | None,
    *,
    environ: Mapping[str, str] | None = None,
    config: AppConfig | None = None,
) -> str:
    """Pick the store URL: environment, then CLI option, then config file, then default."""
    env = os.environ if environ is None else environ
    env_value = env.get(DATABASE_URL_ENV)
    if env_value:
        return env_value
    if cli_value:
        return cli_value
    if config is not None and config.database_url:
        return config.database_url
    return DEFAULT_DATABASE_URL


def database_path_from_url(url: str) -> str:
    """
    Turn a store URL into something `aiosqlite.connect` accepts.

    Accepts `sqlite:<file>`, `sqlite://<file>`, `sqlite::memory:` and bare
    file paths. Other schemes are rejected.
    """
    if url.startswith("sqlite://"):
        rest = url[len("sqlite://") :]
    elif url.startswith("sqlite:"):
        rest = url[len("sqlite:") :]
    elif "://" in url:
        scheme = url.split("://", 1)[0]
        raise ConfigError(f"Unsupported database scheme {scheme!r}; only sqlite is supported")
    else:
        rest = url

    # Query parameters (e.g. "?mode=rwc") are not meaningful for a plain file path.
    rest = rest.split("?", 1)[0]
    if not rest:
        raise ConfigError(f"Database URL {url!r} does not name a file")
    return rest
