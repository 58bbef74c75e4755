"""Configuration loading from TOML files and environment variables."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from crontask.config.models import CrontaskConfig
from crontask.config.paths import get_config_path
from crontask.errors import ConfigError

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "CRONTASK_TIMEZONE": ("timezone",),
    "CRONTASK_LOG_LEVEL": ("logging", "level"),
}


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("crontask.toml"),  # Current directory
        get_config_path(),  # ~/.crontask/config.toml (or CRONTASK_HOME)
        Path("/etc/crontask/config.toml"),  # System-wide
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Override config values from environment variables."""
    for env_var, keys in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if not value:
            continue
        section = config
        for key in keys[:-1]:
            section = section.setdefault(key, {})
        section[keys[-1]] = value
    return config


def find_config_path(path: Path | None = None) -> Path | None:
    """Resolve the config file to load.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_config(path: Path | None = None) -> CrontaskConfig:
    """Load configuration from a TOML file.

    Unlike an explicit path, a missing default config is not an error: the
    defaults are used.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Raises:
        FileNotFoundError: If an explicit config file does not exist.
        ConfigError: If the config file is not valid TOML or fails validation.
    """
    config_path = find_config_path(path)

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as f:
                raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e
        logger.debug(f"Loaded config from {config_path}")
    else:
        logger.debug("No config file found, using defaults")

    raw_config = _apply_env_overrides(raw_config)

    try:
        return CrontaskConfig.model_validate(raw_config)
    except ValidationError as e:
        source = config_path or "defaults"
        raise ConfigError(f"Config validation failed ({source}): {e}") from e
