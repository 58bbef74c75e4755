"""Path management for crontask.

Config, logs and the default schedule file live under one base directory,
which can be overridden with the CRONTASK_HOME environment variable.

Default locations:
- Linux/macOS: ~/.crontask
- Windows: %USERPROFILE%\\.crontask
"""

import os
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

ENV_VAR = "CRONTASK_HOME"


def get_system_timezone() -> str:
    """Detect the system timezone, falling back to UTC.

    Resolution order:
    1. TZ environment variable (if set to an IANA name; POSIX rules
       such as "UTC0" give UTC)
    2. /etc/timezone file (Debian/Ubuntu)
    3. /etc/localtime symlink target (most Linux distros)
    4. UTC
    """
    if tz := os.environ.get("TZ"):
        tz = tz.removeprefix(":")
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            return "UTC"
        return tz

    try:
        tz = Path("/etc/timezone").read_text().strip()
        if tz:
            return tz
    except (FileNotFoundError, PermissionError):
        pass

    try:
        link = Path("/etc/localtime").resolve()
        parts = str(link).split("zoneinfo/")
        if len(parts) > 1:
            return parts[1]
    except (FileNotFoundError, PermissionError):
        pass

    return "UTC"


@lru_cache(maxsize=1)
def get_crontask_home() -> Path:
    """Get the base directory for crontask data.

    Resolution order:
    1. CRONTASK_HOME environment variable (if set)
    2. ~/.crontask
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".crontask"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_crontask_home() / "config.toml"


def get_logs_path() -> Path:
    """Get the JSONL logs directory path."""
    return get_crontask_home() / "logs"


def get_schedule_file() -> Path:
    """Get the default YAML schedule file path."""
    return get_crontask_home() / "schedule.yaml"
