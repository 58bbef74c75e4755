"""Configuration module."""

from crontask.config.loader import load_config
from crontask.config.models import CrontaskConfig, LoggingConfig
from crontask.config.paths import (
    get_config_path,
    get_crontask_home,
    get_logs_path,
    get_schedule_file,
    get_system_timezone,
)

__all__ = [
    "CrontaskConfig",
    "LoggingConfig",
    "get_config_path",
    "get_crontask_home",
    "get_logs_path",
    "get_schedule_file",
    "get_system_timezone",
    "load_config",
]
