"""Configuration models using Pydantic."""

from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from crontask.config.paths import (
    get_logs_path,
    get_schedule_file,
    get_system_timezone,
)


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # Also write JSONL logs to ~/.crontask/logs
    log_to_file: bool = False
    retention_days: int = Field(default=7, ge=1)

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class CrontaskConfig(BaseModel):
    """Root configuration model."""

    # IANA timezone cron expressions are evaluated in
    timezone: str = Field(default_factory=get_system_timezone)
    # Only fire when the evaluation time sits exactly on a cron boundary
    strict: bool = False
    schedule_file: Path = Field(default_factory=get_schedule_file)
    # Applied to commands from the schedule file; None = no timeout
    command_timeout: float | None = Field(default=None, gt=0)
    command_cwd: Path | None = None
    # Output of schedule-file commands is appended here
    command_log: Path = Field(default_factory=lambda: get_logs_path() / "commands.log")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @field_validator("schedule_file", "command_cwd", "command_log")
    @classmethod
    def _expand_user(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None
