"""Declarative schedule loading.

A schedule document maps cron expressions to the jobs and shell commands
that should run when the expression is due:

    "* * * * *":
        jobs:
            - myapp.jobs:CleanupJob
    "* * * * SAT,SUN":
        jobs:
            - myapp.jobs:ReportJob
        commands:
            - php test2.php

Jobs are resolved from their identifiers by an injected resolver; commands
become background ShellProcess units.
"""

import importlib
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    field_validator,
    model_validator,
)

from crontask.errors import InvalidConfigurationEntry
from crontask.process import ShellProcess
from crontask.scheduler import Scheduler
from crontask.types import RegistrationOptions
from crontask.units import ExecutableUnit, Job

logger = logging.getLogger(__name__)

JobResolver = Callable[[str], object]
ProcessFactory = Callable[[str], ExecutableUnit]

RECOGNIZED_KEYS = ("jobs", "commands")

# Commands from a document never block the dispatch pass
COMMAND_OPTIONS = RegistrationOptions(background=True)


class ScheduleEntryConfig(BaseModel):
    """The jobs and commands registered under one cron expression."""

    model_config = ConfigDict(extra="ignore")

    jobs: list[str] | None = None
    commands: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def _reject_null(cls, data: Any) -> Any:
        # "jobs:" with no value parses as None and is not the same as omitting it
        if isinstance(data, dict):
            for key in RECOGNIZED_KEYS:
                if key in data and data[key] is None:
                    raise ValueError(f"{key} must be a non-empty list")
        return data

    @field_validator("jobs", "commands")
    @classmethod
    def _non_empty(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        if not value:
            raise ValueError("must be a non-empty list")
        if any(not item.strip() for item in value):
            raise ValueError("must not contain empty strings")
        return value

    @model_validator(mode="after")
    def _require_one(self) -> "ScheduleEntryConfig":
        if self.jobs is None and self.commands is None:
            raise ValueError("commands|jobs not found")
        return self


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(loc) for loc in detail["loc"])
        message = detail["msg"].removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def parse_document(document: Any) -> dict[str, ScheduleEntryConfig]:
    """Validate a schedule document without scheduling anything.

    Raises:
        InvalidConfigurationEntry: If the document or any entry is malformed.
    """
    if not isinstance(document, Mapping):
        raise InvalidConfigurationEntry(
            None, "expected a mapping of cron expressions to jobs/commands"
        )

    entries: dict[str, ScheduleEntryConfig] = {}
    for pattern, values in document.items():
        if not isinstance(pattern, str):
            raise InvalidConfigurationEntry(
                str(pattern), "cron expressions must be strings"
            )
        if not isinstance(values, Mapping):
            raise InvalidConfigurationEntry(pattern, "commands|jobs not found")
        try:
            entries[pattern] = ScheduleEntryConfig.model_validate(dict(values))
        except ValidationError as e:
            raise InvalidConfigurationEntry(
                pattern, _format_validation_error(e)
            ) from e
    return entries


def import_job(identifier: str) -> Job:
    """Import and instantiate a Job class by name.

    Accepts "package.module:ClassName" or "package.module.ClassName".

    Raises:
        ImportError: If the module cannot be imported.
        AttributeError: If the class does not exist in the module.
        TypeError: If the target is not a Job subclass.
        ValueError: If the identifier is not a qualified name.
    """
    if ":" in identifier:
        module_path, _, class_name = identifier.partition(":")
    else:
        module_path, _, class_name = identifier.rpartition(".")
    if not module_path or not class_name:
        raise ValueError(f"Job identifier must be module-qualified: {identifier}")

    module = importlib.import_module(module_path)
    target = module
    for attr in class_name.split("."):
        target = getattr(target, attr)

    if not isinstance(target, type) or not issubclass(target, Job):
        raise TypeError(f"{identifier} does not implement {Job.__qualname__}")
    return target()


def _resolve_job(pattern: str, identifier: str, resolve_job: JobResolver) -> Job:
    try:
        unit = resolve_job(identifier)
    except (ImportError, AttributeError, TypeError, ValueError) as e:
        raise InvalidConfigurationEntry(
            pattern, f"cannot resolve job {identifier}: {e}"
        ) from e
    if not isinstance(unit, Job):
        raise InvalidConfigurationEntry(
            pattern, f"{identifier} does not implement {Job.__qualname__}"
        )
    return unit


def load_document(
    document: Any,
    resolve_job: JobResolver | None = None,
    process_factory: ProcessFactory | None = None,
    scheduler: Scheduler | None = None,
) -> Scheduler:
    """Register every entry of a parsed schedule document.

    The whole document is validated before anything is scheduled; any
    malformed entry aborts the load.

    Args:
        document: Parsed document (mapping of cron expression to entry).
        resolve_job: Maps a job identifier to a Job instance.
            Defaults to import_job.
        process_factory: Builds a process unit from a command line.
            Defaults to ShellProcess.
        scheduler: Scheduler to register into. Defaults to a new Scheduler().

    Raises:
        InvalidConfigurationEntry: If the document is malformed or a job
            cannot be resolved.
        InvalidPattern: If a cron expression cannot be parsed.
    """
    entries = parse_document(document)
    resolve_job = resolve_job or import_job
    process_factory = process_factory or ShellProcess
    scheduler = scheduler if scheduler is not None else Scheduler()

    for pattern, entry in entries.items():
        # Preserve the key order of the source document
        keys = [key for key in document[pattern] if key in RECOGNIZED_KEYS]
        for key in keys:
            if key == "jobs":
                for identifier in entry.jobs or []:
                    job = _resolve_job(pattern, identifier, resolve_job)
                    scheduler.schedule(pattern, job)
            elif key == "commands":
                for command in entry.commands or []:
                    process = process_factory(command)
                    scheduler.schedule(pattern, process, COMMAND_OPTIONS)

    logger.info(
        "schedule_loaded",
        extra={
            "schedule.patterns": len(entries),
            "schedule.due": len(scheduler),
        },
    )
    return scheduler


def read_yaml_document(path: Path | str) -> Any:
    """Read and parse a YAML schedule file.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfigurationEntry: If the file is not valid YAML.
    """
    schedule_path = Path(path).expanduser()
    if not schedule_path.exists():
        raise FileNotFoundError(f"Schedule file not found: {schedule_path}")

    try:
        document = yaml.safe_load(schedule_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise InvalidConfigurationEntry(
            None, f"{schedule_path} is not valid YAML: {e}"
        ) from e

    logger.debug(f"Loaded schedule file {schedule_path}")
    return document


def load_yaml_file(
    path: Path | str,
    resolve_job: JobResolver | None = None,
    process_factory: ProcessFactory | None = None,
    scheduler: Scheduler | None = None,
) -> Scheduler:
    """Load a YAML schedule file into a scheduler.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfigurationEntry: If the YAML is invalid or malformed.
    """
    document = read_yaml_document(path)
    return load_document(
        document,
        resolve_job=resolve_job,
        process_factory=process_factory,
        scheduler=scheduler,
    )
