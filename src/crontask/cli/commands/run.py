"""Run and preview the schedule."""

import logging
import sys
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Annotated
from zoneinfo import ZoneInfo

import typer
from rich.markup import escape

from crontask.cli.console import (
    console,
    create_table,
    dim,
    error,
    get_config,
    success,
)
from crontask.config import CrontaskConfig
from crontask.errors import SchedulerError
from crontask.logging import configure_logging
from crontask.process import ShellProcess
from crontask.scheduler import Scheduler
from crontask.units import Process

logger = logging.getLogger(__name__)

ScheduleFileArg = Annotated[
    Path | None,
    typer.Argument(help="YAML schedule file (defaults to the configured one)"),
]
AtOption = Annotated[
    str | None,
    typer.Option(
        "--at",
        help="Evaluate the schedule at this ISO 8601 time instead of now",
    ),
]
StrictOption = Annotated[
    bool,
    typer.Option(
        "--strict",
        help="Only fire when the time sits exactly on a cron boundary",
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
    ),
]
AppDirOption = Annotated[
    Path,
    typer.Option(
        "--app-dir",
        help="Directory added to the import path for resolving jobs",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
]


def _parse_at(value: str | None, timezone: str) -> datetime | None:
    if value is None:
        return None
    try:
        when = datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(
            f"Not an ISO 8601 time: {value}", param_hint="--at"
        ) from None
    if when.tzinfo is None:
        when = when.replace(tzinfo=ZoneInfo(timezone))
    return when


def _load_scheduler(
    config: CrontaskConfig,
    schedule_file: Path | None,
    at: str | None,
    strict: bool,
    app_dir: Path,
) -> Scheduler:
    """Build a scheduler from the schedule file, exiting on load errors."""
    reference_time = _parse_at(at, config.timezone)

    app_path = str(app_dir.expanduser().resolve())
    if app_path not in sys.path:
        sys.path.insert(0, app_path)

    # Commands outlive the CLI, so their output goes to a file, not a pipe
    process_factory = partial(
        ShellProcess,
        cwd=config.command_cwd,
        timeout=config.command_timeout,
        output_path=config.command_log,
    )
    path = schedule_file or config.schedule_file
    try:
        return Scheduler.from_yaml_file(
            path,
            process_factory=process_factory,
            reference_time=reference_time,
            strict=strict or config.strict,
            timezone=config.timezone,
        )
    except FileNotFoundError as e:
        error(str(e))
        raise typer.Exit(1) from None
    except SchedulerError as e:
        error(str(e))
        raise typer.Exit(1) from None


def _unit_label(unit: object) -> str:
    if isinstance(unit, Process):
        return unit.identity
    unit_type = type(unit)
    return f"{unit_type.__module__}:{unit_type.__qualname__}"


def register(app: typer.Typer) -> None:
    """Register the run and due commands."""

    @app.command()
    def run(
        schedule_file: ScheduleFileArg = None,
        at: AtOption = None,
        strict: StrictOption = False,
        config_path: ConfigOption = None,
        app_dir: AppDirOption = Path("."),
        verbose: VerboseOption = False,
    ) -> None:
        """Run every job and command that is due now."""
        config = get_config(config_path)
        configure_logging(
            level="DEBUG" if verbose else config.logging.level,
            log_to_file=config.logging.log_to_file,
            retention_days=config.logging.retention_days,
        )

        scheduler = _load_scheduler(config, schedule_file, at, strict, app_dir)
        if not len(scheduler):
            dim("Nothing due")
            return

        try:
            report = scheduler.run()
        except SchedulerError as e:
            error(str(e))
            for note in getattr(e, "__notes__", []):
                dim(note)
            raise typer.Exit(1) from None
        except Exception as e:
            logger.exception("job_failed", extra={"error.type": type(e).__name__})
            error(f"Job failed: {e}")
            raise typer.Exit(1) from None

        summary = (
            f"Ran {report.jobs_run} job(s), "
            f"started {report.processes_started} process(es)"
        )
        if report.processes_skipped:
            summary += f", skipped {report.processes_skipped} already running"
        success(summary)

    @app.command()
    def due(
        schedule_file: ScheduleFileArg = None,
        at: AtOption = None,
        strict: StrictOption = False,
        config_path: ConfigOption = None,
        app_dir: AppDirOption = Path("."),
    ) -> None:
        """List what would run now without running anything."""
        config = get_config(config_path)
        configure_logging(level="WARNING")

        scheduler = _load_scheduler(config, schedule_file, at, strict, app_dir)
        when = scheduler.evaluation_time()
        if not len(scheduler):
            dim(f"Nothing due at {when.isoformat(timespec='seconds')}")
            return

        table = create_table(
            f"Due at {when.isoformat(timespec='seconds')}",
            [
                ("#", {"style": "dim", "justify": "right"}),
                ("Pattern", "cyan"),
                ("Kind", ""),
                ("Unit", ""),
                ("Mode", "dim"),
            ],
        )
        for position, registration in enumerate(scheduler.registrations, start=1):
            mode = "background" if registration.options.background else "foreground"
            table.add_row(
                str(position),
                escape(registration.pattern.expression),
                registration.kind.value,
                escape(_unit_label(registration.unit)),
                mode if isinstance(registration.unit, Process) else "",
            )
        console.print(table)
