"""Schedule file validation command."""

from pathlib import Path
from typing import Annotated

import typer

from crontask.cli.console import dim, error, success
from crontask.errors import InvalidConfigurationEntry, InvalidPattern
from crontask.loader import parse_document, read_yaml_document
from crontask.patterns import TemporalPattern


def register(app: typer.Typer) -> None:
    """Register the check command."""

    @app.command()
    def check(
        schedule_file: Annotated[
            Path,
            typer.Argument(help="YAML schedule file to validate"),
        ],
    ) -> None:
        """Validate a schedule file without importing or running anything."""
        try:
            document = read_yaml_document(schedule_file)
            entries = parse_document(document)
        except FileNotFoundError as e:
            error(str(e))
            raise typer.Exit(1) from None
        except InvalidConfigurationEntry as e:
            error(str(e))
            raise typer.Exit(1) from None

        failed = 0
        for pattern in entries:
            try:
                TemporalPattern.parse(pattern)
            except InvalidPattern as e:
                error(str(e))
                failed += 1
        if failed:
            raise typer.Exit(1)

        jobs = sum(len(entry.jobs or []) for entry in entries.values())
        commands = sum(len(entry.commands or []) for entry in entries.values())
        success(f"Schedule is valid: {schedule_file}")
        dim(f"{len(entries)} pattern(s), {jobs} job(s), {commands} command(s)")
