"""Main CLI application."""

import typer

from crontask.cli.commands import check, run

app = typer.Typer(
    name="crontask",
    help="crontask - run cron-scheduled jobs and commands",
    no_args_is_help=True,
)

run.register(app)
check.register(app)


def main() -> None:
    app()
