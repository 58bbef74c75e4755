"""CLI command modules."""

from crontask.cli.commands import check, run

__all__ = ["check", "run"]
