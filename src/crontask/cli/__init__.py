"""Command-line interface for crontask."""
