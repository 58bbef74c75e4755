"""Shared test fixtures and factories."""

import logging
from datetime import UTC, datetime
from pathlib import Path

import pytest

from crontask.config.paths import ENV_VAR, get_crontask_home
from crontask.errors import ProcessExitedAbnormally
from crontask.patterns import TemporalPattern
from crontask.units import Job, OutputCallback, Process, ProcessStatus

# =============================================================================
# Unit Fakes
# =============================================================================


class RecordingJob(Job):
    """Job that appends its name to a shared event list when run."""

    def __init__(self, name: str, events: list[str] | None = None):
        self.name = name
        self.events = events if events is not None else []
        self.runs = 0

    def run(self) -> None:
        self.runs += 1
        self.events.append(self.name)


class FailingJob(Job):
    """Job that always raises."""

    def __init__(self, error: Exception | None = None):
        self.error = error or RuntimeError("job exploded")

    def run(self) -> None:
        raise self.error


class FakeProcess(Process):
    """Scriptable in-memory process.

    Args:
        name: Identity used in logs and events.
        events: Shared event list; records "start:<name>", "run:<name>"
            and "wait:<name>".
        exit_code: Exit code reported once the process has exited.
        running: Start out already running.
        exits_immediately: A started background process exits at once
            instead of staying RUNNING until waited on.
        fails_to_start: start()/run() leave the process NOT_STARTED.
        output: (stream, line) pairs delivered to callbacks.
    """

    def __init__(
        self,
        name: str = "fake",
        events: list[str] | None = None,
        exit_code: int = 0,
        running: bool = False,
        exits_immediately: bool = False,
        fails_to_start: bool = False,
        output: list[tuple[str, str]] | None = None,
    ):
        self.name = name
        self.events = events if events is not None else []
        self._exit_code = exit_code
        self._status = ProcessStatus.RUNNING if running else ProcessStatus.NOT_STARTED
        self.exits_immediately = exits_immediately
        self.fails_to_start = fails_to_start
        self.output = output or []
        self.start_calls = 0
        self.wait_calls = 0
        self.run_callback: OutputCallback | None = None
        self.wait_callback: OutputCallback | None = None

    @property
    def identity(self) -> str:
        return self.name

    @property
    def status(self) -> ProcessStatus:
        return self._status

    @property
    def exit_code(self) -> int | None:
        if self._status is ProcessStatus.EXITED:
            return self._exit_code
        return None

    def start(self, callback: OutputCallback | None = None) -> None:
        self.start_calls += 1
        self.events.append(f"start:{self.name}")
        self.run_callback = callback
        if self.fails_to_start:
            return
        self._status = (
            ProcessStatus.EXITED if self.exits_immediately else ProcessStatus.RUNNING
        )
        if callback is not None:
            for stream, line in self.output:
                callback(stream, line)

    def wait(self, callback: OutputCallback | None = None) -> int:
        self.wait_calls += 1
        self.events.append(f"wait:{self.name}")
        self.wait_callback = callback
        if callback is not None:
            for stream, line in self.output:
                callback(stream, line)
        self._status = ProcessStatus.EXITED
        if self._exit_code != 0:
            raise ProcessExitedAbnormally(self.name, exit_code=self._exit_code)
        return self._exit_code

    def run(self, callback: OutputCallback | None = None) -> int:
        self.events.append(f"run:{self.name}")
        if self.fails_to_start:
            self.start_calls += 1
            return 0
        self.start(callback)
        return self.wait()


class CountingParser:
    """Pattern parser that counts how often each expression is parsed."""

    def __init__(self):
        self.calls: dict[str, int] = {}

    def __call__(self, expression: str) -> TemporalPattern:
        self.calls[expression] = self.calls.get(expression, 0) + 1
        return TemporalPattern.parse(expression)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def events() -> list[str]:
    """Shared ordered event log for fakes."""
    return []


@pytest.fixture
def counting_parser() -> CountingParser:
    return CountingParser()


@pytest.fixture
def noon() -> datetime:
    """A reference time on an hour boundary (Wednesday)."""
    return datetime(2024, 1, 10, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def crontask_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate CRONTASK_HOME and the timezone for every test."""
    home = tmp_path / "crontask-home"
    monkeypatch.setenv(ENV_VAR, str(home))
    monkeypatch.setenv("CRONTASK_TIMEZONE", "UTC")
    monkeypatch.delenv("CRONTASK_LOG_LEVEL", raising=False)
    get_crontask_home.cache_clear()
    yield home
    get_crontask_home.cache_clear()


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo handler changes made by configure_logging()."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})


@pytest.fixture
def schedule_file(tmp_path: Path):
    """Factory writing YAML schedule text to a temporary file."""

    def _write(content: str, name: str = "schedule.yaml") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return _write
