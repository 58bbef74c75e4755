"""Executable unit interfaces.

A scheduled unit is either an in-process Job or an external Process. The
two are distinct base classes so a value can never satisfy both, and
classify_unit() is the single place that decides which variant a value is.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

from crontask.errors import UnsupportedUnitType

# Receives ("out" | "err", line) for each line a process writes.
OutputCallback = Callable[[str, str], None]

STDOUT = "out"
STDERR = "err"


class Job(ABC):
    """In-process work run synchronously by the scheduler."""

    @abstractmethod
    def run(self) -> None:
        """Execute the job."""
        ...


class ProcessStatus(Enum):
    """Lifecycle state of an external process."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    EXITED = "exited"


class Process(ABC):
    """An external command the scheduler can start and wait on."""

    @property
    @abstractmethod
    def identity(self) -> str:
        """Human-readable identity used in logs and errors (e.g. the command)."""
        ...

    @property
    @abstractmethod
    def status(self) -> ProcessStatus:
        ...

    @property
    @abstractmethod
    def exit_code(self) -> int | None:
        """Exit code once the process has exited, else None."""
        ...

    @abstractmethod
    def start(self, callback: OutputCallback | None = None) -> None:
        """Spawn the process without blocking."""
        ...

    @abstractmethod
    def wait(self, callback: OutputCallback | None = None) -> int:
        """Block until the process exits and return its exit code."""
        ...

    def run(self, callback: OutputCallback | None = None) -> int:
        """Start the process and block until it exits."""
        self.start(callback)
        return self.wait()

    def is_running(self) -> bool:
        return self.status is ProcessStatus.RUNNING


ExecutableUnit = Job | Process


class UnitKind(Enum):
    """Variant tag for an ExecutableUnit."""

    JOB = "job"
    PROCESS = "process"


ACCEPTED_UNIT_TYPES: tuple[type, ...] = (Job, Process)


def classify_unit(unit: object) -> UnitKind:
    """Return the variant of a scheduled unit.

    Raises:
        UnsupportedUnitType: If the value is neither a Job nor a Process.
    """
    if isinstance(unit, Job):
        return UnitKind.JOB
    if isinstance(unit, Process):
        return UnitKind.PROCESS
    raise UnsupportedUnitType(unit, ACCEPTED_UNIT_TYPES)
