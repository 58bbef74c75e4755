"""Scheduler data types.

Public types:
- RegistrationOptions: Per-registration execution options
- Registration: A due unit waiting to be dispatched
- BackgroundWaitEntry: A background process the run must wait on
- RunReport: Summary of one run() pass
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from crontask.patterns import TemporalPattern
from crontask.units import ExecutableUnit, OutputCallback, Process, UnitKind


@dataclass(frozen=True, slots=True)
class RegistrationOptions:
    """Options controlling how a unit is executed.

    Options only affect Process units; Jobs ignore them.
    """

    # Start the process without blocking
    background: bool = False
    # Wait on a background process after dispatch, even without wait_callback
    wait_background: bool = False
    # Receives output while the process starts/runs
    run_callback: OutputCallback | None = None
    # Receives output while a background process is waited on
    wait_callback: OutputCallback | None = None

    @property
    def needs_wait(self) -> bool:
        """Whether a background process must be waited on after dispatch."""
        return self.wait_background or self.wait_callback is not None

    @classmethod
    def from_value(
        cls, value: "RegistrationOptions | Mapping[str, Any] | None"
    ) -> "RegistrationOptions":
        """Coerce None, a mapping, or an options instance into options.

        Raises:
            ValueError: If a mapping contains unrecognized keys.
            TypeError: If value is not a mapping, or a callback is not callable.
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(
                f"Registration options must be RegistrationOptions, a mapping "
                f"or None, not {type(value).__name__}"
            )

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(value) - known)
        if unknown:
            raise ValueError(
                f"Unknown registration options: {', '.join(unknown)}. "
                f"Available: {', '.join(sorted(known))}"
            )

        for key in ("run_callback", "wait_callback"):
            callback = value.get(key)
            if callback is not None and not callable(callback):
                raise TypeError(f"Option '{key}' must be callable")

        return cls(
            background=bool(value.get("background", False)),
            wait_background=bool(value.get("wait_background", False)),
            run_callback=value.get("run_callback"),
            wait_callback=value.get("wait_callback"),
        )


@dataclass(frozen=True, slots=True)
class Registration:
    """A unit whose pattern was due when it was scheduled."""

    unit: ExecutableUnit
    kind: UnitKind
    pattern: TemporalPattern
    options: RegistrationOptions = field(default_factory=RegistrationOptions)


@dataclass(frozen=True, slots=True)
class BackgroundWaitEntry:
    """A started background process plus the callback to wait with."""

    process: Process
    wait_callback: OutputCallback | None = None


@dataclass
class RunReport:
    """Counters for a single run() pass."""

    jobs_run: int = 0
    processes_started: int = 0
    processes_skipped: int = 0
    processes_waited: int = 0

    @property
    def dispatched(self) -> int:
        return self.jobs_run + self.processes_started
