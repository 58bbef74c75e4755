"""crontask - time-triggered scheduling of jobs and shell commands."""

from crontask.errors import (
    ConfigError,
    InvalidConfigurationEntry,
    InvalidPattern,
    ProcessAlreadyStarted,
    ProcessError,
    ProcessExitedAbnormally,
    ProcessFailedToStart,
    ProcessNotStarted,
    ProcessTimedOut,
    SchedulerError,
    UnsupportedUnitType,
)
from crontask.patterns import PatternCache, TemporalPattern
from crontask.process import ShellProcess
from crontask.scheduler import Scheduler
from crontask.types import Registration, RegistrationOptions, RunReport
from crontask.units import Job, Process, ProcessStatus

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "InvalidConfigurationEntry",
    "InvalidPattern",
    "Job",
    "PatternCache",
    "Process",
    "ProcessAlreadyStarted",
    "ProcessError",
    "ProcessExitedAbnormally",
    "ProcessFailedToStart",
    "ProcessNotStarted",
    "ProcessStatus",
    "ProcessTimedOut",
    "Registration",
    "RegistrationOptions",
    "RunReport",
    "Scheduler",
    "SchedulerError",
    "ShellProcess",
    "TemporalPattern",
    "UnsupportedUnitType",
]
