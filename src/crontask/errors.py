"""Scheduler error types.

All errors raised by crontask derive from SchedulerError so callers can catch
the whole family at once. Failures raised by job code are never wrapped and
propagate as-is.
"""


class SchedulerError(Exception):
    """Base class for scheduler errors."""


class ConfigError(SchedulerError):
    """Configuration file could not be loaded or validated."""


class InvalidPattern(SchedulerError, ValueError):
    """A temporal pattern failed to parse."""

    def __init__(self, pattern: str, reason: str | None = None) -> None:
        self.pattern = pattern
        self.reason = reason
        message = f'Invalid cron expression "{pattern}"'
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnsupportedUnitType(SchedulerError, TypeError):
    """A registered value is neither a Job nor a Process."""

    def __init__(self, unit: object, accepted: tuple[type, ...]) -> None:
        self.unit_type = type(unit)
        self.accepted = accepted
        names = "|".join(f"{t.__module__}.{t.__qualname__}" for t in accepted)
        super().__init__(
            f'The item type "{self.unit_type.__qualname__}" is not of type {names}'
        )


class InvalidConfigurationEntry(SchedulerError, ValueError):
    """A declarative schedule document entry is malformed."""

    def __init__(self, pattern: str | None, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        if pattern is None:
            message = f"Invalid schedule document: {reason}"
        else:
            message = f'Invalid schedule entry for "{pattern}": {reason}'
        super().__init__(message)


class ProcessError(SchedulerError):
    """Base class for external process failures."""

    def __init__(self, identity: str, message: str) -> None:
        self.identity = identity
        super().__init__(message)


class ProcessFailedToStart(ProcessError):
    """A dispatched process never reached the running state."""

    def __init__(self, identity: str, reason: str | None = None) -> None:
        self.reason = reason
        message = f'The process "{identity}" failed to start'
        if reason:
            message = f"{message}: {reason}"
        super().__init__(identity, message)


class ProcessExitedAbnormally(ProcessError):
    """A process ended with a non-zero exit status or was killed by a signal."""

    def __init__(
        self,
        identity: str,
        exit_code: int | None = None,
        signal: int | None = None,
        error_output: str = "",
    ) -> None:
        self.exit_code = exit_code
        self.signal = signal
        self.error_output = error_output
        if signal is not None:
            detail = f"was terminated by signal {signal}"
        else:
            detail = f"exited with code {exit_code}"
        super().__init__(identity, f'The process "{identity}" {detail}')


class ProcessTimedOut(ProcessError):
    """A process exceeded its timeout and was killed."""

    def __init__(self, identity: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            identity, f'The process "{identity}" exceeded the timeout of {timeout}s'
        )


class ProcessNotStarted(ProcessError, RuntimeError):
    """An operation requires a process that has been started."""

    def __init__(self, identity: str) -> None:
        super().__init__(identity, f'The process "{identity}" has not been started')


class ProcessAlreadyStarted(ProcessError, RuntimeError):
    """A running process cannot be started again."""

    def __init__(self, identity: str) -> None:
        super().__init__(identity, f'The process "{identity}" is already running')
