"""Scheduler façade.

The scheduler decides at schedule() time whether a unit is due, keeps the
due units in registration order, and hands them to the dispatcher on run().

Example:
    scheduler = Scheduler()
    scheduler.schedule("*/5 * * * *", CleanupJob())
    scheduler.schedule("0 * * * *", ShellProcess("backup.sh"), {"background": True})
    scheduler.run()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from crontask.dispatcher import Dispatcher
from crontask.patterns import PatternCache, PatternParser
from crontask.types import Registration, RegistrationOptions, RunReport
from crontask.units import ExecutableUnit, classify_unit

if TYPE_CHECKING:
    from crontask.loader import JobResolver

logger = logging.getLogger(__name__)


class Scheduler:
    """Registers due units against a reference time and runs them.

    A scheduler is single-use per evaluation epoch: the due check happens
    when a unit is scheduled, and the ledger is never cleared. Callers that
    share an instance across threads must serialize access themselves.
    """

    def __init__(
        self,
        reference_time: datetime | None = None,
        strict: bool = False,
        timezone: str = "UTC",
        parser: PatternParser | None = None,
        dispatcher: Dispatcher | None = None,
    ):
        """Initialize the scheduler.

        Args:
            reference_time: Instant due-ness is evaluated against. If None,
                the current time in `timezone` is used at each schedule() call.
            strict: Require the reference time to fall exactly on a matching
                cron boundary.
            timezone: IANA timezone used when reference_time is None.
            parser: Pattern parser, mainly for instrumentation in tests.
            dispatcher: Dispatcher used by run().
        """
        self._reference_time = reference_time
        self._strict = strict
        self._timezone = ZoneInfo(timezone)
        self._patterns = PatternCache(parser)
        self._dispatcher = dispatcher or Dispatcher()
        self._registrations: list[Registration] = []

    @property
    def reference_time(self) -> datetime | None:
        return self._reference_time

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def patterns(self) -> PatternCache:
        return self._patterns

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return tuple(self._registrations)

    def __len__(self) -> int:
        return len(self._registrations)

    def evaluation_time(self) -> datetime:
        """The instant due checks are evaluated against right now."""
        if self._reference_time is not None:
            return self._reference_time
        return datetime.now(self._timezone)

    def schedule(
        self,
        pattern: str,
        unit: ExecutableUnit,
        opts: RegistrationOptions | Mapping[str, Any] | None = None,
    ) -> Scheduler:
        """Register a unit if its cron expression is due.

        Args:
            pattern: Cron expression.
            unit: A Job or Process.
            opts: Registration options (instance or mapping of option names).

        Returns:
            The scheduler, for chained calls.

        Raises:
            UnsupportedUnitType: If unit is neither a Job nor a Process.
            InvalidPattern: If the cron expression cannot be parsed.
            ValueError: If opts contains unknown option names.
            TypeError: If opts is not an options instance, a mapping or None.
        """
        kind = classify_unit(unit)
        options = RegistrationOptions.from_value(opts)
        parsed = self._patterns.resolve(pattern)

        when = self.evaluation_time()
        if not parsed.is_due(when, strict=self._strict):
            logger.debug(f"Not due: '{pattern}' at {when.isoformat()}")
            return self

        self._registrations.append(Registration(unit, kind, parsed, options))
        logger.debug(
            "registration_added",
            extra={
                "schedule.pattern": parsed.expression,
                "schedule.unit_kind": kind.value,
                "schedule.position": len(self._registrations),
            },
        )
        return self

    def run(self) -> RunReport:
        """Run every due unit, then wait on tracked background processes.

        Raises:
            ProcessFailedToStart: A process never started.
            ProcessExitedAbnormally: A run or waited-on process failed.
            ProcessTimedOut: A process exceeded its timeout.
            Exception: Whatever a job raises, unwrapped.
        """
        logger.info(
            "scheduler_run_started",
            extra={"schedule.registrations": len(self._registrations)},
        )
        report = self._dispatcher.dispatch(self.registrations)
        logger.info(
            "scheduler_run_finished",
            extra={
                "schedule.jobs_run": report.jobs_run,
                "schedule.processes_started": report.processes_started,
                "schedule.processes_skipped": report.processes_skipped,
                "schedule.processes_waited": report.processes_waited,
            },
        )
        return report

    @classmethod
    def from_document(
        cls,
        document: Any,
        resolve_job: JobResolver | None = None,
        process_factory: Callable[[str], ExecutableUnit] | None = None,
        **kwargs: Any,
    ) -> Scheduler:
        """Create a scheduler from a parsed schedule document.

        See crontask.loader.load_document for the document format.
        """
        from crontask.loader import load_document

        return load_document(
            document,
            resolve_job=resolve_job,
            process_factory=process_factory,
            scheduler=cls(**kwargs),
        )

    @classmethod
    def from_yaml_file(
        cls,
        path: Path | str,
        resolve_job: JobResolver | None = None,
        process_factory: Callable[[str], ExecutableUnit] | None = None,
        **kwargs: Any,
    ) -> Scheduler:
        """Create a scheduler from a YAML schedule file."""
        from crontask.loader import load_yaml_file

        return load_yaml_file(
            path,
            resolve_job=resolve_job,
            process_factory=process_factory,
            scheduler=cls(**kwargs),
        )
