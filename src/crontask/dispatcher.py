"""Dispatch of due registrations.

The dispatcher walks the ledger in order, runs jobs in-process, starts or
runs processes, and then waits on every background process that asked to
be waited on. It never mutates the ledger.
"""

import logging
from collections.abc import Iterator, Sequence

from crontask.errors import ProcessFailedToStart
from crontask.types import (
    BackgroundWaitEntry,
    Registration,
    RegistrationOptions,
    RunReport,
)
from crontask.units import Job, OutputCallback, Process, ProcessStatus, UnitKind

logger = logging.getLogger(__name__)


class BackgroundWaitSet:
    """Background processes to wait on once dispatch has finished.

    Scoped to a single run: entries are appended during dispatch and drained
    exactly once, in insertion order.
    """

    def __init__(self) -> None:
        self._entries: list[BackgroundWaitEntry] = []
        self._drained = False

    def add(self, process: Process, wait_callback: OutputCallback | None) -> None:
        if self._drained:
            raise RuntimeError("Background wait set has already been drained")
        self._entries.append(BackgroundWaitEntry(process, wait_callback))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[BackgroundWaitEntry]:
        return iter(self._entries)

    def drain(self) -> list[Exception]:
        """Wait on every entry and return the failures in wait order.

        A failing wait does not stop the remaining waits.
        """
        if self._drained:
            raise RuntimeError("Background wait set has already been drained")
        self._drained = True

        failures: list[Exception] = []
        entries, self._entries = self._entries, []
        for entry in entries:
            process = entry.process
            logger.debug(f"Waiting on background process: {process.identity}")
            try:
                exit_code = process.wait(entry.wait_callback)
            except Exception as e:
                logger.error(
                    "background_process_failed",
                    extra={
                        "process.command": process.identity,
                        "error.message": str(e),
                    },
                )
                failures.append(e)
                continue
            logger.info(
                "background_process_finished",
                extra={
                    "process.command": process.identity,
                    "process.exit_code": exit_code,
                },
            )
        return failures


class Dispatcher:
    """Executes registrations with the strategy matching their unit kind."""

    def dispatch(self, registrations: Sequence[Registration]) -> RunReport:
        """Run every registration in order, then wait on background work.

        The first hard failure is raised only after all queued background
        waits have been attempted. Later failures are logged and attached to
        the raised exception as notes.
        """
        report = RunReport()
        wait_set = BackgroundWaitSet()

        try:
            for registration in registrations:
                self._dispatch_one(registration, wait_set, report)
        except Exception as e:
            logger.error(
                "dispatch_aborted",
                extra={
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                    "schedule.pending_waits": len(wait_set),
                },
            )
            for failure in self._wait(wait_set, report):
                e.add_note(f"Background process also failed: {failure}")
            raise

        failures = self._wait(wait_set, report)
        if failures:
            first, *rest = failures
            for failure in rest:
                first.add_note(f"Background process also failed: {failure}")
            raise first

        return report

    def _wait(self, wait_set: BackgroundWaitSet, report: RunReport) -> list[Exception]:
        if not len(wait_set):
            return []
        total = len(wait_set)
        failures = wait_set.drain()
        report.processes_waited += total
        return failures

    def _dispatch_one(
        self,
        registration: Registration,
        wait_set: BackgroundWaitSet,
        report: RunReport,
    ) -> None:
        match registration.kind:
            case UnitKind.JOB:
                assert isinstance(registration.unit, Job)
                self._run_job(registration.unit)
                report.jobs_run += 1
            case UnitKind.PROCESS:
                assert isinstance(registration.unit, Process)
                self._run_process(
                    registration.unit, registration.options, wait_set, report
                )

    def _run_job(self, job: Job) -> None:
        job_name = type(job).__qualname__
        logger.info("job_started", extra={"job.name": job_name})
        job.run()
        logger.debug(f"Job finished: {job_name}")

    def _run_process(
        self,
        process: Process,
        options: RegistrationOptions,
        wait_set: BackgroundWaitSet,
        report: RunReport,
    ) -> None:
        if process.is_running():
            logger.info(
                "process_already_running",
                extra={"process.command": process.identity},
            )
            report.processes_skipped += 1
            return

        logger.info(
            "process_starting",
            extra={
                "process.command": process.identity,
                "process.background": options.background,
            },
        )
        if options.background:
            process.start(options.run_callback)
        else:
            process.run(options.run_callback)

        if process.status is ProcessStatus.NOT_STARTED:
            raise ProcessFailedToStart(process.identity)

        report.processes_started += 1
        if options.background and options.needs_wait:
            wait_set.add(process, options.wait_callback)
