"""Shell command processes.

ShellProcess runs a command line through the system shell with
subprocess.Popen. Output is read line by line on one reader thread per
pipe and handed to the current output callback, or buffered when no
callback is installed.

A process given an output_path writes straight to that file instead, so
it keeps running safely after the parent exits without waiting on it.
"""

import logging
import os
import signal
import subprocess
import threading
import time
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

from crontask.errors import (
    ProcessAlreadyStarted,
    ProcessExitedAbnormally,
    ProcessFailedToStart,
    ProcessNotStarted,
    ProcessTimedOut,
)
from crontask.units import STDERR, STDOUT, OutputCallback, Process, ProcessStatus

logger = logging.getLogger(__name__)


class ShellProcess(Process):
    """A shell command line run as a child process.

    Example:
        process = ShellProcess("php artisan queue:work", timeout=300)
        process.start(lambda stream, line: print(stream, line))
        process.wait()

    With output_path set, stdout and stderr are appended to that file and
    callbacks receive nothing.
    """

    def __init__(
        self,
        command: str,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        output_path: Path | str | None = None,
    ):
        if not command or not command.strip():
            raise ValueError("Command must not be empty")
        if timeout is not None and timeout <= 0:
            raise ValueError("Timeout must be positive")
        self._command = command
        self._cwd = Path(cwd).expanduser() if cwd is not None else None
        self._env = dict(env) if env is not None else None
        self._timeout = timeout
        self._output_path = (
            Path(output_path).expanduser() if output_path is not None else None
        )

        self._popen: subprocess.Popen[str] | None = None
        self._started_at: float | None = None
        self._readers: list[threading.Thread] = []
        self._callback: OutputCallback | None = None
        self._callback_error: Exception | None = None
        self._lock = threading.Lock()
        self._stdout: list[str] = []
        self._stderr: list[str] = []

    @property
    def command(self) -> str:
        return self._command

    @property
    def identity(self) -> str:
        return self._command

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def output_path(self) -> Path | None:
        return self._output_path

    @property
    def pid(self) -> int | None:
        return self._popen.pid if self._popen else None

    @property
    def status(self) -> ProcessStatus:
        if self._popen is None:
            return ProcessStatus.NOT_STARTED
        if self._popen.poll() is None:
            return ProcessStatus.RUNNING
        return ProcessStatus.EXITED

    @property
    def exit_code(self) -> int | None:
        if self._popen is None:
            return None
        return self._popen.poll()

    @property
    def output(self) -> str:
        """Buffered stdout lines that were not delivered to a callback."""
        with self._lock:
            return "".join(self._stdout)

    @property
    def error_output(self) -> str:
        """Buffered stderr lines that were not delivered to a callback."""
        with self._lock:
            return "".join(self._stderr)

    def start(self, callback: OutputCallback | None = None) -> None:
        if self.is_running():
            raise ProcessAlreadyStarted(self.identity)

        self._reset()
        self._callback = callback
        if self._output_path is not None:
            self._start_with_output_file(self._output_path)
            return

        self._popen = self._spawn(stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        self._started_at = time.monotonic()
        assert self._popen.stdout is not None
        assert self._popen.stderr is not None
        self._readers = [
            self._start_reader(self._popen.stdout, STDOUT),
            self._start_reader(self._popen.stderr, STDERR),
        ]
        logger.debug(f"Started process {self._popen.pid}: {self._command}")

    def _start_with_output_file(self, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            log_file = path.open("a")
        except OSError as e:
            raise ProcessFailedToStart(self.identity, str(e)) from e
        # The child keeps its own copy of the descriptor
        with log_file:
            self._popen = self._spawn(stdout=log_file, stderr=subprocess.STDOUT)
        self._started_at = time.monotonic()
        logger.debug(
            f"Started process {self._popen.pid}: {self._command} (output to {path})"
        )

    def _spawn(self, stdout: Any, stderr: Any) -> "subprocess.Popen[str]":
        try:
            return subprocess.Popen(
                self._command,
                shell=True,
                cwd=self._cwd,
                env=self._env,
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                text=True,
                bufsize=1,
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            self._popen = None
            raise ProcessFailedToStart(self.identity, str(e)) from e

    def wait(self, callback: OutputCallback | None = None) -> int:
        if self._popen is None:
            raise ProcessNotStarted(self.identity)

        if callback is not None:
            with self._lock:
                self._callback = callback

        try:
            exit_code = self._popen.wait(timeout=self._remaining_timeout())
        except subprocess.TimeoutExpired:
            self._kill()
            self._join_readers()
            raise ProcessTimedOut(self.identity, self._timeout or 0) from None

        self._join_readers()
        if self._callback_error is not None:
            raise self._callback_error
        if exit_code < 0:
            raise ProcessExitedAbnormally(
                self.identity, signal=-exit_code, error_output=self.error_output
            )
        if exit_code != 0:
            raise ProcessExitedAbnormally(
                self.identity, exit_code=exit_code, error_output=self.error_output
            )
        return exit_code

    def stop(self, grace_seconds: float = 3.0) -> int | None:
        """Terminate the process, escalating to SIGKILL after a grace period."""
        if self._popen is None or self._popen.poll() is not None:
            return self.exit_code
        self._signal(signal.SIGTERM)
        try:
            self._popen.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            self._kill()
        self._join_readers()
        return self.exit_code

    def _reset(self) -> None:
        self._popen = None
        self._started_at = None
        self._readers = []
        with self._lock:
            self._callback_error = None
            self._stdout.clear()
            self._stderr.clear()

    def _remaining_timeout(self) -> float | None:
        if self._timeout is None or self._started_at is None:
            return None
        elapsed = time.monotonic() - self._started_at
        return max(0.0, self._timeout - elapsed)

    def _start_reader(self, pipe: IO[str], stream: str) -> threading.Thread:
        thread = threading.Thread(
            target=self._read_pipe,
            args=(pipe, stream),
            name=f"crontask-{stream}-{self.pid}",
            daemon=True,
        )
        thread.start()
        return thread

    def _read_pipe(self, pipe: IO[str], stream: str) -> None:
        # Once a callback fails the pipe is still drained into the buffer;
        # wait() re-raises the callback's error.
        with pipe:
            for line in pipe:
                with self._lock:
                    callback = self._callback if self._callback_error is None else None
                    if callback is None:
                        buffer = self._stdout if stream == STDOUT else self._stderr
                        buffer.append(line)
                if callback is None:
                    continue
                try:
                    callback(stream, line)
                except Exception as e:
                    logger.debug(f"Output callback failed for {self._command}: {e}")
                    with self._lock:
                        if self._callback_error is None:
                            self._callback_error = e

    def _join_readers(self) -> None:
        for thread in self._readers:
            thread.join()
        self._readers = []

    def _signal(self, signum: int) -> None:
        assert self._popen is not None
        if os.name == "posix":
            try:
                os.killpg(self._popen.pid, signum)
                return
            except (ProcessLookupError, PermissionError):
                pass
        self._popen.send_signal(signum)

    def _kill(self) -> None:
        assert self._popen is not None
        if os.name == "posix":
            self._signal(signal.SIGKILL)
        else:
            self._popen.kill()
        self._popen.wait()

    def __repr__(self) -> str:
        return f"ShellProcess({self._command!r}, status={self.status.value})"
