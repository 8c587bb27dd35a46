from __future__ import annotations

import sys
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TextIO, Union

from .constants import (
    DEFAULT_STATUS_DELAY,
    PREFIX_SUCCESS,
    PREFIX_SKIPPED,
    PREFIX_STATUS,
    PREFIX_ABNORMAL,
    PREFIX_DIRECTORY,
    PREFIX_TEMP_CREATE,
    PREFIX_ALGORITHM,
    PREFIX_IO,
    PREFIX_FORMAT,
    PREFIX_REPLACE,
    PREFIX_UNKNOWN,
    PREFIX_DIGEST_FAIL,
)


class ErrorKind(Enum):
    """Failure classes; the value is the prefix printed in front of the message."""

    TEMP_FILE = PREFIX_TEMP_CREATE
    ALGORITHM = PREFIX_ALGORITHM
    IO = PREFIX_IO
    FORMAT = PREFIX_FORMAT
    REPLACE = PREFIX_REPLACE
    UNKNOWN = PREFIX_UNKNOWN
    ABNORMAL = PREFIX_ABNORMAL
    DIRECTORY = PREFIX_DIRECTORY
    DIGEST = PREFIX_DIGEST_FAIL


@dataclass(frozen=True)
class Success:
    path: str
    bytes_written: int
    message: Optional[str] = None


@dataclass(frozen=True)
class Skipped:
    path: str
    reason: str


@dataclass(frozen=True)
class Failed:
    path: str
    kind: ErrorKind
    message: str


ProcessingOutcome = Union[Success, Skipped, Failed]


def format_line(prefix: str, message: str) -> str:
    return f"[{prefix}]: {message}"


class MessageSink:
    """Print every outcome as soon as it is reported.

    Successes go to ``out`` (stdout by default), failures to ``err`` (stderr by
    default). With ``quiet`` set, successes are dropped and failures are still
    printed.
    """

    def __init__(self, out: Optional[TextIO] = None, err: Optional[TextIO] = None, *, quiet: bool = False):
        self._out = out
        self._err = err
        self.quiet = quiet

    def success(self, prefix: str, message: str) -> None:
        if self.quiet:
            return
        print(format_line(prefix, message), file=self._out or sys.stdout, flush=True)

    def failure(self, prefix: str, message: str) -> None:
        print(format_line(prefix, message), file=self._err or sys.stderr, flush=True)

    def report(self, outcome: ProcessingOutcome) -> None:
        if isinstance(outcome, Failed):
            self.failure(outcome.kind.value, outcome.message)
        elif isinstance(outcome, Skipped):
            self.success(PREFIX_SKIPPED, f"Skipped {outcome.path} ({outcome.reason})")
        else:
            self.success(PREFIX_SUCCESS, outcome.message or f"Successfully processed {outcome.path}")

    def close(self) -> None:
        pass


class PeriodicStatusSink:
    """Coalesce successes into periodic ``[STAT]`` lines printed by a worker thread.

    Failures are forwarded to ``output`` immediately. Each success adds one file
    and its byte count to a shared aggregate. The first success while no worker
    is running starts one; the worker repeatedly sleeps ``delay`` seconds, takes
    and resets the aggregate, and prints a status line. When it finds nothing to
    report it exits, so no thread outlives the activity that started it.

    The aggregate and the ``_running`` flag share one lock. The worker clears
    ``_running`` in the same critical section in which it observes an empty
    aggregate, so an increment either lands before that snapshot (and the
    worker reports it) or sees ``_running`` cleared (and starts a new worker).
    At most one worker runs at a time.
    """

    def __init__(self, output: Optional[MessageSink] = None, delay: float = DEFAULT_STATUS_DELAY):
        if delay < 0:
            raise ValueError("Status delay must be non-negative")
        self.output = output if output is not None else MessageSink()
        self.delay = delay
        self._lock = threading.Lock()
        self._files = 0
        self._bytes = 0
        self._running = False
        self._idle = threading.Event()
        self._idle.set()
        self._thread: Optional[threading.Thread] = None

    def success(self, bytes_written: int) -> None:
        start = False
        with self._lock:
            self._files += 1
            self._bytes += int(bytes_written)
            if not self._running:
                self._running = True
                self._idle.clear()
                start = True
        if start:
            self._thread = threading.Thread(target=self._run, name="fenc-status", daemon=True)
            self._thread.start()

    def failure(self, prefix: str, message: str) -> None:
        self.output.failure(prefix, message)

    def report(self, outcome: ProcessingOutcome) -> None:
        if isinstance(outcome, Failed):
            self.failure(outcome.kind.value, outcome.message)
        elif isinstance(outcome, Skipped):
            self.success(0)
        else:
            self.success(outcome.bytes_written)

    def _snapshot(self) -> tuple[int, int]:
        # Caller holds self._lock.
        files, nbytes = self._files, self._bytes
        self._files = 0
        self._bytes = 0
        return files, nbytes

    def _emit(self, files: int, nbytes: int) -> None:
        self.output.success(PREFIX_STATUS, f"Processed {files} files and wrote {nbytes} bytes.")

    def _run(self) -> None:
        while True:
            time.sleep(self.delay)
            with self._lock:
                files, nbytes = self._snapshot()
                if files == 0:
                    self._running = False
                    self._idle.set()
                    return
            self._emit(files, nbytes)

    def flush(self) -> None:
        """Print whatever is pending right now instead of waiting for the worker."""
        with self._lock:
            files, nbytes = self._snapshot()
        if files:
            self._emit(files, nbytes)

    def pending(self) -> tuple[int, int]:
        with self._lock:
            return self._files, self._bytes

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker has exited. Returns False on timeout."""
        return self._idle.wait(timeout)

    def close(self) -> None:
        self.flush()


StatusSink = Union[MessageSink, PeriodicStatusSink]


__all__ = [
    "ErrorKind",
    "Success",
    "Skipped",
    "Failed",
    "ProcessingOutcome",
    "MessageSink",
    "PeriodicStatusSink",
    "StatusSink",
    "format_line",
]
