"""Error kinds for a mirror run and the shared error log that decides when a run must stop."""

import sys
import threading


class MirrorError(Exception):
    """Base class. `fatal` errors stop the run even in continue-on-error mode."""

    fatal = False


class MalformedReference(MirrorError):
    """An identifier could not be extracted from a URL or string."""

    fatal = True


class InvariantViolation(MirrorError):
    """Downstream logic cannot proceed (e.g. a picture without a known byte size)."""

    fatal = True


class TransportFailure(MirrorError):
    """Remote retrieval failed (connection error, timeout, non-2xx status)."""


class PersistenceFailure(MirrorError):
    """Reading or writing a local file failed."""


class MalformedMetadata(MirrorError):
    """A downloaded metadata document is not parseable."""


class ErrorLog:
    """
    Append-only record of failures for one run. Thread-safe.
    The first error that is fatal under the policy is kept and `aborted` is set;
    the run loop raises it, nothing here exits the process.
    """

    def __init__(self, continue_on_error: bool = False) -> None:
        self.continue_on_error = continue_on_error
        self.aborted = threading.Event()
        self._lock = threading.Lock()
        self._messages: list[str] = []
        self._fatal: MirrorError | None = None

    def record(self, err: MirrorError) -> None:
        msg = str(err)
        with self._lock:
            self._messages.append(msg)
            stop = err.fatal or not self.continue_on_error
            if stop and self._fatal is None:
                self._fatal = err
        print(f"ERROR: {msg}", file=sys.stderr)
        if stop:
            self.aborted.set()

    @property
    def fatal(self) -> MirrorError | None:
        with self._lock:
            return self._fatal

    @property
    def messages(self) -> list[str]:
        """Snapshot copy of recorded messages, oldest first."""
        with self._lock:
            return list(self._messages)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
