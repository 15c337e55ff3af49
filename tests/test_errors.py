"""Error log policy: what stops a run and what does not."""

from __future__ import annotations

from fotomirror.errors import (
    ErrorLog,
    InvariantViolation,
    MalformedReference,
    PersistenceFailure,
    TransportFailure,
)


def test_soft_errors_continue_in_sloppy_mode(capsys):
    log = ErrorLog(continue_on_error=True)
    log.record(TransportFailure("Error fetching http://h/x: HTTP 500"))
    log.record(PersistenceFailure("Error writing file /tmp/x: disk full"))
    assert log.fatal is None
    assert not log.aborted.is_set()
    assert log.messages == ["Error fetching http://h/x: HTTP 500", "Error writing file /tmp/x: disk full"]
    assert "ERROR: Error fetching http://h/x: HTTP 500" in capsys.readouterr().err


def test_any_error_aborts_in_fail_fast_mode():
    log = ErrorLog(continue_on_error=False)
    err = TransportFailure("Error fetching http://h/x: timed out")
    log.record(err)
    assert log.fatal is err
    assert log.aborted.is_set()


def test_fatal_kinds_abort_even_when_sloppy():
    for err in (MalformedReference("bad"), InvariantViolation("no size")):
        log = ErrorLog(continue_on_error=True)
        log.record(err)
        assert log.fatal is err


def test_first_fatal_error_is_kept():
    log = ErrorLog()
    first = TransportFailure("first")
    log.record(first)
    log.record(InvariantViolation("second"))
    assert log.fatal is first
    assert len(log) == 2
