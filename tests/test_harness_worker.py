"""Worker abstraction: spawn, exit decoding, timeouts."""

from __future__ import annotations

import os
import signal
import time

import pytest

from sqlfuzz.errors import WorkerSpawnError
from sqlfuzz.harness import ExitReason, await_termination, spawn


def _exit_with(status: int) -> None:
    os._exit(status)


def _raise() -> None:
    msg = "target failure"
    raise ValueError(msg)


def _sleep_forever() -> None:
    while True:
        time.sleep(0.05)


class TestExitDecoding:
    def test_normal_return_is_status_zero(self) -> None:
        reason = await_termination(spawn(lambda: None))
        assert reason.exit_code == 0
        assert reason.signal is None
        assert not reason.crashed

    def test_explicit_status(self) -> None:
        reason = await_termination(spawn(lambda: _exit_with(3)))
        assert reason.exit_code == 3
        assert reason.crashed
        assert "status 3" in reason.describe()

    def test_exception_becomes_status_one(self) -> None:
        reason = await_termination(spawn(_raise))
        assert reason.exit_code == 1
        assert reason.crashed

    def test_signal_death(self) -> None:
        reason = await_termination(spawn(lambda: os.kill(os.getpid(), signal.SIGKILL)))
        assert reason.signal == signal.SIGKILL
        assert reason.exit_code is None
        assert reason.crashed
        assert "SIGKILL" in reason.describe()


class TestTimeout:
    def test_hung_worker_is_killed(self) -> None:
        started = time.monotonic()
        reason = await_termination(spawn(_sleep_forever), timeout=0.3)
        assert reason.timed_out
        assert reason.signal == signal.SIGKILL
        assert "timed out" in reason.describe()
        assert time.monotonic() - started < 10

    def test_fast_worker_not_marked_timed_out(self) -> None:
        reason = await_termination(spawn(lambda: None), timeout=5)
        assert not reason.timed_out


class TestSpawnFailure:
    def test_fork_error_is_fatal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def failing_fork() -> int:
            raise OSError(11, "Resource temporarily unavailable")

        monkeypatch.setattr(os, "fork", failing_fork)
        with pytest.raises(WorkerSpawnError, match="Unable to fork"):
            spawn(lambda: None)


class TestExitReason:
    def test_unknown_status(self) -> None:
        reason = ExitReason(pid=123)
        assert not reason.crashed
        assert "unknown status" in reason.describe()

    def test_unnamed_signal(self) -> None:
        assert "signal 200" in ExitReason(pid=1, signal=200).describe()
