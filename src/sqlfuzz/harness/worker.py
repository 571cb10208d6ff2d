"""Disposable worker processes.

A worker is a forked child running a body that is expected never to return:
it runs until it crashes, is killed, or hangs past the supervisor's timeout.
The child always leaves through ``os._exit`` so it never unwinds back into
the supervisor's stack (test runners, CLI loops, atexit handlers).

Waiting and killing go through psutil, which reaps the child and reports a
negative return code for signal deaths.
"""

from __future__ import annotations

import contextlib
import logging
import os
import signal
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import psutil

from sqlfuzz.errors import WorkerSpawnError

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = ["ExitReason", "WorkerHandle", "await_termination", "spawn"]

logger = logging.getLogger(__name__)

# Exit status of a worker whose Python-level target raised.
WORKER_EXCEPTION_STATUS = 1


@dataclass(frozen=True, slots=True)
class ExitReason:
    """How a worker terminated.

    Exactly one of exit_code and signal is set, unless the status could not
    be collected (both None).
    """

    pid: int
    exit_code: int | None = None
    signal: int | None = None
    timed_out: bool = False

    @property
    def crashed(self) -> bool:
        """True for a signal death or a non-zero exit status."""
        return self.signal is not None or (self.exit_code is not None and self.exit_code != 0)

    def describe(self) -> str:
        if self.timed_out:
            return f"worker {self.pid} timed out and was killed"
        if self.signal is not None:
            try:
                name = signal.Signals(self.signal).name
            except ValueError:
                name = f"signal {self.signal}"
            return f"worker {self.pid} killed by {name}"
        if self.exit_code is not None:
            return f"worker {self.pid} exited with status {self.exit_code}"
        return f"worker {self.pid} terminated with unknown status"


@dataclass(frozen=True, slots=True)
class WorkerHandle:
    pid: int
    process: psutil.Process = field(compare=False, repr=False)


def spawn(body: Callable[[], object]) -> WorkerHandle:
    """Fork a worker that runs body.

    An exception escaping body is logged and turns into exit status 1.

    Raises:
        WorkerSpawnError: If fork() fails
    """
    try:
        pid = os.fork()
    except OSError as e:
        msg = f"Unable to fork worker: {e}"
        raise WorkerSpawnError(msg) from e

    if pid == 0:
        status = 0
        try:
            body()
        except BaseException:  # pylint: disable=broad-exception-caught
            logger.exception("Worker %d stopped on an exception", os.getpid())
            status = WORKER_EXCEPTION_STATUS
        finally:
            os._exit(status)

    logger.debug("Spawned worker %d", pid)
    return WorkerHandle(pid, psutil.Process(pid))


def await_termination(handle: WorkerHandle, timeout: float | None = None) -> ExitReason:
    """Block until the worker terminates and reap it.

    Args:
        handle: Worker to wait for
        timeout: Seconds before the worker is killed with SIGKILL
            (None waits without bound)

    Returns:
        Decoded exit reason
    """
    timed_out = False
    try:
        code = handle.process.wait(timeout=timeout)
    except psutil.TimeoutExpired:
        logger.warning("Worker %d exceeded %.1fs, killing it", handle.pid, timeout)
        timed_out = True
        with contextlib.suppress(psutil.NoSuchProcess):
            handle.process.kill()
        code = handle.process.wait()

    if code is None:
        return ExitReason(handle.pid, timed_out=timed_out)
    if code < 0:
        return ExitReason(handle.pid, signal=-int(code), timed_out=timed_out)
    return ExitReason(handle.pid, exit_code=int(code), timed_out=timed_out)
