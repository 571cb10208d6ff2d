"""Process-isolated crash search.

Public API:
    CrashHarness - Supervisor running the parse target in forked workers
    CrashReport - Query in flight when a worker stopped
    SharedRegion - Fixed-capacity shared byte region
    ExitReason, WorkerHandle, spawn, await_termination - Worker abstraction
"""

from .crash import CrashHarness, CrashReport
from .region import SharedRegion
from .worker import ExitReason, WorkerHandle, await_termination, spawn

__all__ = [
    "CrashHarness",
    "CrashReport",
    "ExitReason",
    "SharedRegion",
    "WorkerHandle",
    "await_termination",
    "spawn",
]
