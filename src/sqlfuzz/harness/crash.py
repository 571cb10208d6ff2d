"""Crash search: run the parse target on synthesized queries until a worker dies.

Per round the supervisor forks one worker. The worker re-seeds its own random
state, then loops forever:

    query = synthesize()
    region.write(query)     # publish first ...
    target(query)           # ... then parse the full, untruncated query

It has no voluntary exit. When it terminates (crash, uncaught exception,
timeout kill, operator signal) the supervisor reads the region and reports the
query that was being attempted. That query is the one in flight, not proven to
be the cause: a delayed or asynchronous failure can be attributed to a later
query.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlfuzz.seeding import new_random_state

from .region import SharedRegion
from .worker import ExitReason, await_termination, spawn

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from sqlfuzz.model import QuerySynthesizer
    from sqlfuzz.target import ParseTarget

__all__ = ["CrashHarness", "CrashReport"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CrashReport:
    """Query in flight when a worker stopped."""

    round: int
    query: str
    exit_reason: ExitReason

    def format(self) -> str:
        return f"Child terminated, last query was:\n{self.query}"


class CrashHarness:
    """Supervisor for disposable parse workers sharing one query region.

    Args:
        synthesizer: Query source (its model is inherited by every worker)
        target: Parse callable under test
        region: Shared region; allocated here when not given
        worker_timeout: Seconds before a worker is killed (None = unbounded,
            a hung target blocks the supervisor)
        rng_factory: Builds each worker's random state inside the worker
    """

    def __init__(
        self,
        synthesizer: QuerySynthesizer,
        target: ParseTarget,
        *,
        region: SharedRegion | None = None,
        worker_timeout: float | None = None,
        rng_factory: Callable[[], random.Random] = new_random_state,
    ) -> None:
        if worker_timeout is not None and worker_timeout <= 0:
            msg = "worker_timeout must be positive or None"
            raise ValueError(msg)
        self._synthesizer = synthesizer
        self._target = target
        self._region = region if region is not None else SharedRegion()
        self._worker_timeout = worker_timeout
        self._rng_factory = rng_factory

    @property
    def region(self) -> SharedRegion:
        return self._region

    def run(
        self,
        rounds: int,
        on_report: Callable[[CrashReport], object] | None = None,
    ) -> list[CrashReport]:
        """Run ``rounds`` worker lifetimes.

        Args:
            rounds: Number of workers to spawn, one after the other
            on_report: Called with each report as soon as it is known

        Returns:
            One report per round, in round order

        Raises:
            WorkerSpawnError: If a worker cannot be forked
        """
        reports: list[CrashReport] = []
        for round_no in range(rounds):
            report = self.run_round(round_no)
            reports.append(report)
            if on_report is not None:
                on_report(report)
        return reports

    def run_round(self, round_no: int = 0) -> CrashReport:
        """Spawn one worker, wait for it to die, and read the in-flight query."""
        # Buffered output would otherwise be duplicated by the child.
        sys.stdout.flush()
        sys.stderr.flush()
        self._region.clear()

        handle = spawn(self._worker_loop)
        reason = await_termination(handle, self._worker_timeout)
        # The worker is reaped; the region has no writer any more.
        query = self._region.read()
        logger.info("Round %d: %s", round_no, reason.describe())
        return CrashReport(round_no, query, reason)

    def _worker_loop(self) -> None:
        rng = self._rng_factory()
        synthesizer = self._synthesizer
        region = self._region
        target = self._target
        while True:
            query = synthesizer.generate(rng)
            region.write(query)
            target(query)
