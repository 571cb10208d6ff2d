"""Leak localization by divide and conquer.

The checker can only say whether a whole range of queries leaks. ``isolate``
splits the range at its midpoint (the left half gets the floor) and checks
BOTH halves independently, recursing into every half that is faulty:

    isolate(range):
        if len(range) == 0: return
        if len(range) == 1: report it if has_fault(range); return
        left, right = split(range)
        if has_fault(left):  isolate(left)
        if has_fault(right): isolate(right)

With several workers, every range of one level of that tree is checked
concurrently; the set of checks and the findings are the same.

This is deliberately not a binary search. Faults can sit in both halves at
once, and stopping after the first faulty half would lose them. Worst case
cost is O(n log n) checker runs.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import random
    from collections.abc import Callable, Sequence

    from sqlfuzz.model import QuerySynthesizer

__all__ = [
    "BisectionStats",
    "FaultPredicate",
    "LeakBisector",
    "LeakFinding",
    "find_memory_leaks",
]

logger = logging.getLogger(__name__)

type FaultPredicate = Callable[[Sequence[str]], bool]


@dataclass(frozen=True, slots=True)
class LeakFinding:
    """A single query that reproduces a fault on its own."""

    index: int
    query: str
    round: int = 0


@dataclass(slots=True)
class BisectionStats:
    """Counters accumulated across isolate() calls."""

    checks: int = 0
    splits: int = 0
    findings: int = 0
    batches: int = 0


class LeakBisector:
    """Narrows a batch down to the individual queries that fault.

    Args:
        has_fault: Predicate over a contiguous range of queries
        max_workers: Checker runs in flight at once. When > 1, the tree is
            walked level by level and all checks of a level share a thread
            pool; findings and reporting order are unchanged

    Example:
        >>> bisector = LeakBisector(lambda qs: any("leak" in q for q in qs))
        >>> [f.index for f in bisector.isolate(["ok", "leak", "ok", "leak"])]
        [1, 3]
    """

    def __init__(self, has_fault: FaultPredicate, *, max_workers: int = 1) -> None:
        if max_workers < 1:
            msg = "max_workers must be at least 1"
            raise ValueError(msg)
        self._has_fault = has_fault
        self._max_workers = max_workers
        self.stats = BisectionStats()

    def has_fault(self, queries: Sequence[str]) -> bool:
        """Check a range; an empty range is clean without invoking the predicate."""
        if not queries:
            return False
        self.stats.checks += 1
        return bool(self._has_fault(queries))

    def isolate(
        self,
        batch: Sequence[str],
        on_finding: Callable[[LeakFinding], object] | None = None,
        *,
        round_no: int = 0,
    ) -> list[LeakFinding]:
        """Report every query of batch that faults on its own.

        Args:
            batch: Ordered queries
            on_finding: Called with each finding as soon as it is isolated
            round_no: Stored on the findings

        Returns:
            Findings in ascending index order
        """
        findings: list[LeakFinding] = []
        if self._max_workers == 1:
            self._isolate(batch, 0, len(batch), findings, on_finding, round_no)
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                faulty = self._isolate_by_level(batch, executor)
            for index in sorted(faulty):
                self._report(batch, index, findings, on_finding, round_no)
        self.stats.batches += 1
        return findings

    def _isolate(
        self,
        batch: Sequence[str],
        start: int,
        stop: int,
        findings: list[LeakFinding],
        on_finding: Callable[[LeakFinding], object] | None,
        round_no: int,
    ) -> None:
        if start >= stop:
            return

        if stop - start == 1:
            if self.has_fault(batch[start:stop]):
                self._report(batch, start, findings, on_finding, round_no)
            return

        mid = start + (stop - start) // 2
        self.stats.splits += 1
        left_faulty = self.has_fault(batch[start:mid])
        right_faulty = self.has_fault(batch[mid:stop])

        # Both halves are explored independently.
        if left_faulty:
            self._isolate(batch, start, mid, findings, on_finding, round_no)
        if right_faulty:
            self._isolate(batch, mid, stop, findings, on_finding, round_no)

    def _isolate_by_level(
        self,
        batch: Sequence[str],
        executor: ThreadPoolExecutor,
    ) -> list[int]:
        """Walk the same tree as _isolate one level at a time.

        Returns:
            Indices of the faulty queries, unordered
        """
        faulty: list[int] = []
        pending = [(0, len(batch))] if batch else []
        while pending:
            # (start, stop, is_leaf): a leaf check confirms a single query.
            checks: list[tuple[int, int, bool]] = []
            for start, stop in pending:
                if stop - start == 1:
                    checks.append((start, stop, True))
                else:
                    mid = start + (stop - start) // 2
                    self.stats.splits += 1
                    checks.extend(((start, mid, False), (mid, stop, False)))

            self.stats.checks += len(checks)
            results = executor.map(lambda c: bool(self._has_fault(batch[c[0] : c[1]])), checks)

            pending = []
            for (start, stop, is_leaf), result in zip(checks, results, strict=True):
                if not result:
                    continue
                if is_leaf:
                    faulty.append(start)
                else:
                    pending.append((start, stop))
        return faulty

    def _report(
        self,
        batch: Sequence[str],
        index: int,
        findings: list[LeakFinding],
        on_finding: Callable[[LeakFinding], object] | None,
        round_no: int,
    ) -> None:
        finding = LeakFinding(index, batch[index], round_no)
        findings.append(finding)
        self.stats.findings += 1
        logger.info("Leaking query isolated at index %d", index)
        if on_finding is not None:
            on_finding(finding)


def find_memory_leaks(
    synthesizer: QuerySynthesizer,
    rng: random.Random,
    bisector: LeakBisector,
    *,
    rounds: int,
    batch_size: int,
    on_finding: Callable[[LeakFinding], object] | None = None,
) -> list[LeakFinding]:
    """Generate ``rounds`` fresh batches and isolate the leaking queries of each.

    Returns:
        All findings, grouped by round in round order
    """
    findings: list[LeakFinding] = []
    for round_no in range(rounds):
        batch = synthesizer.generate_batch(rng, batch_size)
        round_findings = bisector.isolate(batch, on_finding, round_no=round_no)
        logger.info("Round %d: %d leaking queries", round_no, len(round_findings))
        findings.extend(round_findings)
    return findings
