"""Run statistics and the end-of-run JSON summary.

The summary is printed to stderr between ``[SUMMARY-JSON-BEGIN]`` and
``[SUMMARY-JSON-END]`` markers so wrappers can scrape it from mixed output,
and optionally written to a report directory.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import psutil

if TYPE_CHECKING:
    import pathlib

    from sqlfuzz.harness import CrashReport
    from sqlfuzz.leak import BisectionStats

__all__ = ["RunStats", "emit_summary", "get_process", "rss_mb"]

logger = logging.getLogger(__name__)

type SummaryStats = dict[str, int | str | float | list[Any] | dict[str, int]]

_process: psutil.Process | None = None


def get_process() -> psutil.Process:
    """Lazy-initialize psutil process handle."""
    global _process  # noqa: PLW0603  # pylint: disable=global-statement
    if _process is None or _process.pid != os.getpid():
        _process = psutil.Process(os.getpid())
    return _process


def rss_mb() -> float:
    """Current resident set size of this process in MiB."""
    return get_process().memory_info().rss / (1024 * 1024)


@dataclass
class RunStats:
    """Counters for one run."""

    mode: str
    status: str = "incomplete"
    rounds: int = 0
    findings: int = 0
    exit_reasons: dict[str, int] = field(default_factory=dict)
    timeouts: int = 0
    checker_runs: int = 0
    splits: int = 0
    started: float = field(default_factory=time.monotonic)
    initial_memory_mb: float = field(default_factory=rss_mb)

    def record_crash(self, report: CrashReport) -> None:
        self.rounds += 1
        reason = report.exit_reason
        if reason.timed_out:
            self.timeouts += 1
            key = "timeout"
        elif reason.signal is not None:
            key = f"signal_{reason.signal}"
        else:
            key = f"exit_{reason.exit_code}"
        self.exit_reasons[key] = self.exit_reasons.get(key, 0) + 1
        if reason.crashed or reason.timed_out:
            self.findings += 1

    def record_bisection(self, stats: BisectionStats) -> None:
        """Copy bisection counters; rounds are the batches that finished."""
        self.rounds = stats.batches
        self.findings = stats.findings
        self.checker_runs = stats.checks
        self.splits = stats.splits

    def to_dict(self) -> SummaryStats:
        current_mb = rss_mb()
        return {
            "mode": self.mode,
            "status": self.status,
            "rounds": self.rounds,
            "findings": self.findings,
            "exit_reasons": dict(sorted(self.exit_reasons.items())),
            "timeouts": self.timeouts,
            "checker_runs": self.checker_runs,
            "splits": self.splits,
            "elapsed_s": round(time.monotonic() - self.started, 3),
            "memory_mb": round(current_mb, 2),
            "memory_delta_mb": round(current_mb - self.initial_memory_mb, 2),
        }


def emit_summary(
    stats: RunStats,
    report_dir: pathlib.Path | None = None,
    report_filename: str = "sqlfuzz_summary.json",
) -> str:
    """Emit the JSON summary, marking a still running run complete.

    Returns:
        The JSON document
    """
    if stats.status == "incomplete":
        stats.status = "complete"
    report = json.dumps(stats.to_dict(), sort_keys=True)

    print(
        f"\n[SUMMARY-JSON-BEGIN]{report}[SUMMARY-JSON-END]",
        file=sys.stderr,
        flush=True,
    )

    if report_dir is not None:
        try:
            report_dir.mkdir(parents=True, exist_ok=True)
            (report_dir / report_filename).write_text(report, encoding="utf-8")
        except OSError as e:
            logger.warning("Unable to write summary to %s: %s", report_dir, e)
    return report
