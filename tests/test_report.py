"""Run statistics and JSON summary emission."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest

from sqlfuzz.harness import CrashReport, ExitReason
from sqlfuzz.leak import BisectionStats
from sqlfuzz.report import RunStats, emit_summary, get_process, rss_mb


def _crash(reason: ExitReason) -> CrashReport:
    return CrashReport(0, "SELECT 1 ", reason)


class TestRunStats:
    def test_record_crash_outcomes(self) -> None:
        stats = RunStats(mode="crash")
        stats.record_crash(_crash(ExitReason(1, signal=11)))
        stats.record_crash(_crash(ExitReason(2, signal=11)))
        stats.record_crash(_crash(ExitReason(3, exit_code=1)))
        stats.record_crash(_crash(ExitReason(4, signal=9, timed_out=True)))
        stats.record_crash(_crash(ExitReason(5, exit_code=0)))

        assert stats.rounds == 5
        assert stats.findings == 4
        assert stats.timeouts == 1
        assert stats.exit_reasons == {"signal_11": 2, "exit_1": 1, "timeout": 1, "exit_0": 1}

    def test_record_bisection(self) -> None:
        stats = RunStats(mode="leak")
        stats.record_bisection(BisectionStats(checks=10, splits=3, findings=2, batches=4))
        data = stats.to_dict()
        assert (data["rounds"], data["findings"], data["checker_runs"], data["splits"]) == (4, 2, 10, 3)

    def test_to_dict_shape(self) -> None:
        data = RunStats(mode="crash").to_dict()
        assert data["status"] == "incomplete"
        assert isinstance(data["elapsed_s"], float)
        assert isinstance(data["memory_mb"], float)
        json.dumps(data)


class TestEmitSummary:
    def test_markers_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        report = emit_summary(RunStats(mode="crash"))
        err = capsys.readouterr().err
        assert f"[SUMMARY-JSON-BEGIN]{report}[SUMMARY-JSON-END]" in err
        assert json.loads(report)["status"] == "complete"

    def test_keeps_interrupted_status(self) -> None:
        stats = RunStats(mode="leak", status="interrupted")
        assert json.loads(emit_summary(stats))["status"] == "interrupted"

    def test_keeps_failed_status(self) -> None:
        stats = RunStats(mode="leak", status="failed")
        assert json.loads(emit_summary(stats))["status"] == "failed"

    def test_writes_report_file(self, tmp_path: Path) -> None:
        report = emit_summary(RunStats(mode="leak"), tmp_path / "reports", "run.json")
        assert (tmp_path / "reports" / "run.json").read_text(encoding="utf-8") == report

    def test_unwritable_report_dir_logged(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="sqlfuzz.report"):
            emit_summary(RunStats(mode="crash"), blocker)
        assert "Unable to write summary" in caplog.text


class TestProcess:
    def test_process_handle_tracks_pid(self) -> None:
        assert get_process().pid == os.getpid()
        assert get_process() is get_process()

    def test_rss_positive(self) -> None:
        assert rss_mb() > 0
