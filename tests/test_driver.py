"""Driver program run under the memory checker."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

from sqlfuzz.driver import main
from tests.helpers import targets


@pytest.fixture
def query_file(tmp_path: Path) -> Path:
    path = tmp_path / "queries.sql"
    path.write_text("SELECT a FROM t\n\nSHOW TABLES\r\n", encoding="utf-8")
    return path


class TestDriver:
    def test_every_line_parsed_in_order(self, query_file: Path) -> None:
        targets.RECORDED.clear()
        assert main(["--target", "tests.helpers.targets:record", str(query_file)]) == 0
        assert targets.RECORDED == ["SELECT a FROM t", "", "SHOW TABLES"]

    def test_default_target(self, query_file: Path) -> None:
        assert main([str(query_file)]) == 0

    def test_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(tmp_path / "missing.sql")]) == 2
        assert "[ERROR] Cannot read file" in capsys.readouterr().err

    def test_bad_target(self, query_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--target", "sqlfuzz.no_such:parse", str(query_file)]) == 2
        assert "[ERROR]" in capsys.readouterr().err

    def test_runs_as_module(self, query_file: Path) -> None:
        completed = subprocess.run(
            [sys.executable, "-m", "sqlfuzz.driver", str(query_file)],
            capture_output=True,
            text=True,
            check=False,
        )
        assert completed.returncode == 0, completed.stderr
