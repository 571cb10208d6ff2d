"""Shared region: truncation, NUL termination, bounds, fork visibility."""

from __future__ import annotations

import os

import pytest
from hypothesis import event, given
from hypothesis import strategies as st

from sqlfuzz.constants import SHARED_REGION_SIZE
from sqlfuzz.harness import SharedRegion


class TestWriteRead:
    def test_starts_zeroed(self) -> None:
        with SharedRegion(64) as region:
            assert region.read_bytes() == b"\0" * 64
            assert region.read() == ""

    def test_round_trip_short_query(self) -> None:
        with SharedRegion(64) as region:
            assert region.write("SELECT 1") == 8
            assert region.read() == "SELECT 1"

    def test_shorter_write_after_longer(self) -> None:
        with SharedRegion(64) as region:
            region.write("SELECT a FROM t WHERE b = 1")
            region.write("SHOW TABLES")
            assert region.read() == "SHOW TABLES"

    def test_default_capacity(self) -> None:
        with SharedRegion() as region:
            assert region.capacity == SHARED_REGION_SIZE

    def test_clear(self) -> None:
        with SharedRegion(16) as region:
            region.write("SELECT")
            region.clear()
            assert region.read_bytes() == b"\0" * 16

    @pytest.mark.parametrize("capacity", [0, 1])
    def test_capacity_validated(self, capacity: int) -> None:
        with pytest.raises(ValueError, match="capacity"):
            SharedRegion(capacity)

    def test_close(self) -> None:
        region = SharedRegion(8)
        region.close()
        assert region.closed


class TestTruncation:
    def test_long_query_truncated_to_capacity_minus_one(self) -> None:
        with SharedRegion(16) as region:
            written = region.write("SELECT * FROM a_really_long_table_name")
            assert written == 15
            raw = region.read_bytes()
            assert len(raw) == 16
            assert raw[15] == 0
            assert region.read() == "SELECT * FROM a"

    def test_multibyte_cut_decodes_with_replacement(self) -> None:
        with SharedRegion(5) as region:
            region.write("abéé")  # 6 bytes of UTF-8
            assert region.read() == "abé"
            region.write("aéé")  # cut inside the second e-acute
            assert region.read() == "a\u00e9\ufffd"

    @given(
        capacity=st.integers(min_value=2, max_value=128),
        query=st.text(max_size=300),
    )
    def test_always_terminated_and_bounded(self, capacity: int, query: str) -> None:
        with SharedRegion(capacity) as region:
            written = region.write(query)
            raw = region.read_bytes()
            encoded = query.encode("utf-8", errors="replace")
            event(f"truncated={len(encoded) > capacity - 1}")

            assert len(raw) == capacity
            assert written <= capacity - 1
            assert raw[written] == 0
            assert raw[capacity - 1] == 0
            assert raw[:written] == encoded[:written]


class TestForkVisibility:
    def test_child_write_visible_to_parent(self) -> None:
        with SharedRegion(64) as region:
            pid = os.fork()
            if pid == 0:
                try:
                    region.write("written by child")
                finally:
                    os._exit(0)
            os.waitpid(pid, 0)
            assert region.read() == "written by child"
