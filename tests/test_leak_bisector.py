"""Both-halves bisection: completeness, check accounting, concurrency."""

from __future__ import annotations

import random
import threading
from collections.abc import Sequence

import pytest
from hypothesis import event, given
from hypothesis import strategies as st

from sqlfuzz.leak import LeakBisector, LeakFinding, find_memory_leaks
from sqlfuzz.model import QuerySynthesizer, TokenCorpusModel


class MarkedFault:
    """Predicate that faults when any query of the range is marked."""

    def __init__(self, marked: set[int]) -> None:
        self.marked = {f"q{i}" for i in marked}
        self.calls: list[tuple[str, ...]] = []
        self._lock = threading.Lock()

    def __call__(self, queries: Sequence[str]) -> bool:
        with self._lock:
            self.calls.append(tuple(queries))
        return any(q in self.marked for q in queries)


def _batch(n: int) -> list[str]:
    return [f"q{i}" for i in range(n)]


@st.composite
def batches_with_faults(draw: st.DrawFn) -> tuple[int, set[int]]:
    n = draw(st.sampled_from([0, 1, 2, 5, 17]))
    faults = draw(st.sets(st.integers(min_value=0, max_value=max(n - 1, 0)), max_size=n))
    return n, faults


class TestCompleteness:
    @given(batches_with_faults())
    def test_reports_exactly_the_faulty_queries(self, case: tuple[int, set[int]]) -> None:
        n, faults = case
        event(f"n={n} faults={len(faults)}")
        predicate = MarkedFault(faults)
        findings = LeakBisector(predicate).isolate(_batch(n))

        assert [f.index for f in findings] == sorted(faults)
        assert all(f.query == f"q{f.index}" for f in findings)
        assert all(call for call in predicate.calls)

    @pytest.mark.parametrize("n", [0, 1, 2, 5, 17])
    def test_whole_batch_faulty(self, n: int) -> None:
        """Every query faults: the full tree is walked and every leaf rechecked."""
        predicate = MarkedFault(set(range(n)))
        bisector = LeakBisector(predicate)
        findings = bisector.isolate(_batch(n))

        assert [f.index for f in findings] == list(range(n))
        assert bisector.stats.splits == max(n - 1, 0)
        # Two half checks per split plus one confirming check per query.
        assert bisector.stats.checks == 2 * max(n - 1, 0) + n
        assert bisector.stats.batches == 1

    def test_faults_in_both_halves(self) -> None:
        predicate = MarkedFault({1, 3})
        bisector = LeakBisector(predicate)
        findings = bisector.isolate(_batch(4))

        assert [f.index for f in findings] == [1, 3]
        assert bisector.stats.splits == 3
        assert bisector.stats.checks == 8
        assert bisector.stats.findings == 2
        # Top-level split checks both halves before recursing.
        assert predicate.calls[:2] == [("q0", "q1"), ("q2", "q3")]

    def test_left_half_gets_the_floor(self) -> None:
        predicate = MarkedFault(set())
        LeakBisector(predicate).isolate(_batch(5))
        assert predicate.calls == [("q0", "q1"), ("q2", "q3", "q4")]

    def test_single_query(self) -> None:
        predicate = MarkedFault({0})
        findings = LeakBisector(predicate).isolate(["q0"])
        assert findings == [LeakFinding(0, "q0")]
        assert predicate.calls == [("q0",)]

    def test_empty_batch(self) -> None:
        predicate = MarkedFault(set())
        assert LeakBisector(predicate).isolate([]) == []
        assert predicate.calls == []


class TestHasFault:
    def test_empty_range_is_clean_without_side_effects(self) -> None:
        predicate = MarkedFault({0})
        bisector = LeakBisector(predicate)
        assert bisector.has_fault([]) is False
        assert predicate.calls == []
        assert bisector.stats.checks == 0

    def test_counts_checks(self) -> None:
        bisector = LeakBisector(MarkedFault({0}))
        assert bisector.has_fault(["q0"])
        assert bisector.stats.checks == 1


class TestReporting:
    def test_on_finding_called_in_index_order(self) -> None:
        seen: list[LeakFinding] = []
        findings = LeakBisector(MarkedFault({0, 4, 9})).isolate(_batch(10), seen.append, round_no=7)
        assert seen == findings
        assert [f.round for f in seen] == [7, 7, 7]


class TestConcurrency:
    @pytest.mark.parametrize("n", [2, 5, 17])
    def test_same_results_with_workers(self, n: int) -> None:
        faults = set(range(0, n, 3))
        sequential = LeakBisector(MarkedFault(faults))
        concurrent = LeakBisector(MarkedFault(faults), max_workers=4)

        assert concurrent.isolate(_batch(n)) == sequential.isolate(_batch(n))
        assert concurrent.stats.checks == sequential.stats.checks
        assert concurrent.stats.splits == sequential.stats.splits

    def test_max_workers_bounds_checks_in_flight(self) -> None:
        """Four independent ranges of one level are checked at the same time."""
        barrier = threading.Barrier(4, timeout=10)

        def faulty_after_rendezvous(queries: Sequence[str]) -> bool:
            if len(queries) == 2:
                barrier.wait()
            return True

        findings = LeakBisector(faulty_after_rendezvous, max_workers=4).isolate(_batch(8))
        assert [f.index for f in findings] == list(range(8))
        assert not barrier.broken

    def test_reporting_order_with_workers(self) -> None:
        seen: list[LeakFinding] = []
        findings = LeakBisector(MarkedFault({1, 6, 9}), max_workers=3).isolate(
            _batch(10), seen.append, round_no=2
        )
        assert seen == findings
        assert [f.index for f in seen] == [1, 6, 9]
        assert [f.round for f in seen] == [2, 2, 2]

    def test_max_workers_validated(self) -> None:
        with pytest.raises(ValueError, match="max_workers"):
            LeakBisector(MarkedFault(set()), max_workers=0)


class TestFindMemoryLeaks:
    def test_rounds_of_fresh_batches(self, scenario_model: TokenCorpusModel) -> None:
        synthesizer = QuerySynthesizer(scenario_model, anchor_start=True)

        def has_where(queries: Sequence[str]) -> bool:
            return any("WHERE" in q for q in queries)

        findings = find_memory_leaks(
            synthesizer, random.Random(7), LeakBisector(has_where), rounds=3, batch_size=10
        )

        replay = random.Random(7)
        expected = [
            (round_no, index, query)
            for round_no in range(3)
            for index, query in enumerate(synthesizer.generate_batch(replay, 10))
            if "WHERE" in query
        ]
        assert [(f.round, f.index, f.query) for f in findings] == expected

    def test_zero_rounds(self, scenario_model: TokenCorpusModel) -> None:
        synthesizer = QuerySynthesizer(scenario_model)
        bisector = LeakBisector(MarkedFault(set()))
        assert find_memory_leaks(synthesizer, random.Random(0), bisector, rounds=0, batch_size=10) == []
        assert bisector.stats.checks == 0
