#!/usr/bin/env python3
# FUZZ_PLUGIN_HEADER_START
# FUZZ_PLUGIN: synthesizer - Scanner, Markov Synthesizer and Shared Region
# Intentional: This header is intentionally placed for dynamic plugin discovery.
# CRITICAL: DO NOT REMOVE THIS HEADER - REQUIRED FOR FUZZ_ATHERIS.SH
# FUZZ_PLUGIN_HEADER_END
"""Synthesizer and Scanner Fuzzer (Atheris).

Targets: sqlfuzz.lexing.SqlScanner, sqlfuzz.model.QuerySynthesizer,
sqlfuzz.harness.SharedRegion, sqlfuzz.target.reference_parse

Coverage-guided input drives four patterns:
- raw: arbitrary text through the scanner and the reference target
- markov: random-state seeded walks over a model learned from fuzzed lines
- explore: the same with a high exploration rate
- region: shared region writes with fuzzed capacity and payload

Invariants (any violation is raised for Atheris to capture):
- every token sequence ends with the terminal token and only there
- synthesized queries re-tokenize without error
- region contents are NUL terminated within capacity - 1 bytes

Requires Python 3.13+ (uses PEP 695 type aliases).
"""

from __future__ import annotations

import argparse
import atexit
import json
import os
import random
import sys
import time
from dataclasses import dataclass, field
from typing import Any

# --- Dependency Checks ---
_psutil_mod: Any = None
_atheris_mod: Any = None

try:  # noqa: SIM105 - need module ref for the dependency check
    import psutil as _psutil_mod  # type: ignore[no-redef]
except ImportError:
    pass

try:  # noqa: SIM105 - need module ref for the dependency check
    import atheris as _atheris_mod  # type: ignore[no-redef]
except ImportError:
    pass

_missing = [name for name, mod in (("psutil", _psutil_mod), ("atheris", _atheris_mod)) if mod is None]
if _missing:
    print("-" * 80, file=sys.stderr)
    print("ERROR: Missing required dependencies for fuzzing:", file=sys.stderr)
    for _name in _missing:
        print(f"  - {_name}", file=sys.stderr)
    print("Install with: uv sync --group atheris", file=sys.stderr)
    print("-" * 80, file=sys.stderr)
    sys.exit(1)

import atheris  # noqa: E402  # pylint: disable=C0412,C0413

with atheris.instrument_imports(include=["sqlfuzz"]):
    from sqlfuzz.constants import END_OF_QUERY
    from sqlfuzz.errors import CorpusError
    from sqlfuzz.harness import SharedRegion
    from sqlfuzz.lexing import SqlScanner
    from sqlfuzz.model import QuerySynthesizer, TokenCorpusModel
    from sqlfuzz.target import reference_parse

type FuzzStats = dict[str, int | str | float | dict[str, int]]

_PATTERNS: tuple[str, ...] = ("raw", "markov", "explore", "region")


@dataclass
class SynthesizerFuzzState:
    """Counters reported at exit."""

    iterations: int = 0
    findings: int = 0
    queries_generated: int = 0
    accepted: int = 0
    pattern_coverage: dict[str, int] = field(default_factory=dict)
    started: float = field(default_factory=time.perf_counter)
    peak_rss_mb: float = 0.0
    checkpoint_interval: int = 500


_state = SynthesizerFuzzState()
_scanner = SqlScanner()


def _build_stats(status: str) -> FuzzStats:
    return {
        "fuzzer": "synthesizer",
        "status": status,
        "iterations": _state.iterations,
        "findings": _state.findings,
        "queries_generated": _state.queries_generated,
        "accepted": _state.accepted,
        "pattern_coverage": dict(sorted(_state.pattern_coverage.items())),
        "elapsed_s": round(time.perf_counter() - _state.started, 3),
        "peak_rss_mb": round(_state.peak_rss_mb, 2),
    }


def _emit_report(status: str) -> None:
    report = json.dumps(_build_stats(status), sort_keys=True)
    print(f"\n[SUMMARY-JSON-BEGIN]{report}[SUMMARY-JSON-END]", file=sys.stderr, flush=True)


def _check_tokens(line: str) -> None:
    tokens = _scanner.tokenize(line)
    if not tokens or tokens[-1][0] != END_OF_QUERY:
        msg = f"Token sequence for {line!r} does not end with the terminal token"
        raise AssertionError(msg)
    if any(kind == END_OF_QUERY for kind, _ in tokens[:-1]):
        msg = f"Terminal token inside the sequence for {line!r}"
        raise AssertionError(msg)


def _fuzz_raw(fdp: atheris.FuzzedDataProvider) -> None:
    text = fdp.ConsumeUnicodeNoSurrogates(512)
    _check_tokens(text)
    if reference_parse(text):
        _state.accepted += 1


def _fuzz_markov(fdp: atheris.FuzzedDataProvider, exploration_rate: float) -> None:
    lines = [fdp.ConsumeUnicodeNoSurrogates(80) for _ in range(fdp.ConsumeIntInRange(1, 6))]
    try:
        model = TokenCorpusModel.from_lines(lines, _scanner)
    except CorpusError:
        # Only blank lines.
        return
    synthesizer = QuerySynthesizer(
        model,
        exploration_rate=exploration_rate,
        anchor_start=fdp.ConsumeBool(),
        max_tokens=256,
    )
    rng = random.Random(fdp.ConsumeInt(8))
    for query in synthesizer.generate_batch(rng, 4):
        _state.queries_generated += 1
        _check_tokens(query)
        if reference_parse(query):
            _state.accepted += 1


def _fuzz_region(fdp: atheris.FuzzedDataProvider) -> None:
    capacity = fdp.ConsumeIntInRange(2, 256)
    payload = fdp.ConsumeUnicodeNoSurrogates(512)
    with SharedRegion(capacity) as region:
        written = region.write(payload)
        raw = region.read_bytes()
        if written > capacity - 1 or raw[written] != 0 or raw[capacity - 1] != 0:
            msg = f"Region bounds violated: capacity={capacity} written={written}"
            raise AssertionError(msg)


def test_one_input(data: bytes) -> None:
    """Atheris entry point: dispatch one input to a pattern."""
    _state.iterations += 1
    fdp = atheris.FuzzedDataProvider(data)
    pattern = _PATTERNS[fdp.ConsumeIntInRange(0, len(_PATTERNS) - 1)]
    _state.pattern_coverage[pattern] = _state.pattern_coverage.get(pattern, 0) + 1

    try:
        match pattern:
            case "raw":
                _fuzz_raw(fdp)
            case "markov":
                _fuzz_markov(fdp, 0.05)
            case "explore":
                _fuzz_markov(fdp, 0.5)
            case _:
                _fuzz_region(fdp)
    except Exception:
        # Unexpected exceptions are findings; re-raise for Atheris to capture
        _state.findings += 1
        raise
    finally:
        if _state.iterations % 100 == 0:
            rss = _psutil_mod.Process(os.getpid()).memory_info().rss / (1024 * 1024)
            _state.peak_rss_mb = max(_state.peak_rss_mb, rss)
        if _state.iterations % _state.checkpoint_interval == 0:
            _emit_report("running")


def main() -> None:
    """Run the synthesizer fuzzer with optional --help."""
    parser = argparse.ArgumentParser(
        description="Scanner / synthesizer / shared region fuzzer using Atheris/libFuzzer",
        epilog="All unrecognized arguments are passed to libFuzzer.",
    )
    parser.add_argument(
        "--checkpoint-interval",
        type=int,
        default=500,
        help="Emit report every N iterations (default: 500)",
    )
    args, remaining = parser.parse_known_args()
    _state.checkpoint_interval = args.checkpoint_interval

    if not any(arg.startswith("-rss_limit_mb") for arg in remaining):
        remaining.append("-rss_limit_mb=4096")
    sys.argv = [sys.argv[0], *remaining]

    atexit.register(_emit_report, "complete")
    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
