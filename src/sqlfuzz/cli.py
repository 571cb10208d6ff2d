"""Command-line entry point.

Usage:
    sqlfuzz                              # crash search, 100 rounds
    sqlfuzz --valgrind                   # leak search, 10 batches of 10
    sqlfuzz -q corpus.sql --iterations 5 --timeout 30
    sqlfuzz -v --checker "valgrind --leak-check=full" --batch-size 64

Exit Codes:
    0   Run completed (findings are reported, not treated as failure)
    2   Fatal startup error (corpus, tokenizer, shared memory, fork, checker)
    130 Interrupted by the operator
"""

from __future__ import annotations

import argparse
import logging
import os
import shlex
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from sqlfuzz.config import FuzzConfig, FuzzMode, default_corpus_path
from sqlfuzz.constants import DEFAULT_BATCH_SIZE
from sqlfuzz.errors import StartupError
from sqlfuzz.harness import CrashHarness, CrashReport, SharedRegion
from sqlfuzz.leak import ExternalLeakChecker, LeakBisector, LeakFinding, find_memory_leaks
from sqlfuzz.lexing import SqlScanner
from sqlfuzz.model import QuerySynthesizer, TokenCorpusModel
from sqlfuzz.report import RunStats, emit_summary
from sqlfuzz.seeding import new_random_state
from sqlfuzz.target import DEFAULT_TARGET, load_target

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

__all__ = ["build_parser", "config_from_args", "main", "run"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlfuzz",
        description="Fuzz a SQL parser with Markov-chain generated queries.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Look for crashes, killing workers that hang for more than 30s:
  sqlfuzz --timeout 30

  # Look for memory leaks in a custom target:
  sqlfuzz --valgrind --target firewall.bindings:parse
""",
    )
    parser.add_argument(
        "--valgrind",
        "-v",
        action="store_true",
        help="Run the memory checker to look for memory leaks.",
    )
    parser.add_argument(
        "--queries",
        "-q",
        type=Path,
        default=None,
        help="File to read sample queries for seeding the Markov chain from.",
    )
    parser.add_argument(
        "--iterations",
        "-n",
        type=int,
        default=None,
        help="Crash rounds or leak batches (default: 100 crash rounds, 10 leak batches).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Queries per leak batch (default: {DEFAULT_BATCH_SIZE}).",
    )
    parser.add_argument(
        "--target",
        default=DEFAULT_TARGET,
        help=f"Parse target as module:callable (default: {DEFAULT_TARGET}).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Kill a worker after this many seconds (default: wait forever).",
    )
    parser.add_argument(
        "--checker",
        default=None,
        help='Memory checker command line (default: "valgrind --leak-check=full").',
    )
    parser.add_argument(
        "--driver",
        default=None,
        help="Program run under the checker; the query file is appended "
        "(default: python -m sqlfuzz.driver --target TARGET).",
    )
    parser.add_argument(
        "--checker-timeout",
        type=float,
        default=None,
        help="Abandon a checker run after this many seconds.",
    )
    parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=1,
        help="Checker runs in flight at once during leak bisection (default: 1).",
    )
    parser.add_argument(
        "--exploration",
        type=float,
        default=None,
        help="Probability of a random token jump per step (default: 0.05).",
    )
    parser.add_argument(
        "--anchor-start",
        action="store_true",
        help="Start queries on tokens that opened corpus lines.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed.")
    parser.add_argument(
        "--report-dir",
        type=Path,
        default=None,
        help="Directory to write the JSON run summary to.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING).",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> FuzzConfig:
    """Translate parsed arguments into a FuzzConfig.

    Raises:
        ValueError: If a value fails FuzzConfig validation
    """
    overrides: dict[str, object] = {}
    if args.exploration is not None:
        overrides["exploration_rate"] = args.exploration
    if args.checker is not None:
        overrides["checker_command"] = tuple(shlex.split(args.checker))
    if args.driver is not None:
        overrides["driver_command"] = tuple(shlex.split(args.driver))

    return FuzzConfig(
        mode=FuzzMode.LEAK if args.valgrind else FuzzMode.CRASH,
        corpus_path=args.queries if args.queries is not None else default_corpus_path(),
        iterations=args.iterations,
        batch_size=args.batch_size,
        target=args.target,
        worker_timeout=args.timeout,
        anchor_start=args.anchor_start,
        seed=args.seed,
        checker_timeout=args.checker_timeout,
        max_workers=args.jobs,
        report_dir=args.report_dir,
        **overrides,  # type: ignore[arg-type]
    )


def run(config: FuzzConfig, out: TextIO | None = None) -> int:
    """Execute one run described by config.

    Raises:
        StartupError: On any fatal startup condition
    """
    out = out if out is not None else sys.stdout
    model = TokenCorpusModel.from_file(config.corpus_path, SqlScanner())
    synthesizer = QuerySynthesizer(
        model,
        exploration_rate=config.exploration_rate,
        anchor_start=config.anchor_start,
    )
    stats = RunStats(mode=str(config.mode))

    try:
        if config.mode is FuzzMode.LEAK:
            _find_memory_leaks(config, synthesizer, stats, out)
        else:
            _find_parse_errors(config, synthesizer, stats, out)
    except KeyboardInterrupt:
        stats.status = "interrupted"
        print("Interrupted", file=out, flush=True)
        return 130
    except StartupError:
        stats.status = "failed"
        raise
    finally:
        emit_summary(stats, config.report_dir)
    return 0


def _find_parse_errors(
    config: FuzzConfig,
    synthesizer: QuerySynthesizer,
    stats: RunStats,
    out: TextIO,
) -> None:
    print("Looking for parse errors", file=out, flush=True)
    target = load_target(config.target)

    def report(crash: CrashReport) -> None:
        stats.record_crash(crash)
        print(crash.format(), file=out, flush=True)

    with SharedRegion(config.region_size) as region:
        harness = CrashHarness(
            synthesizer,
            target,
            region=region,
            worker_timeout=config.worker_timeout,
            rng_factory=_worker_rng_factory(config.seed),
        )
        harness.run(config.rounds, on_report=report)


def _find_memory_leaks(
    config: FuzzConfig,
    synthesizer: QuerySynthesizer,
    stats: RunStats,
    out: TextIO,
) -> None:
    print("Looking for memory leaks", file=out, flush=True)
    checker = ExternalLeakChecker(
        config.checker_command,
        config.resolved_driver_command,
        timeout=config.checker_timeout,
    )
    bisector = LeakBisector(checker, max_workers=config.max_workers)

    def report(finding: LeakFinding) -> None:
        print(finding.query, file=out, flush=True)

    try:
        find_memory_leaks(
            synthesizer,
            new_random_state(config.seed),
            bisector,
            rounds=config.rounds,
            batch_size=config.batch_size,
            on_finding=report,
        )
    finally:
        stats.record_bisection(bisector.stats)


def _worker_rng_factory(seed: int | None) -> Callable[[], random.Random]:
    """Each worker seeds itself; a fixed seed is mixed with the worker pid."""
    if seed is None:
        return new_random_state
    return lambda: new_random_state(seed ^ os.getpid())


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT, stream=sys.stderr)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    try:
        return run(config)
    except StartupError as e:
        logger.debug("Startup failed", exc_info=True)
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
