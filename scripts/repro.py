#!/usr/bin/env python3
"""Reproduce and document fuzzer findings.

This tool closes the feedback loop for crash reports:
1. Load a reported query (argument) or a query file (one query per line)
2. Parse each query through the target in its own forked worker
3. Report how the worker terminated and emit a regression case

Usage:
    uv run python scripts/repro.py --query "SELECT ( FROM t"
    uv run python scripts/repro.py findings.sql --target firewall.bindings:parse
    uv run python scripts/repro.py --example findings.sql

Exit Codes:
    0   Every query parsed without crashing the worker
    1   At least one worker crashed (finding confirmed)
    2   File read error or target could not be loaded

Python 3.13+.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Reproduce crash findings and generate regression tests.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay the query printed after "Child terminated, last query was:":
  uv run python scripts/repro.py --query "SELECT a FROM ( "

  # Replay every query of a file against a custom target:
  uv run python scripts/repro.py leaks.sql --target firewall.bindings:parse

  # Generate pytest.param lines for a regression test:
  uv run python scripts/repro.py --example leaks.sql
""",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("file", type=Path, nargs="?", help="Query file, one query per line")
    source.add_argument("--query", help="A single query to reproduce")
    parser.add_argument(
        "--target",
        default="sqlfuzz.target:reference_parse",
        help="Parse target as module:callable (default: sqlfuzz.target:reference_parse)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Kill a worker after this many seconds (default: 10)",
    )
    parser.add_argument(
        "--example",
        action="store_true",
        help="Output pytest.param lines for copy-paste into a test file",
    )
    args = parser.parse_args()

    if args.query is not None:
        queries = [args.query]
    else:
        file_path: Path = args.file
        if not file_path.exists():
            print(f"[ERROR] File not found: {file_path}", file=sys.stderr)
            return 2
        try:
            text = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            print(f"[ERROR] Cannot read file: {e}", file=sys.stderr)
            return 2
        queries = [line for line in text.splitlines() if line.strip()]

    if args.example:
        print("# Add these cases to a parametrized regression test:")
        for query in queries:
            print(f"    pytest.param({query!r}),")
        return 0

    # Import inside main to report a broken install cleanly
    try:
        from sqlfuzz.errors import StartupError
        from sqlfuzz.harness import await_termination, spawn
        from sqlfuzz.target import load_target
    except ImportError as e:
        print(f"[ERROR] Cannot import sqlfuzz: {e}", file=sys.stderr)
        return 2

    try:
        target = load_target(args.target)
    except StartupError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    print(f"[INFO] Reproducing {len(queries)} queries against {args.target}")
    print()

    crashed = 0
    for index, query in enumerate(queries):
        sys.stdout.flush()
        reason = await_termination(
            spawn(lambda q=query: target(q)),
            timeout=args.timeout,
        )
        if reason.crashed or reason.timed_out:
            crashed += 1
            print(f"[FINDING] Query {index}: {reason.describe()}")
            print(f"          {query!r}")

    print()
    if crashed:
        print(f"[FINDING] {crashed} of {len(queries)} queries crashed the target")
        print()
        print("Next steps:")
        print("  1. Preserve the cases with: uv run python scripts/repro.py --example FILE")
        print("  2. Fix the bug in the parser")
        print("  3. Re-run this script to verify the fix")
        return 1

    print(f"[OK] {len(queries)} queries parsed without crashing")
    return 0


if __name__ == "__main__":
    sys.exit(main())
