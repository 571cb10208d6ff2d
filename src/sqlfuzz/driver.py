#!/usr/bin/env python3
"""Driver program run under the external memory checker.

Parses every line of a query file with a parse target, in order, inside one
process. The memory checker wraps this process and reports what leaked.

Usage:
    python -m sqlfuzz.driver queries.sql
    python -m sqlfuzz.driver --target firewall.bindings:parse queries.sql

Exit Codes:
    0   All lines handed to the target (parse failures are normal)
    2   File read error or target could not be loaded
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sqlfuzz.errors import TargetLoadError
from sqlfuzz.target import DEFAULT_TARGET, load_target

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Parse each line of a query file with a parse target.",
    )
    parser.add_argument("file", type=Path, help="Query file, one query per line")
    parser.add_argument(
        "--target",
        default=DEFAULT_TARGET,
        help=f"Parse target as module:callable (default: {DEFAULT_TARGET})",
    )
    args = parser.parse_args(argv)

    try:
        target = load_target(args.target)
    except TargetLoadError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    try:
        with args.file.open(encoding="utf-8", errors="replace") as fin:
            parsed = failed = 0
            for line in fin:
                if target(line.rstrip("\r\n")):
                    parsed += 1
                else:
                    failed += 1
    except OSError as e:
        print(f"[ERROR] Cannot read file: {e}", file=sys.stderr)
        return 2

    logger.debug("Driver finished: %d parsed, %d rejected", parsed, failed)
    return 0


if __name__ == "__main__":
    sys.exit(main())
