"""Shared constants for sqlfuzz.

Constants are grouped by domain:
- Token ids: Reserved values shared by tokenizers, the model and the synthesizer
- Generation: Markov walk parameters
- Harness limits: Shared region sizing and default round counts
- Leak detection: Default checker invocation and fault signature

Python 3.13+. Zero external dependencies.
"""

import sys

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Token ids
    "END_OF_QUERY",
    "NO_TOKEN",
    # Generation
    "EXPLORATION_RATE",
    "CPD_TOLERANCE",
    # Harness limits
    "SHARED_REGION_SIZE",
    "DEFAULT_CRASH_ROUNDS",
    "DEFAULT_LEAK_ROUNDS",
    "DEFAULT_BATCH_SIZE",
    # Leak detection
    "DEFAULT_CHECKER_COMMAND",
    "DEFAULT_DRIVER_COMMAND",
    "DEFAULT_LEAK_PATTERN",
    "TEMP_FILE_PREFIX",
]

# ============================================================================
# TOKEN IDS
# ============================================================================

# Terminal token. Every tokenized line ends with it and every generated query
# stops when the walk reaches it.
END_OF_QUERY: int = 0

# "No previous token yet" marker used while counting transitions.
# Tokenizers never produce negative ids, so it cannot collide with a real one.
NO_TOKEN: int = -1

# ============================================================================
# GENERATION
# ============================================================================

# Probability of ignoring the learned transitions for one step and jumping to
# a uniformly chosen known token. Injects sequences the corpus never contained.
EXPLORATION_RATE: float = 0.05

# Tolerance used when checking that a cumulative distribution ends at 1.0.
CPD_TOLERANCE: float = 1e-6

# ============================================================================
# HARNESS LIMITS
# ============================================================================

# Capacity in bytes of the region the worker publishes the in-flight query to.
# Queries are truncated to SHARED_REGION_SIZE - 1 bytes plus a NUL terminator.
SHARED_REGION_SIZE: int = 4096

DEFAULT_CRASH_ROUNDS: int = 100
DEFAULT_LEAK_ROUNDS: int = 10
DEFAULT_BATCH_SIZE: int = 10

# ============================================================================
# LEAK DETECTION
# ============================================================================

DEFAULT_CHECKER_COMMAND: tuple[str, ...] = ("valgrind", "--leak-check=full")

# The query file path is appended after the driver arguments.
DEFAULT_DRIVER_COMMAND: tuple[str, ...] = (sys.executable, "-m", "sqlfuzz.driver")

# valgrind summary line, e.g. "==123==    definitely lost: 1,024 bytes in 2 blocks".
# The byte count is captured so that zero-byte summaries can be rejected.
DEFAULT_LEAK_PATTERN: str = r"definitely lost:\s+(?P<bytes>\d[\d,]*)\s+bytes"

TEMP_FILE_PREFIX: str = "query-"
