"""Independent random states for workers and runs.

Each process must own its own ``random.Random``. Seeds mix wall-clock
milliseconds with the pid so that workers forked in the same millisecond
still diverge.

Python 3.13+. Zero external dependencies.
"""

import os
import random
import time

__all__ = ["make_seed", "new_random_state"]


def make_seed() -> int:
    """Seed from wall-clock milliseconds and the current pid."""
    millis = time.time_ns() // 1_000_000
    return (millis ^ (os.getpid() << 20)) & 0xFFFFFFFFFFFF


def new_random_state(seed: int | None = None) -> random.Random:
    """Create a random state; a fresh seed is used when seed is None."""
    return random.Random(make_seed() if seed is None else seed)
