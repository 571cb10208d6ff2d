"""Run configuration.

A single frozen dataclass holds every knob of a run. The CLI builds one from
its arguments; library users can construct it directly. Validation happens at
construction time so a bad value fails before any worker is forked.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from importlib import resources
from pathlib import Path

from sqlfuzz.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CHECKER_COMMAND,
    DEFAULT_CRASH_ROUNDS,
    DEFAULT_DRIVER_COMMAND,
    DEFAULT_LEAK_ROUNDS,
    EXPLORATION_RATE,
    SHARED_REGION_SIZE,
)
from sqlfuzz.target import DEFAULT_TARGET

__all__ = ["FuzzConfig", "FuzzMode", "default_corpus_path"]


class FuzzMode(StrEnum):
    """Which search the run performs."""

    CRASH = "crash"
    LEAK = "leak"


def default_corpus_path() -> Path:
    """Path of the sample corpus shipped with the package."""
    return Path(str(resources.files("sqlfuzz") / "data" / "sample_queries.sql"))


@dataclass(frozen=True, slots=True)
class FuzzConfig:
    """Immutable configuration for one fuzzing run.

    Attributes:
        mode: Crash search or leak search
        corpus_path: Corpus file, one query per line
        iterations: Crash rounds or leak rounds (None = mode default: 100 / 10)
        batch_size: Queries per leak batch
        target: Parse target as ``"module:callable"``
        worker_timeout: Seconds before a hung worker is killed (None = unbounded)
        region_size: Shared region capacity in bytes
        exploration_rate: Probability of a uniform jump per generated token
        anchor_start: Start queries on tokens that opened corpus lines
        seed: Seed of the leak-mode random state (None = wall clock + pid)
        checker_command: Memory checker argv prefix
        driver_command: Program run under the checker (None = the bundled driver
            with ``target``)
        checker_timeout: Seconds before one checker run is abandoned
        max_workers: Checker runs in flight at once during bisection
        report_dir: Directory for the JSON summary (None = stderr only)
    """

    mode: FuzzMode = FuzzMode.CRASH
    corpus_path: Path = field(default_factory=default_corpus_path)
    iterations: int | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    target: str = DEFAULT_TARGET
    worker_timeout: float | None = None
    region_size: int = SHARED_REGION_SIZE
    exploration_rate: float = EXPLORATION_RATE
    anchor_start: bool = False
    seed: int | None = None
    checker_command: tuple[str, ...] = DEFAULT_CHECKER_COMMAND
    driver_command: tuple[str, ...] | None = None
    checker_timeout: float | None = None
    max_workers: int = 1
    report_dir: Path | None = None

    def __post_init__(self) -> None:
        """Validate configuration values at construction time.

        Raises:
            ValueError: If a count, size, rate, or timeout is out of range
        """
        if self.iterations is not None and self.iterations < 0:
            msg = "iterations must be non-negative"
            raise ValueError(msg)
        if self.batch_size <= 0:
            msg = "batch_size must be positive"
            raise ValueError(msg)
        if self.region_size < 2:
            msg = "region_size must be at least 2 bytes"
            raise ValueError(msg)
        if not 0.0 <= self.exploration_rate <= 1.0:
            msg = "exploration_rate must be within [0, 1]"
            raise ValueError(msg)
        if self.worker_timeout is not None and self.worker_timeout <= 0:
            msg = "worker_timeout must be positive"
            raise ValueError(msg)
        if self.checker_timeout is not None and self.checker_timeout <= 0:
            msg = "checker_timeout must be positive"
            raise ValueError(msg)
        if self.max_workers < 1:
            msg = "max_workers must be at least 1"
            raise ValueError(msg)
        if not self.checker_command:
            msg = "checker_command must not be empty"
            raise ValueError(msg)

    @property
    def rounds(self) -> int:
        """Iteration bound with the per-mode default applied."""
        if self.iterations is not None:
            return self.iterations
        return DEFAULT_CRASH_ROUNDS if self.mode is FuzzMode.CRASH else DEFAULT_LEAK_ROUNDS

    @property
    def resolved_driver_command(self) -> tuple[str, ...]:
        """Driver argv, defaulting to the bundled driver running ``target``."""
        if self.driver_command is not None:
            return self.driver_command
        return (*DEFAULT_DRIVER_COMMAND, "--target", self.target)
