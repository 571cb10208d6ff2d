"""sqlfuzz exception hierarchy.

Two families exist:

- StartupError and its subclasses are fatal. They are raised while the run is
  being assembled (corpus, tokenizer, shared region, worker spawn, checker,
  parse target) and abort the whole run. They are never retried.
- Everything else the harness observes (a worker dying, a batch leaking) is a
  detection event and is returned as a result, not raised.

Python 3.13+. Zero external dependencies.
"""

__all__ = [
    "CheckerUnavailableError",
    "CorpusError",
    "FuzzError",
    "SharedRegionError",
    "StartupError",
    "TargetLoadError",
    "TokenizerError",
    "WorkerSpawnError",
]


class FuzzError(Exception):
    """Base exception for all sqlfuzz errors."""


class StartupError(FuzzError):
    """Unrecoverable condition detected while preparing a run."""


class CorpusError(StartupError):
    """Corpus file missing, unreadable, or without a single token.

    Attributes:
        path: Corpus path (None when the corpus came from memory)
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        """Initialize CorpusError.

        Args:
            message: Human readable description
            path: Offending corpus path, if any
        """
        super().__init__(message)
        self.path = path


class TokenizerError(StartupError):
    """Tokenizer failed or returned a malformed token sequence for a line.

    Attributes:
        line: The corpus line being tokenized
    """

    def __init__(self, message: str, line: str) -> None:
        super().__init__(message)
        self.line = line


class SharedRegionError(StartupError):
    """Shared memory region could not be allocated."""


class WorkerSpawnError(StartupError):
    """Worker process could not be forked."""


class CheckerUnavailableError(StartupError):
    """External memory checker executable not found."""


class TargetLoadError(StartupError):
    """Parse target reference could not be resolved to a callable."""
