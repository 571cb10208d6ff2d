"""sqlfuzz - Markov-chain SQL fuzzer with crash isolation and leak bisection.

Learns a first-order Markov chain over SQL tokens from a corpus of real
queries, synthesizes random (often invalid) queries from it, and feeds them
to a parser under test in two modes:

- crash search: forked workers parse queries until they die; the query in
  flight is recovered from a shared memory region
- leak search: batches are run under an external memory checker and bisected,
  checking both halves, down to the individual leaking queries

Public API:
    TokenCorpusModel - Immutable token model learned from a corpus
    QuerySynthesizer - Random query generation from a caller-owned RNG
    CrashHarness - Process-isolated crash search
    LeakBisector - Both-halves leak localization
    ExternalLeakChecker - has_fault primitive backed by a memory checker
    classify - Memory checker output classification
    FuzzConfig - Run configuration
    SqlScanner - Reference SQL tokenizer

Exceptions:
    FuzzError - Base exception class
    StartupError - Fatal startup conditions (and subclasses)

Submodules:
    sqlfuzz.lexing - Reference tokenizer and token ids
    sqlfuzz.model - Token model and synthesizer
    sqlfuzz.harness - Shared region, workers, crash harness
    sqlfuzz.leak - Classifier, checker, bisector
    sqlfuzz.target - Parse target protocol and loader
    sqlfuzz.driver - Program run under the memory checker
"""

from .config import FuzzConfig, FuzzMode
from .errors import (
    CheckerUnavailableError,
    CorpusError,
    FuzzError,
    SharedRegionError,
    StartupError,
    TargetLoadError,
    TokenizerError,
    WorkerSpawnError,
)
from .harness import CrashHarness, CrashReport, ExitReason, SharedRegion
from .leak import ExternalLeakChecker, LeakBisector, LeakFinding, LeakSignature, classify
from .lexing import SqlScanner, TokenKind
from .model import QuerySynthesizer, TokenCorpusModel, Transition
from .seeding import new_random_state

# Version information - Auto-populated from package metadata
# SINGLE SOURCE OF TRUTH: pyproject.toml [project] version
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("sqlfuzz")
except PackageNotFoundError:
    # Development mode: package not installed yet
    __version__ = "0.0.0+dev"

__all__ = [
    "CheckerUnavailableError",
    "CorpusError",
    "CrashHarness",
    "CrashReport",
    "ExitReason",
    "ExternalLeakChecker",
    "FuzzConfig",
    "FuzzError",
    "FuzzMode",
    "LeakBisector",
    "LeakFinding",
    "LeakSignature",
    "QuerySynthesizer",
    "SharedRegion",
    "SharedRegionError",
    "SqlScanner",
    "StartupError",
    "TargetLoadError",
    "TokenCorpusModel",
    "TokenKind",
    "TokenizerError",
    "Transition",
    "WorkerSpawnError",
    "__version__",
    "classify",
    "new_random_state",
]
