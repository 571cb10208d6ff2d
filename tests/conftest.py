"""Pytest configuration for the sqlfuzz test suite.

Single Source of Truth for Hypothesis max_examples:
- dev: Local development with 200 examples (thorough property testing)
- ci: CI with 50 examples (fast feedback)
- verbose: Debug mode with progress output (100 examples)

Profile auto-detection:
- HYPOTHESIS_PROFILE env var -> explicit override
- CI=true environment variable -> "ci" profile
- Otherwise -> "dev" profile

Fuzzing Test Separation:
Tests marked with @pytest.mark.fuzz are excluded from normal test runs.
Run them via: pytest -m fuzz
"""

from __future__ import annotations

import os

import pytest
from hypothesis import HealthCheck, Phase, Verbosity, settings

from sqlfuzz.lexing import SqlScanner
from sqlfuzz.model import QuerySynthesizer, TokenCorpusModel

# =============================================================================
# HYPOTHESIS PROFILES - SINGLE SOURCE OF TRUTH
# =============================================================================

settings.register_profile(
    "dev",
    max_examples=200,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    derandomize=False,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

settings.register_profile(
    "ci",
    max_examples=50,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    derandomize=True,
    print_blob=True,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

settings.register_profile(
    "verbose",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    derandomize=False,
    verbosity=Verbosity.verbose,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


def _detect_profile() -> str:
    """Detect appropriate Hypothesis profile based on execution context."""
    explicit = os.environ.get("HYPOTHESIS_PROFILE")
    if explicit in ("dev", "ci", "verbose"):
        return explicit
    if os.environ.get("CI") == "true":
        return "ci"
    return "dev"


settings.load_profile(_detect_profile())


# =============================================================================
# FUZZING TEST SEPARATION
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register the 'fuzz' marker for intensive property tests."""
    config.addinivalue_line(
        "markers",
        "fuzz: Intensive property tests for fuzzing (excluded from normal test runs)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip fuzz-marked tests unless explicitly requested with -m fuzz."""
    marker_expr = config.getoption("-m", default="")
    if "fuzz" in str(marker_expr):
        return

    skip_fuzz = pytest.mark.skip(reason="Fuzzing test - run with: pytest -m fuzz")
    for item in items:
        if "fuzz" in item.keywords:
            item.add_marker(skip_fuzz)


# =============================================================================
# SHARED FIXTURES
# =============================================================================

SCENARIO_A_CORPUS = ["SELECT a FROM t", "SELECT b FROM t WHERE a = 1"]


@pytest.fixture(scope="session")
def scanner() -> SqlScanner:
    return SqlScanner()


@pytest.fixture(scope="session")
def scenario_model(scanner: SqlScanner) -> TokenCorpusModel:
    """Model learned from the two-query SELECT corpus."""
    return TokenCorpusModel.from_lines(SCENARIO_A_CORPUS, scanner)


@pytest.fixture(scope="session")
def sample_model(scanner: SqlScanner) -> TokenCorpusModel:
    """Model learned from the bundled sample corpus."""
    from sqlfuzz.config import default_corpus_path

    return TokenCorpusModel.from_file(default_corpus_path(), scanner)


@pytest.fixture
def markov_synthesizer(scenario_model: TokenCorpusModel) -> QuerySynthesizer:
    """Pure Markov walk (no exploration) anchored on corpus start tokens."""
    return QuerySynthesizer(scenario_model, exploration_rate=0.0, anchor_start=True)
