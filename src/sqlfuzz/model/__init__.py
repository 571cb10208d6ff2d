"""Token Markov model and query synthesis.

Public API:
    TokenCorpusModel - Immutable token model learned from a corpus
    Transition - One cumulative-distribution entry
    QuerySynthesizer - Random query generation driven by a caller-owned RNG
"""

from .corpus import TokenCorpusModel, Transition, TransitionTable, build_transition_table
from .synthesizer import QuerySynthesizer, select_transition

__all__ = [
    "QuerySynthesizer",
    "TokenCorpusModel",
    "Transition",
    "TransitionTable",
    "build_transition_table",
    "select_transition",
]
