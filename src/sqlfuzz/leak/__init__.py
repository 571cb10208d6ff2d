"""Leak search: external checker, fault classification, and bisection.

Public API:
    LeakBisector - Both-halves divide and conquer over a query batch
    ExternalLeakChecker - has_fault primitive backed by a memory checker
    classify, LeakSignature - Checker output classification
    find_memory_leaks - Round driver over synthesized batches
"""

from .bisector import BisectionStats, FaultPredicate, LeakBisector, LeakFinding, find_memory_leaks
from .checker import ExternalLeakChecker
from .classifier import DEFAULT_LEAK_SIGNATURE, LeakSignature, classify

__all__ = [
    "DEFAULT_LEAK_SIGNATURE",
    "BisectionStats",
    "ExternalLeakChecker",
    "FaultPredicate",
    "LeakBisector",
    "LeakFinding",
    "LeakSignature",
    "classify",
    "find_memory_leaks",
]
