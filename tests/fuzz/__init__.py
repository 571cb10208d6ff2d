"""Intensive property tests for sqlfuzz, run with ``pytest -m fuzz``.

Python 3.13+.
"""
