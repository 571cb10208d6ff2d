"""Fault classification of external checker output.

The memory checker reports through free text. ``classify`` reduces that text
to a single boolean so the bisection never depends on the checker's format.
Swap the LeakSignature to target a different tool.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sqlfuzz.constants import DEFAULT_LEAK_PATTERN

__all__ = ["DEFAULT_LEAK_SIGNATURE", "LeakSignature", "classify"]


@dataclass(frozen=True, slots=True)
class LeakSignature:
    """Regex marking a fault in checker output.

    When the pattern has a named group ``bytes``, a match only counts if that
    number (commas allowed) reaches ``min_bytes``. This keeps summaries such as
    ``definitely lost: 0 bytes in 0 blocks`` from firing.

    Attributes:
        pattern: Compiled regular expression
        min_bytes: Smallest leaked byte count treated as a fault
    """

    pattern: re.Pattern[str]
    min_bytes: int = 1

    def __post_init__(self) -> None:
        if self.min_bytes < 0:
            msg = "min_bytes must be non-negative"
            raise ValueError(msg)

    @classmethod
    def from_regex(cls, regex: str, min_bytes: int = 1) -> LeakSignature:
        """Compile regex into a signature.

        Raises:
            re.error: If the regex is invalid
        """
        return cls(re.compile(regex), min_bytes)

    def matches(self, diagnostic_text: str) -> bool:
        has_bytes = "bytes" in self.pattern.groupindex
        for match in self.pattern.finditer(diagnostic_text):
            if not has_bytes:
                return True
            if int(match.group("bytes").replace(",", "")) >= self.min_bytes:
                return True
        return False


DEFAULT_LEAK_SIGNATURE = LeakSignature.from_regex(DEFAULT_LEAK_PATTERN)


def classify(diagnostic_text: str, signature: LeakSignature = DEFAULT_LEAK_SIGNATURE) -> bool:
    """Return True when the checker output shows a fault.

    Example:
        >>> classify("==1==    definitely lost: 48 bytes in 1 blocks")
        True
        >>> classify("==1==    definitely lost: 0 bytes in 0 blocks")
        False
    """
    return signature.matches(diagnostic_text)
