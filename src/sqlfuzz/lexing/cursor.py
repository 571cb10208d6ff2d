"""Immutable cursor for the reference SQL scanner.

Design Philosophy:
    - Cursor is immutable (frozen dataclass)
    - EOF is a state (is_eof), not a return value
    - Every advance() returns a NEW cursor, so a scanning loop that forgets
      to reassign cannot spin forever on the same position

Python 3.13+. Zero external dependencies.
"""

from collections.abc import Callable
from dataclasses import dataclass

__all__ = ["Cursor"]


@dataclass(frozen=True, slots=True)
class Cursor:
    """Immutable source position tracker.

    Example:
        >>> cursor = Cursor("select", 0)
        >>> cursor.current
        's'
        >>> cursor.advance().current
        'e'
        >>> cursor.current  # Original unchanged
        's'
        >>> Cursor("a", 1).is_eof
        True
    """

    source: str
    pos: int

    @property
    def is_eof(self) -> bool:
        """Check if at end of input."""
        return self.pos >= len(self.source)

    @property
    def current(self) -> str:
        """Get current character.

        Raises:
            EOFError: If at end of input
        """
        if self.is_eof:
            msg = f"Unexpected EOF at position {self.pos}"
            raise EOFError(msg)
        return self.source[self.pos]

    def peek(self, offset: int = 0) -> str | None:
        """Peek at character with offset without advancing.

        Returns:
            Character at position + offset, or None if beyond EOF
        """
        target_pos = self.pos + offset
        if target_pos >= len(self.source):
            return None
        return self.source[target_pos]

    def advance(self, count: int = 1) -> "Cursor":
        """Return new cursor advanced by count positions (clamped to EOF)."""
        new_pos = min(self.pos + count, len(self.source))
        return Cursor(self.source, new_pos)

    def slice_to(self, end_pos: int) -> str:
        """Extract source slice from current position to end_pos (exclusive)."""
        return self.source[self.pos : end_pos]

    def slice_ahead(self, n: int) -> str:
        """Get up to n characters without advancing."""
        return self.source[self.pos : self.pos + n]

    def skip_whitespace(self) -> "Cursor":
        """Skip spaces, tabs, and line endings."""
        c = self
        while not c.is_eof and c.current in " \t\n\r\f\v":
            c = c.advance()
        return c

    def skip_while(self, predicate: Callable[[str], bool]) -> "Cursor":
        """Advance while predicate holds for the current character."""
        c = self
        while not c.is_eof and predicate(c.current):
            c = c.advance()
        return c
