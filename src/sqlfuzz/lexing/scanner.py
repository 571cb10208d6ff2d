"""Reference SQL scanner.

Splits one line of MySQL-flavoured SQL into ``(token_id, text)`` pairs
terminated by ``(END, "")``. This is the tokenizer boundary the Markov model
is trained through; any object satisfying the Tokenizer protocol can replace
it, for example bindings to the firewall's own lexer.

String literals are reported with a fixed placeholder text rather than their
contents. Comments are dropped. Characters the scanner cannot classify become
UNKNOWN tokens, so every line produces a token sequence.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .cursor import Cursor
from .tokens import KEYWORDS, OPERATORS, STRING_PLACEHOLDER, TokenKind

__all__ = ["SqlScanner", "Token", "Tokenizer", "tokenize"]

type Token = tuple[int, str]


class Tokenizer(Protocol):
    """Anything that turns a line into token pairs ending in the terminal token."""

    def tokenize(self, line: str) -> Sequence[Token]:
        """Tokenize one line; the last pair must have id 0."""
        ...


def _is_name_start(char: str) -> bool:
    return char.isalpha() or char in "_$"


def _is_name_char(char: str) -> bool:
    return char.isalnum() or char in "_$"


def _is_hex_digit(char: str) -> bool:
    return char in "0123456789abcdefABCDEF"


class SqlScanner:
    """Hand-written scanner over an immutable cursor.

    Example:
        >>> [kind for kind, _ in SqlScanner().tokenize("SELECT a FROM t")]
        [1, 100, 20, 100, 0]
    """

    __slots__ = ()

    def tokenize(self, line: str) -> list[Token]:
        """Tokenize a single line of SQL.

        Args:
            line: Query text (any trailing newline is treated as whitespace)

        Returns:
            Token pairs, always ending with ``(TokenKind.END, "")``
        """
        tokens: list[Token] = []
        cursor = Cursor(line, 0)
        while True:
            cursor = self._skip_trivia(cursor)
            if cursor.is_eof:
                break
            token, cursor = self._next_token(cursor)
            tokens.append(token)
        tokens.append((int(TokenKind.END), ""))
        return tokens

    def _skip_trivia(self, cursor: Cursor) -> Cursor:
        """Skip whitespace and comments until a token starts or EOF."""
        while True:
            cursor = cursor.skip_whitespace()
            if cursor.is_eof:
                return cursor
            two = cursor.slice_ahead(2)
            if cursor.current == "#" or (two == "--" and cursor.peek(2) in (None, " ", "\t")):
                cursor = cursor.skip_while(lambda c: c not in "\r\n")
            elif two == "/*":
                end = cursor.source.find("*/", cursor.pos + 2)
                cursor = Cursor(cursor.source, len(cursor.source) if end < 0 else end + 2)
            else:
                return cursor

    def _next_token(self, cursor: Cursor) -> tuple[Token, Cursor]:
        char = cursor.current

        if _is_name_start(char):
            end = cursor.skip_while(_is_name_char)
            text = cursor.slice_to(end.pos)
            kind = KEYWORDS.get(text.upper(), TokenKind.IDENTIFIER)
            return (int(kind), text), end

        if char.isdigit() or (char == "." and (cursor.peek(1) or "").isdigit()):
            return self._scan_number(cursor)

        if char in "'\"":
            end = self._skip_quoted(cursor, char)
            return (int(TokenKind.STRING), STRING_PLACEHOLDER), end

        if char == "`":
            end = self._skip_quoted(cursor, "`")
            return (int(TokenKind.QUOTED_IDENTIFIER), cursor.slice_to(end.pos)), end

        if char == "@":
            kind = TokenKind.USER_VARIABLE
            start = cursor
            cursor = cursor.advance()
            if cursor.peek() == "@":
                kind = TokenKind.GLOBAL_VARIABLE
                cursor = cursor.advance()
            end = cursor.skip_while(_is_name_char)
            return (int(kind), start.slice_to(end.pos)), end

        for text, kind in OPERATORS:
            if cursor.slice_ahead(len(text)) == text:
                return (int(kind), text), cursor.advance(len(text))

        return (int(TokenKind.UNKNOWN), char), cursor.advance()

    def _scan_number(self, cursor: Cursor) -> tuple[Token, Cursor]:
        start = cursor
        if cursor.slice_ahead(2).lower() == "0x":
            end = cursor.advance(2).skip_while(_is_hex_digit)
            return (int(TokenKind.HEX_NUMBER), start.slice_to(end.pos)), end

        kind = TokenKind.INTEGER
        cursor = cursor.skip_while(str.isdigit)
        if cursor.peek() == "." and (cursor.peek(1) or "").isdigit():
            kind = TokenKind.FLOAT
            cursor = cursor.advance().skip_while(str.isdigit)
        if cursor.peek() in ("e", "E"):
            exponent = cursor.advance()
            if exponent.peek() in ("+", "-"):
                exponent = exponent.advance()
            if (exponent.peek() or "").isdigit():
                kind = TokenKind.FLOAT
                cursor = exponent.skip_while(str.isdigit)
        return (int(kind), start.slice_to(cursor.pos)), cursor

    @staticmethod
    def _skip_quoted(cursor: Cursor, quote: str) -> Cursor:
        """Advance past a quoted run; an unterminated run ends at EOF."""
        cursor = cursor.advance()
        while not cursor.is_eof:
            char = cursor.current
            if char == "\\" and quote != "`":
                cursor = cursor.advance(2)
            elif char == quote:
                if cursor.peek(1) == quote:
                    cursor = cursor.advance(2)
                else:
                    return cursor.advance()
            else:
                cursor = cursor.advance()
        return cursor


_DEFAULT_SCANNER = SqlScanner()


def tokenize(line: str) -> list[Token]:
    """Tokenize a line with the shared reference scanner."""
    return _DEFAULT_SCANNER.tokenize(line)
