"""Reference SQL tokenizer used to train the token model.

Public API:
    SqlScanner - Hand-written scanner producing (token_id, text) pairs
    Tokenizer - Protocol any replacement tokenizer must satisfy
    TokenKind - Token ids of the reference scanner
    tokenize - Tokenize with a shared SqlScanner instance
"""

from .scanner import SqlScanner, Token, Tokenizer, tokenize
from .tokens import STATEMENT_KEYWORDS, STRING_PLACEHOLDER, TokenKind

__all__ = [
    "STATEMENT_KEYWORDS",
    "STRING_PLACEHOLDER",
    "SqlScanner",
    "Token",
    "TokenKind",
    "Tokenizer",
    "tokenize",
]
