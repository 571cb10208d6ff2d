"""Parse targets: the code under test.

A parse target is any callable ``query -> bool`` that reports whether the
query parsed. Targets are referenced on the command line as
``"package.module:callable"`` and resolved with ``load_target``.

``reference_parse`` is a small recognizer built on the reference scanner.
It lets the harness run end to end without the firewall parser and serves
as the default target of the driver and the CLI.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import importlib
import logging
from typing import Protocol

from sqlfuzz.errors import TargetLoadError
from sqlfuzz.lexing import STATEMENT_KEYWORDS, TokenKind, tokenize

__all__ = ["DEFAULT_TARGET", "ParseTarget", "load_target", "reference_parse"]

logger = logging.getLogger(__name__)

DEFAULT_TARGET = "sqlfuzz.target:reference_parse"


class ParseTarget(Protocol):
    """Callable under test. Crashing it is the condition being searched for."""

    def __call__(self, query: str, /) -> bool: ...


def reference_parse(query: str) -> bool:
    """Accept a query that opens with a statement keyword and balances parentheses.

    Example:
        >>> reference_parse("SELECT (a) FROM t")
        True
        >>> reference_parse("FROM t SELECT")
        False
    """
    kinds = [kind for kind, _ in tokenize(query) if kind != TokenKind.END]
    while kinds and kinds[-1] == TokenKind.SEMICOLON:
        kinds.pop()
    if not kinds or kinds[0] not in STATEMENT_KEYWORDS:
        return False

    depth = 0
    for kind in kinds:
        if kind == TokenKind.UNKNOWN or kind == TokenKind.SEMICOLON:
            return False
        if kind == TokenKind.LPAREN:
            depth += 1
        elif kind == TokenKind.RPAREN:
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def load_target(spec: str) -> ParseTarget:
    """Resolve ``"module:attribute"`` to a parse target.

    The attribute part may be dotted (``"pkg.mod:Parser.parse"``).

    Raises:
        TargetLoadError: If the module or attribute is missing or not callable
    """
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        msg = f"Parse target must look like 'module:callable', got {spec!r}"
        raise TargetLoadError(msg)

    try:
        obj: object = importlib.import_module(module_name)
    except ImportError as e:
        msg = f"Cannot import parse target module {module_name!r}: {e}"
        raise TargetLoadError(msg) from e

    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            msg = f"Parse target {spec!r} has no attribute {attr!r}"
            raise TargetLoadError(msg) from e

    if not callable(obj):
        msg = f"Parse target {spec!r} is not callable"
        raise TargetLoadError(msg)

    logger.debug("Loaded parse target %s", spec)
    return obj  # type: ignore[return-value]
