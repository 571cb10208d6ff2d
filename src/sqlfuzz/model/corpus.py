"""First-order Markov model over lexical tokens.

The model is learned once from a corpus of real queries and is immutable
afterwards. It holds:

- token text: first-seen text for every token id (string literals carry the
  tokenizer's placeholder rendering)
- transitions: for every source token, the tokens observed right after it as
  a cumulative probability distribution (CPD) in ascending target order
- start tokens: how often each token opened a corpus line

Example CPD for a source token::

    SELECT -> (STAR, 0.3), (INTEGER, 0.4), (STRING, 0.5), (IDENTIFIER, 1.0)

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from sqlfuzz.constants import END_OF_QUERY, NO_TOKEN
from sqlfuzz.errors import CorpusError, TokenizerError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from sqlfuzz.lexing.scanner import Token, Tokenizer

__all__ = [
    "TokenCorpusModel",
    "Transition",
    "TransitionTable",
    "build_transition_table",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Transition:
    """One CPD entry: next token and cumulative probability up to and including it."""

    token: int
    cumulative: float


type TransitionTable = Mapping[int, tuple[Transition, ...]]


def build_transition_table(
    counts: Mapping[int, Mapping[int, int]],
) -> MappingProxyType[int, tuple[Transition, ...]]:
    """Turn pair counts into per-source cumulative distributions.

    Targets are enumerated in ascending token order. The final entry of each
    distribution is pinned to exactly 1.0 so float drift cannot leave a draw
    of ``r`` close to 1.0 without a match.

    Args:
        counts: source -> (target -> occurrences)

    Returns:
        Read-only mapping of source -> tuple of Transition
    """
    table: dict[int, tuple[Transition, ...]] = {}
    for source in sorted(counts):
        following = {target: n for target, n in counts[source].items() if n > 0}
        total = sum(following.values())
        if total == 0:
            continue
        cumulative = 0.0
        entries: list[Transition] = []
        for target in sorted(following):
            cumulative += following[target] / total
            entries.append(Transition(target, cumulative))
        entries[-1] = Transition(entries[-1].token, 1.0)
        table[source] = tuple(entries)
    return MappingProxyType(table)


class TokenCorpusModel:
    """Immutable Markov chain learned from a query corpus.

    Build with ``from_file``, ``from_lines`` or ``from_counts``; the instance
    is then shared read-only by every generation call.
    """

    __slots__ = ("_known_tokens", "_max_token", "_start_tokens", "_token_text", "_transitions")

    def __init__(
        self,
        token_text: Mapping[int, str],
        transitions: Mapping[int, Sequence[Transition]],
        start_tokens: Mapping[int, int] | None = None,
    ) -> None:
        """Initialize from already computed statistics.

        Args:
            token_text: token id -> text to emit
            transitions: source token -> CPD entries
            start_tokens: token id -> number of corpus lines it opened

        Raises:
            CorpusError: If token_text is empty
        """
        if not token_text:
            msg = "Token model needs at least one known token"
            raise CorpusError(msg)
        self._token_text = MappingProxyType(dict(token_text))
        self._transitions = MappingProxyType(
            {source: tuple(entries) for source, entries in transitions.items() if entries}
        )
        self._start_tokens = MappingProxyType(dict(start_tokens or {}))
        self._known_tokens = tuple(sorted(self._token_text))
        self._max_token = self._known_tokens[-1]

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_counts(
        cls,
        counts: Mapping[int, Mapping[int, int]],
        token_text: Mapping[int, str],
        start_counts: Mapping[int, int] | None = None,
    ) -> TokenCorpusModel:
        """Build a model from raw transition counts."""
        return cls(token_text, build_transition_table(counts), start_counts)

    @classmethod
    def from_lines(cls, lines: Iterable[str], tokenizer: Tokenizer) -> TokenCorpusModel:
        """Learn a model from corpus lines.

        Blank lines are skipped. Each line contributes its token sequence up to
        and including the terminal token.

        Raises:
            TokenizerError: If the tokenizer fails or returns a malformed sequence
            CorpusError: If no line produced a token
        """
        token_text: dict[int, str] = {}
        counts: defaultdict[int, Counter[int]] = defaultdict(Counter)
        start_counts: Counter[int] = Counter()
        line_count = 0

        for raw_line in lines:
            line = raw_line.rstrip("\r\n")
            if not line.strip():
                continue
            line_count += 1
            previous = NO_TOKEN
            for token, text in _checked_tokens(tokenizer, line):
                token_text.setdefault(token, text)
                if previous == NO_TOKEN:
                    start_counts[token] += 1
                else:
                    counts[previous][token] += 1
                previous = token

        if not token_text:
            msg = "Corpus contains no queries"
            raise CorpusError(msg)

        model = cls.from_counts(counts, token_text, start_counts)
        logger.info(
            "Token model built: %d lines, %d tokens, %d sources",
            line_count,
            len(model.known_tokens),
            len(model.transitions),
        )
        return model

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        tokenizer: Tokenizer,
        *,
        encoding: str = "utf-8",
    ) -> TokenCorpusModel:
        """Learn a model from a corpus file with one query per line.

        Raises:
            CorpusError: If the file cannot be opened or read
            TokenizerError: If a line cannot be tokenized
        """
        corpus_path = Path(path)
        try:
            with corpus_path.open(encoding=encoding, errors="replace") as fin:
                return cls.from_lines(fin, tokenizer)
        except OSError as e:
            msg = f"Unable to open file {corpus_path}: {e}"
            raise CorpusError(msg, str(corpus_path)) from e
        except CorpusError as e:
            e.path = str(corpus_path)
            raise

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def token_text(self) -> Mapping[int, str]:
        """Read-only token id -> text mapping."""
        return self._token_text

    @property
    def transitions(self) -> TransitionTable:
        """Read-only source -> CPD mapping."""
        return self._transitions

    @property
    def start_tokens(self) -> Mapping[int, int]:
        """Read-only token id -> count of corpus lines it opened."""
        return self._start_tokens

    @property
    def known_tokens(self) -> tuple[int, ...]:
        """All token ids with text, ascending."""
        return self._known_tokens

    @property
    def max_token(self) -> int:
        """Largest known token id."""
        return self._max_token

    def is_known(self, token: int) -> bool:
        return token in self._token_text

    def text_for(self, token: int) -> str:
        """Text to emit for token.

        Raises:
            KeyError: If the token is not known
        """
        return self._token_text[token]

    def transitions_for(self, token: int) -> tuple[Transition, ...]:
        """CPD for token; empty when the token was never seen as a source."""
        return self._transitions.get(token, ())

    def __repr__(self) -> str:
        return (
            f"TokenCorpusModel(tokens={len(self._known_tokens)}, "
            f"sources={len(self._transitions)}, max_token={self._max_token})"
        )


def _checked_tokens(tokenizer: Tokenizer, line: str) -> list[Token]:
    """Tokenize line and cut the sequence at the first terminal token."""
    try:
        tokens = tokenizer.tokenize(line)
    except Exception as e:
        msg = f"Unable to tokenize corpus line: {e}"
        raise TokenizerError(msg, line) from e

    checked: list[Token] = []
    for token, text in tokens:
        if token < 0:
            msg = f"Tokenizer produced negative token id {token}"
            raise TokenizerError(msg, line)
        checked.append((token, text))
        if token == END_OF_QUERY:
            return checked

    msg = "Tokenizer output is missing the terminal token"
    raise TokenizerError(msg, line)
