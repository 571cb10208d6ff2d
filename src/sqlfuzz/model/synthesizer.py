"""Random query synthesis from the token model.

Every call consumes entropy only from the ``random.Random`` the caller
passes in. There is no module-level random source, so two workers seeded
independently never share a stream and a fixed seed reproduces a query.

Generation is a walk over the Markov chain:

1. Pick a starting token (uniform over known ids, or weighted over the tokens
   that opened corpus lines when ``anchor_start`` is set).
2. Emit the token text plus a space; choose the next token either uniformly
   (exploration, probability ``exploration_rate``) or from the current
   token's CPD.
3. Stop at the terminal token.

The output is not validated. Invalid SQL is expected.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlfuzz.constants import END_OF_QUERY, EXPLORATION_RATE

if TYPE_CHECKING:
    import random

    from .corpus import TokenCorpusModel, Transition

__all__ = ["QuerySynthesizer", "select_transition"]


def select_transition(cpd: tuple[Transition, ...], r: float) -> int:
    """Return the first CPD token whose cumulative probability is >= r.

    Falls back to the last entry when float error leaves no match.
    """
    for entry in cpd:
        if entry.cumulative >= r:
            return entry.token
    return cpd[-1].token


class QuerySynthesizer:
    """Generates one random query string per call.

    Args:
        model: Learned token model (shared, read-only)
        exploration_rate: Probability of a uniform jump instead of a CPD step
        anchor_start: Start on tokens that opened corpus lines instead of any
            known token
        max_tokens: Stop after this many emitted tokens (None = until the
            terminal token)

    Example:
        >>> import random
        >>> synthesizer = QuerySynthesizer(model, exploration_rate=0.0)
        >>> synthesizer.generate(random.Random(7))  # doctest: +SKIP
        'SELECT a FROM t '
    """

    __slots__ = ("_anchor_start", "_exploration_rate", "_max_tokens", "_model", "_start_weights")

    def __init__(
        self,
        model: TokenCorpusModel,
        *,
        exploration_rate: float = EXPLORATION_RATE,
        anchor_start: bool = False,
        max_tokens: int | None = None,
    ) -> None:
        if not 0.0 <= exploration_rate <= 1.0:
            msg = "exploration_rate must be within [0, 1]"
            raise ValueError(msg)
        if max_tokens is not None and max_tokens <= 0:
            msg = "max_tokens must be positive"
            raise ValueError(msg)
        if anchor_start and not model.start_tokens:
            msg = "anchor_start requires a model with recorded start tokens"
            raise ValueError(msg)
        self._model = model
        self._exploration_rate = exploration_rate
        self._anchor_start = anchor_start
        self._max_tokens = max_tokens
        starts = sorted(model.start_tokens.items())
        self._start_weights = (tuple(t for t, _ in starts), tuple(n for _, n in starts))

    @property
    def model(self) -> TokenCorpusModel:
        return self._model

    @property
    def exploration_rate(self) -> float:
        return self._exploration_rate

    def generate(self, rng: random.Random) -> str:
        """Generate one query.

        Args:
            rng: Caller-owned random state

        Returns:
            Token texts joined by single spaces, with a trailing space
        """
        model = self._model
        parts: list[str] = []
        token = self._start_token(rng)

        while token != END_OF_QUERY:
            parts.append(model.text_for(token))
            parts.append(" ")
            if self._max_tokens is not None and len(parts) // 2 >= self._max_tokens:
                break

            if rng.random() < self._exploration_rate:
                token = self.random_known_token(rng)
            else:
                token = self._next_token(token, rng.random())

        return "".join(parts)

    def generate_batch(self, rng: random.Random, size: int) -> list[str]:
        """Generate an ordered batch of ``size`` queries."""
        return [self.generate(rng) for _ in range(size)]

    def random_known_token(self, rng: random.Random) -> int:
        """Draw uniformly over [0, max_token] until the draw is a known token."""
        model = self._model
        while True:
            token = rng.randint(0, model.max_token)
            if model.is_known(token):
                return token

    def _start_token(self, rng: random.Random) -> int:
        if self._anchor_start:
            tokens, weights = self._start_weights
            return rng.choices(tokens, weights=weights)[0]
        return self.random_known_token(rng)

    def _next_token(self, token: int, r: float) -> int:
        cpd = self._model.transitions_for(token)
        if not cpd:
            # No observed continuation: end the query.
            return END_OF_QUERY
        return select_transition(cpd, r)
