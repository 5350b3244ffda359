"""Explainable rule fold shared by the no-show scorer and therapist matching.

A score is built by folding an ordered list of rules over a feature vector.
Each rule looks at the features and the running score and returns a
``ScoreDelta`` (or ``None`` when it does not fire).  A delta is either
additive or multiplicative; multiplicative deltas scale whatever has been
accumulated so far, so rule order matters and is part of the model.

Every delta that carries a reason becomes a ``ScoreContribution`` whose
value is the exact change it made to the running score.  Deltas without a
reason are silent: they move the score but are not explained.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from functools import reduce
from typing import Generic, TypeVar

__all__ = [
    "ScoreContribution",
    "ScoreDelta",
    "Evaluation",
    "Rule",
    "evaluate",
    "rank_contributions",
    "clamp",
]

F = TypeVar("F")

SCORE_MIN = 0.0
SCORE_MAX = 100.0


@dataclass(frozen=True)
class ScoreContribution:
    """One explained step of a score: signed change and its reason."""

    reason: str
    contribution: float


@dataclass(frozen=True)
class ScoreDelta:
    """Immutable change applied by one rule.

    ``new = old * factor + amount``.  Use :meth:`add` or :meth:`scale`
    rather than setting both fields.
    """

    amount: float = 0.0
    factor: float = 1.0
    reason: str | None = None

    @classmethod
    def add(cls, amount: float, reason: str | None = None) -> ScoreDelta:
        return cls(amount=amount, reason=reason)

    @classmethod
    def scale(cls, factor: float, reason: str | None = None) -> ScoreDelta:
        return cls(factor=factor, reason=reason)

    def apply(self, score: float) -> float:
        return score * self.factor + self.amount


@dataclass(frozen=True)
class Evaluation(Generic[F]):
    """Result of folding rules over one feature vector."""

    features: F
    score: float
    contributions: tuple[ScoreContribution, ...] = ()


Rule = Callable[[F, float], ScoreDelta | None]


def clamp(value: float, lower: float = SCORE_MIN, upper: float = SCORE_MAX) -> float:
    return max(lower, min(upper, value))


def _step(state: Evaluation[F], rule: Rule[F]) -> Evaluation[F]:
    delta = rule(state.features, state.score)
    if delta is None:
        return state

    new_score = delta.apply(state.score)
    if delta.reason is None:
        return Evaluation(state.features, new_score, state.contributions)

    # Additive steps report their literal amount
    change = delta.amount if delta.factor == 1.0 else new_score - state.score
    return Evaluation(
        state.features,
        new_score,
        (*state.contributions, ScoreContribution(delta.reason, change)),
    )


def evaluate(
    features: F,
    rules: Sequence[Rule[F]],
    *,
    lower: float = SCORE_MIN,
    upper: float = SCORE_MAX,
) -> Evaluation[F]:
    """Fold ``rules`` left-to-right over ``features`` and clamp the result."""
    folded = reduce(_step, rules, Evaluation(features, 0.0))
    return Evaluation(folded.features, clamp(folded.score, lower, upper), folded.contributions)


def rank_contributions(
    contributions: Iterable[ScoreContribution],
) -> tuple[ScoreContribution, ...]:
    """Order contributions by magnitude, largest first (stable for ties)."""
    return tuple(sorted(contributions, key=lambda c: abs(c.contribution), reverse=True))
