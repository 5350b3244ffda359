"""Deterministic no-show risk scorer.

Rule-based, hand-weighted, fully explainable.  The score is a probability
estimate in [0, 100] built in two phases:

    additive risk signals   history, first visit, weekday, slot, lead time
    multiplicative dampers  confirmation ×0.5, tele-physio ×0.7, reminders

Dampers scale whatever risk was accumulated before them, so the rule
order below is part of the model.

Tiers:
    [0, 15)    →  low
    [15, 30)   →  medium
    [30, 50)   →  high
    [50, 100]  →  very_high
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from physiobook.scoring.engine import (
    Rule,
    ScoreContribution,
    ScoreDelta,
    evaluate,
    rank_contributions,
)
from physiobook.scoring.features import NoShowFeatures

__all__ = [
    "RiskTier",
    "ScoreResult",
    "NO_SHOW_RULES",
    "classify_risk",
    "suggest_actions",
    "score_no_show_risk",
]


class RiskTier(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


# ── Weights (independently scaled, need not sum to 1) ────────────────
W_NO_SHOW_HISTORY = 0.25
W_APPOINTMENT_TIMING = 0.15
W_FIRST_APPOINTMENT = 0.10
W_DAY_OF_WEEK = 0.10
W_LEAD_TIME = 0.10

CONFIRMED_FACTOR = 0.5
TELE_PHYSIO_FACTOR = 0.7
REMINDER_STEP = 0.1
REMINDER_CAP = 0.3

_MONDAY, _FRIDAY = 1, 5  # Sunday-first numbering


@dataclass(frozen=True)
class ScoreResult:
    """Immutable result of one no-show assessment."""

    score: float  # 0 – 100, rounded to 2 decimals
    tier: RiskTier
    contributions: tuple[ScoreContribution, ...]  # largest |contribution| first
    actions: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "tier": self.tier.value,
            "contributions": [
                {"reason": c.reason, "contribution": round(c.contribution, 2)}
                for c in self.contributions
            ],
            "actions": list(self.actions),
        }


# ── Rules (evaluated in this order) ──────────────────────────────────


def _no_show_history(f: NoShowFeatures, score: float) -> ScoreDelta | None:
    if f.total_appointments == 0:
        return None
    amount = f.previous_no_shows / f.total_appointments * W_NO_SHOW_HISTORY * 100
    return ScoreDelta.add(amount, "Previous no-show history" if amount > 0 else None)


def _first_appointment(f: NoShowFeatures, score: float) -> ScoreDelta | None:
    if not f.is_first_appointment:
        return None
    return ScoreDelta.add(0.15 * W_FIRST_APPOINTMENT * 100, "First-time patient")


def _day_of_week(f: NoShowFeatures, score: float) -> ScoreDelta | None:
    if f.day_of_week not in (_MONDAY, _FRIDAY):
        return None
    reason = "Monday appointment" if f.day_of_week == _MONDAY else "Friday appointment"
    return ScoreDelta.add(0.1 * W_DAY_OF_WEEK * 100, reason)


def _time_of_day(f: NoShowFeatures, score: float) -> ScoreDelta | None:
    if 9 <= f.hour_of_day < 18:
        return None
    reason = "Early morning slot" if f.hour_of_day < 9 else "Late evening slot"
    return ScoreDelta.add(0.1 * W_APPOINTMENT_TIMING * 100, reason)


def _lead_time(f: NoShowFeatures, score: float) -> ScoreDelta | None:
    if f.days_until_appointment <= 14:
        return None
    return ScoreDelta.add(0.15 * W_LEAD_TIME * 100, "Appointment booked far in advance")


def _confirmation(f: NoShowFeatures, score: float) -> ScoreDelta | None:
    if not f.has_confirmed:
        return None
    return ScoreDelta.scale(CONFIRMED_FACTOR, "Patient confirmed attendance")


def _tele_physio(f: NoShowFeatures, score: float) -> ScoreDelta | None:
    if not f.is_tele_physio:
        return None
    return ScoreDelta.scale(TELE_PHYSIO_FACTOR, "Tele-physio appointment (lower barrier)")


def _reminders(f: NoShowFeatures, score: float) -> ScoreDelta | None:
    if f.reminders_sent <= 0:
        return None
    # Silent: reminders only dampen, they are not listed as a reason
    return ScoreDelta.scale(1 - min(f.reminders_sent * REMINDER_STEP, REMINDER_CAP))


NO_SHOW_RULES: tuple[Rule[NoShowFeatures], ...] = (
    _no_show_history,
    _first_appointment,
    _day_of_week,
    _time_of_day,
    _lead_time,
    _confirmation,
    _tele_physio,
    _reminders,
)


# ── Tier + actions ───────────────────────────────────────────────────


def classify_risk(score: float) -> RiskTier:
    if score < 15:
        return RiskTier.LOW
    if score < 30:
        return RiskTier.MEDIUM
    if score < 50:
        return RiskTier.HIGH
    return RiskTier.VERY_HIGH


def suggest_actions(tier: RiskTier, features: NoShowFeatures) -> tuple[str, ...]:
    """Mitigation steps for a tier, escalating with risk.

    Low:       one 24h reminder
    Medium:    48h + 24h reminders, SMS confirmation if unconfirmed
    High:      72h + 24h + 2h reminders, call if unconfirmed, overbooking
    Very high: call, multiple reminders, overbook, deposit (+ onboarding
               material for first-time patients)
    """
    if tier == RiskTier.LOW:
        return ("Standard reminder 24 hours before",)

    actions: list[str] = []
    if tier == RiskTier.MEDIUM:
        actions += ["Send reminder 48 hours before", "Send reminder 24 hours before"]
        if not features.has_confirmed:
            actions.append("Request confirmation via SMS")
        return tuple(actions)

    if tier == RiskTier.HIGH:
        actions += [
            "Send reminder 72 hours before",
            "Send reminder 24 hours before",
            "Send reminder 2 hours before",
        ]
        if not features.has_confirmed:
            actions.append("Call patient to confirm attendance")
        actions.append("Consider overbooking strategy")
        return tuple(actions)

    actions += [
        "Call patient to confirm attendance",
        "Send multiple reminders (72h, 24h, 2h)",
        "Apply overbooking for this slot",
        "Require deposit or prepayment",
    ]
    if features.is_first_appointment:
        actions += [
            "Send detailed appointment information",
            "Offer alternative scheduling options",
        ]
    return tuple(actions)


def score_no_show_risk(features: NoShowFeatures) -> ScoreResult:
    """Score one feature vector for no-show risk."""
    evaluation = evaluate(features, NO_SHOW_RULES)
    tier = classify_risk(evaluation.score)
    return ScoreResult(
        score=round(evaluation.score, 2),
        tier=tier,
        contributions=rank_contributions(evaluation.contributions),
        actions=suggest_actions(tier, features),
    )
