"""Therapist matching: score every candidate, then rank.

Per-candidate points (capped at 100):

    specialty      exact +40, else related +20
    experience     ≥10y +15, ≥5y +10, else +5
    rating         ≥4.5 +15, ≥4.0 +10, ≥3.5 +5
    success rate   ≥90% +15, ≥80% +10
    reliability    own no-show rate ≤5% +5 (silent)
    availability   ≥5 open slots +10, ≥2 +5

Ranking is a stable sort on score, so equal scores keep input order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any

from physiobook.errors import ValidationError
from physiobook.matching.specialties import Specialty, describe, related_specialties
from physiobook.scoring.engine import Rule, ScoreContribution, ScoreDelta, evaluate
from physiobook.scoring.features import parse_hour

__all__ = [
    "AvailabilitySlot",
    "Candidate",
    "MatchContext",
    "MatchFeatures",
    "MatchResult",
    "SpecialtyMatch",
    "MATCH_RULES",
    "DEFAULT_LIMIT",
    "MAX_SLOTS",
    "extract_match_features",
    "score_candidate",
    "rank_therapists",
]

DEFAULT_LIMIT = 5
MAX_SLOTS = 10


@dataclass(frozen=True)
class AvailabilitySlot:
    date: date
    start_time: str  # "HH:MM"

    def __post_init__(self) -> None:
        parse_hour(self.start_time)

    def to_dict(self) -> dict[str, str]:
        return {"date": self.date.isoformat(), "time": self.start_time}


@dataclass(frozen=True)
class Candidate:
    """A therapist as seen by the matcher.

    ``available_slots`` holds only future, unbooked, unblocked slots in
    ascending order; the directory that loads candidates is responsible
    for that filtering.
    """

    candidate_id: str
    name: str
    specialties: frozenset[Specialty]
    years_of_experience: int = 0
    average_rating: float = 0.0
    success_rate: float = 0.0
    no_show_rate: float = 0.0
    available_slots: tuple[AvailabilitySlot, ...] = ()
    is_active: bool = True
    is_accepting_patients: bool = True

    def __post_init__(self) -> None:
        if self.years_of_experience < 0:
            raise ValidationError(f"years_of_experience must be >= 0, got {self.years_of_experience}")
        if not 0.0 <= self.average_rating <= 5.0:
            raise ValidationError(f"average_rating must be in [0, 5], got {self.average_rating}")
        if not 0.0 <= self.success_rate <= 1.0:
            raise ValidationError(f"success_rate must be in [0, 1], got {self.success_rate}")
        if not 0.0 <= self.no_show_rate <= 1.0:
            raise ValidationError(f"no_show_rate must be in [0, 1], got {self.no_show_rate}")

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.is_accepting_patients


@dataclass(frozen=True)
class MatchContext:
    """What the patient needs, usually taken from a triage assessment."""

    recommended_specialty: Specialty
    patient_id: str = ""
    triage_category: str = ""
    urgency_level: str = ""
    body_region: str = ""


class SpecialtyMatch(StrEnum):
    EXACT = "exact"
    RELATED = "related"
    NONE = "none"


@dataclass(frozen=True)
class MatchFeatures:
    specialty_match: SpecialtyMatch
    recommended_specialty: Specialty
    years_of_experience: int
    average_rating: float
    success_rate: float
    no_show_rate: float
    available_slot_count: int


@dataclass(frozen=True)
class MatchResult:
    candidate_id: str
    name: str
    specialties: tuple[Specialty, ...]
    score: float  # 0 – 100
    contributions: tuple[ScoreContribution, ...]  # evaluation order
    available_slots: tuple[AvailabilitySlot, ...] = ()
    average_rating: float = 0.0
    years_of_experience: int = 0

    @property
    def reasons(self) -> list[str]:
        return [c.reason for c in self.contributions]

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "name": self.name,
            "specialties": [s.value for s in self.specialties],
            "score": self.score,
            "reasons": self.reasons,
            "available_slots": [s.to_dict() for s in self.available_slots],
            "average_rating": self.average_rating,
            "years_of_experience": self.years_of_experience,
        }


# ── Features ─────────────────────────────────────────────────────────


def extract_match_features(candidate: Candidate, context: MatchContext) -> MatchFeatures:
    wanted = context.recommended_specialty
    if wanted in candidate.specialties:
        specialty_match = SpecialtyMatch.EXACT
    elif candidate.specialties & related_specialties(wanted):
        specialty_match = SpecialtyMatch.RELATED
    else:
        specialty_match = SpecialtyMatch.NONE

    return MatchFeatures(
        specialty_match=specialty_match,
        recommended_specialty=wanted,
        years_of_experience=candidate.years_of_experience,
        average_rating=candidate.average_rating,
        success_rate=candidate.success_rate,
        no_show_rate=candidate.no_show_rate,
        available_slot_count=len(candidate.available_slots),
    )


# ── Rules ────────────────────────────────────────────────────────────


def _specialty(f: MatchFeatures, score: float) -> ScoreDelta | None:
    if f.specialty_match == SpecialtyMatch.EXACT:
        return ScoreDelta.add(40, f"Specializes in {describe(f.recommended_specialty)}")
    if f.specialty_match == SpecialtyMatch.RELATED:
        return ScoreDelta.add(20, "Has related specialty expertise")
    return None


def _experience(f: MatchFeatures, score: float) -> ScoreDelta:
    if f.years_of_experience >= 10:
        return ScoreDelta.add(15, f"{f.years_of_experience} years of experience")
    if f.years_of_experience >= 5:
        return ScoreDelta.add(10)
    return ScoreDelta.add(5)


def _rating(f: MatchFeatures, score: float) -> ScoreDelta | None:
    if f.average_rating >= 4.5:
        return ScoreDelta.add(15, f"Highly rated ({f.average_rating:.1f}/5)")
    if f.average_rating >= 4.0:
        return ScoreDelta.add(10)
    if f.average_rating >= 3.5:
        return ScoreDelta.add(5)
    return None


def _success_rate(f: MatchFeatures, score: float) -> ScoreDelta | None:
    if f.success_rate >= 0.9:
        return ScoreDelta.add(15, f"{int(f.success_rate * 100 + 0.5)}% success rate")
    if f.success_rate >= 0.8:
        return ScoreDelta.add(10)
    return None


def _reliability(f: MatchFeatures, score: float) -> ScoreDelta | None:
    return ScoreDelta.add(5) if f.no_show_rate <= 0.05 else None


def _availability(f: MatchFeatures, score: float) -> ScoreDelta | None:
    if f.available_slot_count >= 5:
        return ScoreDelta.add(10, "Good availability")
    if f.available_slot_count >= 2:
        return ScoreDelta.add(5)
    return None


MATCH_RULES: tuple[Rule[MatchFeatures], ...] = (
    _specialty,
    _experience,
    _rating,
    _success_rate,
    _reliability,
    _availability,
)


# ── Scoring + ranking ────────────────────────────────────────────────


def score_candidate(
    candidate: Candidate,
    context: MatchContext,
    *,
    slot_limit: int = MAX_SLOTS,
) -> MatchResult:
    features = extract_match_features(candidate, context)
    evaluation = evaluate(features, MATCH_RULES)
    return MatchResult(
        candidate_id=candidate.candidate_id,
        name=candidate.name,
        specialties=tuple(sorted(candidate.specialties)),
        score=evaluation.score,
        contributions=evaluation.contributions,
        available_slots=candidate.available_slots[:slot_limit],
        average_rating=candidate.average_rating,
        years_of_experience=candidate.years_of_experience,
    )


def rank_therapists(
    candidates: Iterable[Candidate],
    context: MatchContext,
    limit: int = DEFAULT_LIMIT,
    *,
    executor: Executor | None = None,
    slot_limit: int = MAX_SLOTS,
) -> list[MatchResult]:
    """Score bookable candidates and return the best ``limit``, highest first.

    An empty pool yields ``[]``.  With an ``executor`` candidates are scored
    concurrently; results are identical to sequential scoring.
    """
    if limit < 0:
        raise ValidationError(f"limit must be >= 0, got {limit}")

    pool: Sequence[Candidate] = [c for c in candidates if c.is_bookable]
    if not pool:
        return []

    def _score(candidate: Candidate) -> MatchResult:
        return score_candidate(candidate, context, slot_limit=slot_limit)

    if executor is None:
        results = [_score(c) for c in pool]
    else:
        results = list(executor.map(_score, pool))

    results.sort(key=lambda r: r.score, reverse=True)
    return results[:limit]
