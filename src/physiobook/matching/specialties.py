"""Physiotherapy specialties and the hand-authored adjacency table."""

from __future__ import annotations

from enum import StrEnum

__all__ = ["Specialty", "RELATED_SPECIALTIES", "related_specialties", "describe"]


class Specialty(StrEnum):
    SPORTS_REHABILITATION = "sports_rehabilitation"
    ORTHOPEDIC = "orthopedic"
    NEUROLOGICAL = "neurological"
    PEDIATRIC = "pediatric"
    GERIATRIC = "geriatric"
    POST_OPERATIVE = "post_operative"
    CHRONIC_PAIN = "chronic_pain"
    MANUAL_THERAPY = "manual_therapy"
    AQUATIC_THERAPY = "aquatic_therapy"
    VESTIBULAR = "vestibular"
    WOMENS_HEALTH = "womens_health"
    CARDIOPULMONARY = "cardiopulmonary"


# Directed: A → B does not imply B → A.
RELATED_SPECIALTIES: dict[Specialty, frozenset[Specialty]] = {
    Specialty.SPORTS_REHABILITATION: frozenset(
        {Specialty.ORTHOPEDIC, Specialty.MANUAL_THERAPY}
    ),
    Specialty.ORTHOPEDIC: frozenset(
        {Specialty.SPORTS_REHABILITATION, Specialty.MANUAL_THERAPY, Specialty.POST_OPERATIVE}
    ),
    Specialty.NEUROLOGICAL: frozenset({Specialty.VESTIBULAR, Specialty.GERIATRIC}),
    Specialty.PEDIATRIC: frozenset(),
    Specialty.GERIATRIC: frozenset({Specialty.NEUROLOGICAL, Specialty.CHRONIC_PAIN}),
    Specialty.POST_OPERATIVE: frozenset({Specialty.ORTHOPEDIC, Specialty.MANUAL_THERAPY}),
    Specialty.CHRONIC_PAIN: frozenset({Specialty.MANUAL_THERAPY, Specialty.GERIATRIC}),
    Specialty.MANUAL_THERAPY: frozenset(
        {Specialty.ORTHOPEDIC, Specialty.CHRONIC_PAIN, Specialty.SPORTS_REHABILITATION}
    ),
    Specialty.AQUATIC_THERAPY: frozenset({Specialty.ORTHOPEDIC, Specialty.GERIATRIC}),
    Specialty.VESTIBULAR: frozenset({Specialty.NEUROLOGICAL}),
    Specialty.WOMENS_HEALTH: frozenset(),
    Specialty.CARDIOPULMONARY: frozenset(),
}


def related_specialties(specialty: Specialty) -> frozenset[Specialty]:
    return RELATED_SPECIALTIES.get(specialty, frozenset())


def describe(specialty: Specialty) -> str:
    """Human-readable name, e.g. ``sports_rehabilitation`` → ``sports rehabilitation``."""
    return specialty.value.replace("_", " ")
