"""Shared fixtures for unit and integration tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest

from physiobook.matching.ranking import AvailabilitySlot, Candidate
from physiobook.matching.specialties import Specialty
from physiobook.scoring.features import AppointmentStatus, PastAppointment
from physiobook.settings import Settings

# Sunday 2026-03-15, 09:00 UTC.  2026-03-16 is a Monday.
NOW = datetime(2026, 3, 15, 9, 0, tzinfo=UTC)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def half_no_show_history() -> list[PastAppointment]:
    """Four past visits, two of them missed (50% no-show rate)."""
    return [
        PastAppointment(date(2026, 2, 16), AppointmentStatus.COMPLETED),
        PastAppointment(date(2026, 2, 2), AppointmentStatus.NO_SHOW),
        PastAppointment(date(2026, 1, 19), AppointmentStatus.COMPLETED),
        PastAppointment(date(2026, 1, 5), AppointmentStatus.NO_SHOW),
    ]


def _open_slots(count: int, start: date = date(2026, 3, 20)) -> tuple[AvailabilitySlot, ...]:
    return tuple(AvailabilitySlot(start + timedelta(days=i), "10:00") for i in range(count))


@pytest.fixture()
def slot_factory() -> Callable[..., tuple[AvailabilitySlot, ...]]:
    """Consecutive daily 10:00 slots starting 2026-03-20."""
    return _open_slots


@pytest.fixture()
def candidate_factory() -> Callable[..., Candidate]:
    """Build a therapist; defaults satisfy every positive matching branch."""

    def _make(candidate_id: str = "THER-001", **overrides: Any) -> Candidate:
        fields: dict[str, Any] = {
            "candidate_id": candidate_id,
            "name": f"Therapist {candidate_id}",
            "specialties": frozenset({Specialty.SPORTS_REHABILITATION}),
            "years_of_experience": 12,
            "average_rating": 4.8,
            "success_rate": 0.95,
            "no_show_rate": 0.02,
            "available_slots": _open_slots(6),
        }
        fields.update(overrides)
        return Candidate(**fields)

    return _make


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(environment="dev", llm_api_key="", log_json=False)
