"""Shared fixtures for integration tests.

These tests run the real app with its lifespan:
    settings -> in-memory stores -> booking assessor / matcher -> routes

No mocks on internal components.  The recommendation model is disabled
(no API key) so matching always uses the deterministic fallback text.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import date
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from physiobook.api.app import create_app
from physiobook.matching.ranking import Candidate
from physiobook.matching.specialties import Specialty
from physiobook.scoring.features import AppointmentStatus
from physiobook.storage.therapists import StoredSlot


@pytest.fixture()
async def client(monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[AsyncClient]:
    """Full ASGI client with seeded history and therapists."""
    monkeypatch.setenv("PHYSIOBOOK_LLM_API_KEY", "")
    monkeypatch.setenv("PHYSIOBOOK_LOG_JSON", "false")

    app = create_app()
    transport = ASGITransport(app=app)
    async with app.router.lifespan_context(app):
        history = app.state.appointment_history
        history.add("INT-PAT-001", date(2029, 11, 5), AppointmentStatus.NO_SHOW)
        history.add("INT-PAT-001", date(2029, 11, 19), AppointmentStatus.NO_SHOW)
        history.add("INT-PAT-001", date(2029, 12, 3), AppointmentStatus.NO_SHOW)
        history.add("INT-PAT-001", date(2029, 12, 17), AppointmentStatus.COMPLETED)
        history.add("INT-PAT-002", date(2029, 12, 10), AppointmentStatus.COMPLETED)

        slots = [StoredSlot(date(2030, 1, day), "10:00") for day in range(20, 26)]
        directory = app.state.therapist_directory
        directory.add(
            Candidate(
                candidate_id="INT-THER-001",
                name="Dr. Knee",
                specialties=frozenset({Specialty.SPORTS_REHABILITATION}),
                years_of_experience=11,
                average_rating=4.7,
                success_rate=0.9,
                no_show_rate=0.03,
            ),
            slots,
        )
        directory.add(
            Candidate(
                candidate_id="INT-THER-002",
                name="Dr. Joint",
                specialties=frozenset({Specialty.ORTHOPEDIC}),
                years_of_experience=6,
                average_rating=4.2,
                success_rate=0.82,
                no_show_rate=0.08,
            ),
            slots[:2],
        )
        directory.add(
            Candidate(
                candidate_id="INT-THER-003",
                name="Dr. Away",
                specialties=frozenset({Specialty.SPORTS_REHABILITATION}),
                years_of_experience=20,
                average_rating=5.0,
                success_rate=1.0,
                no_show_rate=0.0,
                is_accepting_patients=False,
            ),
            slots,
        )
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


@pytest.fixture()
def risky_booking() -> dict[str, Any]:
    """Monday 08:00 for a patient who missed three of four visits."""
    return {
        "appointment_id": "INT-APT-001",
        "patient_id": "INT-PAT-001",
        "therapist_id": "INT-THER-001",
        "scheduled_date": "2030-01-07",
        "scheduled_time": "08:00",
    }


@pytest.fixture()
def reliable_booking() -> dict[str, Any]:
    return {
        "appointment_id": "INT-APT-002",
        "patient_id": "INT-PAT-002",
        "therapist_id": "INT-THER-001",
        "scheduled_date": "2030-01-09",
        "scheduled_time": "10:00",
        "has_confirmed": True,
    }
