"""Tests for the in-memory data-access collaborators."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime

import pytest

from physiobook.errors import PredictionConflict, PredictionNotFound
from physiobook.matching.ranking import Candidate
from physiobook.scoring.features import AppointmentStatus
from physiobook.scoring.no_show import RiskTier
from physiobook.storage.appointments import InMemoryAppointmentHistory
from physiobook.storage.predictions import (
    AppointmentOutcome,
    InMemoryPredictionStore,
    PredictionRecord,
)
from physiobook.storage.therapists import InMemoryTherapistDirectory, StoredSlot


class TestAppointmentHistory:
    def setup_method(self) -> None:
        self.history = InMemoryAppointmentHistory()
        self.history.add("PAT-001", date(2026, 1, 5), AppointmentStatus.NO_SHOW)
        self.history.add("PAT-001", date(2026, 3, 18))
        self.history.add("PAT-001", date(2026, 2, 2))
        self.history.add("PAT-002", date(2026, 2, 10))

    def test_strictly_before(self) -> None:
        past = self.history.history_before("PAT-001", date(2026, 3, 18))
        assert [a.scheduled_date for a in past] == [date(2026, 2, 2), date(2026, 1, 5)]

    def test_most_recent_first(self) -> None:
        past = self.history.history_before("PAT-001", date(2026, 12, 31))
        dates = [a.scheduled_date for a in past]
        assert dates == sorted(dates, reverse=True)

    def test_other_patients_isolated(self) -> None:
        assert len(self.history.history_before("PAT-002", date(2026, 12, 31))) == 1

    def test_unknown_patient_is_empty(self) -> None:
        assert self.history.history_before("PAT-404", date(2026, 12, 31)) == []

    def test_set_status_updates_tracked_appointment(self) -> None:
        self.history.add(
            "PAT-003", date(2026, 3, 1), AppointmentStatus.PENDING, appointment_id="APT-7"
        )
        assert self.history.set_status("APT-7", AppointmentStatus.NO_SHOW)
        [visit] = self.history.history_before("PAT-003", date(2026, 4, 1))
        assert visit.status == AppointmentStatus.NO_SHOW

    def test_set_status_unknown_id(self) -> None:
        assert not self.history.set_status("APT-404", AppointmentStatus.COMPLETED)


class TestTherapistDirectory:
    def test_only_open_future_slots(
        self, candidate_factory: Callable[..., Candidate], now: datetime
    ) -> None:
        directory = InMemoryTherapistDirectory()
        directory.add(
            candidate_factory("T1", available_slots=()),
            [
                StoredSlot(date(2026, 3, 25), "11:00"),
                StoredSlot(date(2026, 3, 1), "10:00"),  # past
                StoredSlot(date(2026, 3, 20), "10:00", is_booked=True),
                StoredSlot(date(2026, 3, 21), "10:00", is_blocked=True),
                StoredSlot(date(2026, 3, 25), "09:00"),
            ],
        )
        [candidate] = directory.candidates(now, slot_limit=10)
        assert [(s.date, s.start_time) for s in candidate.available_slots] == [
            (date(2026, 3, 25), "09:00"),
            (date(2026, 3, 25), "11:00"),
        ]

    def test_slot_limit(self, candidate_factory: Callable[..., Candidate], now: datetime) -> None:
        directory = InMemoryTherapistDirectory()
        directory.add(
            candidate_factory("T1", available_slots=()),
            [StoredSlot(date(2026, 4, day), "10:00") for day in range(1, 16)],
        )
        [candidate] = directory.candidates(now, slot_limit=10)
        assert len(candidate.available_slots) == 10
        assert candidate.available_slots[0].date == date(2026, 4, 1)

    def test_unbookable_excluded_in_insertion_order(
        self, candidate_factory: Callable[..., Candidate], now: datetime
    ) -> None:
        directory = InMemoryTherapistDirectory()
        directory.add(candidate_factory("B"))
        directory.add(candidate_factory("X", is_active=False))
        directory.add(candidate_factory("A"))
        pool = directory.candidates(now, slot_limit=10)
        assert [c.candidate_id for c in pool] == ["B", "A"]

    def test_book_removes_slot_from_pool(
        self, candidate_factory: Callable[..., Candidate], now: datetime
    ) -> None:
        directory = InMemoryTherapistDirectory()
        directory.add(candidate_factory("T1"), [StoredSlot(date(2026, 3, 20), "10:00")])
        assert directory.book("T1", date(2026, 3, 20), "10:00")
        assert not directory.book("T1", date(2026, 3, 20), "10:00")
        assert not directory.book("NOPE", date(2026, 3, 20), "10:00")
        [candidate] = directory.candidates(now, slot_limit=10)
        assert candidate.available_slots == ()

    def test_earlier_today_is_not_offered(
        self, candidate_factory: Callable[..., Candidate]
    ) -> None:
        directory = InMemoryTherapistDirectory()
        directory.add(
            candidate_factory("T1", available_slots=()),
            [StoredSlot(date(2026, 3, 15), "08:00"), StoredSlot(date(2026, 3, 15), "16:00")],
        )
        afternoon = datetime(2026, 3, 15, 15, 0, tzinfo=UTC)
        [candidate] = directory.candidates(afternoon, slot_limit=10)
        assert [s.start_time for s in candidate.available_slots] == ["16:00"]

        [late] = directory.candidates(datetime(2026, 3, 15, 16, 0, tzinfo=UTC), slot_limit=10)
        assert late.available_slots == ()

    def test_blocked_slot_cannot_be_booked(
        self, candidate_factory: Callable[..., Candidate]
    ) -> None:
        directory = InMemoryTherapistDirectory()
        directory.add(
            candidate_factory("T1"), [StoredSlot(date(2026, 3, 20), "10:00", is_blocked=True)]
        )
        assert not directory.book("T1", date(2026, 3, 20), "10:00")


class TestPredictionStore:
    def setup_method(self) -> None:
        self.store = InMemoryPredictionStore()

    def _record(self, appointment_id: str, therapist_id: str = "T1") -> PredictionRecord:
        return PredictionRecord(
            appointment_id=appointment_id,
            patient_id="PAT-001",
            therapist_id=therapist_id,
            probability=12.5,
            risk_tier=RiskTier.LOW,
        )

    def test_save_sets_created_at(self) -> None:
        self.store.save(self._record("APT-1"))
        assert self.store.get("APT-1").created_at

    def test_second_save_conflicts_and_keeps_outcome(self) -> None:
        self.store.save(self._record("APT-1"))
        self.store.record_outcome("APT-1", AppointmentOutcome.NO_SHOW)
        with pytest.raises(PredictionConflict):
            self.store.save(self._record("APT-1"))
        assert self.store.get("APT-1").actual_outcome == AppointmentOutcome.NO_SHOW

    def test_get_missing_raises(self) -> None:
        with pytest.raises(PredictionNotFound):
            self.store.get("APT-404")

    def test_record_outcome(self) -> None:
        self.store.save(self._record("APT-1"))
        updated = self.store.record_outcome("APT-1", AppointmentOutcome.NO_SHOW)
        assert updated.actual_outcome == AppointmentOutcome.NO_SHOW
        assert updated.updated_at
        assert self.store.get("APT-1").is_resolved

    def test_record_outcome_missing_raises(self) -> None:
        with pytest.raises(PredictionNotFound):
            self.store.record_outcome("APT-404", AppointmentOutcome.ATTENDED)

    def test_list_resolved_filters(self) -> None:
        self.store.save(self._record("APT-1", "T1"))
        self.store.save(self._record("APT-2", "T2"))
        self.store.save(self._record("APT-3", "T1"))
        self.store.record_outcome("APT-1", AppointmentOutcome.ATTENDED)
        self.store.record_outcome("APT-2", AppointmentOutcome.NO_SHOW)

        assert {r.appointment_id for r in self.store.list_resolved()} == {"APT-1", "APT-2"}
        assert [r.appointment_id for r in self.store.list_resolved("T1")] == ["APT-1"]
