"""No-show prediction records: protocol + in-memory store.

A record is written when an appointment is booked and completed later,
once the real outcome is known, so accuracy can be tracked.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol

from physiobook.errors import PredictionConflict, PredictionNotFound
from physiobook.scoring.no_show import RiskTier

__all__ = [
    "AppointmentOutcome",
    "PredictionRecord",
    "PredictionStoreProtocol",
    "InMemoryPredictionStore",
]


class AppointmentOutcome(StrEnum):
    ATTENDED = "attended"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


@dataclass(frozen=True)
class PredictionRecord:
    """Immutable snapshot of one prediction (and, later, its outcome)."""

    appointment_id: str
    patient_id: str
    therapist_id: str
    probability: float
    risk_tier: RiskTier
    feature_vector: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    actual_outcome: AppointmentOutcome | None = None
    updated_at: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.actual_outcome is not None


class PredictionStoreProtocol(Protocol):
    """Minimal contract for prediction persistence."""

    def save(self, record: PredictionRecord) -> None:
        """Insert the prediction; raises PredictionConflict if one exists."""
        ...

    def get(self, appointment_id: str) -> PredictionRecord:
        """Return the record or raise PredictionNotFound."""
        ...

    def record_outcome(
        self, appointment_id: str, outcome: AppointmentOutcome
    ) -> PredictionRecord:
        """Attach the actual outcome; raises PredictionNotFound."""
        ...

    def list_resolved(self, therapist_id: str | None = None) -> list[PredictionRecord]:
        """Records with a known outcome, optionally for one therapist."""
        ...


class InMemoryPredictionStore:
    """Dict-backed store for dev/test."""

    def __init__(self) -> None:
        self._records: dict[str, PredictionRecord] = {}

    def save(self, record: PredictionRecord) -> None:
        if record.appointment_id in self._records:
            raise PredictionConflict(
                f"Appointment {record.appointment_id} already has a prediction"
            )
        if not record.created_at:
            record = replace(record, created_at=datetime.now(UTC).isoformat())
        self._records[record.appointment_id] = record

    def get(self, appointment_id: str) -> PredictionRecord:
        try:
            return self._records[appointment_id]
        except KeyError:
            raise PredictionNotFound(f"No prediction for appointment {appointment_id}") from None

    def record_outcome(
        self, appointment_id: str, outcome: AppointmentOutcome
    ) -> PredictionRecord:
        updated = replace(
            self.get(appointment_id),
            actual_outcome=outcome,
            updated_at=datetime.now(UTC).isoformat(),
        )
        self._records[appointment_id] = updated
        return updated

    def list_resolved(self, therapist_id: str | None = None) -> list[PredictionRecord]:
        return [
            r
            for r in self._records.values()
            if r.is_resolved and (therapist_id is None or r.therapist_id == therapist_id)
        ]
