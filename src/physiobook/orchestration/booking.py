"""Booking assessment: history → features → score → stored prediction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from physiobook.logging import get_logger
from physiobook.scoring.features import (
    AppointmentStatus,
    CandidateAppointment,
    NoShowFeatures,
    extract_no_show_features,
)
from physiobook.scoring.no_show import ScoreResult, score_no_show_risk
from physiobook.scoring.statistics import NoShowStatistics, compute_statistics
from physiobook.storage.predictions import AppointmentOutcome, PredictionRecord

if TYPE_CHECKING:
    from physiobook.storage.appointments import AppointmentHistoryProtocol
    from physiobook.storage.predictions import PredictionStoreProtocol
    from physiobook.storage.therapists import TherapistDirectoryProtocol

__all__ = ["BookingAssessor", "NoShowAssessment"]

logger = get_logger(component="booking")

_OUTCOME_STATUS: dict[AppointmentOutcome, AppointmentStatus] = {
    AppointmentOutcome.ATTENDED: AppointmentStatus.COMPLETED,
    AppointmentOutcome.NO_SHOW: AppointmentStatus.NO_SHOW,
    AppointmentOutcome.CANCELLED: AppointmentStatus.CANCELLED,
    AppointmentOutcome.RESCHEDULED: AppointmentStatus.RESCHEDULED,
}


@dataclass(frozen=True)
class NoShowAssessment:
    appointment_id: str
    features: NoShowFeatures
    result: ScoreResult
    slot_booked: bool = False


class BookingAssessor:
    """Scores appointments at booking time and tracks their outcomes.

    A scored appointment is added to the patient's history as pending and,
    when a directory is wired in, its therapist slot is marked booked.
    """

    def __init__(
        self,
        history: AppointmentHistoryProtocol,
        predictions: PredictionStoreProtocol,
        directory: TherapistDirectoryProtocol | None = None,
    ) -> None:
        self._history = history
        self._predictions = predictions
        self._directory = directory

    def assess(
        self,
        appointment_id: str,
        candidate: CandidateAppointment,
        *,
        therapist_id: str = "",
        has_confirmed: bool = False,
        reminders_sent: int = 0,
        now: datetime | None = None,
    ) -> NoShowAssessment:
        """Score ``candidate`` and persist the booking.

        Steps:
        1. Load the patient's history before the appointment date
        2. Extract features
        3. Score + tier + actions
        4. Store the prediction (PredictionConflict if already scored)
        5. Record the appointment in history and book the slot
        """
        past = self._history.history_before(candidate.patient_id, candidate.scheduled_date)
        features = extract_no_show_features(
            past,
            candidate,
            now=now,
            has_confirmed=has_confirmed,
            reminders_sent=reminders_sent,
        )
        result = score_no_show_risk(features)

        self._predictions.save(
            PredictionRecord(
                appointment_id=appointment_id,
                patient_id=candidate.patient_id,
                therapist_id=therapist_id,
                probability=result.score,
                risk_tier=result.tier,
                feature_vector=features.to_dict(),
            )
        )
        self._history.add(
            candidate.patient_id,
            candidate.scheduled_date,
            AppointmentStatus.PENDING,
            appointment_id=appointment_id,
        )
        slot_booked = False
        if self._directory is not None and therapist_id:
            slot_booked = self._directory.book(
                therapist_id, candidate.scheduled_date, candidate.scheduled_time
            )

        logger.info(
            "no_show_scored",
            appointment_id=appointment_id,
            score=result.score,
            tier=result.tier.value,
            history_size=features.total_appointments,
            slot_booked=slot_booked,
        )
        return NoShowAssessment(
            appointment_id=appointment_id,
            features=features,
            result=result,
            slot_booked=slot_booked,
        )

    def record_outcome(
        self, appointment_id: str, outcome: AppointmentOutcome
    ) -> PredictionRecord:
        record = self._predictions.record_outcome(appointment_id, outcome)
        self._history.set_status(appointment_id, _OUTCOME_STATUS[outcome])
        logger.info(
            "outcome_recorded",
            appointment_id=appointment_id,
            outcome=outcome.value,
            predicted_tier=record.risk_tier.value,
        )
        return record

    def statistics(self, therapist_id: str | None = None) -> NoShowStatistics:
        return compute_statistics(self._predictions.list_resolved(therapist_id))
