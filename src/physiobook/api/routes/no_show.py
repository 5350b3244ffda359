"""No-show prediction endpoints.

``POST /no-show/predict``     score an appointment being booked
``POST /no-show/outcomes``    record what actually happened
``GET  /no-show/statistics``  accuracy of resolved predictions
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field

from physiobook.api.routes.health import record_prediction
from physiobook.scoring.features import AppointmentType, CandidateAppointment
from physiobook.storage.predictions import AppointmentOutcome

router = APIRouter()

__all__ = ["router"]


class PredictionIn(BaseModel):
    """Appointment about to be booked."""

    appointment_id: str = Field(min_length=1)
    patient_id: str = Field(min_length=1)
    therapist_id: str = ""
    scheduled_date: date
    scheduled_time: str = Field(description="HH:MM, 24h")
    appointment_type: AppointmentType = AppointmentType.IN_PERSON
    has_confirmed: bool = False
    reminders_sent: int = Field(default=0, ge=0)


class ContributionOut(BaseModel):
    reason: str
    contribution: float


class PredictionOut(BaseModel):
    appointment_id: str
    probability: float
    risk_tier: str
    contributions: list[ContributionOut]
    suggested_actions: list[str]


class OutcomeIn(BaseModel):
    appointment_id: str = Field(min_length=1)
    outcome: AppointmentOutcome


class OutcomeOut(BaseModel):
    appointment_id: str
    outcome: str
    predicted_tier: str


class StatisticsOut(BaseModel):
    total_predictions: int
    accuracy: float
    true_positive_rate: float
    false_positive_rate: float
    average_no_show_rate: float


@router.post(
    "/no-show/predict",
    response_model=PredictionOut,
    summary="Score an appointment for no-show risk",
    operation_id="predict_no_show",
)
async def predict_no_show(body: PredictionIn, request: Request) -> PredictionOut:
    """Load history → extract features → score → store the prediction."""
    booking = request.app.state.booking
    assessment = booking.assess(
        body.appointment_id,
        CandidateAppointment(
            patient_id=body.patient_id,
            scheduled_date=body.scheduled_date,
            scheduled_time=body.scheduled_time,
            appointment_type=body.appointment_type,
        ),
        therapist_id=body.therapist_id,
        has_confirmed=body.has_confirmed,
        reminders_sent=body.reminders_sent,
    )
    result = assessment.result
    record_prediction(result.tier.value)

    return PredictionOut(
        appointment_id=body.appointment_id,
        probability=result.score,
        risk_tier=result.tier.value,
        contributions=[
            ContributionOut(reason=c.reason, contribution=round(c.contribution, 2))
            for c in result.contributions
        ],
        suggested_actions=list(result.actions),
    )


@router.post(
    "/no-show/outcomes",
    response_model=OutcomeOut,
    status_code=status.HTTP_200_OK,
    summary="Record the actual outcome of a scored appointment",
    operation_id="record_no_show_outcome",
)
async def record_outcome(body: OutcomeIn, request: Request) -> OutcomeOut:
    record = request.app.state.booking.record_outcome(body.appointment_id, body.outcome)
    return OutcomeOut(
        appointment_id=record.appointment_id,
        outcome=body.outcome.value,
        predicted_tier=record.risk_tier.value,
    )


@router.get(
    "/no-show/statistics",
    response_model=StatisticsOut,
    summary="Prediction accuracy over resolved appointments",
    operation_id="no_show_statistics",
)
async def statistics(
    request: Request,
    therapist_id: str | None = Query(None, description="Restrict to one therapist"),
) -> StatisticsOut:
    stats = request.app.state.booking.statistics(therapist_id)
    return StatisticsOut(**stats.to_dict())
