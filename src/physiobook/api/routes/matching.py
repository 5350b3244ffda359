"""Therapist matching endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from physiobook.api.routes.health import record_match
from physiobook.matching.ranking import MatchContext
from physiobook.matching.specialties import Specialty

router = APIRouter()

__all__ = ["router"]


class MatchRequest(BaseModel):
    """Triage summary used to rank therapists."""

    recommended_specialty: Specialty
    patient_id: str = ""
    triage_category: str = ""
    urgency_level: str = ""
    body_region: str = ""
    limit: int | None = Field(default=None, ge=1, le=50)


@router.post(
    "/therapists/match",
    summary="Rank therapists for a patient's triage result",
    operation_id="match_therapists",
)
async def match_therapists(body: MatchRequest, request: Request) -> dict[str, Any]:
    """An empty pool is not an error: ``matches`` is ``[]`` with a no-match message."""
    matcher = request.app.state.matcher
    outcome = await matcher.match(
        MatchContext(
            recommended_specialty=body.recommended_specialty,
            patient_id=body.patient_id,
            triage_category=body.triage_category,
            urgency_level=body.urgency_level,
            body_region=body.body_region,
        ),
        body.limit,
    )
    record_match(len(outcome.matches))
    return outcome.to_dict()
