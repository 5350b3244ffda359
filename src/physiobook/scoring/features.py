"""Feature extraction for no-show risk scoring.

Turns a patient's prior appointments plus one candidate appointment into a
flat, immutable ``NoShowFeatures`` vector.  Pure: history is fetched by the
caller (see ``physiobook.storage.appointments``) and ``now`` is injectable.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import UTC, date, datetime, time
from enum import StrEnum
from typing import Any

from physiobook.errors import InvariantViolation, ValidationError

__all__ = [
    "AppointmentStatus",
    "AppointmentType",
    "PastAppointment",
    "CandidateAppointment",
    "NoShowFeatures",
    "parse_hour",
    "extract_no_show_features",
]

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_SECONDS_PER_DAY = 86_400


class AppointmentStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"


class AppointmentType(StrEnum):
    IN_PERSON = "in_person"
    TELE_PHYSIO = "tele_physio"
    HOME_VISIT = "home_visit"


@dataclass(frozen=True)
class PastAppointment:
    """One entry of a patient's appointment history."""

    scheduled_date: date
    status: AppointmentStatus


@dataclass(frozen=True)
class CandidateAppointment:
    """The appointment being booked."""

    patient_id: str
    scheduled_date: date
    scheduled_time: str  # "HH:MM", 24h
    appointment_type: AppointmentType = AppointmentType.IN_PERSON


@dataclass(frozen=True)
class NoShowFeatures:
    """Feature vector for one patient + candidate appointment pair."""

    # Patient history
    previous_no_shows: int
    previous_cancellations: int
    total_appointments: int
    days_since_last_appointment: int

    # Appointment characteristics
    is_first_appointment: bool
    day_of_week: int  # 0 = Sunday … 6 = Saturday
    hour_of_day: int
    is_morning: bool
    is_evening: bool
    days_until_appointment: int

    # Engagement
    has_confirmed: bool = False
    reminders_sent: int = 0

    # Modality
    is_tele_physio: bool = False

    def __post_init__(self) -> None:
        for name in (
            "previous_no_shows",
            "previous_cancellations",
            "total_appointments",
            "days_since_last_appointment",
            "days_until_appointment",
            "reminders_sent",
        ):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.previous_no_shows + self.previous_cancellations > self.total_appointments:
            raise ValidationError("no-shows and cancellations exceed total appointments")
        if not 0 <= self.day_of_week <= 6:
            raise ValidationError(f"day_of_week must be 0-6, got {self.day_of_week}")
        if not 0 <= self.hour_of_day <= 23:
            raise ValidationError(f"hour_of_day must be 0-23, got {self.hour_of_day}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_hour(scheduled_time: str) -> int:
    """Hour of a ``HH:MM`` 24h time string.

    Raises ValidationError for anything else (``"9:00"``, ``"24:00"``, ``""``).
    """
    match = _TIME_RE.match(scheduled_time or "")
    if match is None:
        raise ValidationError(f"Invalid appointment time {scheduled_time!r}; expected HH:MM")
    return int(match.group(1))


def _sunday_first(d: date) -> int:
    # date.weekday() is Monday=0; features use Sunday=0
    return (d.weekday() + 1) % 7


def _days_until(scheduled_date: date, now: datetime) -> int:
    """Whole days from ``now`` to midnight of ``scheduled_date``, floored at 0."""
    midnight = datetime.combine(scheduled_date, time.min, tzinfo=now.tzinfo)
    days = math.floor((midnight - now).total_seconds() / _SECONDS_PER_DAY)
    return max(0, days)


def extract_no_show_features(
    history: Iterable[PastAppointment],
    candidate: CandidateAppointment,
    *,
    now: datetime | None = None,
    has_confirmed: bool = False,
    reminders_sent: int = 0,
) -> NoShowFeatures:
    """Build the feature vector for ``candidate``.

    ``history`` must hold the patient's appointments dated before the
    candidate (the data-access layer filters on that).  A record dated
    after the candidate means the caller mixed up dates and raises
    InvariantViolation.
    """
    hour = parse_hour(candidate.scheduled_time)
    if reminders_sent < 0:
        raise ValidationError(f"reminders_sent must be >= 0, got {reminders_sent}")

    past = list(history)
    no_shows = sum(1 for a in past if a.status == AppointmentStatus.NO_SHOW)
    cancellations = sum(1 for a in past if a.status == AppointmentStatus.CANCELLED)

    days_since_last = 0
    if past:
        last = max(a.scheduled_date for a in past)
        days_since_last = (candidate.scheduled_date - last).days
        if days_since_last < 0:
            raise InvariantViolation(
                f"history contains {last.isoformat()}, after candidate "
                f"{candidate.scheduled_date.isoformat()}"
            )

    return NoShowFeatures(
        previous_no_shows=no_shows,
        previous_cancellations=cancellations,
        total_appointments=len(past),
        days_since_last_appointment=days_since_last,
        is_first_appointment=not past,
        day_of_week=_sunday_first(candidate.scheduled_date),
        hour_of_day=hour,
        is_morning=hour < 12,
        is_evening=hour >= 17,
        days_until_appointment=_days_until(candidate.scheduled_date, now or datetime.now(UTC)),
        has_confirmed=has_confirmed,
        reminders_sent=reminders_sent,
        is_tele_physio=candidate.appointment_type == AppointmentType.TELE_PHYSIO,
    )
