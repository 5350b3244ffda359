"""Appointment history lookup: protocol + in-memory implementation."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Protocol

from physiobook.scoring.features import AppointmentStatus, PastAppointment

__all__ = ["AppointmentHistoryProtocol", "InMemoryAppointmentHistory"]


class AppointmentHistoryProtocol(Protocol):
    """Minimal contract for reading and recording a patient's appointments."""

    def add(
        self,
        patient_id: str,
        scheduled_date: date,
        status: AppointmentStatus = AppointmentStatus.COMPLETED,
        *,
        appointment_id: str | None = None,
    ) -> None: ...

    def set_status(self, appointment_id: str, status: AppointmentStatus) -> bool:
        """Update a recorded appointment; False when the id is unknown."""
        ...

    def history_before(self, patient_id: str, before: date) -> list[PastAppointment]:
        """Appointments strictly before ``before``, most recent first."""
        ...


class InMemoryAppointmentHistory:
    """Per-patient appointment lists for dev/test."""

    def __init__(self) -> None:
        self._by_patient: dict[str, list[PastAppointment]] = defaultdict(list)
        self._index: dict[str, tuple[str, int]] = {}

    def add(
        self,
        patient_id: str,
        scheduled_date: date,
        status: AppointmentStatus = AppointmentStatus.COMPLETED,
        *,
        appointment_id: str | None = None,
    ) -> None:
        visits = self._by_patient[patient_id]
        if appointment_id is not None:
            self._index[appointment_id] = (patient_id, len(visits))
        visits.append(PastAppointment(scheduled_date, status))

    def set_status(self, appointment_id: str, status: AppointmentStatus) -> bool:
        if appointment_id not in self._index:
            return False
        patient_id, position = self._index[appointment_id]
        visits = self._by_patient[patient_id]
        visits[position] = PastAppointment(visits[position].scheduled_date, status)
        return True

    def history_before(self, patient_id: str, before: date) -> list[PastAppointment]:
        past = [a for a in self._by_patient.get(patient_id, []) if a.scheduled_date < before]
        return sorted(past, key=lambda a: a.scheduled_date, reverse=True)
