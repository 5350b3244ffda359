"""Therapist directory: protocol + in-memory implementation.

The directory owns slot filtering: only slots starting after ``now`` that
are neither booked nor blocked reach the matcher, nearest first and capped.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Protocol

from physiobook.matching.ranking import AvailabilitySlot, Candidate

__all__ = ["StoredSlot", "TherapistDirectoryProtocol", "InMemoryTherapistDirectory"]


@dataclass
class StoredSlot:
    """Slot as held by the directory, including booking state."""

    date: date
    start_time: str
    is_booked: bool = False
    is_blocked: bool = False


@dataclass
class _Entry:
    profile: Candidate
    slots: list[StoredSlot] = field(default_factory=list)


def _starts_at(slot: StoredSlot, now: datetime) -> datetime:
    return datetime.combine(slot.date, time.fromisoformat(slot.start_time), tzinfo=now.tzinfo)


class TherapistDirectoryProtocol(Protocol):
    """Minimal contract for loading the matching pool."""

    def candidates(self, now: datetime, slot_limit: int) -> list[Candidate]:
        """Active, accepting therapists with their open slots attached."""
        ...

    def book(self, candidate_id: str, slot_date: date, start_time: str) -> bool:
        """Mark an open slot booked; False when there is none."""
        ...


class InMemoryTherapistDirectory:
    """Therapists kept in insertion order."""

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    def add(self, profile: Candidate, slots: list[StoredSlot] | None = None) -> None:
        self._entries[profile.candidate_id] = _Entry(profile=profile, slots=list(slots or []))

    def book(self, candidate_id: str, slot_date: date, start_time: str) -> bool:
        """Mark a slot booked. Returns False when no such open slot exists."""
        entry = self._entries.get(candidate_id)
        if entry is None:
            return False
        for slot in entry.slots:
            if (
                slot.date == slot_date
                and slot.start_time == start_time
                and not slot.is_booked
                and not slot.is_blocked
            ):
                slot.is_booked = True
                return True
        return False

    def candidates(self, now: datetime, slot_limit: int) -> list[Candidate]:
        pool: list[Candidate] = []
        for entry in self._entries.values():
            if not entry.profile.is_bookable:
                continue
            open_slots = sorted(
                (
                    s
                    for s in entry.slots
                    if _starts_at(s, now) > now and not s.is_booked and not s.is_blocked
                ),
                key=lambda s: (s.date, s.start_time),
            )
            pool.append(
                replace(
                    entry.profile,
                    available_slots=tuple(
                        AvailabilitySlot(s.date, s.start_time) for s in open_slots[:slot_limit]
                    ),
                )
            )
        return pool
