"""
Detection of overlapping appointments for a single doctor.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

from pendulum import DateTime

from .exceptions import SlotConflict
from .models import MAX_DURATION_MINUTES, Appointment, TimeRange

logger = logging.getLogger(__name__)


class AppointmentQuery(Protocol):
    """The store lookup the detector needs."""

    def find_appointments(
        self,
        doctor_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> Sequence[Appointment]:
        """Return the doctor's appointments starting in ``[range_start, range_end)``."""


class ConflictDetector:
    """
    Finds existing appointments that overlap a candidate interval.

    Algorithm:
    1. Query the doctor's appointments starting between one maximum
       duration before the candidate start and the candidate end
    2. Drop the appointment being updated, if any
    3. Keep every appointment whose interval overlaps the candidate

    Step 1 cannot miss an overlap: no appointment lasts longer than
    ``MAX_DURATION_MINUTES``, so anything starting earlier has ended before
    the candidate starts. The bound is an absolute instant, so it holds for
    appointments booked under a different local timezone. Step 3 tests every
    appointment returned.
    """

    def __init__(self, store: AppointmentQuery):
        self._store = store

    def find_conflicts(
        self,
        doctor_id: str,
        candidate: TimeRange,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        """Return overlapping appointments in chronological order."""
        lookback_start = candidate.start.subtract(minutes=MAX_DURATION_MINUTES)
        existing = self._store.find_appointments(doctor_id, lookback_start, candidate.end)

        conflicts = [
            appointment
            for appointment in existing
            if appointment.id != exclude_appointment_id
            and candidate.overlaps(appointment.interval)
        ]
        return sorted(conflicts, key=lambda a: a.date)

    def is_available(
        self,
        doctor_id: str,
        candidate: TimeRange,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        return not self.find_conflicts(doctor_id, candidate, exclude_appointment_id)

    def ensure_available(
        self,
        doctor_id: str,
        candidate: TimeRange,
        exclude_appointment_id: Optional[str] = None,
    ) -> None:
        """
        Raises:
            SlotConflict: If any existing appointment overlaps the candidate
        """
        conflicts = self.find_conflicts(doctor_id, candidate, exclude_appointment_id)
        if conflicts:
            logger.debug(
                "Rejected %s for doctor %s: overlaps %s",
                candidate,
                doctor_id,
                ", ".join(str(a.interval) for a in conflicts),
            )
            raise SlotConflict(candidate, conflicts)
