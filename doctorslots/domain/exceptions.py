"""
Domain-specific exception hierarchy for the scheduling engine.

Every failure of a scheduling request is one of these types. They carry the
context (field, identifier or intervals) a delivery layer needs to build a
user-facing response; the engine itself never formats responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .models import Appointment, TimeRange


class SchedulingError(Exception):
    """Base class for all scheduling errors."""


class ValidationError(SchedulingError):
    """Raised when a required field is missing or malformed."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class DoctorNotFound(SchedulingError):
    """Raised when a doctor id does not resolve to a stored doctor."""

    def __init__(self, doctor_id: str) -> None:
        super().__init__(f"Doctor not found: {doctor_id}")
        self.doctor_id = doctor_id


class AppointmentNotFound(SchedulingError):
    """Raised when an appointment id does not resolve to a stored appointment."""

    def __init__(self, appointment_id: str) -> None:
        super().__init__(f"Appointment not found: {appointment_id}")
        self.appointment_id = appointment_id


class OutsideWorkingHours(SchedulingError):
    """Raised when a candidate interval is not inside the doctor's working hours."""

    def __init__(self, candidate: "TimeRange", working_interval: "TimeRange") -> None:
        super().__init__(
            f"Appointment {candidate} is outside of working hours {working_interval}"
        )
        self.candidate = candidate
        self.working_interval = working_interval


class SlotConflict(SchedulingError):
    """Raised when a candidate interval overlaps existing appointments."""

    def __init__(self, candidate: "TimeRange", conflicts: Sequence["Appointment"]) -> None:
        super().__init__(
            f"Time slot {candidate} is not available: "
            f"{len(conflicts)} conflicting appointment(s)"
        )
        self.candidate = candidate
        self.conflicts = list(conflicts)

    @property
    def conflicting_intervals(self) -> list["TimeRange"]:
        return [appointment.interval for appointment in self.conflicts]


class StorageError(SchedulingError):
    """Raised when the appointment store cannot complete an operation."""


__all__ = [
    "SchedulingError",
    "ValidationError",
    "DoctorNotFound",
    "AppointmentNotFound",
    "OutsideWorkingHours",
    "SlotConflict",
    "StorageError",
]
