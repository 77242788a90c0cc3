"""
Domain layer - Pure scheduling logic without storage or I/O.
"""

from .conflicts import ConflictDetector
from .exceptions import (
    AppointmentNotFound,
    DoctorNotFound,
    OutsideWorkingHours,
    SchedulingError,
    SlotConflict,
    StorageError,
    ValidationError,
)
from .models import Appointment, AppointmentRequest, Doctor, TimeOfDay, TimeRange, WorkingHours
from .slot_generator import SlotGenerator
from .time_conversion import LocalClock
from .working_hours import WorkingHoursValidator

__all__ = [
    "Appointment",
    "AppointmentNotFound",
    "AppointmentRequest",
    "ConflictDetector",
    "Doctor",
    "DoctorNotFound",
    "LocalClock",
    "OutsideWorkingHours",
    "SchedulingError",
    "SlotConflict",
    "SlotGenerator",
    "StorageError",
    "TimeOfDay",
    "TimeRange",
    "ValidationError",
    "WorkingHours",
    "WorkingHoursValidator",
]
