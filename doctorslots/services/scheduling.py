"""
Application service for booking appointments and listing free slots.

The service coordinates the store adapter with the domain-level validators
and the ``SlotGenerator``. The store is reached only through the
``SchedulingStore`` protocol so tests can plug in the in-memory store.

Booking is a read-validate-write sequence. Two requests for the same doctor
could otherwise both pass the conflict check before either write lands, so
create and update run inside a per-doctor critical section (``DoctorLocks``)
spanning the whole sequence. Inside it the store is held with
``exclusive()``, which for the JSON store also locks out other processes
sharing the data file and reloads it first.
"""

from __future__ import annotations

import logging
import threading
from contextlib import ExitStack, contextmanager
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Protocol

from pendulum import DateTime

from ..domain.conflicts import ConflictDetector
from ..domain.exceptions import AppointmentNotFound, DoctorNotFound, ValidationError
from ..domain.models import (
    MAX_DURATION_MINUTES,
    Appointment,
    AppointmentRequest,
    Doctor,
    TimeRange,
    WorkingHours,
    parse_duration,
    require_text,
)
from ..domain.slot_generator import DEFAULT_GRANULARITY_MINUTES, SlotGenerator
from ..domain.time_conversion import LocalClock
from ..domain.working_hours import WorkingHoursValidator

logger = logging.getLogger(__name__)


class SchedulingStore(Protocol):
    """Protocol describing the persistence operations needed by the service."""

    def exclusive(self) -> ContextManager[None]:
        """Hold the store, fresh, for a read-validate-write sequence."""

    def find_doctor(self, doctor_id: str) -> Optional[Doctor]:
        """Return the doctor or None."""

    def list_doctors(self) -> List[Doctor]:
        """Return all doctors."""

    def insert_doctor(self, doctor: Doctor) -> Doctor:
        """Store a doctor and return it with its assigned id."""

    def find_appointments(
        self,
        doctor_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[Appointment]:
        """Return the doctor's appointments starting in ``[range_start, range_end)``."""

    def list_appointments(self, doctor_id: Optional[str] = None) -> List[Appointment]:
        """Return all appointments, optionally for one doctor."""

    def find_appointment(self, appointment_id: str) -> Optional[Appointment]:
        """Return the appointment or None."""

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        """Store an appointment and return it with its assigned id."""

    def replace_appointment(self, appointment_id: str, appointment: Appointment) -> Optional[Appointment]:
        """Replace a stored appointment; None if it does not exist."""

    def delete_appointment(self, appointment_id: str) -> bool:
        """Remove an appointment; True if one was removed."""


class DoctorLocks:
    """One mutex per doctor id, created on first use."""

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, doctor_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(doctor_id)
            if lock is None:
                lock = self._locks[doctor_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *doctor_ids: str) -> Iterator[None]:
        """
        Hold the locks of all given doctors.

        Locks are taken in sorted id order so two callers holding overlapping
        sets cannot deadlock.
        """
        with ExitStack() as stack:
            for doctor_id in sorted(set(doctor_ids)):
                stack.enter_context(self._lock_for(doctor_id))
            yield


class SchedulingService:
    """
    Orchestrates appointment booking and slot listing.

    An appointment is either absent or booked; every create and update is
    validated completely before anything is written.
    """

    def __init__(
        self,
        store: SchedulingStore,
        clock: LocalClock,
        granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
        locks: Optional[DoctorLocks] = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._working_hours = WorkingHoursValidator(clock)
        self._conflicts = ConflictDetector(store)
        self._slots = SlotGenerator(clock, granularity_minutes)
        self._locks = locks or DoctorLocks()

    @classmethod
    def from_config(cls, config: Any, store: SchedulingStore) -> "SchedulingService":
        """Build a service from an ``AppConfig``."""
        return cls(
            store=store,
            clock=LocalClock.from_setting(config.timezone),
            granularity_minutes=config.slot_granularity_minutes,
        )

    @property
    def clock(self) -> LocalClock:
        return self._clock

    # Doctors

    def register_doctor(self, name: Any, specialization: Any, start: Any, end: Any) -> Doctor:
        doctor = Doctor(
            id=None,
            name=require_text(name, "name"),
            specialization=require_text(specialization, "specialization"),
            working_hours=WorkingHours.parse(start, end),
        )
        saved = self._store.insert_doctor(doctor)
        logger.info("Registered doctor %s (%s, %s)", saved.id, saved.name, saved.working_hours)
        return saved

    def get_doctor(self, doctor_id: Any) -> Doctor:
        doctor_id = require_text(doctor_id, "doctor_id")
        doctor = self._store.find_doctor(doctor_id)
        if doctor is None:
            raise DoctorNotFound(doctor_id)
        return doctor

    def list_doctors(self) -> List[Doctor]:
        return self._store.list_doctors()

    # Appointments

    def get_appointment(self, appointment_id: Any) -> Appointment:
        appointment_id = require_text(appointment_id, "id")
        appointment = self._store.find_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    def list_appointments(self, doctor_id: Optional[str] = None) -> List[Appointment]:
        return self._store.list_appointments(doctor_id)

    def create_appointment(self, request: AppointmentRequest) -> Appointment:
        """
        Validate and book a new appointment.

        Raises:
            ValidationError: If a required field is missing or malformed
            DoctorNotFound: If the doctor does not exist
            OutsideWorkingHours: If the appointment leaves the working hours
            SlotConflict: If the appointment overlaps an existing one
        """
        appointment = self._build_appointment(request)

        with self._locks.hold(appointment.doctor_id), self._store.exclusive():
            self._validate_booking(appointment)
            saved = self._store.insert_appointment(appointment)

        logger.info(
            "Booked appointment %s for doctor %s at %s",
            saved.id,
            saved.doctor_id,
            saved.interval,
        )
        return saved

    def update_appointment(self, appointment_id: Any, request: AppointmentRequest) -> Appointment:
        """
        Replace an appointment with new attributes, validated as if new.

        The appointment's own previous version never counts as a conflict.

        Raises:
            AppointmentNotFound: If the appointment does not exist
            ValidationError, DoctorNotFound, OutsideWorkingHours, SlotConflict:
                As for ``create_appointment``
        """
        current = self.get_appointment(appointment_id)
        replacement = self._build_appointment(request, appointment_id=current.id)

        with self._locks.hold(current.doctor_id, replacement.doctor_id), self._store.exclusive():
            self._validate_booking(replacement, exclude_appointment_id=current.id)
            updated = self._store.replace_appointment(current.id, replacement)

        if updated is None:
            raise AppointmentNotFound(current.id)

        logger.info(
            "Updated appointment %s: doctor %s at %s",
            updated.id,
            updated.doctor_id,
            updated.interval,
        )
        return updated

    def delete_appointment(self, appointment_id: Any) -> None:
        """
        Raises:
            AppointmentNotFound: If there was nothing to delete
        """
        appointment_id = require_text(appointment_id, "id")
        if not self._store.delete_appointment(appointment_id):
            raise AppointmentNotFound(appointment_id)
        logger.info("Deleted appointment %s", appointment_id)

    # Availability

    def find_available_slots(self, doctor_id: Any, date: Any) -> List[TimeRange]:
        """Return the doctor's free slots on a local calendar date."""
        day = self._clock.parse_date(date)
        doctor = self.get_doctor(doctor_id)

        # appointments starting the day before may still run into this one
        day_window = self._clock.day_window(day)
        lookback_start = day_window.start.subtract(minutes=MAX_DURATION_MINUTES)
        appointments = self._store.find_appointments(doctor.id, lookback_start, day_window.end)

        return self._slots.available_slots(doctor.working_hours, day, appointments)

    def list_available_slots(self, doctor_id: Any, date: Any) -> List[str]:
        """
        List free slot starts as local ``YYYY-MM-DD HH:mm:ss`` strings.

        Raises:
            ValidationError: If the date is missing or malformed
            DoctorNotFound: If the doctor does not exist
        """
        return self._slots.format_slots(self.find_available_slots(doctor_id, date))

    def _build_appointment(
        self,
        request: AppointmentRequest,
        appointment_id: Optional[str] = None,
    ) -> Appointment:
        notes = request.notes
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes", f"expected a string, got {notes!r}")

        return Appointment(
            id=appointment_id,
            doctor_id=require_text(request.doctor_id, "doctor_id"),
            date=self._clock.parse_instant(request.date, field="date"),
            duration=parse_duration(request.duration),
            appointment_type=require_text(request.appointment_type, "appointment_type"),
            patient_name=require_text(request.patient_name, "patient_name"),
            notes=notes,
        )

    def _validate_booking(
        self,
        appointment: Appointment,
        exclude_appointment_id: Optional[str] = None,
    ) -> None:
        doctor = self.get_doctor(appointment.doctor_id)
        candidate = appointment.interval

        self._working_hours.validate(doctor.working_hours, candidate)
        self._conflicts.ensure_available(doctor.id, candidate, exclude_appointment_id)


__all__ = ["DoctorLocks", "SchedulingService", "SchedulingStore"]
