"""
In-memory store for doctors and appointments.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from pendulum import DateTime

from ..domain.models import Appointment, Doctor

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class InMemoryStore:
    """
    Store keeping doctors and appointments in dictionaries.

    Each operation is atomic on its own; cross-operation consistency is the
    scheduling service's job. Records without an id get a random hex id on
    insert, records that already carry one keep it.
    """

    def __init__(
        self,
        doctors: Iterable[Doctor] = (),
        appointments: Iterable[Appointment] = (),
    ):
        self._lock = threading.RLock()
        self._doctors: Dict[str, Doctor] = {}
        self._appointments: Dict[str, Appointment] = {}

        for doctor in doctors:
            self.insert_doctor(doctor)
        for appointment in appointments:
            self.insert_appointment(appointment)

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the store for a read-validate-write sequence."""
        with self._lock:
            yield

    # Doctors

    def find_doctor(self, doctor_id: str) -> Optional[Doctor]:
        with self._lock:
            return self._doctors.get(doctor_id)

    def list_doctors(self) -> List[Doctor]:
        with self._lock:
            return list(self._doctors.values())

    def insert_doctor(self, doctor: Doctor) -> Doctor:
        with self._lock:
            saved = doctor if doctor.id else doctor.with_id(new_id())
            self._doctors[saved.id] = saved
            self._changed()
            return saved

    # Appointments

    def find_appointment(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            return self._appointments.get(appointment_id)

    def find_appointments(
        self,
        doctor_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[Appointment]:
        """Return the doctor's appointments starting in ``[range_start, range_end)``."""
        with self._lock:
            matches = [
                appointment
                for appointment in self._appointments.values()
                if appointment.doctor_id == doctor_id
                and range_start <= appointment.date < range_end
            ]
        return sorted(matches, key=lambda a: a.date)

    def list_appointments(self, doctor_id: Optional[str] = None) -> List[Appointment]:
        with self._lock:
            appointments = [
                appointment
                for appointment in self._appointments.values()
                if doctor_id is None or appointment.doctor_id == doctor_id
            ]
        return sorted(appointments, key=lambda a: a.date)

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        with self._lock:
            saved = appointment if appointment.id else appointment.with_id(new_id())
            self._appointments[saved.id] = saved
            self._changed()
            return saved

    def replace_appointment(self, appointment_id: str, appointment: Appointment) -> Optional[Appointment]:
        with self._lock:
            if appointment_id not in self._appointments:
                return None
            saved = appointment.with_id(appointment_id)
            self._appointments[appointment_id] = saved
            self._changed()
            return saved

    def delete_appointment(self, appointment_id: str) -> bool:
        with self._lock:
            if self._appointments.pop(appointment_id, None) is None:
                return False
            self._changed()
            return True

    def _changed(self) -> None:
        """Hook called with the lock held after every write."""
