"""
JSON-file backed store, used by the command line.

The file uses the camelCase document field names of the appointment API:

    {
      "doctors": [{"id": ..., "name": ..., "specialization": ...,
                   "workingHours": {"start": "09:00", "end": "17:00"}}],
      "appointments": [{"id": ..., "doctorId": ..., "date": "<ISO 8601 UTC>",
                        "duration": 30, "appointmentType": ...,
                        "patientName": ..., "notes": null}]
    }
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import pendulum
from filelock import FileLock, Timeout

from ..domain.exceptions import SchedulingError, StorageError
from ..domain.models import Appointment, Doctor, WorkingHours
from .memory_store import InMemoryStore

logger = logging.getLogger(__name__)


def doctor_to_dict(doctor: Doctor) -> Dict[str, Any]:
    return {
        "id": doctor.id,
        "name": doctor.name,
        "specialization": doctor.specialization,
        "workingHours": {
            "start": str(doctor.working_hours.start),
            "end": str(doctor.working_hours.end),
        },
    }


def doctor_from_dict(data: Dict[str, Any]) -> Doctor:
    hours = data["workingHours"]
    return Doctor(
        id=str(data["id"]),
        name=data["name"],
        specialization=data.get("specialization", ""),
        working_hours=WorkingHours.parse(hours["start"], hours["end"]),
    )


def appointment_to_dict(appointment: Appointment) -> Dict[str, Any]:
    return {
        "id": appointment.id,
        "doctorId": appointment.doctor_id,
        "date": appointment.date.in_timezone("UTC").to_iso8601_string(),
        "duration": appointment.duration,
        "appointmentType": appointment.appointment_type,
        "patientName": appointment.patient_name,
        "notes": appointment.notes,
    }


def appointment_from_dict(data: Dict[str, Any]) -> Appointment:
    return Appointment(
        id=str(data["id"]),
        doctor_id=str(data["doctorId"]),
        date=pendulum.parse(data["date"]).in_timezone("UTC"),
        duration=int(data["duration"]),
        appointment_type=data["appointmentType"],
        patient_name=data["patientName"],
        notes=data.get("notes"),
    )


class JsonFileStore(InMemoryStore):
    """
    In-memory store mirrored to a JSON file.

    The whole file is rewritten after every change (temp file, then replace).
    If the write fails the in-memory state is reloaded from the file, so a
    failed operation leaves no trace, and ``StorageError`` is raised.

    Several processes may share one data file. Every write, and every
    ``exclusive()`` block, holds a lock file next to the data file and starts
    by reloading the data, so no process validates or writes against a stale
    snapshot.
    """

    def __init__(self, path: Path, lock_timeout: float = 10.0):
        self.path = Path(path)
        self._file_lock = FileLock(str(self.path.with_name(self.path.name + ".lock")), timeout=lock_timeout)
        self._exclusive_depth = 0
        super().__init__()
        self._load()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """
        Hold the data file against other processes and threads.

        The data is reloaded on the outermost entry. Nested blocks in the
        same thread reuse the lock.

        Raises:
            StorageError: If the lock cannot be taken within ``lock_timeout``
        """
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._file_lock.acquire()
            except Timeout as exc:
                raise StorageError(f"Data file {self.path} is locked by another process") from exc
            except OSError as exc:
                raise StorageError(f"Could not lock data file {self.path}: {exc}") from exc

            self._exclusive_depth += 1
            try:
                if self._exclusive_depth == 1:
                    self._load()
                yield
            finally:
                self._exclusive_depth -= 1
                self._file_lock.release()

    def insert_doctor(self, doctor: Doctor) -> Doctor:
        with self.exclusive():
            return super().insert_doctor(doctor)

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        with self.exclusive():
            return super().insert_appointment(appointment)

    def replace_appointment(self, appointment_id: str, appointment: Appointment) -> Optional[Appointment]:
        with self.exclusive():
            return super().replace_appointment(appointment_id, appointment)

    def delete_appointment(self, appointment_id: str) -> bool:
        with self.exclusive():
            return super().delete_appointment(appointment_id)

    def _load(self) -> None:
        self._doctors.clear()
        self._appointments.clear()

        if not self.path.exists():
            logger.debug("Data file %s does not exist yet, starting empty", self.path)
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f) or {}
            doctors = [doctor_from_dict(item) for item in data.get("doctors", [])]
            appointments = [appointment_from_dict(item) for item in data.get("appointments", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError, SchedulingError) as exc:
            raise StorageError(f"Could not read data file {self.path}: {exc}") from exc

        self._doctors.update((doctor.id, doctor) for doctor in doctors)
        self._appointments.update((appointment.id, appointment) for appointment in appointments)
        logger.debug(
            "Loaded %d doctor(s) and %d appointment(s) from %s",
            len(self._doctors),
            len(self._appointments),
            self.path,
        )

    def _changed(self) -> None:
        data = {
            "doctors": [doctor_to_dict(d) for d in self._doctors.values()],
            "appointments": [appointment_to_dict(a) for a in self._appointments.values()],
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as exc:
            logger.warning("Could not save data file %s: %s", self.path, exc)
            self._load()
            raise StorageError(f"Could not save data file {self.path}: {exc}") from exc

        logger.debug("Saved data file %s", self.path)
