"""
Domain models for doctors, appointments and time intervals.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Optional

from pendulum import DateTime

from .exceptions import ValidationError

_TIME_OF_DAY_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

# An appointment never outlasts a day.
MAX_DURATION_MINUTES = 24 * 60


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def from_duration(cls, start: DateTime, minutes: int) -> "TimeRange":
        """Build the range starting at ``start`` and lasting ``minutes``."""
        return cls(start=start, end=start.add(minutes=minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def contains(self, other: "TimeRange") -> bool:
        """Check if ``other`` lies entirely inside this range."""
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: "TimeRange") -> bool:
        """
        Check if this range overlaps with another.

        Ranges that only touch at an endpoint do not overlap.
        """
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return (
            f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')} "
            f"{self.start.timezone_name}"
        )


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """A validated local wall-clock time, minute precision."""
    hour: int
    minute: int

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValidationError("time", f"hour must be between 0 and 23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValidationError("time", f"minute must be between 0 and 59, got {self.minute}")

    @classmethod
    def parse(cls, value: Any, field: str = "time") -> "TimeOfDay":
        """
        Parse an ``HH:MM`` string.

        Raises:
            ValidationError: If the value is not a well-formed time of day
        """
        if isinstance(value, TimeOfDay):
            return value
        if not isinstance(value, str):
            raise ValidationError(field, f"expected an 'HH:MM' string, got {value!r}")

        match = _TIME_OF_DAY_PATTERN.match(value.strip())
        if not match:
            raise ValidationError(field, f"expected an 'HH:MM' string, got {value!r}")

        hour, minute = int(match.group(1)), int(match.group(2))
        try:
            return cls(hour=hour, minute=minute)
        except ValidationError as exc:
            raise ValidationError(field, exc.message) from exc

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class WorkingHours:
    """A doctor's daily local availability window."""
    start: TimeOfDay
    end: TimeOfDay

    def __post_init__(self):
        if self.start >= self.end:
            raise ValidationError(
                "working_hours",
                f"start {self.start} must be before end {self.end}",
            )

    @classmethod
    def parse(cls, start: Any, end: Any) -> "WorkingHours":
        return cls(
            start=TimeOfDay.parse(start, field="working_hours.start"),
            end=TimeOfDay.parse(end, field="working_hours.end"),
        )

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class Doctor:
    id: Optional[str]
    name: str
    specialization: str
    working_hours: WorkingHours

    def with_id(self, doctor_id: str) -> "Doctor":
        return replace(self, id=doctor_id)


@dataclass(frozen=True)
class Appointment:
    """
    A booked appointment.

    ``date`` is the UTC start instant; the end is always derived from the
    duration and never stored.
    """
    id: Optional[str]
    doctor_id: str
    date: DateTime
    duration: int
    appointment_type: str
    patient_name: str
    notes: Optional[str] = None

    @property
    def end_time(self) -> DateTime:
        return self.date.add(minutes=self.duration)

    @property
    def interval(self) -> TimeRange:
        return TimeRange(start=self.date, end=self.end_time)

    def with_id(self, appointment_id: str) -> "Appointment":
        return replace(self, id=appointment_id)


@dataclass(frozen=True)
class AppointmentRequest:
    """
    Raw booking input as received from a delivery layer.

    Values are kept unparsed here; the scheduling service turns them into an
    ``Appointment`` and raises ``ValidationError`` for anything malformed.
    """
    doctor_id: Any
    date: Any
    duration: Any
    appointment_type: Any
    patient_name: Any
    notes: Any = None


def parse_duration(value: Any, field: str = "duration") -> int:
    """
    Parse a positive whole number of minutes.

    Raises:
        ValidationError: If the value is missing, not an integer, not positive
            or longer than ``MAX_DURATION_MINUTES``
    """
    if value is None:
        raise ValidationError(field, "is required")

    if isinstance(value, bool):
        raise ValidationError(field, f"expected a whole number of minutes, got {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not text.lstrip("-").isdigit():
            raise ValidationError(field, f"expected a whole number of minutes, got {value!r}")
        minutes = int(text)
    elif isinstance(value, int):
        minutes = value
    elif isinstance(value, float) and value.is_integer():
        minutes = int(value)
    else:
        raise ValidationError(field, f"expected a whole number of minutes, got {value!r}")

    if minutes <= 0:
        raise ValidationError(field, f"must be greater than zero, got {minutes}")
    if minutes > MAX_DURATION_MINUTES:
        raise ValidationError(field, f"must be at most {MAX_DURATION_MINUTES} minutes, got {minutes}")
    return minutes


def require_text(value: Any, field: str) -> str:
    """Return a stripped non-empty string or raise ``ValidationError``."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "is required")
    return value.strip()
