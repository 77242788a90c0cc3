"""
Conversion between local wall-clock times and absolute instants.

Working hours are local ``HH:MM`` strings, appointments are stored as UTC
instants. ``LocalClock`` bridges the two for one configured timezone, which may
be a fixed UTC offset (``+05:30``) or an IANA zone name.
"""

from __future__ import annotations

import re
from datetime import date as date_type
from datetime import datetime
from typing import Any, Union

import pendulum
from pendulum import Date, DateTime
from pendulum.tz.timezone import FixedTimezone, Timezone

from .exceptions import ValidationError
from .models import TimeOfDay, TimeRange, WorkingHours

LOCAL_DISPLAY_FORMAT = "YYYY-MM-DD HH:mm:ss"

_OFFSET_PATTERN = re.compile(r"^(?:UTC|GMT)?([+-])(\d{1,2}):?(\d{2})?$", re.IGNORECASE)

TimezoneLike = Union[Timezone, FixedTimezone]


def resolve_timezone(setting: str) -> TimezoneLike:
    """
    Resolve a timezone setting into a pendulum timezone.

    Accepts ``Z``/``UTC``, fixed offsets such as ``+05:30``, ``-0400`` or
    ``UTC+2``, and IANA names such as ``Asia/Kolkata``.

    Raises:
        ValueError: If the setting is neither an offset nor a known zone
    """
    text = setting.strip()
    if text.upper() in {"Z", "UTC", "GMT"}:
        return pendulum.UTC

    match = _OFFSET_PATTERN.match(text)
    if match:
        sign, hours, minutes = match.groups()
        hours, minutes = int(hours), int(minutes or 0)
        if hours > 14 or minutes > 59:
            raise ValueError(f"UTC offset out of range: {setting!r}")
        offset = (hours * 3600 + minutes * 60) * (-1 if sign == "-" else 1)
        return pendulum.fixed_timezone(offset)

    try:
        return pendulum.timezone(text)
    except (ValueError, KeyError) as exc:
        raise ValueError(f"Unknown timezone: {setting!r}") from exc


class LocalClock:
    """Maps local calendar dates and times of day to UTC instants and back."""

    def __init__(self, timezone: TimezoneLike):
        self.timezone = timezone

    @classmethod
    def from_setting(cls, setting: str) -> "LocalClock":
        return cls(resolve_timezone(setting))

    @property
    def name(self) -> str:
        return self.timezone.name

    def to_instant(self, day: Date, time_of_day: TimeOfDay) -> DateTime:
        """Return the UTC instant of ``time_of_day`` on local ``day``."""
        local = pendulum.datetime(
            day.year,
            day.month,
            day.day,
            time_of_day.hour,
            time_of_day.minute,
            tz=self.timezone,
        )
        return local.in_timezone("UTC")

    def to_local(self, instant: DateTime) -> DateTime:
        return instant.in_timezone(self.timezone)

    def local_date(self, instant: DateTime) -> Date:
        """Return the local calendar date an instant falls on."""
        return self.to_local(instant).date()

    def format_local(self, instant: DateTime) -> str:
        """Format an instant as local ``YYYY-MM-DD HH:mm:ss``."""
        return self.to_local(instant).format(LOCAL_DISPLAY_FORMAT)

    def working_interval(self, working_hours: WorkingHours, day: Date) -> TimeRange:
        """Return the doctor's working window on ``day`` as a UTC range."""
        return TimeRange(
            start=self.to_instant(day, working_hours.start),
            end=self.to_instant(day, working_hours.end),
        )

    def day_window(self, day: Date) -> TimeRange:
        """Return local midnight to the next local midnight, in UTC."""
        start = pendulum.datetime(day.year, day.month, day.day, tz=self.timezone)
        return TimeRange(
            start=start.in_timezone("UTC"),
            end=start.add(days=1).in_timezone("UTC"),
        )

    def parse_date(self, value: Any, field: str = "date") -> Date:
        """
        Parse a ``YYYY-MM-DD`` calendar date.

        Raises:
            ValidationError: If the value is missing or malformed
        """
        if isinstance(value, datetime):
            return self.local_date(self.parse_instant(value, field=field))
        if isinstance(value, date_type):
            return pendulum.date(value.year, value.month, value.day)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(field, "is required")

        try:
            return pendulum.from_format(value.strip(), "YYYY-MM-DD").date()
        except ValueError as exc:
            raise ValidationError(field, f"expected 'YYYY-MM-DD', got {value!r}") from exc

    def parse_instant(self, value: Any, field: str = "date") -> DateTime:
        """
        Parse an appointment start into a UTC instant.

        ISO 8601 strings with an offset are taken as absolute; strings and
        datetimes without one are read as local wall-clock time.

        Raises:
            ValidationError: If the value is missing or malformed
        """
        if isinstance(value, datetime):
            return pendulum.instance(value, tz=self.timezone).in_timezone("UTC")
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(field, "is required")

        try:
            parsed = pendulum.parse(value.strip(), tz=self.timezone)
        except ValueError as exc:
            raise ValidationError(field, f"expected an ISO 8601 date-time, got {value!r}") from exc

        if not isinstance(parsed, DateTime):
            raise ValidationError(field, f"expected an ISO 8601 date-time, got {value!r}")
        return parsed.in_timezone("UTC")
