"""
Tests for local wall-clock / UTC conversion.
"""

from datetime import date, datetime

import pendulum
import pytest

from doctorslots.domain.exceptions import ValidationError
from doctorslots.domain.models import TimeOfDay, WorkingHours
from doctorslots.domain.time_conversion import LocalClock, resolve_timezone


@pytest.fixture
def clock() -> LocalClock:
    return LocalClock.from_setting("+05:30")


class TestResolveTimezone:
    """Tests for timezone settings."""

    @pytest.mark.parametrize(
        "setting,offset_seconds",
        [
            ("+05:30", 19800),
            ("+0530", 19800),
            ("-04:00", -14400),
            ("UTC+2", 7200),
            ("Z", 0),
            ("utc", 0),
        ],
    )
    def test_offsets(self, setting, offset_seconds):
        tz = resolve_timezone(setting)
        instant = pendulum.datetime(2024, 11, 25, tz=tz)

        assert instant.utcoffset().total_seconds() == offset_seconds

    def test_iana_name(self):
        tz = resolve_timezone("Asia/Kolkata")
        instant = pendulum.datetime(2024, 11, 25, tz=tz)

        assert instant.utcoffset().total_seconds() == 19800

    @pytest.mark.parametrize("setting", ["Mars/Olympus", "+25:00", "+05:75"])
    def test_rejects_unknown(self, setting):
        with pytest.raises(ValueError):
            resolve_timezone(setting)


class TestLocalClock:
    """Tests for LocalClock."""

    def test_to_instant_applies_offset(self, clock):
        instant = clock.to_instant(pendulum.date(2024, 11, 25), TimeOfDay(9, 0))

        assert instant == pendulum.parse("2024-11-25T03:30:00Z")
        assert instant.timezone_name == "UTC"

    def test_early_local_time_falls_on_previous_utc_day(self, clock):
        instant = clock.to_instant(pendulum.date(2024, 11, 25), TimeOfDay(2, 0))

        assert instant == pendulum.parse("2024-11-24T20:30:00Z")

    def test_format_local(self, clock):
        instant = pendulum.parse("2024-11-25T04:30:00Z")

        assert clock.format_local(instant) == "2024-11-25 10:00:00"

    def test_local_date(self, clock):
        assert clock.local_date(pendulum.parse("2024-11-25T20:00:00Z")) == pendulum.date(2024, 11, 26)

    def test_working_interval(self, clock):
        interval = clock.working_interval(WorkingHours.parse("09:00", "17:00"), pendulum.date(2024, 11, 25))

        assert interval.start == pendulum.parse("2024-11-25T03:30:00Z")
        assert interval.end == pendulum.parse("2024-11-25T11:30:00Z")

    def test_day_window(self, clock):
        window = clock.day_window(pendulum.date(2024, 11, 25))

        assert window.start == pendulum.parse("2024-11-24T18:30:00Z")
        assert window.end == pendulum.parse("2024-11-25T18:30:00Z")

    def test_other_offset_is_honoured(self):
        clock = LocalClock.from_setting("-04:00")
        instant = clock.to_instant(pendulum.date(2024, 11, 25), TimeOfDay(9, 0))

        assert instant == pendulum.parse("2024-11-25T13:00:00Z")
        assert clock.format_local(instant) == "2024-11-25 09:00:00"

    def test_iana_zone_follows_daylight_saving(self):
        clock = LocalClock.from_setting("Europe/Berlin")

        winter = clock.to_instant(pendulum.date(2024, 1, 15), TimeOfDay(9, 0))
        summer = clock.to_instant(pendulum.date(2024, 7, 15), TimeOfDay(9, 0))

        assert winter == pendulum.parse("2024-01-15T08:00:00Z")
        assert summer == pendulum.parse("2024-07-15T07:00:00Z")


class TestParsing:
    """Tests for date and instant parsing."""

    def test_parse_date(self, clock):
        assert clock.parse_date("2024-11-25") == pendulum.date(2024, 11, 25)
        assert clock.parse_date(date(2024, 11, 25)) == pendulum.date(2024, 11, 25)

    @pytest.mark.parametrize("value", ["", "25.11.2024", "2024-13-01", "2024-02-30", "tomorrow", None])
    def test_parse_date_rejects_malformed(self, clock, value):
        with pytest.raises(ValidationError) as exc_info:
            clock.parse_date(value)

        assert exc_info.value.field == "date"

    def test_parse_instant_with_offset_is_absolute(self, clock):
        assert clock.parse_instant("2024-11-25T04:30:00Z") == pendulum.parse("2024-11-25T04:30:00Z")
        assert clock.parse_instant("2024-11-25T10:00:00+05:30") == pendulum.parse("2024-11-25T04:30:00Z")

    def test_parse_instant_without_offset_is_local(self, clock):
        instant = clock.parse_instant("2024-11-25T10:00")

        assert instant == pendulum.parse("2024-11-25T04:30:00Z")
        assert instant.timezone_name == "UTC"

    def test_parse_instant_accepts_datetimes(self, clock):
        assert clock.parse_instant(datetime(2024, 11, 25, 10, 0)) == pendulum.parse("2024-11-25T04:30:00Z")
        assert clock.parse_instant(pendulum.parse("2024-11-25T04:30:00Z")) == pendulum.parse("2024-11-25T04:30:00Z")

    @pytest.mark.parametrize("value", ["", "not a date", "2024-11-25T25:00", None, 1732500000])
    def test_parse_instant_rejects_malformed(self, clock, value):
        with pytest.raises(ValidationError) as exc_info:
            clock.parse_instant(value)

        assert exc_info.value.field == "date"
