"""
Tests for slot generator.
"""

import pendulum
import pytest

from doctorslots.domain.models import Appointment, WorkingHours
from doctorslots.domain.slot_generator import SlotGenerator
from doctorslots.domain.time_conversion import LocalClock

DAY = pendulum.date(2024, 11, 25)


def _appointment(local_start: str, minutes: int) -> Appointment:
    start = pendulum.parse(local_start, tz=pendulum.fixed_timezone(19800))
    return Appointment(
        id=local_start,
        doctor_id="doc-1",
        date=start.in_timezone("UTC"),
        duration=minutes,
        appointment_type="consultation",
        patient_name="Patient",
    )


def _generator(granularity_minutes: int = 30) -> SlotGenerator:
    return SlotGenerator(LocalClock.from_setting("+05:30"), granularity_minutes)


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def test_full_day_without_appointments(self):
        """09:00-17:00 yields sixteen 30-minute slots."""
        generator = _generator()
        slots = generator.available_slots(WorkingHours.parse("09:00", "17:00"), DAY, [])
        labels = generator.format_slots(slots)

        assert len(labels) == 16
        assert labels[0] == "2024-11-25 09:00:00"
        assert labels[-1] == "2024-11-25 16:30:00"
        assert "2024-11-25 17:00:00" not in labels

    def test_slots_are_utc_instants(self):
        slots = _generator().generate(WorkingHours.parse("09:00", "10:00"), DAY)

        assert slots[0].start == pendulum.parse("2024-11-25T03:30:00Z")
        assert slots[1].end == pendulum.parse("2024-11-25T04:30:00Z")

    def test_booked_slot_is_excluded(self):
        generator = _generator()
        slots = generator.available_slots(
            WorkingHours.parse("09:00", "17:00"),
            DAY,
            [_appointment("2024-11-25T10:00", 30)],
        )
        labels = generator.format_slots(slots)

        assert "2024-11-25 10:00:00" not in labels
        assert "2024-11-25 09:30:00" in labels
        assert "2024-11-25 10:30:00" in labels
        assert len(labels) == 15

    def test_partially_overlapping_appointment_blocks_both_slots(self):
        generator = _generator()
        slots = generator.available_slots(
            WorkingHours.parse("09:00", "12:00"),
            DAY,
            [_appointment("2024-11-25T10:15", 30)],
        )

        assert generator.format_slots(slots) == [
            "2024-11-25 09:00:00",
            "2024-11-25 09:30:00",
            "2024-11-25 11:00:00",
            "2024-11-25 11:30:00",
        ]

    def test_grid_is_anchored_to_working_start(self):
        generator = _generator()
        slots = generator.generate(WorkingHours.parse("09:15", "11:15"), DAY)

        assert generator.format_slots(slots) == [
            "2024-11-25 09:15:00",
            "2024-11-25 09:45:00",
            "2024-11-25 10:15:00",
            "2024-11-25 10:45:00",
        ]

    def test_trailing_partial_slot_is_offered(self):
        """09:00-10:45 still offers 10:30, which starts before the working end."""
        generator = _generator()
        slots = generator.generate(WorkingHours.parse("09:00", "10:45"), DAY)

        assert generator.format_slots(slots) == [
            "2024-11-25 09:00:00",
            "2024-11-25 09:30:00",
            "2024-11-25 10:00:00",
            "2024-11-25 10:30:00",
        ]
        assert all(slot.duration_minutes() == 30 for slot in slots)

    @pytest.mark.parametrize("granularity,expected", [(15, 32), (60, 8), (45, 11)])
    def test_granularity_controls_slot_count(self, granularity, expected):
        slots = _generator(granularity).generate(WorkingHours.parse("09:00", "17:00"), DAY)

        assert len(slots) == expected

    def test_invalid_granularity(self):
        with pytest.raises(ValueError, match="greater than zero"):
            _generator(0)

    def test_appointment_on_other_day_does_not_block(self):
        generator = _generator()
        slots = generator.available_slots(
            WorkingHours.parse("09:00", "17:00"),
            DAY,
            [_appointment("2024-11-26T10:00", 30)],
        )

        assert len(slots) == 16

    def test_output_is_chronological_and_repeatable(self):
        generator = _generator()
        hours = WorkingHours.parse("09:00", "17:00")
        booked = [_appointment("2024-11-25T13:00", 90), _appointment("2024-11-25T09:30", 30)]

        first = generator.format_slots(generator.available_slots(hours, DAY, booked))
        second = generator.format_slots(generator.available_slots(hours, DAY, list(reversed(booked))))

        assert first == second
        assert first == sorted(first)
