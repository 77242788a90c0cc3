"""
Tests for the conflict detector.
"""

import pendulum
import pytest

from doctorslots.adapters.memory_store import InMemoryStore
from doctorslots.domain.conflicts import ConflictDetector
from doctorslots.domain.exceptions import SlotConflict
from doctorslots.domain.models import Appointment, TimeRange


def _appointment(appointment_id: str, utc_start: str, minutes: int, doctor_id: str = "doc-1") -> Appointment:
    return Appointment(
        id=appointment_id,
        doctor_id=doctor_id,
        date=pendulum.parse(utc_start),
        duration=minutes,
        appointment_type="consultation",
        patient_name="Patient " + appointment_id,
    )


def _candidate(utc_start: str, minutes: int) -> TimeRange:
    return TimeRange.from_duration(pendulum.parse(utc_start), minutes)


@pytest.fixture
def detector() -> ConflictDetector:
    # 10:00-10:30 and 12:00-13:00 local (+05:30), plus another doctor at 10:00
    store = InMemoryStore(
        appointments=[
            _appointment("a1", "2024-11-25T04:30:00Z", 30),
            _appointment("a2", "2024-11-25T06:30:00Z", 60),
            _appointment("b1", "2024-11-25T04:30:00Z", 30, doctor_id="doc-2"),
        ]
    )
    return ConflictDetector(store)


class TestConflictDetector:
    """Tests for ConflictDetector."""

    def test_overlapping_candidate_is_reported(self, detector):
        conflicts = detector.find_conflicts("doc-1", _candidate("2024-11-25T04:45:00Z", 30))

        assert [a.id for a in conflicts] == ["a1"]

    def test_candidate_spanning_several_appointments(self, detector):
        conflicts = detector.find_conflicts("doc-1", _candidate("2024-11-25T04:00:00Z", 240))

        assert [a.id for a in conflicts] == ["a1", "a2"]

    def test_touching_is_not_a_conflict(self, detector):
        before = _candidate("2024-11-25T04:00:00Z", 30)  # ends when a1 starts
        after = _candidate("2024-11-25T05:00:00Z", 30)   # starts when a1 ends

        assert detector.is_available("doc-1", before)
        assert detector.is_available("doc-1", after)

    def test_other_doctors_do_not_conflict(self, detector):
        assert detector.is_available("doc-3", _candidate("2024-11-25T04:30:00Z", 30))

    def test_excluded_appointment_is_ignored(self, detector):
        candidate = _candidate("2024-11-25T04:45:00Z", 30)

        assert detector.is_available("doc-1", candidate, exclude_appointment_id="a1")
        assert not detector.is_available("doc-1", candidate, exclude_appointment_id="a2")

    def test_long_appointment_earlier_in_the_day_is_found(self, detector):
        # candidate starts long after a2 started but still inside it
        conflicts = detector.find_conflicts("doc-1", _candidate("2024-11-25T07:15:00Z", 15))

        assert [a.id for a in conflicts] == ["a2"]

    def test_appointment_started_on_previous_day_is_found(self):
        # booked under another timezone, runs across midnight of the candidate's day
        store = InMemoryStore(appointments=[_appointment("n1", "2024-11-24T22:00:00Z", 240)])
        detector = ConflictDetector(store)

        conflicts = detector.find_conflicts("doc-1", _candidate("2024-11-25T01:00:00Z", 30))

        assert [a.id for a in conflicts] == ["n1"]

    def test_full_day_appointment_ending_at_candidate_start(self):
        store = InMemoryStore(appointments=[_appointment("d1", "2024-11-24T04:30:00Z", 24 * 60)])
        detector = ConflictDetector(store)

        assert detector.is_available("doc-1", _candidate("2024-11-25T04:30:00Z", 30))
        assert not detector.is_available("doc-1", _candidate("2024-11-25T04:29:00Z", 30))

    def test_ensure_available_raises_with_context(self, detector):
        candidate = _candidate("2024-11-25T04:15:00Z", 30)

        with pytest.raises(SlotConflict) as exc_info:
            detector.ensure_available("doc-1", candidate)

        assert exc_info.value.candidate == candidate
        assert exc_info.value.conflicting_intervals == [_candidate("2024-11-25T04:30:00Z", 30)]

    def test_ensure_available_passes_on_free_interval(self, detector):
        detector.ensure_available("doc-1", _candidate("2024-11-25T05:00:00Z", 60))
