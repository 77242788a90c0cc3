"""
Core business logic for listing a doctor's bookable slots on a given day.

Pure domain logic: the caller fetches the doctor and the day's appointments,
this module only does the interval arithmetic.
"""

from typing import Iterable, List

from pendulum import Date

from .models import Appointment, TimeRange, WorkingHours
from .time_conversion import LocalClock

DEFAULT_GRANULARITY_MINUTES = 30


class SlotGenerator:
    """
    Enumerates fixed-size candidate slots and drops the booked ones.

    Algorithm:
    1. Get the working interval for the day (in UTC)
    2. Step from the working start by the granularity until the working end,
       emitting ``[t, t + granularity)`` for every step
    3. Drop slots overlapping any appointment (touching is not overlapping)
    4. Return the survivors in chronological order

    The grid is anchored to the working start, not to midnight: a doctor
    starting at 09:15 gets slots at 09:15, 09:45 and so on. When the working
    window is not a multiple of the granularity the last slot starts before
    the working end and runs past it.
    """

    def __init__(self, clock: LocalClock, granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES):
        if granularity_minutes <= 0:
            raise ValueError(f"granularity_minutes must be greater than zero, got {granularity_minutes}")
        self.clock = clock
        self.granularity_minutes = granularity_minutes

    def generate(self, working_hours: WorkingHours, day: Date) -> List[TimeRange]:
        """Return every candidate slot of the day, booked or not."""
        working_interval = self.clock.working_interval(working_hours, day)

        slots: List[TimeRange] = []
        current = working_interval.start

        while current < working_interval.end:
            slot = TimeRange.from_duration(current, self.granularity_minutes)
            slots.append(slot)
            current = slot.end

        return slots

    def available_slots(
        self,
        working_hours: WorkingHours,
        day: Date,
        appointments: Iterable[Appointment],
    ) -> List[TimeRange]:
        """
        Find the slots of ``day`` not overlapping any of ``appointments``.

        Args:
            working_hours: The doctor's working hours
            day: Local calendar date
            appointments: The doctor's appointments on that date

        Returns:
            Free slots, chronologically ordered
        """
        booked = [appointment.interval for appointment in appointments]

        return [
            slot
            for slot in self.generate(working_hours, day)
            if not self._is_booked(slot, booked)
        ]

    def format_slots(self, slots: Iterable[TimeRange]) -> List[str]:
        """Format slot starts as local ``YYYY-MM-DD HH:mm:ss`` strings."""
        return [self.clock.format_local(slot.start) for slot in slots]

    @staticmethod
    def _is_booked(slot: TimeRange, booked: List[TimeRange]) -> bool:
        return any(slot.overlaps(interval) for interval in booked)
