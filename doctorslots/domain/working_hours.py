"""
Validation of candidate appointments against a doctor's working hours.
"""

from __future__ import annotations

import logging

from .exceptions import OutsideWorkingHours
from .models import TimeRange, WorkingHours
from .time_conversion import LocalClock

logger = logging.getLogger(__name__)


class WorkingHoursValidator:
    """
    Confirms a candidate interval lies fully inside working hours.

    The working window is taken on the local calendar date of the candidate
    start. Both boundaries are allowed: an appointment may start exactly when
    the doctor starts and end exactly when the doctor stops.
    """

    def __init__(self, clock: LocalClock):
        self.clock = clock

    def working_interval_for(self, working_hours: WorkingHours, candidate: TimeRange) -> TimeRange:
        day = self.clock.local_date(candidate.start)
        return self.clock.working_interval(working_hours, day)

    def is_within(self, working_hours: WorkingHours, candidate: TimeRange) -> bool:
        return self.working_interval_for(working_hours, candidate).contains(candidate)

    def validate(self, working_hours: WorkingHours, candidate: TimeRange) -> None:
        """
        Raises:
            OutsideWorkingHours: If the candidate is not contained in the
                working interval of its day
        """
        working_interval = self.working_interval_for(working_hours, candidate)
        if not working_interval.contains(candidate):
            logger.debug(
                "Rejected %s: outside working hours %s", candidate, working_interval
            )
            raise OutsideWorkingHours(candidate, working_interval)
