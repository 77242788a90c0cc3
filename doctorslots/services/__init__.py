"""
Service layer that orchestrates the store and the scheduling domain.
"""

from .scheduling import DoctorLocks, SchedulingService, SchedulingStore

__all__ = ["DoctorLocks", "SchedulingService", "SchedulingStore"]
