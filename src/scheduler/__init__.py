"""Reminder scheduling and missed-dose aggregation."""

from src.scheduler.engine import ReminderScheduler
from src.scheduler.missed import MissedDoseAggregator
from src.scheduler.models import (
    MissedDoseDigest,
    MissedDoseEvent,
    ReminderTask,
    SchedulingFault,
    TaskState,
)

__all__ = [
    "ReminderTask",
    "TaskState",
    "SchedulingFault",
    "MissedDoseEvent",
    "MissedDoseDigest",
    "ReminderScheduler",
    "MissedDoseAggregator",
]
