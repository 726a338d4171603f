"""Reminder and missed-dose data models."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from src.time_utils import format_bucket_key, to_utc

if TYPE_CHECKING:
    from collections.abc import Callable


class TaskState(enum.Enum):
    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"


class SchedulingFault(Exception):
    """A reminder callback raised while firing.

    Attributes:
        task_id: ID of the reminder whose callback failed.
        error: The original exception.
    """

    def __init__(self, task_id: str, error: BaseException) -> None:
        super().__init__(f"Reminder {task_id} failed: {error!r}")
        self.task_id = task_id
        self.error = error


@dataclass
class ReminderTask:
    """A one-shot callback due at ``target_time``.

    Attributes:
        id: Unique identifier (UUID hex), assigned at scheduling time.
        target_time: Aware UTC datetime at which the callback must fire.
        callback: Zero-argument callable; its return value is ignored.
        state: ``PENDING`` until the task fires or is cancelled.
        generation: Scheduler generation the task was created in.
    """

    id: str
    target_time: datetime
    callback: Callable[[], object]
    state: TaskState = TaskState.PENDING
    generation: int = 0

    def __post_init__(self) -> None:
        self.target_time = to_utc(self.target_time)

    @property
    def is_pending(self) -> bool:
        return self.state is TaskState.PENDING

    def mark_fired(self) -> None:
        self._transition(TaskState.FIRED)

    def mark_cancelled(self) -> None:
        self._transition(TaskState.CANCELLED)

    def _transition(self, new_state: TaskState) -> None:
        if self.state is not TaskState.PENDING:
            msg = f"Task {self.id} is already {self.state.value}"
            raise ValueError(msg)
        self.state = new_state


@dataclass(frozen=True)
class MissedDoseEvent:
    """A dose that came due without being acknowledged."""

    elder_name: str
    scheduled_time: datetime
    description: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "scheduled_time", to_utc(self.scheduled_time))


@dataclass(frozen=True)
class MissedDoseDigest:
    """Missed doses for one elder, grouped by scheduled time.

    ``buckets`` is sorted ascending by timestamp; descriptions inside a bucket
    keep the order they were recorded in.
    """

    elder_name: str
    buckets: tuple[tuple[datetime, tuple[str, ...]], ...] = field(default_factory=tuple)

    @property
    def event_count(self) -> int:
        return sum(len(descriptions) for _, descriptions in self.buckets)

    def lines(self, tz: str = "UTC") -> list[tuple[str, list[str]]]:
        """Return ``(display key, descriptions)`` pairs rendered in *tz*."""
        return [
            (format_bucket_key(when, tz), list(descriptions))
            for when, descriptions in self.buckets
        ]

    def render(self, tz: str = "UTC") -> str:
        """Plain-text body listing every bucket and its doses."""
        parts = [f"Elder {self.elder_name} missed the following dose(s):", ""]
        for key, descriptions in self.lines(tz):
            parts.append(key)
            parts.extend(f"  - {description}" for description in descriptions)
        return "\n".join(parts)


def make_task_id() -> str:
    """Generate a new task ID."""
    return uuid.uuid4().hex
