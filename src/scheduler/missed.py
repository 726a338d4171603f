"""MissedDoseAggregator — buffer missed doses and flush them as one digest."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from src.scheduler.models import MissedDoseDigest
from src.time_utils import bucket_time

if TYPE_CHECKING:
    from datetime import datetime

    from src.scheduler.models import MissedDoseEvent

logger = logging.getLogger(__name__)


class MissedDoseAggregator:
    """Accumulates missed-dose events per elder until they are flushed.

    Events are never deduplicated: recording the same miss twice yields two
    lines in the digest. Each event ends up in exactly one digest.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buffers: dict[str, list[MissedDoseEvent]] = {}

    def record_miss(self, event: MissedDoseEvent) -> None:
        """Append *event* to its elder's buffer."""
        with self._lock:
            self._buffers.setdefault(event.elder_name, []).append(event)
        logger.debug(
            "Recorded missed dose for %s at %s: %s",
            event.elder_name,
            event.scheduled_time.isoformat(),
            event.description,
        )

    def has_pending(self, elder_name: str) -> bool:
        with self._lock:
            return bool(self._buffers.get(elder_name))

    def pending_elders(self) -> list[str]:
        """Names of elders with at least one buffered miss."""
        with self._lock:
            return [name for name, events in self._buffers.items() if events]

    def flush(self, elder_name: str) -> MissedDoseDigest | None:
        """Drain *elder_name*'s buffer into a digest, or return None if empty."""
        with self._lock:
            events = self._buffers.pop(elder_name, None)
        if not events:
            return None

        grouped: dict[datetime, list[str]] = {}
        for event in events:
            grouped.setdefault(bucket_time(event.scheduled_time), []).append(
                event.description
            )
        buckets = tuple(
            (when, tuple(descriptions))
            for when, descriptions in sorted(grouped.items(), key=lambda item: item[0])
        )
        digest = MissedDoseDigest(elder_name=elder_name, buckets=buckets)
        logger.info(
            "Flushed %d missed dose(s) in %d bucket(s) for %s",
            digest.event_count,
            len(buckets),
            elder_name,
        )
        return digest
