"""DoseLog — append-only record of taken and missed doses (JSON lines)."""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING

from src.config import settings
from src.time_utils import utc_now

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from src.doses.models import Dose

logger = logging.getLogger(__name__)


class DoseLog:
    """Appends one JSON object per line; never rewrites earlier entries.

    Pass an explicit *path* for test isolation (e.g. ``tmp_path / "log.jsonl"``).
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or settings.dose_log_path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def record_taken(self, dose: Dose, taken_at: datetime) -> None:
        self._append(
            {
                "event": "taken",
                "dose_id": dose.id,
                "elder_name": dose.elder_name,
                "description": dose.description,
                "scheduled_at": dose.scheduled_at.isoformat(),
                "taken_at": taken_at.isoformat(),
            }
        )

    def record_missed(self, dose: Dose) -> None:
        self._append(
            {
                "event": "missed",
                "dose_id": dose.id,
                "elder_name": dose.elder_name,
                "description": dose.description,
                "scheduled_at": dose.scheduled_at.isoformat(),
            }
        )

    def read_entries(self) -> list[dict]:
        """Return every logged entry in write order."""
        if not self._path.exists():
            return []
        with self._path.open(encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]

    def _append(self, entry: dict) -> None:
        entry["logged_at"] = utc_now().isoformat()
        line = json.dumps(entry)
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        logger.debug("Logged %s dose %s", entry["event"], entry["dose_id"])
