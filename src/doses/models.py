"""Dose data model."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.time_utils import parse_timestamp, to_utc


class DoseStatus(enum.Enum):
    PENDING = "pending"
    TAKEN = "taken"
    MISSED = "missed"


@dataclass
class Dose:
    """One scheduled intake of a medicine.

    Attributes:
        id: Unique identifier (UUID hex).
        elder_name: Whose dose this is.
        medicine: Medicine name, e.g. ``"Metformin"``.
        amount: Quantity, e.g. ``"500mg"``.
        scheduled_at: Aware UTC datetime the dose is due.
        status: ``PENDING`` until taken or classified as missed.
        taken_at: When the dose was acknowledged, if it was.
    """

    elder_name: str
    medicine: str
    amount: str
    scheduled_at: datetime
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: DoseStatus = DoseStatus.PENDING
    taken_at: datetime | None = None

    def __post_init__(self) -> None:
        self.scheduled_at = to_utc(self.scheduled_at)

    @property
    def description(self) -> str:
        return f"{self.medicine} {self.amount}".strip()

    @property
    def is_pending(self) -> bool:
        return self.status is DoseStatus.PENDING

    @classmethod
    def from_dict(cls, data: dict[str, Any], assume_tz: str = "UTC") -> Dose:
        """Build a dose from a plain mapping (e.g. one entry of a JSON file)."""
        kwargs: dict[str, Any] = {
            "elder_name": data["elder_name"],
            "medicine": data["medicine"],
            "amount": data.get("amount", ""),
            "scheduled_at": parse_timestamp(data["scheduled_at"], assume_tz),
        }
        if data.get("id"):
            kwargs["id"] = data["id"]
        return cls(**kwargs)
