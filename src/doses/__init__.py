"""Medicine doses — model, activity log and tracking."""

from src.doses.log import DoseLog
from src.doses.models import Dose, DoseStatus
from src.doses.tracker import DoseTracker

__all__ = [
    "Dose",
    "DoseLog",
    "DoseStatus",
    "DoseTracker",
]
