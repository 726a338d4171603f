"""Eldercare reminder service entry point."""

from __future__ import annotations

import argparse
import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from src.config import settings
from src.doses.log import DoseLog
from src.doses.models import Dose
from src.doses.tracker import DoseTracker
from src.notifications.email_channel import EmailChannel
from src.notifications.router import NotificationRouter
from src.notifications.sms_channel import SMSChannel
from src.scheduler.engine import ReminderScheduler
from src.scheduler.missed import MissedDoseAggregator
from src.session import CareCircle, SessionManager

logger = logging.getLogger(__name__)


@dataclass
class App:
    """Components built at startup and shared by every call site."""

    scheduler: ReminderScheduler
    aggregator: MissedDoseAggregator
    router: NotificationRouter
    care_circle: CareCircle
    dose_log: DoseLog
    tracker: DoseTracker
    sessions: SessionManager


def build_router() -> NotificationRouter:
    """Register email, plus SMS when Telnyx is configured."""
    router = NotificationRouter()
    router.register_channel(EmailChannel())
    if settings.telnyx_api_key and settings.telnyx_phone_number:
        router.register_channel(SMSChannel())
    router.set_default_channel(settings.default_notification_channel)
    logger.info(
        "Notification channels: %s (default %s)",
        ", ".join(router.list_channels()),
        router.default_channel_name,
    )
    return router


def build_app(elder_name: str, *, dose_log_path: Path | None = None) -> App:
    """Construct the scheduler, aggregator and tracker for one elder."""
    scheduler = ReminderScheduler()
    aggregator = MissedDoseAggregator()
    router = build_router()
    care_circle = CareCircle.from_settings(elder_name)
    dose_log = DoseLog(dose_log_path)
    tracker = DoseTracker(
        scheduler=scheduler,
        aggregator=aggregator,
        router=router,
        care_circle=care_circle,
        dose_log=dose_log,
    )
    return App(
        scheduler=scheduler,
        aggregator=aggregator,
        router=router,
        care_circle=care_circle,
        dose_log=dose_log,
        tracker=tracker,
        sessions=SessionManager(),
    )


def load_doses(path: Path, elder_name: str) -> list[Dose]:
    """Read a JSON list of ``{"medicine", "amount", "scheduled_at"}`` entries."""
    entries = json.loads(path.read_text(encoding="utf-8"))
    return [
        Dose.from_dict({"elder_name": elder_name, **entry}, settings.scheduler_timezone)
        for entry in entries
    ]


def _wait_forever() -> None:
    threading.Event().wait()


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Medicine reminders and missed-dose alerts.")
    parser.add_argument("--elder", required=True, help="Elder whose doses are tracked")
    parser.add_argument("--doses", required=True, type=Path, help="JSON file of today's doses")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Load the day's doses, recover misses, and run reminders until interrupted."""
    args = _parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level),
    )

    app = build_app(args.elder)
    app.sessions.create_session(args.elder, "elder")
    doses = load_doses(args.doses, args.elder)
    for dose in doses:
        app.tracker.add_dose(dose, schedule=False)

    scheduled = app.tracker.resume(args.elder)
    app.scheduler.start()
    logger.info("Tracking %d dose(s) for %s, %d scheduled", len(doses), args.elder, scheduled)

    try:
        _wait_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        app.tracker.cancel_all()
        app.tracker.flush_all()
        app.scheduler.stop()
        app.sessions.clear()


if __name__ == "__main__":
    main()
