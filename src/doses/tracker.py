"""DoseTracker — wires reminders, missed-dose digests and caregiver alerts."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import TYPE_CHECKING

from src.config import settings
from src.doses.models import DoseStatus
from src.scheduler.models import MissedDoseEvent
from src.time_utils import utc_now

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from src.doses.log import DoseLog
    from src.doses.models import Dose
    from src.notifications.router import NotificationRouter
    from src.scheduler.engine import ReminderScheduler
    from src.scheduler.missed import MissedDoseAggregator
    from src.scheduler.models import MissedDoseDigest
    from src.session import CareCircle

logger = logging.getLogger(__name__)

HELP_SUBJECT = "Emergency Help Request"


def _log_reminder(dose: Dose) -> None:
    logger.info("Time to take %s (%s)", dose.description, dose.elder_name)


class DoseTracker:
    """Tracks the doses of the day and turns unacknowledged ones into digests.

    Each dose gets two reminders: one at its scheduled time, which calls
    *on_reminder*, and one once the snooze window has passed, which classifies
    the dose as missed if it is still pending. Missed doses are buffered in the
    aggregator and flushed together after *digest_delay*, so doses due at the
    same time produce a single caregiver notification.

    Args:
        scheduler: Shared ReminderScheduler.
        aggregator: MissedDoseAggregator collecting missed doses.
        router: NotificationRouter used for caregiver messages.
        care_circle: Source of caregiver addresses per elder.
        dose_log: Append-only log of taken and missed doses.
        on_reminder: Called with the dose when it comes due.
        channel: Notification channel name (None → router default).
        snooze: Grace period before a dose counts as missed.
        digest_delay: How long misses are collected before a digest is sent.
        display_timezone: Timezone for the bucket times shown to caregivers.
    """

    def __init__(
        self,
        scheduler: ReminderScheduler,
        aggregator: MissedDoseAggregator,
        router: NotificationRouter,
        care_circle: CareCircle,
        dose_log: DoseLog,
        *,
        on_reminder: Callable[[Dose], None] | None = None,
        channel: str | None = None,
        snooze: timedelta | None = None,
        digest_delay: timedelta | None = None,
        display_timezone: str | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._aggregator = aggregator
        self._router = router
        self._care_circle = care_circle
        self._dose_log = dose_log
        self._on_reminder = on_reminder or _log_reminder
        self._channel = channel
        self._snooze = snooze if snooze is not None else timedelta(minutes=settings.snooze_minutes)
        self._digest_delay = (
            digest_delay
            if digest_delay is not None
            else timedelta(seconds=settings.digest_delay_seconds)
        )
        self._display_timezone = display_timezone or settings.display_timezone
        self._lock = threading.Lock()
        self._doses: dict[str, Dose] = {}
        # elder -> scheduler generation in which a digest flush is queued
        self._flush_queued: dict[str, int] = {}

    # -- Doses -----------------------------------------------------------------

    def add_dose(self, dose: Dose, *, schedule: bool = True) -> Dose:
        """Track *dose* and, unless *schedule* is False, schedule its reminders."""
        with self._lock:
            self._doses[dose.id] = dose
        if schedule:
            self.schedule_reminders(dose)
        return dose

    def schedule_day(self, doses: Iterable[Dose]) -> int:
        """Track and schedule every dose. Returns how many were added."""
        count = 0
        for dose in doses:
            self.add_dose(dose)
            count += 1
        logger.info("Scheduled %d dose(s)", count)
        return count

    def schedule_reminders(self, dose: Dose) -> None:
        """Schedule the due-time reminder and the missed-dose check for *dose*."""
        dose_id = dose.id
        self._scheduler.schedule(dose.scheduled_at, lambda: self._remind(dose_id))
        self._scheduler.schedule(
            dose.scheduled_at + self._snooze, lambda: self._expire(dose_id)
        )

    def get_dose(self, dose_id: str) -> Dose | None:
        with self._lock:
            return self._doses.get(dose_id)

    def pending_doses(self, elder_name: str) -> list[Dose]:
        """Pending doses for *elder_name*, earliest first."""
        with self._lock:
            doses = [
                d for d in self._doses.values() if d.elder_name == elder_name and d.is_pending
            ]
        return sorted(doses, key=lambda d: d.scheduled_at)

    def mark_taken(self, dose_id: str, taken_at: datetime | None = None) -> bool:
        """Acknowledge a dose. Returns False if it is unknown or no longer pending."""
        taken_at = taken_at or utc_now()
        with self._lock:
            dose = self._doses.get(dose_id)
            if dose is None or not dose.is_pending:
                dose = None
            else:
                dose.status = DoseStatus.TAKEN
                dose.taken_at = taken_at
        if dose is None:
            logger.warning("Cannot mark dose %s as taken (unknown or not pending)", dose_id)
            return False
        self._dose_log.record_taken(dose, taken_at)
        logger.info("Dose taken: %s (%s)", dose.description, dose.elder_name)
        return True

    # -- Missed doses ----------------------------------------------------------

    def scan_missed(self, elder_name: str, now: datetime | None = None) -> int:
        """Classify overdue pending doses as missed and notify caregivers.

        Only doses from the last ``missed_scan_days`` days are considered.
        Returns the number of doses newly marked missed.
        """
        now = now or utc_now()
        cutoff = now - self._snooze
        earliest = now - timedelta(days=settings.missed_scan_days)
        overdue = [
            d for d in self.pending_doses(elder_name) if earliest <= d.scheduled_at <= cutoff
        ]
        missed = sum(1 for dose in overdue if self._mark_missed(dose.id))
        if missed:
            logger.info("Found %d missed dose(s) for %s", missed, elder_name)
            self.flush_missed(elder_name)
        return missed

    def resume(self, elder_name: str, now: datetime | None = None) -> int:
        """Recover after a restart: scan for misses, then schedule what is left.

        Pending doses older than ``missed_scan_days`` are left untouched and
        get no reminders. Returns the number of doses scheduled.
        """
        now = now or utc_now()
        self.scan_missed(elder_name, now)
        earliest = now - timedelta(days=settings.missed_scan_days)
        scheduled = 0
        for dose in self.pending_doses(elder_name):
            if dose.scheduled_at < earliest:
                logger.debug("Skipping stale dose %s (%s)", dose.id, dose.scheduled_at)
                continue
            self.schedule_reminders(dose)
            scheduled += 1
        return scheduled

    def flush_missed(self, elder_name: str) -> MissedDoseDigest | None:
        """Send one digest of buffered misses to *elder_name*'s caregivers."""
        digest = self._aggregator.flush(elder_name)
        if digest is None:
            return None

        recipients = self._care_circle.addresses(elder_name, self._channel_name())
        if not recipients:
            logger.warning(
                "No caregivers to notify about %d missed dose(s) for %s",
                digest.event_count,
                elder_name,
            )
            return digest

        sent = self._router.send(
            recipients,
            f"Missed doses: {elder_name}",
            digest.render(self._display_timezone),
            channel=self._channel,
        )
        if not sent:
            logger.error(
                "Missed-dose digest for %s was not delivered (%d dose(s))",
                elder_name,
                digest.event_count,
            )
        return digest

    def flush_all(self) -> int:
        """Flush every elder with buffered misses. Returns digests produced."""
        return sum(
            1
            for elder_name in self._aggregator.pending_elders()
            if self.flush_missed(elder_name) is not None
        )

    def request_help(self, elder_name: str) -> bool:
        """Alert *elder_name*'s caregivers immediately."""
        recipients = self._care_circle.addresses(elder_name, self._channel_name())
        if not recipients:
            logger.warning("Help requested by %s but no caregivers are known", elder_name)
            return False
        sent = self._router.send(
            recipients,
            HELP_SUBJECT,
            f"Elder {elder_name} has requested emergency help!",
            channel=self._channel,
        )
        if not sent:
            logger.error("Help request for %s was not delivered", elder_name)
        return sent

    def cancel_all(self) -> int:
        """Cancel every pending reminder. Buffered misses stay for a later flush."""
        cancelled = self._scheduler.cancel_all()
        with self._lock:
            self._flush_queued.clear()
        return cancelled

    # -- Internal --------------------------------------------------------------

    def _channel_name(self) -> str:
        return self._channel or self._router.default_channel_name or "email"

    def _remind(self, dose_id: str) -> None:
        dose = self.get_dose(dose_id)
        if dose is None or not dose.is_pending:
            return
        self._on_reminder(dose)

    def _expire(self, dose_id: str) -> None:
        dose = self._mark_missed(dose_id)
        if dose is not None:
            self._queue_flush(dose.elder_name)

    def _mark_missed(self, dose_id: str) -> Dose | None:
        with self._lock:
            dose = self._doses.get(dose_id)
            if dose is None or not dose.is_pending:
                return None
            dose.status = DoseStatus.MISSED
        self._dose_log.record_missed(dose)
        self._aggregator.record_miss(
            MissedDoseEvent(
                elder_name=dose.elder_name,
                scheduled_time=dose.scheduled_at,
                description=dose.description,
            )
        )
        logger.info("Dose missed: %s (%s)", dose.description, dose.elder_name)
        return dose

    def _queue_flush(self, elder_name: str) -> None:
        with self._lock:
            generation = self._scheduler.generation
            if self._flush_queued.get(elder_name) == generation:
                return
            self._flush_queued[elder_name] = generation
        self._scheduler.schedule(
            utc_now() + self._digest_delay, lambda: self._run_queued_flush(elder_name)
        )

    def _run_queued_flush(self, elder_name: str) -> None:
        with self._lock:
            self._flush_queued.pop(elder_name, None)
        self.flush_missed(elder_name)
