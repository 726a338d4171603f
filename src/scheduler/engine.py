"""ReminderScheduler — one-shot timed callbacks on an APScheduler thread."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from src.config import settings
from src.scheduler.models import ReminderTask, SchedulingFault, make_task_id
from src.time_utils import to_utc, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Fires callbacks at (or right after) their target time.

    Reminders due in the future are kept as APScheduler date jobs, drained by a
    single background scheduler thread that hands each due job to a worker
    pool. Reminders whose time has already passed run synchronously inside
    :meth:`schedule`.

    Every task is tagged with the generation current at scheduling time.
    :meth:`cancel_all` bumps the generation, so a job that was already handed
    to a worker when the cancel happened is dropped at the firing boundary.

    Args:
        timezone: IANA timezone used to interpret naive datetimes
            (default from settings).
        fault_handler: Optional callable receiving a :class:`SchedulingFault`
            whenever a callback raises.
    """

    def __init__(
        self,
        timezone: str | None = None,
        fault_handler: Callable[[SchedulingFault], None] | None = None,
    ) -> None:
        self._timezone = timezone or settings.scheduler_timezone
        self._fault_handler = fault_handler
        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._lock = threading.Lock()
        self._tasks: dict[str, ReminderTask] = {}
        self._generation = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._tasks)

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Start the background scheduler thread (idempotent)."""
        with self._lock:
            self._start_locked()

    def stop(self) -> None:
        """Shut down the scheduler thread and cancel pending reminders.

        The scheduler can be started again afterwards; reminders scheduled
        after a stop run on a fresh APScheduler instance.
        """
        with self._lock:
            if not self._running:
                return
            self._generation += 1
            dropped = list(self._tasks.values())
            self._tasks.clear()
            for task in dropped:
                task.mark_cancelled()
            self._scheduler.shutdown(wait=False)
            self._scheduler = BackgroundScheduler(timezone="UTC")
            self._running = False
        logger.info("Reminder scheduler stopped (%d pending reminder(s) dropped)", len(dropped))

    def _start_locked(self) -> None:
        if self._running:
            return
        self._scheduler.start()
        self._running = True
        logger.info("Reminder scheduler started (tz=%s)", self._timezone)

    # -- Reminders -------------------------------------------------------------

    def schedule(self, target_time: datetime, callback: Callable[[], object]) -> str:
        """Register *callback* to fire at *target_time*. Returns the task ID.

        If *target_time* is not in the future the callback runs synchronously
        before this method returns.
        """
        target = to_utc(target_time, self._timezone)
        now = utc_now()
        task = ReminderTask(id=make_task_id(), target_time=target, callback=callback)

        if target <= now:
            logger.info(
                "Reminder %s is past due (%s), firing immediately",
                task.id,
                target.isoformat(),
            )
            task.mark_fired()
            self._invoke(task)
            return task.id

        with self._lock:
            task.generation = self._generation
            self._tasks[task.id] = task
            self._scheduler.add_job(
                self._fire,
                trigger=DateTrigger(run_date=target, timezone="UTC"),
                id=task.id,
                args=[task.id],
                misfire_grace_time=None,
            )
            self._start_locked()
        logger.debug(
            "Scheduled reminder %s in %.1fs", task.id, (target - now).total_seconds()
        )
        return task.id

    def cancel_all(self) -> int:
        """Cancel every pending reminder. Returns how many were cancelled."""
        with self._lock:
            self._generation += 1
            cancelled = list(self._tasks.values())
            self._tasks.clear()
            for task in cancelled:
                task.mark_cancelled()
            self._scheduler.remove_all_jobs()
        if cancelled:
            logger.info(
                "Cancelled %d pending reminder(s) (generation=%d)",
                len(cancelled),
                self._generation,
            )
        return len(cancelled)

    # -- Internal --------------------------------------------------------------

    def _fire(self, task_id: str) -> None:
        """Job callback run on a worker thread."""
        with self._lock:
            task = self._tasks.pop(task_id, None)
            if task is None or task.generation != self._generation:
                logger.debug("Dropping stale reminder %s", task_id)
                return
            task.mark_fired()
        self._invoke(task)

    def _invoke(self, task: ReminderTask) -> None:
        try:
            task.callback()
        except Exception as exc:
            logger.exception("Reminder callback failed (%s)", task.id)
            if self._fault_handler is not None:
                self._report(SchedulingFault(task.id, exc))

    def _report(self, fault: SchedulingFault) -> None:
        try:
            self._fault_handler(fault)
        except Exception:
            logger.exception("Fault handler failed for reminder %s", fault.task_id)

