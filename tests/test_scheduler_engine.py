"""Tests for ReminderScheduler — one-shot reminders and cancel-all."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta

from src.scheduler.engine import ReminderScheduler
from src.scheduler.models import SchedulingFault
from src.time_utils import utc_now

WAIT = 5.0


# -- Past-due reminders --------------------------------------------------------


def test_past_due_fires_before_schedule_returns(scheduler: ReminderScheduler) -> None:
    calls: list[int] = []

    scheduler.schedule(utc_now() - timedelta(seconds=5), lambda: calls.append(1))

    assert calls == [1]


def test_past_due_runs_on_caller_thread(scheduler: ReminderScheduler) -> None:
    seen: list[threading.Thread] = []

    scheduler.schedule(
        utc_now() - timedelta(hours=1), lambda: seen.append(threading.current_thread())
    )

    assert seen == [threading.current_thread()]


def test_due_now_counts_as_past_due(scheduler: ReminderScheduler) -> None:
    calls: list[int] = []
    scheduler.schedule(utc_now(), lambda: calls.append(1))
    assert calls == [1]


def test_past_due_does_not_start_engine(scheduler: ReminderScheduler) -> None:
    scheduler.schedule(utc_now() - timedelta(minutes=1), lambda: None)
    assert scheduler.running is False
    assert scheduler.pending_count == 0


def test_past_due_returns_task_id(scheduler: ReminderScheduler) -> None:
    task_id = scheduler.schedule(utc_now() - timedelta(minutes=1), lambda: None)
    assert isinstance(task_id, str)
    assert len(task_id) == 32


# -- Future reminders ----------------------------------------------------------


def test_future_fires_once_no_earlier_than_target(scheduler: ReminderScheduler) -> None:
    fired = threading.Event()
    fired_at: list[datetime] = []

    def callback() -> None:
        fired_at.append(utc_now())
        fired.set()

    target = utc_now() + timedelta(milliseconds=300)
    scheduler.schedule(target, callback)

    assert fired.wait(WAIT)
    time.sleep(0.2)
    assert len(fired_at) == 1
    assert fired_at[0] >= target


def test_future_returns_immediately(scheduler: ReminderScheduler) -> None:
    calls: list[int] = []
    scheduler.schedule(utc_now() + timedelta(hours=1), lambda: calls.append(1))
    assert calls == []
    assert scheduler.pending_count == 1


def test_future_fires_on_background_thread(scheduler: ReminderScheduler) -> None:
    fired = threading.Event()
    seen: list[threading.Thread] = []

    def callback() -> None:
        seen.append(threading.current_thread())
        fired.set()

    scheduler.schedule(utc_now() + timedelta(milliseconds=100), callback)

    assert fired.wait(WAIT)
    assert seen[0] is not threading.current_thread()


def test_future_schedule_starts_engine_lazily(scheduler: ReminderScheduler) -> None:
    assert scheduler.running is False
    scheduler.schedule(utc_now() + timedelta(hours=1), lambda: None)
    assert scheduler.running is True


def test_fired_task_leaves_pending_table(scheduler: ReminderScheduler) -> None:
    fired = threading.Event()
    scheduler.schedule(utc_now() + timedelta(milliseconds=100), fired.set)

    assert fired.wait(WAIT)
    assert scheduler.pending_count == 0


def test_same_target_all_fire(scheduler: ReminderScheduler) -> None:
    done = threading.Semaphore(0)
    target = utc_now() + timedelta(milliseconds=200)
    for _ in range(3):
        scheduler.schedule(target, done.release)

    for _ in range(3):
        assert done.acquire(timeout=WAIT)


def test_naive_datetime_uses_scheduler_timezone() -> None:
    s = ReminderScheduler(timezone="America/Chicago")
    try:
        # Naive values are read as Chicago wall time, two days back is past due.
        naive_past = datetime.now() - timedelta(days=2)
        calls: list[int] = []
        s.schedule(naive_past, lambda: calls.append(1))
        assert calls == [1]
    finally:
        s.stop()


# -- cancel_all ----------------------------------------------------------------


def test_cancel_all_prevents_firing(scheduler: ReminderScheduler) -> None:
    calls: list[int] = []
    scheduler.schedule(utc_now() + timedelta(milliseconds=300), lambda: calls.append(1))
    scheduler.schedule(utc_now() + timedelta(milliseconds=400), lambda: calls.append(2))

    assert scheduler.cancel_all() == 2
    time.sleep(0.7)

    assert calls == []
    assert scheduler.pending_count == 0


def test_cancel_all_with_nothing_pending(scheduler: ReminderScheduler) -> None:
    assert scheduler.cancel_all() == 0
    assert scheduler.cancel_all() == 0


def test_cancel_all_bumps_generation(scheduler: ReminderScheduler) -> None:
    before = scheduler.generation
    scheduler.cancel_all()
    assert scheduler.generation == before + 1


def test_schedule_after_cancel_all_still_fires(scheduler: ReminderScheduler) -> None:
    scheduler.schedule(utc_now() + timedelta(hours=1), lambda: None)
    scheduler.cancel_all()

    fired = threading.Event()
    scheduler.schedule(utc_now() + timedelta(milliseconds=100), fired.set)

    assert fired.wait(WAIT)


def test_cancelled_job_dropped_at_firing_boundary(scheduler: ReminderScheduler) -> None:
    calls: list[int] = []
    task_id = scheduler.schedule(utc_now() + timedelta(hours=1), lambda: calls.append(1))
    scheduler.cancel_all()

    # A worker that picked the job up before the cancel must not run it.
    scheduler._fire(task_id)

    assert calls == []


def test_cancel_all_concurrent_with_schedule(scheduler: ReminderScheduler) -> None:
    stop = threading.Event()

    def keep_scheduling() -> None:
        while not stop.is_set():
            scheduler.schedule(utc_now() + timedelta(hours=1), lambda: None)

    worker = threading.Thread(target=keep_scheduling)
    worker.start()
    try:
        for _ in range(20):
            scheduler.cancel_all()
    finally:
        stop.set()
        worker.join(WAIT)

    assert not worker.is_alive()
    scheduler.cancel_all()
    assert scheduler.pending_count == 0


# -- Faults --------------------------------------------------------------------


def _boom() -> None:
    raise RuntimeError("boom")


def test_past_due_fault_is_contained() -> None:
    faults: list[SchedulingFault] = []
    s = ReminderScheduler(timezone="UTC", fault_handler=faults.append)

    task_id = s.schedule(utc_now() - timedelta(seconds=1), _boom)

    assert len(faults) == 1
    assert faults[0].task_id == task_id
    assert isinstance(faults[0].error, RuntimeError)


def test_background_fault_does_not_affect_other_tasks() -> None:
    faults: list[SchedulingFault] = []
    reported = threading.Event()

    def handler(fault: SchedulingFault) -> None:
        faults.append(fault)
        reported.set()

    s = ReminderScheduler(timezone="UTC", fault_handler=handler)
    try:
        fired = threading.Event()
        s.schedule(utc_now() + timedelta(milliseconds=100), _boom)
        s.schedule(utc_now() + timedelta(milliseconds=250), fired.set)

        assert reported.wait(WAIT)
        assert fired.wait(WAIT)
        assert len(faults) == 1
    finally:
        s.stop()


def test_failing_fault_handler_is_swallowed() -> None:
    def bad_handler(fault: SchedulingFault) -> None:
        raise ValueError("handler broke")

    s = ReminderScheduler(timezone="UTC", fault_handler=bad_handler)
    # Should not raise
    s.schedule(utc_now() - timedelta(seconds=1), _boom)


# -- Lifecycle -----------------------------------------------------------------


def test_start_and_stop() -> None:
    s = ReminderScheduler(timezone="UTC")
    s.start()
    assert s.running is True
    s.start()
    assert s.running is True

    s.stop()
    assert s.running is False


def test_stop_when_not_running() -> None:
    s = ReminderScheduler(timezone="UTC")
    # Should not raise
    s.stop()


def test_default_timezone_from_settings() -> None:
    s = ReminderScheduler()
    assert s._timezone == "UTC"


def test_schedule_after_stop_restarts_and_fires() -> None:
    s = ReminderScheduler(timezone="UTC")
    try:
        s.start()
        s.stop()

        fired = threading.Event()
        s.schedule(utc_now() + timedelta(milliseconds=100), fired.set)

        assert s.running is True
        assert fired.wait(WAIT)
    finally:
        s.stop()


def test_stop_drops_pending_reminders() -> None:
    s = ReminderScheduler(timezone="UTC")
    calls: list[int] = []
    try:
        task_id = s.schedule(utc_now() + timedelta(milliseconds=200), lambda: calls.append(1))
        before = s.generation
        s.stop()

        assert s.pending_count == 0
        assert s.generation == before + 1
        s._fire(task_id)
        time.sleep(0.4)
        assert calls == []
    finally:
        s.stop()


def test_stop_concurrent_with_schedule() -> None:
    s = ReminderScheduler(timezone="UTC")
    errors: list[BaseException] = []
    stop = threading.Event()

    def keep_scheduling() -> None:
        while not stop.is_set():
            try:
                s.schedule(utc_now() + timedelta(hours=1), lambda: None)
            except Exception as exc:
                errors.append(exc)

    worker = threading.Thread(target=keep_scheduling)
    worker.start()
    try:
        for _ in range(10):
            s.stop()
            time.sleep(0.01)
    finally:
        stop.set()
        worker.join(WAIT)
        s.cancel_all()
        s.stop()

    assert errors == []
