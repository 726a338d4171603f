"""Shared test fixtures."""

from __future__ import annotations

import threading

import pytest

from src.doses.log import DoseLog
from src.notifications.router import NotificationRouter
from src.scheduler.engine import ReminderScheduler
from src.scheduler.missed import MissedDoseAggregator
from src.session import CareCircle


class FakeChannel:
    """Records every message instead of delivering it."""

    def __init__(self, channel_name: str = "email", *, result: bool = True) -> None:
        self._name = channel_name
        self._result = result
        self.sent: list[tuple[set[str], str, str]] = []
        self.delivered = threading.Event()

    @property
    def name(self) -> str:
        return self._name

    def send(self, recipients: set[str], subject: str, body: str) -> bool:
        self.sent.append((recipients, subject, body))
        self.delivered.set()
        return self._result


@pytest.fixture
def scheduler():
    """A ReminderScheduler that is shut down after the test."""
    s = ReminderScheduler(timezone="UTC")
    yield s
    s.cancel_all()
    s.stop()


@pytest.fixture
def aggregator() -> MissedDoseAggregator:
    return MissedDoseAggregator()


@pytest.fixture
def make_channel():
    """Factory for FakeChannel instances (name, result=...)."""
    return FakeChannel


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel("email")


@pytest.fixture
def router(channel: FakeChannel) -> NotificationRouter:
    r = NotificationRouter()
    r.register_channel(channel)
    r.set_default_channel("email")
    return r


@pytest.fixture
def care_circle() -> CareCircle:
    circle = CareCircle()
    circle.add("Alice", emails=["carol@example.com", "dan@example.com"], phones=["+15550001"])
    return circle


@pytest.fixture
def dose_log(tmp_path) -> DoseLog:
    return DoseLog(tmp_path / "dose_log.jsonl")
