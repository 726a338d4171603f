"""NotificationChannel protocol — interface for all notification delivery channels."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol that all notification channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'email', 'sms')."""
        ...

    def send(self, recipients: set[str], subject: str, body: str) -> bool:
        """Deliver one message to every recipient. Returns True on success."""
        ...
