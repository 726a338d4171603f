"""Email implementation of the NotificationChannel protocol."""

from __future__ import annotations

from src.mail.client import send_email


class EmailChannel:
    """Sends notifications as one SMTP email addressed to all recipients."""

    @property
    def name(self) -> str:
        return "email"

    def send(self, recipients: set[str], subject: str, body: str) -> bool:
        return send_email(recipients, subject, body)
