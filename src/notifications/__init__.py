"""Notification channel abstraction layer."""

from src.notifications.channels import NotificationChannel
from src.notifications.email_channel import EmailChannel
from src.notifications.router import NotificationRouter
from src.notifications.sms_channel import SMSChannel

__all__ = [
    "EmailChannel",
    "NotificationChannel",
    "NotificationRouter",
    "SMSChannel",
]
