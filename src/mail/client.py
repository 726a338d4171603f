"""SMTP email client (STARTTLS)."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from src.config import settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


def build_message(recipients: set[str], subject: str, body: str) -> EmailMessage:
    """Build a plain-text message addressed to every recipient."""
    message = EmailMessage()
    message["From"] = settings.sender_email
    message["To"] = ", ".join(sorted(recipients))
    message["Subject"] = subject
    message.set_content(body)
    return message


def send_email(recipients: set[str], subject: str, body: str) -> bool:
    """Send one email to all *recipients*. Returns True on success."""
    if not settings.sender_email or not settings.smtp_password:
        logger.error("Email not configured — missing SENDER_EMAIL or SMTP_PASSWORD")
        return False
    if not recipients:
        logger.warning("Email '%s' has no recipients", subject)
        return False

    message = build_message(recipients, subject, body)
    username = settings.smtp_username or settings.sender_email
    try:
        with smtplib.SMTP(
            settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS
        ) as smtp:
            smtp.starttls()
            smtp.login(username, settings.smtp_password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError):
        logger.exception("Email send failed: '%s'", subject)
        return False

    logger.info("Email '%s' sent to %d recipient(s)", subject, len(recipients))
    return True
