"""SMS implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging

from src.sms.client import send_sms

logger = logging.getLogger(__name__)


class SMSChannel:
    """Sends notifications via SMS (Telnyx), one message per phone number."""

    @property
    def name(self) -> str:
        return "sms"

    def send(self, recipients: set[str], subject: str, body: str) -> bool:
        """Text every recipient. True only if all of them were accepted."""
        # SMS has no subject line; prepend it to the text
        text = f"{subject}\n{body}" if subject else body
        results = [send_sms(number, text) for number in sorted(recipients)]
        failed = results.count(False)
        if failed:
            logger.warning(
                "SMS '%s' failed for %d of %d recipient(s)", subject, failed, len(results)
            )
        return bool(results) and not failed
