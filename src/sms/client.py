"""Telnyx SMS API client using httpx."""

from __future__ import annotations

import logging

import httpx

from src.config import settings

logger = logging.getLogger(__name__)

# Maximum SMS body length (~10 segments). Longer messages risk delivery issues.
MAX_SMS_LENGTH = 1600

TELNYX_API_URL = "https://api.telnyx.com/v2/messages"

_client: httpx.Client | None = None


def _get_client() -> httpx.Client:
    """Return (and lazily create) the shared httpx client."""
    global _client  # noqa: PLW0603
    if _client is None or _client.is_closed:
        _client = httpx.Client(
            headers={"Authorization": f"Bearer {settings.telnyx_api_key}"},
            timeout=15.0,
        )
    return _client


def send_sms(to: str, body: str) -> bool:
    """Send an SMS via Telnyx. Returns True on success."""
    if not settings.telnyx_api_key or not settings.telnyx_phone_number:
        logger.error("SMS not configured — missing TELNYX_API_KEY or TELNYX_PHONE_NUMBER")
        return False

    # Truncate to avoid excessive segments / delivery failures
    if len(body) > MAX_SMS_LENGTH:
        body = body[: MAX_SMS_LENGTH - 3] + "..."

    payload = {
        "from": settings.telnyx_phone_number,
        "to": to,
        "text": body,
        "type": "SMS",
    }

    client = _get_client()
    try:
        resp = client.post(TELNYX_API_URL, json=payload)
    except httpx.HTTPError:
        logger.exception("SMS send failed (network error)")
        return False

    if resp.status_code == 200:
        logger.info("SMS sent to %s (%d chars)", to, len(body))
        return True
    logger.error("SMS send failed: status=%d body=%s", resp.status_code, resp.text[:200])
    return False
