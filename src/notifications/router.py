"""NotificationRouter — dispatches caregiver messages to registered channels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Picks the channel a caregiver message goes out on.

    An explicit channel name wins. Otherwise the default channel is used, and
    with no default a router holding exactly one channel uses that one.
    Build one at startup and pass it to the components that send.
    """

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._default: str = ""

    @property
    def default_channel_name(self) -> str:
        return self._default

    def register_channel(self, channel: NotificationChannel) -> None:
        """Add *channel*. A second channel with the same name is a ValueError."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel
        logger.debug("Registered notification channel %s", channel.name)

    def set_default_channel(self, name: str) -> None:
        """Make *name* the default. KeyError if no such channel is registered."""
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        self._default = name

    def list_channels(self) -> list[str]:
        """Registered channel names, in registration order."""
        return list(self._channels)

    def send(
        self,
        recipients: set[str],
        subject: str,
        body: str,
        *,
        channel: str | None = None,
    ) -> bool:
        """Send one message to *recipients*. False if nothing could be sent."""
        target = self._pick(channel)
        if target is None:
            logger.warning("No channel for '%s' (requested=%s)", subject, channel)
            return False
        if not recipients:
            logger.warning("No recipients for '%s' on %s", subject, target.name)
            return False
        return target.send(set(recipients), subject, body)

    def _pick(self, name: str | None) -> NotificationChannel | None:
        key = name or self._default
        if key:
            return self._channels.get(key)
        if len(self._channels) == 1:
            [only] = self._channels.values()
            return only
        return None
