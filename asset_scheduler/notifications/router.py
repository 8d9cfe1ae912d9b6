"""NotificationRouter: picks a delivery channel for each outbound alert."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from asset_scheduler.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Holds the registered channels and hands each message to one of them.

    A message goes to the channel the caller names, else the default channel,
    else the only registered channel. Each gateway owns its router; there is
    no process-wide instance.

    Args:
        channels: Channels to register up front.
        default: Name of the default channel (must be among *channels*).
    """

    def __init__(
        self,
        channels: Iterable[NotificationChannel] = (),
        default: str | None = None,
    ) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._default = ""
        for channel in channels:
            self.register_channel(channel)
        if default:
            self.set_default_channel(default)

    def register_channel(self, channel: NotificationChannel) -> None:
        """Add *channel*. Raises ValueError if its name is taken."""
        name = channel.name
        if name in self._channels:
            msg = f"Channel '{name}' is already registered"
            raise ValueError(msg)
        self._channels[name] = channel
        logger.info("Registered notification channel: %s", name)

    def set_default_channel(self, name: str) -> None:
        """Raises KeyError if *name* was never registered."""
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        self._default = name

    def get_channel(self, name: str) -> NotificationChannel | None:
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        return list(self._channels)

    @property
    def default_channel_name(self) -> str:
        return self._default

    def resolve(self, name: str | None = None) -> NotificationChannel | None:
        """The channel a message would go to, or None if nothing matches."""
        if name:
            return self._channels.get(name)
        if self._default:
            return self._channels[self._default]
        if len(self._channels) == 1:
            (only,) = self._channels.values()
            return only
        return None

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        *,
        channel: str | None = None,
    ) -> bool:
        """Deliver one message. Returns False when no channel took it."""
        target = self.resolve(channel)
        if target is None:
            logger.warning(
                "No notification channel for %s (requested=%s, registered=%s)",
                recipient,
                channel,
                ", ".join(self._channels) or "none",
            )
            return False
        delivered = await target.send(recipient, subject, body)
        if not delivered:
            logger.warning(
                "Channel %s did not deliver '%s' to %s", target.name, subject, recipient
            )
        return delivered
