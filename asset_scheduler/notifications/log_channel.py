"""Log implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LogChannel:
    """Writes notifications to the application log instead of delivering them."""

    @property
    def name(self) -> str:
        return "log"

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        logger.info("Notification to %s: %s", recipient, subject)
        logger.debug("Notification body:\n%s", body)
        return True
