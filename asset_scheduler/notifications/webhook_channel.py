"""HTTP webhook implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging

import aiohttp

from asset_scheduler.config import settings

logger = logging.getLogger(__name__)


class WebhookChannel:
    """POSTs each notification as JSON to a configured URL.

    The endpoint receives ``{"recipient", "subject", "body"}`` and is expected
    to fan out to email/SMS itself.
    """

    def __init__(self, url: str | None = None, timeout: float | None = None) -> None:
        self._url = url or settings.notification_webhook_url
        self._timeout = aiohttp.ClientTimeout(
            total=timeout or settings.notification_timeout_seconds
        )
        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        return "webhook"

    def _get_session(self) -> aiohttp.ClientSession:
        """Return (and lazily create) the channel's aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        if not self._url:
            logger.error("Webhook channel not configured — missing NOTIFICATION_WEBHOOK_URL")
            return False

        payload = {"recipient": recipient, "subject": subject, "body": body}
        session = self._get_session()
        try:
            async with session.post(self._url, json=payload) as resp:
                if 200 <= resp.status < 300:
                    logger.info("Webhook notification sent to %s (%s)", recipient, subject)
                    return True
                text = await resp.text()
                logger.error(
                    "Webhook notification failed: status=%d body=%s", resp.status, text[:200]
                )
                return False
        except (aiohttp.ClientError, TimeoutError):
            logger.exception("Webhook notification failed (network error)")
            return False

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
