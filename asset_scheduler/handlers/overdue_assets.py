"""Overdue asset detection handler."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from asset_scheduler.clock import to_iso, utcnow
from asset_scheduler.domain.models import AssetStatus
from asset_scheduler.errors import HandlerExecutionError, NotFoundError
from asset_scheduler.handlers.base import ResultSummary, deliver, int_option, list_option

if TYPE_CHECKING:
    from datetime import datetime

    from asset_scheduler.clock import Clock
    from asset_scheduler.domain.assets import AssetStore
    from asset_scheduler.domain.models import Asset
    from asset_scheduler.notifications.gateway import NotificationGateway

logger = logging.getLogger(__name__)


class OverdueAssetHandler:
    """Flags assets past their due date and alerts the configured users.

    Configuration:
        includeStatuses: asset statuses to consider (default ``["active"]``).
        notifyUsers: recipients of the combined alert.
        gracePeriodDays: days past due before an asset counts (default 0).
    """

    def __init__(
        self,
        assets: AssetStore,
        gateway: NotificationGateway,
        clock: Clock = utcnow,
    ) -> None:
        self._assets = assets
        self._gateway = gateway
        self._clock = clock

    async def handle(self, configuration: dict[str, Any]) -> ResultSummary:
        statuses = _statuses(list_option(configuration, "includeStatuses", [AssetStatus.ACTIVE]))
        notify_users = list_option(configuration, "notifyUsers", [])
        grace_days = int_option(configuration, "gracePeriodDays", 0)

        now = self._clock()
        cutoff = now - timedelta(days=grace_days)
        overdue = await self._assets.find_due_before(statuses, cutoff)
        logger.info("Found %d overdue assets (grace=%d day(s))", len(overdue), grace_days)

        for asset in overdue:
            await self._assets.update_metadata(
                asset.id,
                {"overdueDetectedAt": to_iso(now), "daysPastDue": asset.days_past_due(now)},
            )

        sent = 0
        if overdue:
            for user in notify_users:
                if await deliver(user, self._gateway.notify_overdue_assets(user, overdue)):
                    sent += 1

        return {
            "overdueCount": len(overdue),
            "overdueAssets": [_summarise(asset, now) for asset in overdue],
            "notificationsSent": sent,
        }

    # -- Admin queries ---------------------------------------------------------

    async def list_overdue(self) -> list[Asset]:
        """Active assets currently past their due date."""
        return await self._assets.list_overdue(self._clock())

    async def mark_overdue(self, asset_id: str) -> Asset:
        asset = await self._assets.mark_overdue(asset_id, self._clock())
        if asset is None:
            raise NotFoundError("Asset", asset_id)
        return asset


def _statuses(values: list) -> list[AssetStatus]:
    try:
        return [AssetStatus(v) for v in values]
    except ValueError as exc:
        msg = f"Configuration option 'includeStatuses' is invalid: {exc}"
        raise HandlerExecutionError(msg) from exc


def _summarise(asset: Asset, now: datetime) -> dict[str, Any]:
    return {
        "id": asset.id,
        "name": asset.name,
        "assetCode": asset.asset_code,
        "dueDate": to_iso(asset.due_date) if asset.due_date else None,
        "daysPastDue": asset.days_past_due(now),
    }
