"""NotificationGateway — renders task alerts and hands them to the router."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from asset_scheduler.clock import utcnow
from asset_scheduler.errors import NotificationDeliveryError

if TYPE_CHECKING:
    from datetime import datetime

    from asset_scheduler.clock import Clock
    from asset_scheduler.domain.models import Asset, MaintenanceItem
    from asset_scheduler.notifications.router import NotificationRouter

logger = logging.getLogger(__name__)


class NotificationGateway:
    """Sends overdue-asset, maintenance and low-stock alerts to one recipient.

    Every ``notify_*`` method raises ``NotificationDeliveryError`` when the
    message could not be delivered; callers decide whether that matters.

    Args:
        router: NotificationRouter that owns the delivery channels.
        channel: Channel name override (None → router default).
        clock: Returns the current time; overridable in tests.
    """

    def __init__(
        self,
        router: NotificationRouter,
        channel: str | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._router = router
        self._channel = channel
        self._clock = clock

    async def notify_overdue_assets(self, recipient: str, assets: list[Asset]) -> None:
        body = render_overdue_assets(assets, self._clock())
        await self._deliver(recipient, "Overdue Assets Alert", body)

    async def notify_maintenance_reminder(
        self, recipient: str, item: MaintenanceItem, days_until_due: int
    ) -> None:
        body = render_maintenance_reminder(item, days_until_due)
        await self._deliver(recipient, f"Maintenance Reminder: {item.title}", body)

    async def notify_low_stock(self, recipient: str, summary: dict[str, Any]) -> None:
        body = render_low_stock(summary)
        await self._deliver(recipient, "Low Stock Alert", body)

    async def _deliver(self, recipient: str, subject: str, body: str) -> None:
        try:
            sent = await self._router.send(recipient, subject, body, channel=self._channel)
        except Exception as exc:
            raise NotificationDeliveryError(recipient, str(exc) or type(exc).__name__) from exc
        if not sent:
            raise NotificationDeliveryError(recipient, "no channel accepted the message")
        logger.info("Sent '%s' to %s", subject, recipient)


# -- Rendering -----------------------------------------------------------------


def _table(headers: list[str], rows: list[list[Any]]) -> str:
    cells = [headers, *[[("" if c is None else str(c)) for c in row] for row in rows]]
    widths = [max(len(r[i]) for r in cells) for i in range(len(headers))]
    lines = [" | ".join(c.ljust(w) for c, w in zip(r, widths, strict=True)) for r in cells]
    lines.insert(1, "-+-".join("-" * w for w in widths))
    return "\n".join(lines)


def render_overdue_assets(assets: list[Asset], now: datetime) -> str:
    rows = [
        [
            a.asset_code,
            a.name,
            a.due_date.date().isoformat() if a.due_date else "",
            a.days_past_due(now),
            a.assigned_to or "Unassigned",
        ]
        for a in assets
    ]
    return "\n\n".join(
        [
            "The following assets are past their due dates:",
            _table(["Asset Code", "Name", "Due Date", "Days Overdue", "Assigned To"], rows),
            "Please take immediate action to address these overdue assets.",
        ]
    )


def render_maintenance_reminder(item: MaintenanceItem, days_until_due: int) -> str:
    lines = [
        f"Title: {item.title}",
        f"Description: {item.description or 'No description provided'}",
        f"Scheduled Date: {item.scheduled_date.date().isoformat()}",
        f"Days Until Due: {days_until_due}",
        f"Priority: {str(item.priority).upper()}",
        f"Estimated Duration: {item.estimated_duration} minutes",
    ]
    if item.checklist:
        lines.append("")
        lines.append("Checklist:")
        lines.extend(f"  - {entry}" for entry in item.checklist)
    lines.append("")
    lines.append("Please ensure this maintenance is completed on time.")
    return "\n".join(lines)


def render_low_stock(summary: dict[str, Any]) -> str:
    sections = ["The following inventory items require attention:"]
    critical = summary.get("criticalItems") or []
    low = summary.get("lowStockItems") or []
    if critical:
        rows = [
            [
                i["sku"],
                i["name"],
                i["currentStock"],
                i["criticalThreshold"],
                i.get("category") or "N/A",
                i.get("supplier") or "N/A",
            ]
            for i in critical
        ]
        sections.append("Critical Stock Levels (Immediate Action Required)")
        sections.append(
            _table(
                ["SKU", "Name", "Current Stock", "Critical Threshold", "Category", "Supplier"],
                rows,
            )
        )
    if low:
        rows = [
            [
                i["sku"],
                i["name"],
                i["currentStock"],
                i["minimumThreshold"],
                i.get("category") or "N/A",
                i.get("supplier") or "N/A",
            ]
            for i in low
        ]
        sections.append("Low Stock Levels")
        sections.append(
            _table(
                ["SKU", "Name", "Current Stock", "Minimum Threshold", "Category", "Supplier"],
                rows,
            )
        )
    sections.append("Please review and take appropriate action to restock these items.")
    return "\n\n".join(sections)
