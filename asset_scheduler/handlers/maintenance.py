"""Maintenance reminder handler."""

from __future__ import annotations

import logging
from datetime import UTC, timedelta
from typing import TYPE_CHECKING, Any

from asset_scheduler.clock import to_iso, utcnow
from asset_scheduler.domain.models import MaintenancePriority
from asset_scheduler.errors import HandlerExecutionError, NotFoundError
from asset_scheduler.handlers.base import ResultSummary, deliver, list_option

if TYPE_CHECKING:
    from asset_scheduler.clock import Clock
    from asset_scheduler.domain.maintenance import MaintenanceStore
    from asset_scheduler.domain.models import MaintenanceItem
    from asset_scheduler.notifications.gateway import NotificationGateway

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_DAYS = [7, 3, 1]
DEFAULT_PRIORITIES = [MaintenancePriority.HIGH, MaintenancePriority.CRITICAL]


class MaintenanceReminderHandler:
    """Reminds assignees about maintenance falling due in N days.

    For every offset in ``reminderDays`` the whole UTC calendar day ``now + d``
    is searched for open items whose priority is any of ``priorities``.  Each
    match is sent to its assignee plus every ``notifyUsers`` entry.
    """

    def __init__(
        self,
        maintenance: MaintenanceStore,
        gateway: NotificationGateway,
        clock: Clock = utcnow,
    ) -> None:
        self._maintenance = maintenance
        self._gateway = gateway
        self._clock = clock

    async def handle(self, configuration: dict[str, Any]) -> ResultSummary:
        reminder_days = _reminder_days(
            list_option(configuration, "reminderDays", DEFAULT_REMINDER_DAYS)
        )
        priorities = _priorities(list_option(configuration, "priorities", DEFAULT_PRIORITIES))
        notify_users = list_option(configuration, "notifyUsers", [])

        today = self._clock().astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)
        results = []
        for days in reminder_days:
            start = today + timedelta(days=days)
            end = start + timedelta(days=1) - timedelta(microseconds=1)
            items = await self._maintenance.find_scheduled_between(start, end, priorities)
            logger.info("Found %d maintenance items due in %d days", len(items), days)
            if not items:
                continue

            for item in items:
                for user in _recipients(item, notify_users):
                    await deliver(
                        user, self._gateway.notify_maintenance_reminder(user, item, days)
                    )

            results.append(
                {
                    "daysUntilDue": days,
                    "count": len(items),
                    "items": [_summarise(item) for item in items],
                }
            )

        return {
            "totalReminders": sum(r["count"] for r in results),
            "remindersByDays": results,
        }

    # -- Admin queries ---------------------------------------------------------

    async def list_upcoming(self, days: int = 30) -> list[MaintenanceItem]:
        return await self._maintenance.list_upcoming(self._clock(), days)

    async def list_overdue(self) -> list[MaintenanceItem]:
        return await self._maintenance.list_overdue(self._clock())

    async def complete(self, item_id: str) -> MaintenanceItem:
        item = await self._maintenance.complete(item_id, self._clock())
        if item is None:
            raise NotFoundError("Maintenance item", item_id)
        return item


def _reminder_days(values: list) -> list[int]:
    try:
        return [int(v) for v in values]
    except (TypeError, ValueError) as exc:
        msg = f"Configuration option 'reminderDays' must hold integers: {values!r}"
        raise HandlerExecutionError(msg) from exc


def _priorities(values: list) -> list[MaintenancePriority]:
    try:
        return [MaintenancePriority(v) for v in values]
    except ValueError as exc:
        msg = f"Configuration option 'priorities' is invalid: {exc}"
        raise HandlerExecutionError(msg) from exc


def _recipients(item: MaintenanceItem, notify_users: list[str]) -> list[str]:
    """Assignee first, then configured users, without duplicates."""
    seen: dict[str, None] = {}
    for user in [item.assigned_to, *notify_users]:
        if user:
            seen.setdefault(user, None)
    return list(seen)


def _summarise(item: MaintenanceItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "assetId": item.asset_id,
        "scheduledDate": to_iso(item.scheduled_date),
        "priority": str(item.priority),
        "assignedTo": item.assigned_to,
    }
