"""Task handlers, one per task type."""

from __future__ import annotations

from typing import TYPE_CHECKING

from asset_scheduler.clock import utcnow
from asset_scheduler.handlers.base import HandlerMap, TaskHandler
from asset_scheduler.handlers.low_stock import LowStockHandler
from asset_scheduler.handlers.maintenance import MaintenanceReminderHandler
from asset_scheduler.handlers.overdue_assets import OverdueAssetHandler
from asset_scheduler.scheduler.models import TaskType

if TYPE_CHECKING:
    from asset_scheduler.clock import Clock
    from asset_scheduler.domain import AssetStore, InventoryStore, MaintenanceStore
    from asset_scheduler.notifications.gateway import NotificationGateway

__all__ = [
    "HandlerMap",
    "LowStockHandler",
    "MaintenanceReminderHandler",
    "OverdueAssetHandler",
    "TaskHandler",
    "build_handlers",
]


def build_handlers(
    assets: AssetStore,
    maintenance: MaintenanceStore,
    inventory: InventoryStore,
    gateway: NotificationGateway,
    clock: Clock = utcnow,
) -> HandlerMap:
    """Map each built-in task type to its handler."""
    handlers = HandlerMap()
    handlers.register(
        TaskType.OVERDUE_ASSET_DETECTION, OverdueAssetHandler(assets, gateway, clock)
    )
    handlers.register(
        TaskType.MAINTENANCE_REMINDER, MaintenanceReminderHandler(maintenance, gateway, clock)
    )
    handlers.register(TaskType.LOW_STOCK_DETECTION, LowStockHandler(inventory, gateway, clock))
    return handlers
