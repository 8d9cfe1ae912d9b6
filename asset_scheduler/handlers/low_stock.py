"""Low stock detection handler."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from asset_scheduler.clock import to_iso, utcnow
from asset_scheduler.errors import NotFoundError
from asset_scheduler.handlers.base import ResultSummary, bool_option, deliver, list_option

if TYPE_CHECKING:
    from asset_scheduler.clock import Clock
    from asset_scheduler.domain.inventory import InventoryStore
    from asset_scheduler.domain.models import InventoryItem
    from asset_scheduler.notifications.gateway import NotificationGateway

logger = logging.getLogger(__name__)


class LowStockHandler:
    """Finds critical and low stock items and sends one combined alert per user.

    An item exactly at its critical threshold is critical; an item exactly at
    its minimum threshold (and above critical) is low stock.
    """

    def __init__(
        self,
        inventory: InventoryStore,
        gateway: NotificationGateway,
        clock: Clock = utcnow,
    ) -> None:
        self._inventory = inventory
        self._gateway = gateway
        self._clock = clock

    async def handle(self, configuration: dict[str, Any]) -> ResultSummary:
        check_critical = bool_option(configuration, "checkCritical", True)
        check_minimum = bool_option(configuration, "checkMinimum", True)
        notify_users = list_option(configuration, "notifyUsers", [])
        categories = list_option(configuration, "categories", [])

        critical: list[InventoryItem] = []
        low: list[InventoryItem] = []
        if check_critical:
            critical = await self._inventory.find_critical(categories)
            logger.warning("Found %d items with critical stock levels", len(critical))
        if check_minimum:
            low = await self._inventory.find_low_stock(categories)
            logger.info("Found %d items with low stock levels", len(low))

        result = {
            "criticalItems": [
                _summarise(i, "criticalThreshold", i.critical_threshold) for i in critical
            ],
            "lowStockItems": [
                _summarise(i, "minimumThreshold", i.minimum_threshold) for i in low
            ],
            "totalAffected": len(critical) + len(low),
        }

        if result["totalAffected"]:
            for user in notify_users:
                await deliver(user, self._gateway.notify_low_stock(user, result))
        return result

    # -- Admin queries ---------------------------------------------------------

    async def list_low_stock(self) -> list[InventoryItem]:
        return await self._inventory.list_below_minimum()

    async def list_critical(self) -> list[InventoryItem]:
        return await self._inventory.list_critical()

    async def update_stock(self, item_id: str, stock: int) -> InventoryItem:
        item = await self._inventory.update_stock(item_id, stock, self._clock())
        if item is None:
            raise NotFoundError("Inventory item", item_id)
        return item

    async def restock_report(self) -> dict[str, Any]:
        """Every item needing a reorder, with a recommended order quantity."""
        low = await self._inventory.list_below_minimum()
        critical = await self._inventory.list_critical()
        return {
            "summary": {
                "totalLowStock": len(low),
                "totalCritical": len(critical),
                "generatedAt": to_iso(self._clock()),
            },
            "criticalItems": [_with_order_quantity(i) for i in critical],
            "lowStockItems": [_with_order_quantity(i) for i in low],
        }


def _summarise(item: InventoryItem, threshold_key: str, threshold: int) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "sku": item.sku,
        "currentStock": item.current_stock,
        threshold_key: threshold,
        "category": item.category,
        "supplier": item.supplier,
    }


def _with_order_quantity(item: InventoryItem) -> dict[str, Any]:
    return {**item.to_dict(), "recommendedOrderQuantity": item.recommended_order_quantity()}
