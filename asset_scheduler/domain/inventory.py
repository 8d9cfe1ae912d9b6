"""InventoryStore — SQLite access to inventory stock levels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asset_scheduler.clock import to_iso
from asset_scheduler.db import SQLiteStore
from asset_scheduler.domain.models import InventoryItem

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS inventory_items (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    sku TEXT NOT NULL,
    category TEXT,
    supplier TEXT,
    current_stock INTEGER NOT NULL DEFAULT 0,
    minimum_threshold INTEGER NOT NULL DEFAULT 0,
    critical_threshold INTEGER NOT NULL DEFAULT 0,
    maximum_stock INTEGER,
    is_active INTEGER NOT NULL DEFAULT 1,
    last_restocked_at TEXT
)
"""

_COLUMNS = (
    "id, name, sku, category, supplier, current_stock, minimum_threshold, "
    "critical_threshold, maximum_stock, is_active, last_restocked_at"
)

_CRITICAL = "current_stock <= critical_threshold"
_LOW = "current_stock > critical_threshold AND current_stock <= minimum_threshold"


class InventoryStore(SQLiteStore):
    """Reads active items by stock threshold; writes current stock."""

    _SCHEMA = (_CREATE_TABLE,)

    async def add(self, item: InventoryItem) -> InventoryItem:
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO inventory_items ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                item.to_row(),
            )
            await db.commit()
            return item
        finally:
            await db.close()

    async def get(self, item_id: str) -> InventoryItem | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM inventory_items WHERE id = ?", (item_id,)
            )
            row = await cursor.fetchone()
            return InventoryItem.from_row(row) if row else None
        finally:
            await db.close()

    async def _select(
        self, condition: str, categories: Iterable[str] | None = None
    ) -> list[InventoryItem]:
        where = f"{condition} AND is_active = 1"
        params: tuple = ()
        category_list = list(categories or [])
        if category_list:
            where += f" AND category IN ({', '.join('?' for _ in category_list)})"
            params = tuple(category_list)
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM inventory_items WHERE {where} "
                "ORDER BY current_stock ASC, name ASC",
                params,
            )
            rows = await cursor.fetchall()
            return [InventoryItem.from_row(row) for row in rows]
        finally:
            await db.close()

    async def find_critical(self, categories: Iterable[str] | None = None) -> list[InventoryItem]:
        """Active items at or below their critical threshold."""
        return await self._select(_CRITICAL, categories)

    async def find_low_stock(self, categories: Iterable[str] | None = None) -> list[InventoryItem]:
        """Active items above critical but at or below their minimum threshold."""
        return await self._select(_LOW, categories)

    async def list_below_minimum(self) -> list[InventoryItem]:
        """Every active item at or below its minimum threshold (critical included)."""
        return await self._select("current_stock <= minimum_threshold")

    async def list_critical(self) -> list[InventoryItem]:
        return await self._select(_CRITICAL)

    async def update_stock(
        self, item_id: str, stock: int, now: datetime
    ) -> InventoryItem | None:
        """Set an item's current stock; a rise stamps ``last_restocked_at``.

        Returns None if the item is unknown.
        """
        item = await self.get(item_id)
        if item is None:
            return None
        db = await self._connect()
        try:
            if stock > item.current_stock:
                await db.execute(
                    "UPDATE inventory_items SET current_stock = ?, last_restocked_at = ? "
                    "WHERE id = ?",
                    (stock, to_iso(now), item_id),
                )
            else:
                await db.execute(
                    "UPDATE inventory_items SET current_stock = ? WHERE id = ?",
                    (stock, item_id),
                )
            await db.commit()
        finally:
            await db.close()
        logger.info("Stock for %s set to %d (was %d)", item_id, stock, item.current_stock)
        return await self.get(item_id)
