"""MaintenanceStore — SQLite access to maintenance schedules."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from asset_scheduler.clock import to_iso
from asset_scheduler.db import SQLiteStore
from asset_scheduler.domain.models import MaintenanceItem, MaintenancePriority

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS maintenance_schedules (
    id TEXT PRIMARY KEY,
    asset_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    type TEXT NOT NULL,
    priority TEXT NOT NULL DEFAULT 'medium',
    scheduled_date TEXT NOT NULL,
    completed_date TEXT,
    assigned_to TEXT,
    estimated_duration INTEGER NOT NULL DEFAULT 240,
    is_completed INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    checklist TEXT NOT NULL DEFAULT '[]',
    metadata TEXT NOT NULL DEFAULT '{}'
)
"""

_COLUMNS = (
    "id, asset_id, title, description, type, priority, scheduled_date, completed_date, "
    "assigned_to, estimated_duration, is_completed, is_active, checklist, metadata"
)

# Open (not completed) and active items only.
_OPEN = "is_completed = 0 AND is_active = 1"


class MaintenanceStore(SQLiteStore):
    """Reads open maintenance items by date window and priority."""

    _SCHEMA = (_CREATE_TABLE,)

    async def add(self, item: MaintenanceItem) -> MaintenanceItem:
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO maintenance_schedules ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                item.to_row(),
            )
            await db.commit()
            return item
        finally:
            await db.close()

    async def get(self, item_id: str) -> MaintenanceItem | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM maintenance_schedules WHERE id = ?", (item_id,)
            )
            row = await cursor.fetchone()
            return MaintenanceItem.from_row(row) if row else None
        finally:
            await db.close()

    async def _select(self, where: str, params: tuple) -> list[MaintenanceItem]:
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM maintenance_schedules WHERE {where} "
                "ORDER BY scheduled_date ASC",
                params,
            )
            rows = await cursor.fetchall()
            return [MaintenanceItem.from_row(row) for row in rows]
        finally:
            await db.close()

    async def find_scheduled_between(
        self,
        start: datetime,
        end: datetime,
        priorities: Iterable[str],
    ) -> list[MaintenanceItem]:
        """Open items scheduled in ``[start, end]`` matching any of *priorities*."""
        priority_list = [MaintenancePriority(p).value for p in priorities]
        if not priority_list:
            return []
        placeholders = ", ".join("?" for _ in priority_list)
        return await self._select(
            f"{_OPEN} AND scheduled_date >= ? AND scheduled_date <= ? "
            f"AND priority IN ({placeholders})",
            (to_iso(start), to_iso(end), *priority_list),
        )

    async def list_upcoming(self, now: datetime, days: int = 30) -> list[MaintenanceItem]:
        """Open items scheduled on or before ``now + days``."""
        return await self._select(
            f"{_OPEN} AND scheduled_date <= ?", (to_iso(now + timedelta(days=days)),)
        )

    async def list_overdue(self, now: datetime) -> list[MaintenanceItem]:
        """Open items whose scheduled date has passed."""
        return await self._select(f"{_OPEN} AND scheduled_date <= ?", (to_iso(now),))

    async def complete(self, item_id: str, now: datetime) -> MaintenanceItem | None:
        """Mark an item completed. Returns None if unknown."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE maintenance_schedules SET is_completed = 1, completed_date = ? "
                "WHERE id = ?",
                (to_iso(now), item_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
        finally:
            await db.close()
        logger.info("Completed maintenance item %s", item_id)
        return await self.get(item_id)
