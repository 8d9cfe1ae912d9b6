"""AssetStore — SQLite access to assets for overdue detection."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from asset_scheduler.clock import to_iso
from asset_scheduler.db import SQLiteStore
from asset_scheduler.domain.models import Asset, AssetStatus

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from typing import Any

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS assets (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    asset_code TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    due_date TEXT,
    assigned_to TEXT,
    metadata TEXT NOT NULL DEFAULT '{}'
)
"""

_COLUMNS = "id, name, asset_code, status, due_date, assigned_to, metadata"


class AssetStore(SQLiteStore):
    """Reads assets by status and due date; writes per-asset metadata."""

    _SCHEMA = (_CREATE_TABLE,)

    async def add(self, asset: Asset) -> Asset:
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO assets ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                asset.to_row(),
            )
            await db.commit()
            return asset
        finally:
            await db.close()

    async def get(self, asset_id: str) -> Asset | None:
        db = await self._connect()
        try:
            cursor = await db.execute(f"SELECT {_COLUMNS} FROM assets WHERE id = ?", (asset_id,))
            row = await cursor.fetchone()
            return Asset.from_row(row) if row else None
        finally:
            await db.close()

    async def find_due_before(self, statuses: Iterable[str], cutoff: datetime) -> list[Asset]:
        """Assets whose status is in *statuses* and whose due date is before *cutoff*."""
        status_list = [AssetStatus(s).value for s in statuses]
        if not status_list:
            return []
        placeholders = ", ".join("?" for _ in status_list)
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM assets "
                f"WHERE status IN ({placeholders}) AND due_date IS NOT NULL AND due_date < ? "
                "ORDER BY due_date ASC",
                (*status_list, to_iso(cutoff)),
            )
            rows = await cursor.fetchall()
            return [Asset.from_row(row) for row in rows]
        finally:
            await db.close()

    async def list_overdue(self, now: datetime) -> list[Asset]:
        """Active assets past their due date, oldest due date first."""
        return await self.find_due_before([AssetStatus.ACTIVE], now)

    async def update_metadata(self, asset_id: str, updates: dict[str, Any]) -> Asset | None:
        """Merge *updates* into an asset's metadata. Returns None if unknown."""
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT metadata FROM assets WHERE id = ?", (asset_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            metadata = {**(json.loads(row[0]) if row[0] else {}), **updates}
            await db.execute(
                "UPDATE assets SET metadata = ? WHERE id = ?",
                (json.dumps(metadata, default=str), asset_id),
            )
            await db.commit()
        finally:
            await db.close()
        return await self.get(asset_id)

    async def mark_overdue(self, asset_id: str, now: datetime) -> Asset | None:
        """Flag an asset as overdue in its metadata. Returns None if unknown."""
        asset = await self.update_metadata(
            asset_id, {"isOverdue": True, "overdueMarkedAt": to_iso(now)}
        )
        if asset is not None:
            logger.info("Marked asset %s as overdue", asset_id)
        return asset
