"""Async SQLite connection helper over aiosqlite.

Every store opens a short-lived connection per operation.  The target file is
``settings.database_path`` unless a store was built with an explicit path
(test isolation).  WAL mode plus a busy timeout lets a firing's stats update
and a concurrent admin edit share the file without ``database is locked``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite

from asset_scheduler.config import settings

if TYPE_CHECKING:
    from pathlib import Path


async def get_connection(local_path_override: Path | None = None) -> aiosqlite.Connection:
    """Open an aiosqlite connection with busy timeout and WAL mode."""
    path = local_path_override or settings.database_path
    path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(path))
    await db.execute("PRAGMA busy_timeout=5000")
    await db.execute("PRAGMA journal_mode=WAL")
    return db


class SQLiteStore:
    """Base for stores that lazily create their table on first connect.

    Subclasses set ``_SCHEMA`` to one or more ``CREATE TABLE IF NOT EXISTS``
    statements.
    """

    _SCHEMA: tuple[str, ...] = ()

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    async def _connect(self) -> aiosqlite.Connection:
        db = await get_connection(local_path_override=self._db_path)
        if not self._initialised:
            for statement in self._SCHEMA:
                await db.execute(statement)
            await db.commit()
            self._initialised = True
        return db
