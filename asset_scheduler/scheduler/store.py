"""TaskStore and ExecutionStore — aiosqlite persistence for tasks and their runs."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from asset_scheduler.clock import to_iso, utcnow
from asset_scheduler.db import SQLiteStore
from asset_scheduler.scheduler.models import Execution, Task, TaskStatus

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)

_CREATE_TASKS = """
CREATE TABLE IF NOT EXISTS scheduled_tasks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    type TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    cron_expression TEXT NOT NULL,
    configuration TEXT NOT NULL DEFAULT '{}',
    last_executed_at TEXT,
    next_execution_at TEXT,
    execution_count INTEGER NOT NULL DEFAULT 0,
    failure_count INTEGER NOT NULL DEFAULT 0,
    is_enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

_CREATE_EXECUTIONS = """
CREATE TABLE IF NOT EXISTS task_executions (
    id TEXT PRIMARY KEY,
    task_id TEXT NOT NULL,
    status TEXT NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    output TEXT,
    error_message TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
)
"""

_CREATE_EXECUTIONS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_task_executions_task
    ON task_executions (task_id, created_at)
"""

_TASK_COLUMNS = (
    "id, name, description, type, status, cron_expression, configuration, "
    "last_executed_at, next_execution_at, execution_count, failure_count, "
    "is_enabled, created_at, updated_at"
)


class TaskStore(SQLiteStore):
    """Persists task definitions in SQLite.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _SCHEMA = (_CREATE_TASKS,)

    # -- CRUD ------------------------------------------------------------------

    async def add_task(self, task: Task) -> Task:
        """Insert a new task. Returns the same task object."""
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO scheduled_tasks ({_TASK_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                task.to_row(),
            )
            await db.commit()
            logger.info("Added task: %s (%s)", task.name, task.id)
            return task
        finally:
            await db.close()

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_TASK_COLUMNS} FROM scheduled_tasks WHERE id = ?", (task_id,)
            )
            row = await cursor.fetchone()
            return Task.from_row(row) if row else None
        finally:
            await db.close()

    async def list_tasks(self, *, live_only: bool = False) -> list[Task]:
        """Return tasks newest first; *live_only* keeps enabled + active ones."""
        query = f"SELECT {_TASK_COLUMNS} FROM scheduled_tasks"
        params: tuple = ()
        if live_only:
            query += " WHERE is_enabled = 1 AND status = ?"
            params = (TaskStatus.ACTIVE.value,)
        query += " ORDER BY created_at DESC, rowid DESC"
        db = await self._connect()
        try:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [Task.from_row(row) for row in rows]
        finally:
            await db.close()

    async def save_task(self, task: Task) -> bool:
        """Write the admin-editable fields of *task* back to its row.

        Execution counters and ``last_executed_at`` are owned by
        :meth:`record_run` and are never written here. Returns False when the row no
        longer exists.
        """
        task.updated_at = to_iso(utcnow())
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                UPDATE scheduled_tasks
                SET name = ?, description = ?, type = ?, status = ?,
                    cron_expression = ?, configuration = ?, is_enabled = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    task.name,
                    task.description,
                    task.task_type.value,
                    task.status.value,
                    task.cron_expression,
                    json.dumps(task.configuration),
                    int(task.is_enabled),
                    task.updated_at,
                    task.id,
                ),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task row. Returns True if a row was removed."""
        db = await self._connect()
        try:
            cursor = await db.execute("DELETE FROM scheduled_tasks WHERE id = ?", (task_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("Deleted task: %s", task_id)
            return deleted
        finally:
            await db.close()

    # -- Run bookkeeping -------------------------------------------------------

    async def record_run(self, task_id: str, completed_at: str, *, failed: bool) -> bool:
        """Atomically bump the run counters and set ``last_executed_at``.

        Returns False when the task row no longer exists.
        """
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                UPDATE scheduled_tasks
                SET execution_count = execution_count + 1,
                    failure_count = failure_count + ?,
                    last_executed_at = ?
                WHERE id = ?
                """,
                (int(failed), completed_at, task_id),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    async def update_next_run(self, task_id: str, when: datetime | None) -> None:
        """Set or clear the next_execution_at timestamp."""
        db = await self._connect()
        try:
            await db.execute(
                "UPDATE scheduled_tasks SET next_execution_at = ? WHERE id = ?",
                (to_iso(when) if when else None, task_id),
            )
            await db.commit()
        finally:
            await db.close()


class ExecutionStore(SQLiteStore):
    """Append-only log of task executions."""

    _SCHEMA = (_CREATE_EXECUTIONS, _CREATE_EXECUTIONS_INDEX)

    async def add_execution(self, execution: Execution) -> Execution:
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO task_executions
                    (id, task_id, status, started_at, completed_at, output,
                     error_message, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                execution.to_row(),
            )
            await db.commit()
            return execution
        finally:
            await db.close()

    async def list_for_task(self, task_id: str, limit: int | None = None) -> list[Execution]:
        """Return a task's executions, most recent first."""
        query = (
            "SELECT id, task_id, status, started_at, completed_at, output, "
            "error_message, metadata, created_at FROM task_executions "
            "WHERE task_id = ? ORDER BY created_at DESC, rowid DESC"
        )
        params: tuple = (task_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (task_id, limit)
        db = await self._connect()
        try:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [Execution.from_row(row) for row in rows]
        finally:
            await db.close()
