"""TaskService — CRUD over scheduled tasks, kept in sync with live timers."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from asset_scheduler.errors import InvalidScheduleError, NotFoundError
from asset_scheduler.scheduler.models import Task, TaskStatus, TaskType, make_id
from asset_scheduler.scheduler.registry import build_trigger

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from asset_scheduler.scheduler.models import Execution
    from asset_scheduler.scheduler.registry import SchedulerRegistry
    from asset_scheduler.scheduler.store import ExecutionStore, TaskStore

logger = logging.getLogger(__name__)

# Fields an admin patch may change.
_PATCHABLE = frozenset(
    {
        "name",
        "description",
        "task_type",
        "status",
        "cron_expression",
        "configuration",
        "is_enabled",
    }
)


class TaskExecutionRecorder:
    """Persists registry outcomes: one execution row plus the task's stats."""

    def __init__(self, task_store: TaskStore, execution_store: ExecutionStore) -> None:
        self._tasks = task_store
        self._executions = execution_store

    async def record_execution(self, execution: Execution) -> None:
        await self._executions.add_execution(execution)
        found = await self._tasks.record_run(
            execution.task_id, execution.completed_at, failed=execution.failed
        )
        if not found:
            logger.info(
                "Recorded execution %s for task %s, which no longer exists",
                execution.id,
                execution.task_id,
            )

    async def record_next_run(self, task_id: str, when: datetime | None) -> None:
        await self._tasks.update_next_run(task_id, when)


class TaskService:
    """Create, edit, pause and delete tasks.

    Every mutation that can change a task's liveness is followed by a
    re-evaluation of its timer in the registry. Update, toggle and remove on
    the same task are serialized, so a timer is never re-armed for a task
    that a concurrent remove has deleted.

    Args:
        task_store: TaskStore for task definitions.
        execution_store: ExecutionStore for run history.
        registry: SchedulerRegistry owning the live timers.
    """

    def __init__(
        self,
        task_store: TaskStore,
        execution_store: ExecutionStore,
        registry: SchedulerRegistry,
    ) -> None:
        self._store = task_store
        self._executions = execution_store
        self._registry = registry
        self._locks: dict[str, asyncio.Lock] = {}

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Arm timers for every live task and start the scheduler."""
        tasks = await self._store.list_tasks(live_only=True)
        for task in tasks:
            try:
                await self._registry.register_task(task)
            except InvalidScheduleError:
                logger.exception("Not scheduling task '%s' (%s)", task.name, task.id)
        await self._registry.start()

    async def stop(self) -> None:
        await self._registry.stop()

    # -- CRUD ------------------------------------------------------------------

    async def create(self, definition: Mapping[str, Any]) -> Task:
        """Persist a new task and arm its timer if it is live.

        Raises:
            InvalidScheduleError: if the cron expression cannot be parsed.
        """
        task = Task(
            id=make_id(),
            name=definition["name"],
            task_type=TaskType(definition["task_type"]),
            cron_expression=definition["cron_expression"],
            description=definition.get("description"),
            configuration=dict(definition.get("configuration") or {}),
            status=TaskStatus(definition.get("status") or TaskStatus.ACTIVE),
            is_enabled=definition.get("is_enabled", True),
        )
        build_trigger(task.cron_expression)
        await self._store.add_task(task)
        if task.is_live:
            await self._registry.register_task(task)
        return await self.find_one(task.id)

    async def find_all(self) -> list[Task]:
        """All tasks, newest first, each with its execution history."""
        tasks = await self._store.list_tasks()
        for task in tasks:
            task.executions = await self._executions.list_for_task(task.id)
        return tasks

    async def find_one(self, task_id: str) -> Task:
        task = await self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        task.executions = await self._executions.list_for_task(task_id)
        return task

    async def update(self, task_id: str, patch: Mapping[str, Any]) -> Task:
        """Merge *patch* onto a task, then re-arm or disarm its timer."""
        unknown = set(patch) - _PATCHABLE
        if unknown:
            msg = f"Cannot update field(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        async with self._lock_for(task_id):
            task = await self.find_one(task_id)
            for key, value in patch.items():
                if key == "task_type":
                    value = TaskType(value)
                elif key == "status":
                    value = TaskStatus(value)
                elif key == "configuration":
                    value = dict(value or {})
                setattr(task, key, value)

            build_trigger(task.cron_expression)
            await self._save_and_sync(task)
            logger.info("Updated task '%s' (%s): %s", task.name, task.id, sorted(patch))
            return await self.find_one(task_id)

    async def remove(self, task_id: str) -> None:
        """Disarm and delete a task. Its executions are kept for audit."""
        try:
            async with self._lock_for(task_id):
                task = await self.find_one(task_id)
                await self._registry.unregister_task(task.id)
                await self._store.delete_task(task.id)
        finally:
            self._locks.pop(task_id, None)

    async def toggle_status(self, task_id: str) -> Task:
        """Flip ``is_enabled`` and re-evaluate the task's timer."""
        async with self._lock_for(task_id):
            task = await self.find_one(task_id)
            task.is_enabled = not task.is_enabled
            if task.is_live:
                build_trigger(task.cron_expression)
            await self._save_and_sync(task)
            logger.info(
                "Task '%s' (%s) %s",
                task.name,
                task.id,
                "enabled" if task.is_enabled else "disabled",
            )
            return await self.find_one(task_id)

    async def get_task_executions(self, task_id: str) -> list[Execution]:
        """Executions for *task_id*, most recent first (deleted tasks included)."""
        return await self._executions.list_for_task(task_id)

    async def run_task(self, task_id: str) -> Execution | None:
        """Fire a task immediately, outside its schedule.

        Returns None if a previous firing of the task is still running.
        """
        task = await self.find_one(task_id)
        return await self._registry.execute_task(task)

    # -- Internal --------------------------------------------------------------

    def _lock_for(self, task_id: str) -> asyncio.Lock:
        """Admin edits to one task run one at a time."""
        return self._locks.setdefault(task_id, asyncio.Lock())

    async def _save_and_sync(self, task: Task) -> None:
        saved = await self._store.save_task(task)
        await self._registry.unregister_task(task.id)
        if not saved:
            raise NotFoundError("Task", task.id)
        if task.is_live:
            await self._registry.register_task(task)
