"""SchedulerRegistry — owns live cron timers and records every firing."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from asset_scheduler.clock import to_iso, utcnow
from asset_scheduler.config import settings
from asset_scheduler.errors import InvalidScheduleError
from asset_scheduler.scheduler.models import Execution, ExecutionStatus, make_id

if TYPE_CHECKING:
    from apscheduler.job import Job

    from asset_scheduler.clock import Clock
    from asset_scheduler.handlers.base import HandlerMap
    from asset_scheduler.scheduler.models import Task

logger = logging.getLogger(__name__)


class ExecutionRecorder(Protocol):
    """Sink for firing outcomes, implemented by the orchestration layer."""

    async def record_execution(self, execution: Execution) -> None:
        """Persist a finalized execution and update its task's run stats."""
        ...

    async def record_next_run(self, task_id: str, when: datetime | None) -> None:
        """Persist (or clear) a task's next planned firing time."""
        ...


def build_trigger(cron_expression: str, timezone: str | None = None) -> CronTrigger:
    """Parse a crontab string, raising ``InvalidScheduleError`` on bad input."""
    try:
        return CronTrigger.from_crontab(
            cron_expression, timezone=timezone or settings.scheduler_timezone
        )
    except (ValueError, TypeError) as exc:
        raise InvalidScheduleError(cron_expression, str(exc)) from exc


class SchedulerRegistry:
    """Maps task ids to APScheduler jobs and dispatches each tick to a handler.

    Each registry instance owns its own ``AsyncIOScheduler`` and its own
    ``task id -> job`` map.  Handler errors never escape :meth:`execute_task`;
    they become Failed executions.

    Args:
        handlers: HandlerMap resolving a task type to its handler.
        recorder: Where finalized executions are sent.
        timezone: IANA timezone for cron evaluation (default from settings).
        clock: Returns the current time; overridable in tests.
    """

    def __init__(
        self,
        handlers: HandlerMap,
        recorder: ExecutionRecorder,
        timezone: str | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._handlers = handlers
        self._recorder = recorder
        self._timezone = timezone or settings.scheduler_timezone
        self._clock = clock
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._jobs: dict[str, Job] = {}
        self._in_flight: set[str] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Start firing registered timers."""
        if self._running:
            return
        self._scheduler.start()
        self._running = True
        logger.info(
            "Scheduler started with %d live task(s) (tz=%s)", len(self._jobs), self._timezone
        )

    async def stop(self) -> None:
        """Shut down the scheduler. In-flight firings are not awaited."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    # -- Timer management ------------------------------------------------------

    async def register_task(self, task: Task) -> None:
        """Arm a cron timer for *task*, replacing any existing one.

        Raises:
            InvalidScheduleError: if ``task.cron_expression`` cannot be parsed.
        """
        trigger = build_trigger(task.cron_expression, self._timezone)
        self._remove_job(task.id)
        self._jobs[task.id] = self._scheduler.add_job(
            self._fire,
            trigger=trigger,
            id=task.id,
            name=task.name,
            args=[task],
            coalesce=True,
            misfire_grace_time=settings.misfire_grace_seconds,
            replace_existing=True,
        )
        logger.info("Registered task: %s (%s) cron=%r", task.name, task.id, task.cron_expression)
        await self._recorder.record_next_run(task.id, self.next_run_time(task.id))

    async def unregister_task(self, task_id: str) -> bool:
        """Cancel future ticks for *task_id*. Returns False if nothing was armed."""
        removed = self._remove_job(task_id)
        if removed:
            logger.info("Unregistered task: %s", task_id)
            await self._recorder.record_next_run(task_id, None)
        return removed

    def is_registered(self, task_id: str) -> bool:
        return task_id in self._jobs

    def registered_ids(self) -> list[str]:
        return list(self._jobs)

    def next_run_time(self, task_id: str) -> datetime | None:
        """Next planned firing of *task_id*, or None if it has no timer."""
        job = self._jobs.get(task_id)
        if job is None:
            return None
        # Jobs added before start() are pending and carry no next_run_time yet.
        next_run = getattr(job, "next_run_time", None)
        if next_run is None:
            next_run = job.trigger.get_next_fire_time(None, self._clock())
        return next_run

    def _remove_job(self, task_id: str) -> bool:
        job = self._jobs.pop(task_id, None)
        if job is None:
            return False
        try:
            self._scheduler.remove_job(task_id)
        except JobLookupError:
            logger.debug("Job %s not found in scheduler (may already be removed)", task_id)
        return True

    # -- Execution -------------------------------------------------------------

    async def _fire(self, task: Task) -> None:
        """Callback invoked by APScheduler on each tick."""
        await self.execute_task(task)
        if task.id in self._jobs:
            await self._recorder.record_next_run(task.id, self.next_run_time(task.id))

    async def execute_task(self, task: Task) -> Execution | None:
        """Run *task*'s handler once and record the outcome.

        Returns the recorded execution, or None when the tick was skipped
        because a previous firing of the same task is still running.
        """
        if task.id in self._in_flight:
            logger.warning(
                "Skipping tick for task '%s' (%s): previous run still in flight",
                task.name,
                task.id,
            )
            return None
        self._in_flight.add(task.id)
        try:
            return await self._run(task)
        finally:
            self._in_flight.discard(task.id)

    def is_in_flight(self, task_id: str) -> bool:
        return task_id in self._in_flight

    async def _run(self, task: Task) -> Execution:
        started_at = self._clock()
        started = time.monotonic()
        logger.info("Executing task: '%s' (%s) type=%s", task.name, task.id, task.task_type)

        try:
            handler = self._handlers.resolve(task.task_type)
            result = await handler.handle(dict(task.configuration))
        except Exception as exc:
            logger.exception("Task failed: '%s' (%s)", task.name, task.id)
            execution = Execution(
                id=make_id(),
                task_id=task.id,
                status=ExecutionStatus.FAILED,
                started_at=to_iso(started_at),
                completed_at=to_iso(self._clock()),
                error_message=str(exc) or type(exc).__name__,
                metadata={"executionTime": _elapsed_ms(started)},
            )
        else:
            execution = Execution(
                id=make_id(),
                task_id=task.id,
                status=ExecutionStatus.SUCCESS,
                started_at=to_iso(started_at),
                completed_at=to_iso(self._clock()),
                output=json.dumps(result, default=str),
                metadata={"executionTime": _elapsed_ms(started)},
            )
            logger.info("Task completed successfully: '%s' (%s)", task.name, task.id)

        try:
            await self._recorder.record_execution(execution)
        except Exception:
            logger.exception("Could not record execution %s of task %s", execution.id, task.id)
        return execution


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
