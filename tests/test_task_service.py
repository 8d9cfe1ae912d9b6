"""Tests for TaskService — CRUD kept in sync with the registry."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from asset_scheduler.errors import InvalidScheduleError, NotFoundError
from asset_scheduler.handlers.base import HandlerMap
from asset_scheduler.scheduler.models import ExecutionStatus, TaskStatus, TaskType
from asset_scheduler.scheduler.registry import SchedulerRegistry
from asset_scheduler.scheduler.service import TaskExecutionRecorder, TaskService
from asset_scheduler.scheduler.store import ExecutionStore, TaskStore

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


# -- Helpers -------------------------------------------------------------------


class FakeHandler:
    def __init__(self) -> None:
        self.calls = 0
        self.fail = False

    async def handle(self, configuration: dict) -> dict:
        self.calls += 1
        if self.fail:
            raise RuntimeError("handler exploded")
        return {"totalAffected": 0}


@pytest.fixture
def handler() -> FakeHandler:
    return FakeHandler()


@pytest.fixture
def registry(
    handler: FakeHandler, task_store: TaskStore, execution_store: ExecutionStore
) -> SchedulerRegistry:
    handlers = HandlerMap()
    handlers.register(TaskType.LOW_STOCK_DETECTION, handler)
    recorder = TaskExecutionRecorder(task_store, execution_store)
    return SchedulerRegistry(handlers, recorder, timezone="UTC", clock=lambda: NOW)


@pytest.fixture
def service(
    task_store: TaskStore, execution_store: ExecutionStore, registry: SchedulerRegistry
) -> TaskService:
    return TaskService(task_store, execution_store, registry)


def _definition(**kwargs) -> dict:
    definition = {
        "name": "Stock check",
        "task_type": "low_stock_detection",
        "cron_expression": "*/5 * * * *",
        "configuration": {"notifyUsers": ["ops"]},
    }
    definition.update(kwargs)
    return definition


async def _advance(registry: SchedulerRegistry, start: datetime, until: datetime) -> int:
    """Fire every armed job whose ticks fall in ``[start, until]``."""
    fired = 0
    for job in registry._scheduler.get_jobs():
        next_fire = job.trigger.get_next_fire_time(None, start)
        while next_fire is not None and next_fire <= until:
            await job.func(*job.args)
            fired += 1
            next_fire = job.trigger.get_next_fire_time(next_fire, next_fire)
    return fired


# -- create --------------------------------------------------------------------


async def test_create_applies_defaults_and_arms_timer(
    service: TaskService, registry: SchedulerRegistry
) -> None:
    task = await service.create(_definition())

    assert task.status == TaskStatus.ACTIVE
    assert task.is_enabled is True
    assert task.execution_count == 0
    assert task.failure_count == 0
    assert task.executions == []
    assert task.next_execution_at is not None
    assert registry.is_registered(task.id)


async def test_create_inactive_task_is_not_armed(
    service: TaskService, registry: SchedulerRegistry
) -> None:
    paused = await service.create(_definition(status="paused"))
    disabled = await service.create(_definition(is_enabled=False))

    assert not registry.is_registered(paused.id)
    assert not registry.is_registered(disabled.id)
    assert paused.next_execution_at is None


async def test_create_rejects_invalid_cron(service: TaskService, task_store: TaskStore) -> None:
    with pytest.raises(InvalidScheduleError):
        await service.create(_definition(cron_expression="every tuesday"))
    with pytest.raises(InvalidScheduleError):
        await service.create(_definition(cron_expression="bad", is_enabled=False))

    assert await task_store.list_tasks() == []


async def test_create_rejects_unknown_task_type(service: TaskService) -> None:
    with pytest.raises(ValueError):
        await service.create(_definition(task_type="nonsense"))


# -- find ----------------------------------------------------------------------


async def test_find_one_missing_raises(service: TaskService) -> None:
    with pytest.raises(NotFoundError, match="Task with ID missing not found"):
        await service.find_one("missing")


async def test_find_all_attaches_executions(service: TaskService) -> None:
    first = await service.create(_definition(name="First"))
    await service.create(_definition(name="Second"))
    await service.run_task(first.id)

    tasks = await service.find_all()
    by_name = {t.name: t for t in tasks}
    assert len(by_name["First"].executions) == 1
    assert by_name["Second"].executions == []


# -- update --------------------------------------------------------------------


async def test_update_cron_rearms_timer(service: TaskService, registry: SchedulerRegistry) -> None:
    task = await service.create(_definition())

    updated = await service.update(task.id, {"cron_expression": "0 9 * * *"})

    assert updated.cron_expression == "0 9 * * *"
    assert registry.is_registered(task.id)
    assert registry.next_run_time(task.id) == datetime(2025, 6, 16, 9, 0, tzinfo=UTC)
    assert updated.next_execution_at == "2025-06-16T09:00:00.000000+00:00"


async def test_update_status_to_paused_disarms(
    service: TaskService, registry: SchedulerRegistry
) -> None:
    task = await service.create(_definition())

    updated = await service.update(task.id, {"status": "paused"})

    assert updated.status == TaskStatus.PAUSED
    assert not registry.is_registered(task.id)
    assert updated.next_execution_at is None


async def test_update_invalid_cron_leaves_task_untouched(
    service: TaskService, registry: SchedulerRegistry
) -> None:
    task = await service.create(_definition())

    with pytest.raises(InvalidScheduleError):
        await service.update(task.id, {"cron_expression": "nope"})

    fetched = await service.find_one(task.id)
    assert fetched.cron_expression == "*/5 * * * *"
    assert registry.is_registered(task.id)


async def test_update_unknown_field_rejected(service: TaskService) -> None:
    task = await service.create(_definition())
    with pytest.raises(ValueError, match="execution_count"):
        await service.update(task.id, {"execution_count": 99})


async def test_update_missing_task(service: TaskService) -> None:
    with pytest.raises(NotFoundError):
        await service.update("missing", {"name": "x"})


async def test_update_concurrent_with_firing_keeps_both(service: TaskService) -> None:
    task = await service.create(_definition())

    await asyncio.gather(
        service.update(task.id, {"name": "Renamed"}),
        service.run_task(task.id),
    )

    fetched = await service.find_one(task.id)
    assert fetched.name == "Renamed"
    assert fetched.execution_count == 1


# -- concurrent admin edits ----------------------------------------------------


async def test_update_racing_remove_leaves_no_timer(
    service: TaskService, registry: SchedulerRegistry, task_store: TaskStore
) -> None:
    task = await service.create(_definition())

    results = await asyncio.gather(
        service.update(task.id, {"name": "Renamed"}),
        service.remove(task.id),
        return_exceptions=True,
    )

    assert results[1] is None
    assert await task_store.get_task(task.id) is None
    assert not registry.is_registered(task.id)
    assert registry.registered_ids() == []


async def test_update_after_concurrent_remove_is_not_found(
    service: TaskService, registry: SchedulerRegistry, task_store: TaskStore
) -> None:
    task = await service.create(_definition())

    removed, updated = await asyncio.gather(
        service.remove(task.id),
        service.update(task.id, {"cron_expression": "0 9 * * *"}),
        return_exceptions=True,
    )

    assert removed is None
    assert isinstance(updated, NotFoundError)
    assert await task_store.get_task(task.id) is None
    assert not registry.is_registered(task.id)


async def test_toggle_racing_remove_leaves_no_timer(
    service: TaskService, registry: SchedulerRegistry, task_store: TaskStore
) -> None:
    task = await service.create(_definition(is_enabled=False))

    await asyncio.gather(
        service.remove(task.id),
        service.toggle_status(task.id),
        return_exceptions=True,
    )

    assert await task_store.get_task(task.id) is None
    assert not registry.is_registered(task.id)


async def test_concurrent_patches_are_both_applied(
    service: TaskService, registry: SchedulerRegistry, task_store: TaskStore
) -> None:
    task = await service.create(_definition())

    await asyncio.gather(
        service.update(task.id, {"status": "paused"}),
        service.update(task.id, {"name": "Renamed"}),
    )

    stored = await task_store.get_task(task.id)
    assert stored.status == TaskStatus.PAUSED
    assert stored.name == "Renamed"
    assert registry.is_registered(task.id) == stored.is_live


async def test_toggle_racing_update_keeps_timer_consistent(
    service: TaskService, registry: SchedulerRegistry, task_store: TaskStore
) -> None:
    task = await service.create(_definition())

    await asyncio.gather(
        service.toggle_status(task.id),
        service.update(task.id, {"cron_expression": "0 9 * * *"}),
    )

    stored = await task_store.get_task(task.id)
    assert stored.is_enabled is False
    assert stored.cron_expression == "0 9 * * *"
    assert registry.is_registered(task.id) == stored.is_live
    assert not registry.is_registered(task.id)


# -- toggle_status -------------------------------------------------------------


async def test_toggle_disables_then_restores(
    service: TaskService, registry: SchedulerRegistry
) -> None:
    task = await service.create(_definition())

    off = await service.toggle_status(task.id)
    assert off.is_enabled is False
    assert not registry.is_registered(task.id)

    on = await service.toggle_status(task.id)
    assert on.is_enabled is True
    assert registry.is_registered(task.id)
    assert on.status == task.status
    assert on.cron_expression == task.cron_expression


async def test_toggle_on_paused_task_keeps_it_unarmed(
    service: TaskService, registry: SchedulerRegistry
) -> None:
    task = await service.create(_definition(status="paused", is_enabled=False))

    toggled = await service.toggle_status(task.id)

    assert toggled.is_enabled is True
    assert not registry.is_registered(task.id)


async def test_toggle_missing_task(service: TaskService) -> None:
    with pytest.raises(NotFoundError):
        await service.toggle_status("missing")


# -- remove --------------------------------------------------------------------


async def test_remove_disarms_and_keeps_history(
    service: TaskService, registry: SchedulerRegistry
) -> None:
    task = await service.create(_definition())
    await service.run_task(task.id)

    await service.remove(task.id)

    assert not registry.is_registered(task.id)
    with pytest.raises(NotFoundError):
        await service.find_one(task.id)
    assert len(await service.get_task_executions(task.id)) == 1


async def test_remove_missing_task(service: TaskService) -> None:
    with pytest.raises(NotFoundError):
        await service.remove("missing")


async def test_removed_task_never_fires_again(
    service: TaskService, registry: SchedulerRegistry, handler: FakeHandler
) -> None:
    doomed = await service.create(_definition(name="Doomed"))
    survivor = await service.create(_definition(name="Survivor"))

    assert await _advance(registry, NOW, NOW + timedelta(minutes=4)) == 2
    await service.remove(doomed.id)
    handler.calls = 0

    await _advance(registry, NOW + timedelta(minutes=5), NOW + timedelta(hours=1))

    assert len(await service.get_task_executions(doomed.id)) == 1
    assert len(await service.get_task_executions(survivor.id)) == 13
    assert handler.calls == 12


# -- run_task / stats ----------------------------------------------------------


async def test_run_task_records_execution_and_stats(
    service: TaskService, handler: FakeHandler
) -> None:
    task = await service.create(_definition())

    ok = await service.run_task(task.id)
    handler.fail = True
    failed = await service.run_task(task.id)

    assert ok.status == ExecutionStatus.SUCCESS
    assert failed.status == ExecutionStatus.FAILED
    assert failed.error_message == "handler exploded"

    fetched = await service.find_one(task.id)
    assert fetched.execution_count == 2
    assert fetched.failure_count == 1
    assert fetched.last_executed_at == failed.completed_at
    assert [e.id for e in fetched.executions] == [failed.id, ok.id]


async def test_run_task_missing(service: TaskService) -> None:
    with pytest.raises(NotFoundError):
        await service.run_task("missing")


async def test_unknown_type_firing_counts_as_failure(service: TaskService) -> None:
    task = await service.create(_definition(task_type="custom"))

    execution = await service.run_task(task.id)

    assert execution.status == ExecutionStatus.FAILED
    assert "Unknown task type" in execution.error_message
    fetched = await service.find_one(task.id)
    assert fetched.failure_count == 1


async def test_get_task_executions_unknown_task_is_empty(service: TaskService) -> None:
    assert await service.get_task_executions("missing") == []


# -- start / stop --------------------------------------------------------------


async def test_start_arms_live_tasks_only(
    service: TaskService, task_store: TaskStore, execution_store: ExecutionStore
) -> None:
    live = await service.create(_definition(name="Live"))
    paused = await service.create(_definition(name="Paused", status="paused"))
    broken = await service.create(_definition(name="Broken"))
    # Simulate a row whose cron became unparseable out-of-band.
    broken.cron_expression = "garbage"
    await task_store.save_task(broken)

    recorder = TaskExecutionRecorder(task_store, execution_store)
    fresh = SchedulerRegistry(HandlerMap(), recorder, timezone="UTC", clock=lambda: NOW)
    restarted = TaskService(task_store, execution_store, fresh)
    await restarted.start()
    try:
        assert fresh.running
        assert fresh.is_registered(live.id)
        assert not fresh.is_registered(paused.id)
        assert not fresh.is_registered(broken.id)
    finally:
        await restarted.stop()
    assert not fresh.running
