"""Scheduled task system — models, persistence, live timers and orchestration."""

from asset_scheduler.scheduler.models import (
    Execution,
    ExecutionStatus,
    Task,
    TaskStatus,
    TaskType,
)
from asset_scheduler.scheduler.registry import ExecutionRecorder, SchedulerRegistry
from asset_scheduler.scheduler.service import TaskExecutionRecorder, TaskService
from asset_scheduler.scheduler.store import ExecutionStore, TaskStore

__all__ = [
    "Execution",
    "ExecutionRecorder",
    "ExecutionStatus",
    "ExecutionStore",
    "SchedulerRegistry",
    "Task",
    "TaskExecutionRecorder",
    "TaskService",
    "TaskStatus",
    "TaskStore",
    "TaskType",
]
