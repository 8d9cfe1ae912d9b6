"""Task and Execution data models."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from asset_scheduler.clock import to_iso, utcnow


class TaskType(StrEnum):
    OVERDUE_ASSET_DETECTION = "overdue_asset_detection"
    MAINTENANCE_REMINDER = "maintenance_reminder"
    LOW_STOCK_DETECTION = "low_stock_detection"
    CUSTOM = "custom"


class TaskStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PAUSED = "paused"


class ExecutionStatus(StrEnum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class Task:
    """A recurring unit of scheduled work.

    Attributes:
        id: Unique identifier (UUID hex).
        name: Human-readable name.
        task_type: Selects the handler that runs on each firing.
        cron_expression: Five-field crontab string.
        configuration: Handler-specific options, passed through untouched.
        description: Optional longer description.
        status: Lifecycle status; only ``active`` tasks are scheduled.
        is_enabled: Admin on/off switch, flipped by ``toggle_status``.
        last_executed_at: ISO 8601 completion time of the latest firing.
        next_execution_at: ISO 8601 time of the next planned firing.
        execution_count: Number of recorded firings.
        failure_count: Number of recorded failed firings.
        created_at: ISO 8601 timestamp.
        updated_at: ISO 8601 timestamp of the last admin edit.
        executions: Execution history, attached on reads only.
    """

    id: str
    name: str
    task_type: TaskType
    cron_expression: str
    configuration: dict[str, Any] = field(default_factory=dict)
    description: str | None = None
    status: TaskStatus = TaskStatus.ACTIVE
    is_enabled: bool = True
    last_executed_at: str | None = None
    next_execution_at: str | None = None
    execution_count: int = 0
    failure_count: int = 0
    created_at: str = ""
    updated_at: str = ""
    executions: list[Execution] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.task_type = TaskType(self.task_type)
        self.status = TaskStatus(self.status)
        if not self.created_at:
            self.created_at = to_iso(utcnow())
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def is_live(self) -> bool:
        """Whether this task should have an armed timer."""
        return self.is_enabled and self.status == TaskStatus.ACTIVE

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``scheduled_tasks`` column order."""
        return (
            self.id,
            self.name,
            self.description,
            self.task_type.value,
            self.status.value,
            self.cron_expression,
            json.dumps(self.configuration),
            self.last_executed_at,
            self.next_execution_at,
            self.execution_count,
            self.failure_count,
            int(self.is_enabled),
            self.created_at,
            self.updated_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Task:
        """Deserialize from a SQLite row tuple."""
        return cls(
            id=row[0],
            name=row[1],
            description=row[2],
            task_type=TaskType(row[3]),
            status=TaskStatus(row[4]),
            cron_expression=row[5],
            configuration=json.loads(row[6]) if row[6] else {},
            last_executed_at=row[7],
            next_execution_at=row[8],
            execution_count=row[9],
            failure_count=row[10],
            is_enabled=bool(row[11]),
            created_at=row[12],
            updated_at=row[13],
        )

    def to_dict(self, *, with_executions: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.task_type.value,
            "status": self.status.value,
            "cronExpression": self.cron_expression,
            "configuration": self.configuration,
            "lastExecutedAt": self.last_executed_at,
            "nextExecutionAt": self.next_execution_at,
            "executionCount": self.execution_count,
            "failureCount": self.failure_count,
            "isEnabled": self.is_enabled,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if with_executions:
            data["executions"] = [e.to_dict() for e in self.executions]
        return data


@dataclass
class Execution:
    """One finalized firing of a task.

    Written once, at completion, carrying both timestamps.
    """

    id: str
    task_id: str
    status: ExecutionStatus
    started_at: str
    completed_at: str | None = None
    output: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""

    def __post_init__(self) -> None:
        self.status = ExecutionStatus(self.status)
        if not self.created_at:
            self.created_at = self.completed_at or to_iso(utcnow())

    @property
    def failed(self) -> bool:
        return self.status == ExecutionStatus.FAILED

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``task_executions`` column order."""
        return (
            self.id,
            self.task_id,
            self.status.value,
            self.started_at,
            self.completed_at,
            self.output,
            self.error_message,
            json.dumps(self.metadata),
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Execution:
        return cls(
            id=row[0],
            task_id=row[1],
            status=ExecutionStatus(row[2]),
            started_at=row[3],
            completed_at=row[4],
            output=row[5],
            error_message=row[6],
            metadata=json.loads(row[7]) if row[7] else {},
            created_at=row[8],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "status": self.status.value,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "output": self.output,
            "errorMessage": self.error_message,
            "metadata": self.metadata,
            "createdAt": self.created_at,
        }


def make_id() -> str:
    """Generate a new record ID."""
    return uuid.uuid4().hex
