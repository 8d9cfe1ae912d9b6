"""Request bodies accepted by the admin API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from asset_scheduler.scheduler.models import TaskStatus, TaskType


class TaskCreate(BaseModel):
    """Body of ``POST /tasks``. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    task_type: TaskType = Field(alias="type")
    cron_expression: str = Field(alias="cronExpression", min_length=1, max_length=100)
    configuration: dict[str, Any] = Field(default_factory=dict)
    status: TaskStatus = TaskStatus.ACTIVE
    is_enabled: bool = Field(default=True, alias="isEnabled")


class TaskPatch(BaseModel):
    """Body of ``PATCH /tasks/{id}``; only the keys sent are applied."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    task_type: TaskType | None = Field(default=None, alias="type")
    cron_expression: str | None = Field(
        default=None, alias="cronExpression", min_length=1, max_length=100
    )
    configuration: dict[str, Any] | None = None
    status: TaskStatus | None = None
    is_enabled: bool | None = Field(default=None, alias="isEnabled")

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class StockUpdate(BaseModel):
    """Body of ``PATCH /inventory/{id}/update-stock``."""

    stock: int = Field(ge=0)
