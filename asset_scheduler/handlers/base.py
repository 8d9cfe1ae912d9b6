"""Handler contract and the task-type → handler map."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from asset_scheduler.errors import (
    HandlerExecutionError,
    NotificationDeliveryError,
    UnknownTaskTypeError,
)
from asset_scheduler.scheduler.models import TaskType

if TYPE_CHECKING:
    from collections.abc import Awaitable

logger = logging.getLogger(__name__)

ResultSummary = dict[str, Any]


@runtime_checkable
class TaskHandler(Protocol):
    """Domain logic run on each firing of a task of one type."""

    async def handle(self, configuration: dict[str, Any]) -> ResultSummary:
        """Do the work and return a JSON-serialisable summary. May raise."""
        ...


class HandlerMap:
    """Registry of handlers keyed by task type.

    Usage::

        handlers = HandlerMap()
        handlers.register(TaskType.LOW_STOCK_DETECTION, LowStockHandler(...))
        handler = handlers.resolve(task.task_type)
    """

    def __init__(self) -> None:
        self._handlers: dict[TaskType, TaskHandler] = {}

    def register(self, task_type: TaskType | str, handler: TaskHandler) -> None:
        """Map *task_type* to *handler*, replacing any previous mapping."""
        task_type = TaskType(task_type)
        self._handlers[task_type] = handler
        logger.info("Registered handler for %s: %s", task_type, type(handler).__name__)

    def get(self, task_type: TaskType | str) -> TaskHandler | None:
        return self._handlers.get(TaskType(task_type))

    def resolve(self, task_type: TaskType | str) -> TaskHandler:
        """Like :meth:`get` but raises ``UnknownTaskTypeError`` when unmapped."""
        handler = self.get(task_type)
        if handler is None:
            raise UnknownTaskTypeError(str(task_type))
        return handler

    @property
    def task_types(self) -> list[TaskType]:
        return list(self._handlers)


# -- Configuration helpers -----------------------------------------------------


def list_option(configuration: dict[str, Any], key: str, default: list) -> list:
    """Read a list option, falling back to *default* when missing or null."""
    value = configuration.get(key)
    if value is None:
        return list(default)
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        msg = f"Configuration option '{key}' must be a list, got {type(value).__name__}"
        raise HandlerExecutionError(msg)
    return list(value)


def int_option(configuration: dict[str, Any], key: str, default: int) -> int:
    value = configuration.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        msg = f"Configuration option '{key}' must be an integer"
        raise HandlerExecutionError(msg)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        msg = f"Configuration option '{key}' must be an integer, got {value!r}"
        raise HandlerExecutionError(msg) from exc


def bool_option(configuration: dict[str, Any], key: str, default: bool) -> bool:
    value = configuration.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        msg = f"Configuration option '{key}' must be a boolean, got {value!r}"
        raise HandlerExecutionError(msg)
    return value


async def deliver(recipient: str, send: Awaitable[None]) -> bool:
    """Await one notification; log and absorb a delivery failure.

    Returns True when the notification was delivered.
    """
    try:
        await send
    except NotificationDeliveryError:
        logger.exception("Notification to %s failed; continuing", recipient)
        return False
    return True
