"""Error kinds raised by the scheduler, orchestration and handler layers."""


class SchedulerError(Exception):
    """Base class for all asset-scheduler errors."""


class NotFoundError(SchedulerError):
    """A task id (or domain record id) does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} with ID {record_id} not found")


class InvalidScheduleError(SchedulerError):
    """A cron expression could not be parsed."""

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        super().__init__(f"Invalid cron expression {expression!r}: {reason}")


class UnknownTaskTypeError(SchedulerError):
    """No handler is registered for a task's type."""

    def __init__(self, task_type: str) -> None:
        self.task_type = task_type
        super().__init__(f"Unknown task type: {task_type}")


class HandlerExecutionError(SchedulerError):
    """A handler failed while running a task."""


class NotificationDeliveryError(SchedulerError):
    """A notification could not be delivered to one recipient."""

    def __init__(self, recipient: str, reason: str) -> None:
        self.recipient = recipient
        super().__init__(f"Delivery to {recipient} failed: {reason}")
