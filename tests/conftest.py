"""Shared test fixtures."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from asset_scheduler.notifications.gateway import NotificationGateway
from asset_scheduler.notifications.router import NotificationRouter
from asset_scheduler.scheduler.store import ExecutionStore, TaskStore

# Fixed "now" for every time-dependent test.
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


class FakeChannel:
    """Channel that records messages; recipients in *fail_for* are rejected."""

    def __init__(self, channel_name: str = "fake", fail_for: set[str] | None = None) -> None:
        self._name = channel_name
        self.fail_for = fail_for or set()
        self.sent: list[tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        if recipient in self.fail_for:
            return False
        self.sent.append((recipient, subject, body))
        return True

    def recipients(self) -> list[str]:
        return [r for r, _, _ in self.sent]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def task_store(db_path: Path) -> TaskStore:
    return TaskStore(db_path=db_path)


@pytest.fixture
def execution_store(db_path: Path) -> ExecutionStore:
    return ExecutionStore(db_path=db_path)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def router(channel: FakeChannel) -> NotificationRouter:
    r = NotificationRouter()
    r.register_channel(channel)
    return r


@pytest.fixture
def gateway(router: NotificationRouter) -> NotificationGateway:
    return NotificationGateway(router, clock=lambda: NOW)
