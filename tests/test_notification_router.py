"""Tests for NotificationRouter."""

import pytest

from asset_scheduler.notifications.channels import NotificationChannel
from asset_scheduler.notifications.log_channel import LogChannel
from asset_scheduler.notifications.router import NotificationRouter

# -- Helpers -----------------------------------------------------------------


class FakeChannel:
    """Minimal channel implementation for testing."""

    def __init__(self, channel_name: str = "fake") -> None:
        self._name = channel_name
        self.sent: list[tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        self.sent.append((recipient, subject, body))
        return True


class FailChannel(FakeChannel):
    """Channel that always fails to send."""

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        return False


# -- Registration ------------------------------------------------------------


def test_register_and_list_channels() -> None:
    router = NotificationRouter()
    router.register_channel(FakeChannel("a"))
    router.register_channel(FakeChannel("b"))
    assert router.list_channels() == ["a", "b"]


def test_register_duplicate_raises() -> None:
    router = NotificationRouter()
    router.register_channel(FakeChannel("a"))
    with pytest.raises(ValueError, match="already registered"):
        router.register_channel(FakeChannel("a"))


def test_set_default_unknown_raises() -> None:
    router = NotificationRouter()
    with pytest.raises(KeyError, match="not registered"):
        router.set_default_channel("nope")


def test_get_channel() -> None:
    router = NotificationRouter()
    ch = FakeChannel("a")
    router.register_channel(ch)
    assert router.get_channel("a") is ch
    assert router.get_channel("missing") is None


def test_channels_satisfy_protocol() -> None:
    assert isinstance(FakeChannel(), NotificationChannel)
    assert isinstance(LogChannel(), NotificationChannel)


# -- Routing -----------------------------------------------------------------


async def test_send_uses_default_channel() -> None:
    router = NotificationRouter()
    a, b = FakeChannel("a"), FakeChannel("b")
    router.register_channel(a)
    router.register_channel(b)
    router.set_default_channel("b")

    assert await router.send("ops", "Subject", "Body") is True
    assert a.sent == []
    assert b.sent == [("ops", "Subject", "Body")]


async def test_send_explicit_channel_overrides_default() -> None:
    router = NotificationRouter()
    a, b = FakeChannel("a"), FakeChannel("b")
    router.register_channel(a)
    router.register_channel(b)
    router.set_default_channel("b")

    await router.send("ops", "S", "B", channel="a")
    assert len(a.sent) == 1
    assert b.sent == []


async def test_send_single_channel_without_default() -> None:
    router = NotificationRouter()
    ch = FakeChannel("only")
    router.register_channel(ch)

    assert await router.send("ops", "S", "B") is True
    assert len(ch.sent) == 1


async def test_send_no_channel_returns_false() -> None:
    router = NotificationRouter()
    assert await router.send("ops", "S", "B") is False

    router.register_channel(FakeChannel("a"))
    router.register_channel(FakeChannel("b"))
    assert await router.send("ops", "S", "B") is False
    assert await router.send("ops", "S", "B", channel="missing") is False


async def test_send_propagates_channel_failure() -> None:
    router = NotificationRouter()
    router.register_channel(FailChannel("fail"))
    assert await router.send("ops", "S", "B") is False


async def test_log_channel_always_succeeds() -> None:
    router = NotificationRouter()
    router.register_channel(LogChannel())
    router.set_default_channel("log")
    assert await router.send("ops", "Subject", "Body") is True


# -- Construction / resolve --------------------------------------------------


def test_constructor_registers_channels_and_default() -> None:
    a, b = FakeChannel("a"), FakeChannel("b")
    router = NotificationRouter([a, b], default="b")

    assert router.list_channels() == ["a", "b"]
    assert router.default_channel_name == "b"
    assert router.resolve() is b
    assert router.resolve("a") is a
    assert router.resolve("missing") is None


def test_constructor_unknown_default_raises() -> None:
    with pytest.raises(KeyError):
        NotificationRouter([FakeChannel("a")], default="b")
