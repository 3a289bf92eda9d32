"""
Pytest configuration and fixtures for Woodwatch tests.
"""

import logging
import queue
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from woodwatch.config import Config
from woodwatch.core import Event, Notifier, PacketSource


class FakePacketSource(PacketSource):
    """PacketSource fed from a queue; close() makes receive() fail."""

    _CLOSED = object()

    def __init__(self, address: str = "0.0.0.0") -> None:
        self.address = address
        self.packets: queue.Queue[Any] = queue.Queue()
        self.closed = False

    def push(self, address: str) -> None:
        self.packets.put(address)

    def fail(self, error: OSError) -> None:
        self.packets.put(error)

    def receive(self) -> str:
        item = self.packets.get()
        if item is self._CLOSED:
            raise OSError("source closed")
        if isinstance(item, OSError):
            raise item
        return item

    def close(self) -> None:
        self.closed = True
        self.packets.put(self._CLOSED)


class RecordingNotifier(Notifier):
    """Notifier that remembers what it was asked to deliver."""

    def __init__(self, config: dict[str, Any] | None = None, result: bool = True) -> None:
        super().__init__(config or {})
        self.result = result
        self.sent: list[tuple[Event, str]] = []

    def notify(self, event: Event, target: str) -> bool:
        self.sent.append((event, target))
        return self.result


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def make_config() -> Callable[..., Config]:
    """Build a Config with sensible defaults for the given peers."""
    def factory(peers: list[dict[str, Any]] | None = None, **overrides: Any) -> Config:
        raw: dict[str, Any] = {
            "up_threshold": 3,
            "down_threshold": 2,
            "monitor_cycle": "4s",
            "peer_timeout": "8s",
            "peers": peers if peers is not None else [
                {"name": "Comcast", "network": "10.0.0.0/24"},
            ],
        }
        raw.update(overrides)
        return Config.model_validate(raw)
    return factory


@pytest.fixture
def fake_clock() -> FakeClock:
    """A manually advanced clock."""
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_woodwatch_logger() -> Iterator[None]:
    """Undo setup_logging() so later tests can use caplog."""
    yield
    package_logger = logging.getLogger("woodwatch")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def packet_source() -> FakePacketSource:
    """A packet source the test pushes addresses into."""
    return FakePacketSource()


@pytest.fixture
def recording_notifier() -> RecordingNotifier:
    """A notifier that records deliveries instead of sending them."""
    return RecordingNotifier()
