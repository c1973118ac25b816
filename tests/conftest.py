"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from navrelay.browser import (
    RequestCallback,
    RequestDetails,
    RequestEventSource,
    RequestPhase,
    Tab,
    TabController,
    matches_any,
)
from navrelay.errors import ChannelError
from navrelay.transport import MessageChannel


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


class FakeChannel(MessageChannel):
    """In-memory channel that records what the relay writes."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[dict[str, Any]] = []
        self.started = False

    def start(self) -> None:
        self.started = True

    def _write(self, message: Mapping[str, Any]) -> None:
        self.sent.append(dict(message))

    async def close(self) -> None:
        self._mark_closed()

    def receive(self, message: dict[str, Any]) -> None:
        """Simulate an inbound message from the peer."""
        self._deliver(message)

    def drop(self, error: ChannelError | None = None) -> None:
        """Simulate the peer going away."""
        self._peer_lost(error)


class FakeBrowser(RequestEventSource, TabController):
    """Request source and tab controller backed by plain lists."""

    def __init__(self, tabs: Sequence[Tab] = (), active: int | None = None) -> None:
        self.listeners: list[tuple[RequestPhase, RequestCallback, Sequence[str]]] = []
        self.tabs = {tab.id: tab for tab in tabs}
        self.active = active
        self.updates: list[tuple[int, str]] = []
        self.fail_updates = False

    def add_listener(self, phase: RequestPhase, callback: RequestCallback, urls: Sequence[str]) -> None:
        self.listeners.append((phase, callback, urls))

    def fire(self, phase: RequestPhase, url: str) -> None:
        for listener_phase, callback, urls in self.listeners:
            if listener_phase is phase and matches_any(url, urls):
                callback(RequestDetails(url=url))

    def active_tab(self) -> Tab | None:
        if self.active is None:
            return None
        return self.tabs.get(self.active)

    def update(self, tab_id: int, url: str) -> None:
        if self.fail_updates:
            raise RuntimeError("tab was closed")
        self.updates.append((tab_id, url))
        self.tabs[tab_id] = Tab(id=tab_id, url=url)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def browser() -> FakeBrowser:
    """A browser with one window and one active tab."""
    return FakeBrowser(tabs=[Tab(id=7, url="about:blank", window_id=1)], active=7)


@pytest.fixture
def empty_browser() -> FakeBrowser:
    """A browser with no windows open."""
    return FakeBrowser()


class Clock:
    """Deterministic millisecond clock."""

    def __init__(self, start: float = 100.0, step: float = 1.5) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def clock() -> Clock:
    return Clock()
