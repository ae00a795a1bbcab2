"""Pytest configuration and fixtures for multimodal_live_core tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import patch

import pytest

from multimodal_live_core.transport.ws_client import (
    LiveWsClient,
    LiveWsMessage,
    LiveWsMessageType,
)


class FakeWsClient:
    """In-memory stand-in for LiveWsClient driven by its factory."""

    def __init__(self, factory: FakeWsFactory) -> None:
        self._factory = factory
        self._inbox: asyncio.Queue[LiveWsMessage] = asyncio.Queue()
        self.is_open = False
        self.connect_calls = 0
        self.sent: list[dict[str, Any]] = []
        self.closed_with: tuple[int, str] | None = None
        self.send_error: Exception | None = None

    async def connect(self, url: str, *, transport: Any = None) -> None:
        self.connect_calls += 1
        self._factory.urls.append(url)
        if self._factory.gate is not None:
            await self._factory.gate.wait()
        if self._factory.connect_errors:
            raise self._factory.connect_errors.pop(0)
        self.is_open = True

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.is_open = False
        self.closed_with = (code, reason)
        self._inbox.put_nowait(
            LiveWsMessage(
                LiveWsMessageType.CLOSED, close_code=code, close_reason=reason
            )
        )

    def feed(self, message: LiveWsMessage) -> None:
        """Queue a raw normalized message for the listener."""
        self._inbox.put_nowait(message)

    def feed_json(self, payload: Any) -> None:
        """Queue a binary JSON frame for the listener."""
        self.feed(
            LiveWsMessage(LiveWsMessageType.BINARY, json.dumps(payload).encode())
        )

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the peer closing the channel."""
        self.is_open = False
        self.feed(
            LiveWsMessage(
                LiveWsMessageType.CLOSED, close_code=code, close_reason=reason
            )
        )

    def __aiter__(self):
        return self._iter_messages()

    async def _iter_messages(self):
        while True:
            msg = await self._inbox.get()
            yield msg
            if msg.type in (LiveWsMessageType.CLOSED, LiveWsMessageType.ERROR):
                return


class FakeWsFactory:
    """Replaces the LiveWsClient class inside the session module."""

    decode_json = staticmethod(LiveWsClient.decode_json)

    def __init__(self) -> None:
        self.clients: list[FakeWsClient] = []
        self.urls: list[str] = []
        self.connect_errors: list[Exception] = []
        self.gate: asyncio.Event | None = None
        self.sessions: list[Any] = []

    def __call__(self, session: Any = None) -> FakeWsClient:
        self.sessions.append(session)
        client = FakeWsClient(self)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeWsClient:
        return self.clients[-1]


class EventRecorder:
    """Collects (event name, payload) tuples from a session or bus."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def attach(self, target: Any, *names: str) -> EventRecorder:
        for name in names:
            target.on(name, lambda payload, name=name: self.events.append((name, payload)))
        return self

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]


ALL_EVENTS = (
    "connected",
    "connection_error",
    "disconnected",
    "tool_call",
    "tool_call_cancellation",
    "interrupted",
    "turn_complete",
    "content",
    "audio",
)


@pytest.fixture
def fake_ws():
    """Patch the session's websocket client with an in-memory fake."""
    factory = FakeWsFactory()
    with patch("multimodal_live_core.session.LiveWsClient", factory):
        yield factory


@pytest.fixture
def recorder() -> EventRecorder:
    """Create an empty event recorder."""
    return EventRecorder()


@pytest.fixture
def setup_config() -> dict[str, Any]:
    """Minimal setup configuration blob."""
    return {
        "model": "models/gemini-2.0-flash-exp",
        "generationConfig": {"responseModalities": ["AUDIO"]},
    }


def frame(payload: Any) -> LiveWsMessage:
    """Build a binary JSON message as received from the service."""
    return LiveWsMessage(LiveWsMessageType.BINARY, json.dumps(payload).encode())


@pytest.fixture
def make_frame():
    """Factory for binary JSON messages."""
    return frame


async def drain(rounds: int = 10) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    """Coroutine function that yields to the event loop a few times."""
    return drain


@pytest.fixture
def all_events() -> tuple[str, ...]:
    """Every event name a session publishes."""
    return ALL_EVENTS
