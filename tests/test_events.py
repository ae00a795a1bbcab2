"""Tests for the session event bus."""

from __future__ import annotations

import logging

import pytest

from multimodal_live_core.events import EventBus, LiveEvent


class TestLiveEvent:
    """Tests for LiveEvent enum."""

    def test_enum_values(self):
        """Test the wire-facing event names."""
        assert [event.value for event in LiveEvent] == [
            "connected",
            "connection_error",
            "disconnected",
            "tool_call",
            "tool_call_cancellation",
            "interrupted",
            "turn_complete",
            "content",
            "audio",
        ]


class TestEventBus:
    """Tests for EventBus."""

    def test_emit_in_registration_order(self):
        """Test listeners run in insertion order with the payload."""
        bus = EventBus()
        calls: list[tuple[str, object]] = []
        bus.on(LiveEvent.AUDIO, lambda p: calls.append(("first", p)))
        bus.on(LiveEvent.AUDIO, lambda p: calls.append(("second", p)))

        bus.emit(LiveEvent.AUDIO, b"pcm")

        assert calls == [("first", b"pcm"), ("second", b"pcm")]

    def test_payloadless_events_pass_none(self):
        """Test events without payload deliver None."""
        bus = EventBus()
        received = []
        bus.on(LiveEvent.INTERRUPTED, received.append)

        bus.emit(LiveEvent.INTERRUPTED)

        assert received == [None]

    def test_emit_without_listeners(self):
        """Test emitting to nobody is a no-op."""
        EventBus().emit(LiveEvent.CONTENT, {"modelTurn": {"parts": []}})

    def test_string_names(self):
        """Test string event names map onto LiveEvent."""
        bus = EventBus()
        received = []
        bus.on("turn_complete", received.append)

        bus.emit(LiveEvent.TURN_COMPLETE)

        assert received == [None]
        assert bus.listener_count(LiveEvent.TURN_COMPLETE) == 1

    def test_unknown_name(self):
        """Test unknown event names are rejected."""
        with pytest.raises(ValueError):
            EventBus().on("setup_complete", print)

    def test_disposer(self):
        """Test the returned disposer removes only its registration."""
        bus = EventBus()
        received = []
        dispose = bus.on(LiveEvent.CONTENT, received.append)
        bus.on(LiveEvent.CONTENT, received.append)

        dispose()
        dispose()
        bus.emit(LiveEvent.CONTENT, "x")

        assert received == ["x"]

    def test_off_removes_every_registration(self):
        """Test off() drops all registrations of a callback."""
        bus = EventBus()
        received = []
        bus.on(LiveEvent.CONTENT, received.append)
        bus.on(LiveEvent.CONTENT, received.append)

        bus.off(LiveEvent.CONTENT, received.append)
        bus.off(LiveEvent.AUDIO, received.append)
        bus.emit(LiveEvent.CONTENT, "x")

        assert received == []
        assert bus.listener_count(LiveEvent.CONTENT) == 0

    def test_emit_uses_snapshot(self):
        """Test listeners added during emit only see later emits."""
        bus = EventBus()
        late = []

        def subscribe_more(_):
            bus.on(LiveEvent.AUDIO, late.append)

        bus.on(LiveEvent.AUDIO, subscribe_more)
        bus.emit(LiveEvent.AUDIO, 1)
        assert late == []

        bus.emit(LiveEvent.AUDIO, 2)
        assert late == [2]

    def test_unsubscribe_during_emit(self):
        """Test a listener removed mid-emit still runs for that emit."""
        bus = EventBus()
        calls = []
        disposers = []

        def first(_):
            calls.append("first")
            disposers[0]()

        bus.on(LiveEvent.AUDIO, first)
        disposers.append(bus.on(LiveEvent.AUDIO, lambda _: calls.append("second")))

        bus.emit(LiveEvent.AUDIO)
        bus.emit(LiveEvent.AUDIO)

        assert calls == ["first", "second", "first"]

    def test_listener_error_is_isolated(self, caplog):
        """Test one failing listener does not stop the others."""
        bus = EventBus()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        bus.on(LiveEvent.TOOL_CALL, broken)
        bus.on(LiveEvent.TOOL_CALL, received.append)

        with caplog.at_level(logging.ERROR):
            bus.emit(LiveEvent.TOOL_CALL, {"functionCalls": []})

        assert received == [{"functionCalls": []}]
        assert "tool_call listener error" in caplog.text

    def test_clear(self):
        """Test clear() drops all listeners."""
        bus = EventBus()
        bus.on(LiveEvent.AUDIO, print)
        bus.on(LiveEvent.CONTENT, print)

        bus.clear()

        assert bus.listener_count(LiveEvent.AUDIO) == 0
        assert bus.listener_count(LiveEvent.CONTENT) == 0
