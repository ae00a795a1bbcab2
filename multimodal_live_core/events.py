"""Event bus decoupling the live session from its consumers.

Listeners run synchronously on the emitting call stack. Each emit works on a
snapshot of the registered listeners, so subscribing or unsubscribing from
inside a listener only affects later emits.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

_LOGGER = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class LiveEvent(Enum):
    """Events published by a live session."""

    CONNECTED = "connected"
    CONNECTION_ERROR = "connection_error"
    DISCONNECTED = "disconnected"
    TOOL_CALL = "tool_call"
    TOOL_CALL_CANCELLATION = "tool_call_cancellation"
    INTERRUPTED = "interrupted"
    TURN_COMPLETE = "turn_complete"
    CONTENT = "content"
    AUDIO = "audio"


class EventBus:
    """Publish/subscribe registry keyed by LiveEvent.

    Usage:
        bus = EventBus()
        dispose = bus.on(LiveEvent.AUDIO, player.enqueue)
        bus.emit(LiveEvent.AUDIO, b"...")
        dispose()
    """

    def __init__(self) -> None:
        self._listeners: dict[LiveEvent, dict[int, Listener]] = {}
        self._handles = itertools.count(1)

    @staticmethod
    def _coerce(event: LiveEvent | str) -> LiveEvent:
        return event if isinstance(event, LiveEvent) else LiveEvent(event)

    def on(self, event: LiveEvent | str, callback: Listener) -> Callable[[], None]:
        """Register a listener and return a disposer that removes it."""
        event = self._coerce(event)
        handle = next(self._handles)
        self._listeners.setdefault(event, {})[handle] = callback

        def dispose() -> None:
            listeners = self._listeners.get(event)
            if listeners is not None:
                listeners.pop(handle, None)

        return dispose

    def off(self, event: LiveEvent | str, callback: Listener) -> None:
        """Remove every registration of callback for event."""
        listeners = self._listeners.get(self._coerce(event))
        if not listeners:
            return
        for handle in [h for h, cb in listeners.items() if cb == callback]:
            del listeners[handle]

    def listener_count(self, event: LiveEvent | str) -> int:
        """Number of listeners registered for event."""
        return len(self._listeners.get(self._coerce(event), {}))

    def clear(self) -> None:
        """Drop all listeners."""
        self._listeners.clear()

    def emit(self, event: LiveEvent | str, payload: Any = None) -> None:
        """Invoke listeners for event in registration order."""
        event = self._coerce(event)
        listeners = list(self._listeners.get(event, {}).values())
        for callback in listeners:
            try:
                callback(payload)
            except Exception as err:
                _LOGGER.exception("%s listener error: %s", event.value, err)
