"""Client error types for the multimodal live streaming session."""

from __future__ import annotations


class LiveClientError(Exception):
    """Base error for live session client failures."""


class LiveConnectionError(LiveClientError):
    """Network connection to the live service failed or is not open."""


class LiveTimeout(LiveConnectionError):
    """Timeout while opening the connection."""


class LiveHandshakeError(LiveConnectionError):
    """WebSocket handshake failed."""


class LiveTransportClosed(LiveConnectionError):
    """The channel closed with a non-normal closure code."""

    def __init__(self, code: int, reason: str = "") -> None:
        super().__init__(f"Connection closed (code={code}, reason={reason!r})")
        self.code = code
        self.reason = reason


class LiveProtocolError(LiveClientError):
    """Inbound frame could not be decoded."""


class LiveInvalidArgument(LiveClientError, ValueError):
    """Caller supplied a malformed request."""
