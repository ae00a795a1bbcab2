"""WebSocket client wrapper for the live service."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from aiohttp import ClientSession, ClientWebSocketResponse, WSMsgType
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ..config import ABNORMAL_CLOSURE, NORMAL_CLOSURE, TransportConfig
from ..errors import LiveConnectionError, LiveProtocolError
from .ws import connect_aiohttp_websocket, connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class LiveWsMessageType(Enum):
    """Normalized WebSocket message types."""

    BINARY = "binary"
    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class LiveWsMessage:
    """Normalized WebSocket message payload."""

    type: LiveWsMessageType
    data: bytes | str | None = None
    close_code: int | None = None
    close_reason: str = ""


class LiveWsClient:
    """Wrapper around the websocket backends for the live service.

    Uses the websockets library by default. When an aiohttp ClientSession is
    given, the channel is opened through it instead and its messages are
    normalized the same way.
    """

    def __init__(self, session: ClientSession | None = None) -> None:
        self._session = session
        self._ws: ClientConnection | ClientWebSocketResponse | None = None

    async def connect(
        self,
        url: str,
        *,
        transport: TransportConfig | None = None,
    ) -> None:
        """Connect to the service websocket."""
        transport = transport or TransportConfig()
        if self._session is not None:
            self._ws = await connect_aiohttp_websocket(
                self._session,
                url,
                heartbeat=transport.ping_interval,
                open_timeout=transport.open_timeout,
                max_size=transport.max_size,
            )
            return
        self._ws = await connect_websocket(
            url,
            ping_interval=transport.ping_interval,
            open_timeout=transport.open_timeout,
            close_timeout=transport.close_timeout,
            max_size=transport.max_size,
        )

    @property
    def is_open(self) -> bool:
        """True when the channel exists and is open."""
        if isinstance(self._ws, ClientWebSocketResponse):
            return not self._ws.closed
        return self._ws is not None and self._ws.state is State.OPEN

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the websocket connection."""
        if isinstance(self._ws, ClientWebSocketResponse):
            await self._ws.close(code=code, message=reason.encode())
        elif self._ws is not None:
            await self._ws.close(code=code, reason=reason)

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload to the websocket."""
        if self._ws is None:
            raise LiveConnectionError("WebSocket is not connected")
        if isinstance(self._ws, ClientWebSocketResponse):
            await self._ws.send_str(json.dumps(payload))
        else:
            await self._ws.send(json.dumps(payload))

    def __aiter__(self) -> AsyncIterator[LiveWsMessage]:
        if self._ws is None:
            raise LiveConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[LiveWsMessage]:
        if self._ws is None:
            raise LiveConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized: LiveWsMessage | None = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
                if normalized.type in (
                    LiveWsMessageType.CLOSED,
                    LiveWsMessageType.ERROR,
                ):
                    return
        except ConnectionClosed as err:
            code = err.rcvd.code if err.rcvd is not None else ABNORMAL_CLOSURE
            reason = err.rcvd.reason if err.rcvd is not None else ""
            yield LiveWsMessage(
                LiveWsMessageType.CLOSED, close_code=code, close_reason=reason
            )
        except Exception:
            yield LiveWsMessage(
                LiveWsMessageType.ERROR, close_code=ABNORMAL_CLOSURE
            )
        else:
            # Normal iteration completion means the peer closed gracefully.
            code = getattr(self._ws, "close_code", None)
            reason = getattr(self._ws, "close_reason", None)
            yield LiveWsMessage(
                LiveWsMessageType.CLOSED,
                close_code=code if isinstance(code, int) else NORMAL_CLOSURE,
                close_reason=reason if isinstance(reason, str) else "",
            )

    @staticmethod
    def _normalize_message(msg: Any) -> LiveWsMessage | None:
        """Normalize backend-specific frames into LiveWsMessage."""
        if isinstance(msg, (bytes, bytearray, memoryview)):
            return LiveWsMessage(LiveWsMessageType.BINARY, bytes(msg))
        if isinstance(msg, str):
            return LiveWsMessage(LiveWsMessageType.TEXT, msg)

        msg_type = getattr(msg, "type", None)
        if isinstance(msg_type, WSMsgType):
            normalized_type = LiveWsClient._map_aiohttp_type(msg_type)
            if normalized_type is None:
                return None
            data = getattr(msg, "data", None)
            if normalized_type is LiveWsMessageType.CLOSED:
                extra = getattr(msg, "extra", None)
                return LiveWsMessage(
                    normalized_type,
                    close_code=data if isinstance(data, int) else ABNORMAL_CLOSURE,
                    close_reason=extra if isinstance(extra, str) else "",
                )
            if normalized_type is LiveWsMessageType.ERROR:
                return LiveWsMessage(normalized_type, close_code=ABNORMAL_CLOSURE)
            return LiveWsMessage(normalized_type, data)

        return None

    @staticmethod
    def _map_aiohttp_type(msg_type: WSMsgType) -> LiveWsMessageType | None:
        """Map aiohttp WSMsgType enums to internal message types."""
        if msg_type is WSMsgType.BINARY:
            return LiveWsMessageType.BINARY

        if msg_type is WSMsgType.TEXT:
            return LiveWsMessageType.TEXT

        if msg_type in {WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED}:
            return LiveWsMessageType.CLOSED

        if msg_type is WSMsgType.ERROR:
            return LiveWsMessageType.ERROR

        return None

    @staticmethod
    def decode_json(message: LiveWsMessage) -> Any:
        """Decode a BINARY message payload (UTF-8 JSON) into Python objects."""
        if message.type is not LiveWsMessageType.BINARY:
            raise LiveProtocolError("Only BINARY messages can be decoded")
        if not isinstance(message.data, bytes):
            raise LiveProtocolError("Message data is not bytes")
        try:
            return json.loads(message.data.decode("utf-8"))
        except UnicodeDecodeError as err:
            raise LiveProtocolError("Frame is not valid UTF-8") from err
        except json.JSONDecodeError as err:
            raise LiveProtocolError(f"Frame is not valid JSON: {err}") from err
