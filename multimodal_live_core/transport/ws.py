"""WebSocket helpers for the live service transport."""

from __future__ import annotations

import asyncio

import aiohttp
import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    LiveConnectionError,
    LiveHandshakeError,
    LiveTimeout,
)


async def connect_websocket(
    url: str,
    *,
    ping_interval: int | None = 20,
    open_timeout: float = 15.0,
    close_timeout: float = 5.0,
    max_size: int | None = None,
) -> ClientConnection:
    """Connect to a WebSocket endpoint.

    Uses the websockets library which properly implements RFC 6455 frame masking.
    All client-to-server frames are automatically masked per the standard.

    Args:
        url: Full ws:// or wss:// endpoint, credential included
        ping_interval: Interval for ping frames
        open_timeout: Connection timeout
        close_timeout: Time allowed for the closing handshake
        max_size: Maximum inbound frame size (None for unlimited)
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=close_timeout,
                max_size=max_size,
            ),
            timeout=open_timeout,
        )
    except TimeoutError as err:
        raise LiveTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise LiveHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise LiveConnectionError("WebSocket connection failed") from err


async def connect_aiohttp_websocket(
    session: aiohttp.ClientSession,
    url: str,
    *,
    heartbeat: float | None = 20,
    open_timeout: float = 15.0,
    max_size: int | None = None,
) -> aiohttp.ClientWebSocketResponse:
    """Connect to a WebSocket endpoint through a caller-owned aiohttp session.

    Lets applications that already run an aiohttp ClientSession share its
    connector, proxy and SSL settings with the live channel.

    Args:
        session: Open aiohttp client session
        url: Full ws:// or wss:// endpoint, credential included
        heartbeat: Interval for ping frames
        open_timeout: Connection timeout
        max_size: Maximum inbound frame size (None for unlimited)
    """
    try:
        return await asyncio.wait_for(
            session.ws_connect(url, heartbeat=heartbeat, max_msg_size=max_size or 0),
            timeout=open_timeout,
        )
    except TimeoutError as err:
        raise LiveTimeout("WebSocket connection timed out") from err
    except aiohttp.WSServerHandshakeError as err:
        raise LiveHandshakeError("WebSocket handshake failed") from err
    except (OSError, aiohttp.ClientError) as err:
        raise LiveConnectionError("WebSocket connection failed") from err
