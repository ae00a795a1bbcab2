"""Transport layer for live sessions.

This package contains the WebSocket connection and message iteration.

Components:
- ws: WebSocket connection management (websockets or a shared aiohttp session)
- ws_client: WebSocket message iteration and frame decoding
"""

from .ws import connect_aiohttp_websocket, connect_websocket
from .ws_client import LiveWsClient, LiveWsMessage, LiveWsMessageType

__all__ = [
    "LiveWsClient",
    "LiveWsMessage",
    "LiveWsMessageType",
    "connect_aiohttp_websocket",
    "connect_websocket",
]
