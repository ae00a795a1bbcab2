"""Streaming session client for the multimodal live API."""

__version__ = "0.1.0"

from .config import ReconnectPolicy, TransportConfig
from .errors import (
    LiveClientError,
    LiveConnectionError,
    LiveHandshakeError,
    LiveInvalidArgument,
    LiveProtocolError,
    LiveTimeout,
    LiveTransportClosed,
)
from .events import EventBus, LiveEvent
from .frames import (
    ServerContentFrame,
    ToolCallCancellationFrame,
    ToolCallFrame,
    UnmatchedFrame,
    decode_frame,
)
from .protocol import (
    build_audio_chunk,
    build_image_frame,
    build_live_url,
    build_setup,
    build_setup_config,
    build_text_turn,
    build_tool_response,
)
from .session import ConnectionState, LiveSession
from .transport import (
    LiveWsClient,
    LiveWsMessage,
    LiveWsMessageType,
    connect_aiohttp_websocket,
    connect_websocket,
)

__all__ = [
    "ConnectionState",
    "EventBus",
    "LiveClientError",
    "LiveConnectionError",
    "LiveEvent",
    "LiveHandshakeError",
    "LiveInvalidArgument",
    "LiveProtocolError",
    "LiveSession",
    "LiveTimeout",
    "LiveTransportClosed",
    "LiveWsClient",
    "LiveWsMessage",
    "LiveWsMessageType",
    "ReconnectPolicy",
    "ServerContentFrame",
    "ToolCallCancellationFrame",
    "ToolCallFrame",
    "TransportConfig",
    "UnmatchedFrame",
    "__version__",
    "build_audio_chunk",
    "build_image_frame",
    "build_live_url",
    "build_setup",
    "build_setup_config",
    "build_text_turn",
    "build_tool_response",
    "connect_aiohttp_websocket",
    "connect_websocket",
    "decode_frame",
]
