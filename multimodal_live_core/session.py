"""High-level session manager for the multimodal live streaming API.

This module owns the duplex connection to the live service. It handles:
- Connection lifecycle and the setup handshake
- Bounded exponential-backoff reconnects after abnormal closures
- Encoding outbound audio, image, text and tool-response frames
- Decoding inbound frames and publishing them as events

Capture collaborators call the ``send_*`` methods; renderers subscribe with
``on``. Neither talks to the websocket directly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from .config import (
    ABNORMAL_CLOSURE,
    NORMAL_CLOSURE,
    ReconnectPolicy,
    TransportConfig,
)
from .errors import (
    LiveClientError,
    LiveConnectionError,
    LiveInvalidArgument,
    LiveProtocolError,
    LiveTransportClosed,
)
from .events import EventBus, Listener, LiveEvent
from .frames import (
    InboundFrame,
    ToolCallCancellationFrame,
    ToolCallFrame,
    UnmatchedFrame,
    decode_audio_part,
    decode_frame,
    split_parts,
)
from .protocol import (
    MISSING,
    build_audio_chunk,
    build_image_frame,
    build_setup,
    build_text_turn,
    build_tool_response,
    redact_url,
)
from .transport.ws_client import LiveWsClient, LiveWsMessage, LiveWsMessageType

if TYPE_CHECKING:
    import aiohttp

_LOGGER = logging.getLogger(__name__)

DISCONNECT_REASON = "User initiated disconnect"


class ConnectionState(Enum):
    """Lifecycle states of the session's channel."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class LiveSession:
    """Streaming session client for the live service.

    Usage:
        session = LiveSession(build_live_url(api_key), setup_config, name="gemini")
        session.on(LiveEvent.AUDIO, player.enqueue)
        await session.connect()
        await session.send_text("Hello")
        await session.disconnect()
    """

    def __init__(
        self,
        url: str,
        setup: dict[str, Any],
        *,
        name: str = "WebSocketClient",
        max_reconnect_attempts: int = 3,
        reconnect_base_delay: float = 2.0,
        ping_interval: int | None = 20,
        open_timeout: float = 15.0,
        reconnect: ReconnectPolicy | None = None,
        transport: TransportConfig | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ):
        """Initialize session.

        Args:
            url: Service endpoint, credential included (see build_live_url)
            setup: Setup configuration sent as the first frame of every connection
            name: Human-readable client name used in logs
            max_reconnect_attempts: Automatic reconnects after abnormal closures
            reconnect_base_delay: Delay before the first reconnect (seconds)
            ping_interval: Keepalive ping interval (seconds)
            open_timeout: Connection open timeout (seconds)
            reconnect: Explicit policy, overrides the two reconnect arguments
            transport: Explicit transport options, overrides ping/open arguments
            http_session: Shared aiohttp session to open the channel with;
                the websockets library is used when omitted
        """
        if not url:
            raise LiveInvalidArgument("url is required")

        self.name = name or "WebSocketClient"
        self.url = url
        self.setup = setup

        self._reconnect_policy = reconnect or ReconnectPolicy(
            max_attempts=max_reconnect_attempts,
            base_delay=reconnect_base_delay,
        )
        self._transport = transport or TransportConfig(
            ping_interval=ping_interval,
            open_timeout=open_timeout,
        )
        self._http_session = http_session

        # Connection state
        self._ws: LiveWsClient | None = None
        self._connection_state = ConnectionState.IDLE
        self._connect_task: asyncio.Task[None] | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._reconnect_attempts = 0
        self._shutdown_requested = False

        # Callbacks
        self._events = EventBus()
        self._connection_state_callback: Callable[[ConnectionState], None] | None = None

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the channel and send the setup frame.

        Concurrent callers share one in-flight attempt.

        Raises:
            LiveConnectionError: If the channel could not be opened, the
                setup frame could not be written, or disconnect() was called
                before the attempt finished
        """
        self._shutdown_requested = False
        if self.is_connected:
            return

        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.create_task(self._open())

        await asyncio.shield(self._connect_task)

    async def disconnect(self) -> None:
        """Close the channel with a normal closure and stop reconnecting.

        Local state is cleared before the closing handshake starts, so
        ``is_connected`` is False as soon as this is called. Safe to call
        when already disconnected.
        """
        self._shutdown_requested = True
        self._reconnect_attempts = self._reconnect_policy.max_attempts
        self._cancel_reconnect()

        ws_client = self._ws
        if ws_client is None:
            # An attempt in flight keeps its task and checks the flag itself.
            return

        listen_task = self._listen_task
        self._ws = None
        self._listen_task = None
        self._connect_task = None

        self._set_state(ConnectionState.CLOSING)
        if listen_task is not None and listen_task is not asyncio.current_task():
            listen_task.cancel()

        try:
            await ws_client.close(NORMAL_CLOSURE, DISCONNECT_REASON)
        except Exception as err:
            _LOGGER.warning("[%s] WebSocket close failed: %s", self.name, err)

        self._set_state(ConnectionState.CLOSED)
        _LOGGER.info("[%s] Successfully disconnected from websocket", self.name)
        self._events.emit(
            LiveEvent.DISCONNECTED,
            {"code": NORMAL_CLOSURE, "reason": DISCONNECT_REASON},
        )

    @property
    def is_connected(self) -> bool:
        """Check if the channel exists and is open."""
        return self._ws is not None and self._ws.is_open

    @property
    def connection_state(self) -> ConnectionState:
        """Get current connection state."""
        return self._connection_state

    @property
    def reconnect_attempts(self) -> int:
        """Automatic reconnects made since the last successful connect."""
        return self._reconnect_attempts

    # -------------------------------------------------------------------------
    # Public API: Events
    # -------------------------------------------------------------------------

    def on(self, event: LiveEvent | str, callback: Listener) -> Callable[[], None]:
        """Subscribe to a session event; returns a disposer."""
        return self._events.on(event, callback)

    def off(self, event: LiveEvent | str, callback: Listener) -> None:
        """Unsubscribe callback from a session event."""
        self._events.off(event, callback)

    def on_connection_state_changed(
        self, callback: Callable[[ConnectionState], None]
    ) -> None:
        """Register callback for connection state changes."""
        self._connection_state_callback = callback

    # -------------------------------------------------------------------------
    # Public API: Outbound
    # -------------------------------------------------------------------------

    async def send_audio(self, data: str) -> bool:
        """Send a base64 PCM chunk. Empty input is ignored.

        Returns:
            True if sent successfully, False otherwise
        """
        if not data:
            return False
        sent = await self._safe_send_json(build_audio_chunk(data))
        if sent:
            _LOGGER.debug("[%s] Audio chunk sent", self.name)
        return sent

    async def send_image(self, data: str) -> bool:
        """Send a base64 JPEG frame. Empty input is ignored.

        Returns:
            True if sent successfully, False otherwise
        """
        if not data:
            return False
        sent = await self._safe_send_json(build_image_frame(data))
        if sent:
            _LOGGER.debug(
                "[%s] Image of %d KB sent", self.name, round(len(data) / 1024)
            )
        return sent

    async def send_text(self, text: str, end_of_turn: bool = True) -> bool:
        """Send a user text turn.

        With end_of_turn=False the model waits for more input before answering.
        """
        sent = await self._safe_send_json(build_text_turn(text, end_of_turn=end_of_turn))
        if sent:
            _LOGGER.debug("[%s] Text sent: %s", self.name, text)
        return sent

    async def send_tool_response(
        self,
        call_id: str,
        *,
        output: Any = MISSING,
        error: str | None = None,
    ) -> bool:
        """Answer a tool call by id with either an output or an error.

        Raises:
            LiveInvalidArgument: If call_id is missing or neither output nor
                error is given
        """
        frame = build_tool_response(call_id, output=output, error=error)
        sent = await self._safe_send_json(frame)
        if sent:
            _LOGGER.debug("[%s] Tool response sent for %s", self.name, call_id)
        return sent

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a frame, raising if the channel is not open.

        Raises:
            LiveConnectionError: If not connected or the write fails
        """
        ws_client = self._ws
        if ws_client is None or not ws_client.is_open:
            raise LiveConnectionError("WebSocket is not connected")
        await self._write(ws_client, payload)

    async def _write(self, ws_client: LiveWsClient, payload: dict[str, Any]) -> None:
        try:
            await ws_client.send_json(payload)
        except LiveClientError:
            raise
        except Exception as err:
            raise LiveConnectionError(
                f"Failed to send to {self.name}: {err}"
            ) from err

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        """Update connection state and notify callback."""
        if self._connection_state != state:
            _LOGGER.debug(
                "[%s] State: %s → %s",
                self.name,
                self._connection_state.value,
                state.value,
            )
            self._connection_state = state
            if self._connection_state_callback:
                self._connection_state_callback(state)

    async def _open(self) -> None:
        """Single connection attempt shared by concurrent connect() callers."""
        self._set_state(ConnectionState.CONNECTING)
        _LOGGER.info(
            "[%s] Establishing WebSocket connection to %s",
            self.name,
            redact_url(self.url),
        )

        # Clean up existing connection
        stale = self._ws
        if stale is not None:
            self._ws = None
            try:
                await asyncio.wait_for(stale.close(), timeout=2.0)
            except (TimeoutError, LiveClientError) as err:
                _LOGGER.warning("[%s] Previous WebSocket close failed: %s", self.name, err)

        ws_client = LiveWsClient(session=self._http_session)
        try:
            await ws_client.connect(self.url, transport=self._transport)
        except LiveConnectionError as err:
            _LOGGER.error(
                "[%s] Could not connect to %s: %s",
                self.name,
                redact_url(self.url),
                err,
            )
            self._fail(err)
            raise

        # Published only after setup; concurrent connect() calls join this task.
        try:
            await self._write(ws_client, build_setup(self.setup))
        except LiveConnectionError as err:
            _LOGGER.error("[%s] Setup handshake failed: %s", self.name, err)
            await ws_client.close()
            self._fail(err)
            raise
        _LOGGER.debug("[%s] Setup message sent", self.name)

        if self._shutdown_requested:
            _LOGGER.info("[%s] Disconnected while connecting, closing channel", self.name)
            await ws_client.close(NORMAL_CLOSURE, DISCONNECT_REASON)
            self._set_state(ConnectionState.CLOSED)
            raise LiveConnectionError("Disconnected while connecting")

        self._ws = ws_client
        self._reconnect_attempts = 0
        self._cancel_reconnect()
        self._set_state(ConnectionState.OPEN)
        _LOGGER.info("[%s] Successfully connected to websocket", self.name)

        self._listen_task = asyncio.create_task(self._listen(ws_client))
        self._events.emit(LiveEvent.CONNECTED)

    def _fail(self, err: LiveClientError) -> None:
        self._set_state(ConnectionState.FAILED)
        self._events.emit(LiveEvent.CONNECTION_ERROR, {"error": err})

    def _handle_close(self, ws_client: LiveWsClient, code: int, reason: str) -> None:
        """React to the channel closing underneath the session."""
        if self._ws is not ws_client:
            # Detached by disconnect() or replaced by a newer connection.
            return

        self._ws = None
        self._listen_task = None
        self._connect_task = None
        self._set_state(ConnectionState.CLOSED)
        _LOGGER.warning(
            "[%s] WebSocket connection closed. Code: %s, Reason: %s",
            self.name,
            code,
            reason,
        )

        if code != NORMAL_CLOSURE:
            self._schedule_next_reconnect(LiveTransportClosed(code, reason))

        self._events.emit(LiveEvent.DISCONNECTED, {"code": code, "reason": reason})

    def _schedule_next_reconnect(self, cause: LiveClientError) -> None:
        """Schedule a backoff reconnect if the budget allows it."""
        if self._shutdown_requested:
            return

        policy = self._reconnect_policy
        if not policy.can_retry(self._reconnect_attempts):
            _LOGGER.error(
                "[%s] Giving up after %d reconnect attempts (%s); call connect() to retry",
                self.name,
                self._reconnect_attempts,
                cause,
            )
            return

        self._reconnect_attempts += 1
        delay = policy.delay_for(self._reconnect_attempts)
        _LOGGER.info(
            "[%s] Attempting to reconnect in %.1fs (attempt %d of %d)",
            self.name,
            delay,
            self._reconnect_attempts,
            policy.max_attempts,
        )
        self._schedule_reconnect(delay)

    def _schedule_reconnect(self, delay: float) -> None:
        self._cancel_reconnect()
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after_delay(delay, self._reconnect_attempts)
        )

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _reconnect_after_delay(self, delay: float, attempt: int) -> None:
        """Reconnect after delay unless the session moved on meanwhile."""
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Reconnect cancelled", self.name)
            raise

        if self._reconnect_task is asyncio.current_task():
            self._reconnect_task = None

        if (
            self._shutdown_requested
            or attempt != self._reconnect_attempts
            or self._connection_state
            in (ConnectionState.OPEN, ConnectionState.CONNECTING)
        ):
            _LOGGER.debug("[%s] Stale reconnect ignored", self.name)
            return

        try:
            await self.connect()
        except LiveClientError as err:
            _LOGGER.error("[%s] Reconnection failed: %s", self.name, err)
            self._schedule_next_reconnect(err)

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, ws_client: LiveWsClient) -> None:
        """Listen for frames until the channel closes."""
        message_count = 0
        close_code = ABNORMAL_CLOSURE
        close_reason = ""

        try:
            async for msg in ws_client:
                if msg.type is LiveWsMessageType.BINARY:
                    message_count += 1
                    self._receive(msg)
                elif msg.type is LiveWsMessageType.TEXT:
                    _LOGGER.error(
                        "[%s] Non-binary message received, dropping", self.name
                    )
                elif msg.type is LiveWsMessageType.CLOSED:
                    close_code = msg.close_code or close_code
                    close_reason = msg.close_reason
                    break
                elif msg.type is LiveWsMessageType.ERROR:
                    _LOGGER.error("[%s] WebSocket error", self.name)
                    close_code = msg.close_code or close_code
                    break

        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d messages)", self.name, message_count
            )
            raise
        except LiveClientError as err:
            _LOGGER.warning("[%s] Client error: %s", self.name, err)
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected error: %s", self.name, err)

        self._handle_close(ws_client, close_code, close_reason)

    def _receive(self, message: LiveWsMessage) -> None:
        """Decode one binary frame and dispatch it."""
        try:
            payload = LiveWsClient.decode_json(message)
        except LiveProtocolError as err:
            _LOGGER.warning("[%s] Dropping undecodable frame: %s", self.name, err)
            return
        self._dispatch(decode_frame(payload))

    def _dispatch(self, frame: InboundFrame) -> None:
        """Publish events for one decoded frame."""
        if isinstance(frame, ToolCallFrame):
            _LOGGER.debug("[%s] Received tool call: %s", self.name, frame.tool_call)
            self._events.emit(LiveEvent.TOOL_CALL, frame.tool_call)
            return

        if isinstance(frame, ToolCallCancellationFrame):
            _LOGGER.debug(
                "[%s] Received tool call cancellation: %s",
                self.name,
                frame.cancellation,
            )
            self._events.emit(LiveEvent.TOOL_CALL_CANCELLATION, frame.cancellation)
            return

        if isinstance(frame, UnmatchedFrame):
            _LOGGER.debug("[%s] Received unmatched message: %s", self.name, frame.raw)
            return

        if frame.interrupted:
            _LOGGER.debug("[%s] Interrupted", self.name)
            self._events.emit(LiveEvent.INTERRUPTED)
            return

        if frame.turn_complete:
            _LOGGER.debug("[%s] Turn complete", self.name)
            self._events.emit(LiveEvent.TURN_COMPLETE)

        if frame.parts is not None:
            self._dispatch_parts(frame.parts)

    def _dispatch_parts(self, parts: list[Any]) -> None:
        audio_parts, other_parts = split_parts(parts)

        for part in audio_parts:
            try:
                data = decode_audio_part(part)
            except LiveProtocolError as err:
                _LOGGER.warning("[%s] Dropping audio part: %s", self.name, err)
                continue
            if data is not None:
                self._events.emit(LiveEvent.AUDIO, data)

        if other_parts:
            self._events.emit(LiveEvent.CONTENT, {"modelTurn": {"parts": other_parts}})
            _LOGGER.debug("[%s] Content: %s", self.name, other_parts)

    async def _safe_send_json(self, payload: dict[str, Any]) -> bool:
        """Send a frame if connected; failures become False plus a warning."""
        if not self.is_connected:
            _LOGGER.warning("[%s] Cannot send: WebSocket not connected", self.name)
            return False
        try:
            await self.send_json(payload)
            return True
        except Exception as err:
            _LOGGER.warning("[%s] Failed to send data: %s", self.name, err)
            return False
