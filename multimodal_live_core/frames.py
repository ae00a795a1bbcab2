"""Inbound frame decoding for live sessions.

A received JSON object decodes into exactly one frame variant. Precedence
follows the server's message kinds: toolCall, then toolCallCancellation,
then serverContent. Anything else, including known keys whose values are not
objects, becomes an UnmatchedFrame.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any

from .errors import LiveProtocolError

AUDIO_PART_PREFIX = "audio/pcm"


@dataclass(frozen=True, slots=True)
class ToolCallFrame:
    """Server asks the client to run one or more functions."""

    tool_call: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ToolCallCancellationFrame:
    """Server withdraws previously issued tool calls."""

    cancellation: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ServerContentFrame:
    """Model output and turn signalling."""

    interrupted: bool = False
    turn_complete: bool = False
    parts: list[Any] | None = None


@dataclass(frozen=True, slots=True)
class UnmatchedFrame:
    """Frame with no recognised top-level key."""

    raw: Any


InboundFrame = (
    ToolCallFrame | ToolCallCancellationFrame | ServerContentFrame | UnmatchedFrame
)


def decode_frame(message: Any) -> InboundFrame:
    """Classify a decoded JSON message into one frame variant."""
    if not isinstance(message, dict):
        return UnmatchedFrame(message)

    if "toolCall" in message and message["toolCall"] is not None:
        tool_call = message["toolCall"]
        if isinstance(tool_call, dict):
            return ToolCallFrame(tool_call)
        return UnmatchedFrame(message)

    if "toolCallCancellation" in message and message["toolCallCancellation"] is not None:
        cancellation = message["toolCallCancellation"]
        if isinstance(cancellation, dict):
            return ToolCallCancellationFrame(cancellation)
        return UnmatchedFrame(message)

    content = message.get("serverContent")
    if isinstance(content, dict):
        model_turn = content.get("modelTurn")
        parts = model_turn.get("parts") if isinstance(model_turn, dict) else None
        return ServerContentFrame(
            interrupted=content.get("interrupted") is True,
            turn_complete=content.get("turnComplete") is True,
            parts=parts if isinstance(parts, list) else None,
        )

    return UnmatchedFrame(message)


def is_audio_part(part: Any) -> bool:
    """True for inline-data parts carrying PCM audio."""
    if not isinstance(part, dict):
        return False
    inline = part.get("inlineData")
    if not isinstance(inline, dict):
        return False
    mime_type = inline.get("mimeType")
    return isinstance(mime_type, str) and mime_type.startswith(AUDIO_PART_PREFIX)


def split_parts(parts: list[Any]) -> tuple[list[Any], list[Any]]:
    """Partition parts into (audio, other), keeping relative order."""
    audio: list[Any] = []
    other: list[Any] = []
    for part in parts:
        (audio if is_audio_part(part) else other).append(part)
    return audio, other


def decode_audio_part(part: dict[str, Any]) -> bytes | None:
    """Decode the base64 payload of an audio part.

    Returns None when the part carries no data.

    Raises:
        LiveProtocolError: If the payload is not valid base64
    """
    data = part["inlineData"].get("data")
    if not data:
        return None
    if not isinstance(data, str):
        raise LiveProtocolError("Audio part data is not a string")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as err:
        raise LiveProtocolError(f"Audio part is not valid base64: {err}") from err
