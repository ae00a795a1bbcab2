"""Protocol helpers for outbound live service frames.

Every builder returns a fresh JSON-serializable dict; none of them touch the
network. Media chunks share the ``realtimeInput`` envelope, text turns use
``clientContent`` and tool results use ``toolResponse``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Final
from urllib.parse import quote, urlsplit, urlunsplit

from .errors import LiveInvalidArgument

AUDIO_MIME_TYPE = "audio/pcm"
IMAGE_MIME_TYPE = "image/jpeg"

DEFAULT_HOST = "generativelanguage.googleapis.com"

# Sentinel distinguishing "no output supplied" from an explicit None output
MISSING: Final = object()


def build_live_url(
    api_key: str,
    *,
    host: str = DEFAULT_HOST,
    api_version: str = "v1alpha",
) -> str:
    """Build the BidiGenerateContent endpoint for an explicit API key.

    Raises:
        LiveInvalidArgument: If api_key is empty
    """
    if not api_key:
        raise LiveInvalidArgument("api_key is required")
    return (
        f"wss://{host}/ws/google.ai.generativelanguage.{api_version}."
        f"GenerativeService.BidiGenerateContent?key={quote(api_key, safe='')}"
    )


def build_setup_config(
    model: str,
    *,
    response_modalities: Sequence[str] | None = None,
    voice_name: str | None = None,
    system_instruction: str | None = None,
    tools: Sequence[dict[str, Any]] | None = None,
    generation_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Assemble a setup configuration blob.

    Args:
        model: Model resource name, e.g. "models/gemini-2.0-flash-exp".
        response_modalities: Output modalities such as ["AUDIO"].
        voice_name: Prebuilt voice for audio output.
        system_instruction: Plain-text system prompt.
        tools: Tool declarations forwarded untouched.
        generation_config: Extra generation parameters merged last.

    Returns:
        Setup dict suitable for ``build_setup``.
    """
    if not model:
        raise LiveInvalidArgument("model is required")

    gen: dict[str, Any] = {}
    if response_modalities:
        gen["responseModalities"] = list(response_modalities)
    if voice_name:
        gen["speechConfig"] = {
            "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice_name}}
        }
    if generation_config:
        gen.update(generation_config)

    setup: dict[str, Any] = {"model": model}
    if gen:
        setup["generationConfig"] = gen
    if system_instruction:
        setup["systemInstruction"] = {"parts": [{"text": system_instruction}]}
    if tools:
        setup["tools"] = list(tools)
    return setup


def build_setup(config: dict[str, Any]) -> dict[str, Any]:
    """Wrap the session configuration as the first outbound frame."""
    return {"setup": config}


def _media_chunk(mime_type: str, data: str) -> dict[str, Any]:
    return {"realtimeInput": {"mediaChunks": [{"mimeType": mime_type, "data": data}]}}


def build_audio_chunk(data: str) -> dict[str, Any]:
    """Realtime input frame for a base64 PCM chunk."""
    return _media_chunk(AUDIO_MIME_TYPE, data)


def build_image_frame(data: str) -> dict[str, Any]:
    """Realtime input frame for a base64 JPEG frame."""
    return _media_chunk(IMAGE_MIME_TYPE, data)


def build_text_turn(text: str, *, end_of_turn: bool = True) -> dict[str, Any]:
    """Client content frame carrying one user turn.

    With end_of_turn=False the model keeps waiting for more input.
    """
    return {
        "clientContent": {
            "turns": [{"role": "user", "parts": {"text": text}}],
            "turnComplete": end_of_turn,
        }
    }


def build_tool_response(
    call_id: str,
    *,
    output: Any = MISSING,
    error: str | None = None,
) -> dict[str, Any]:
    """Tool response frame answering a single function call.

    A non-empty error takes precedence and the output is left out entirely.

    Raises:
        LiveInvalidArgument: If call_id is missing, or neither output nor
            error is supplied
    """
    if not call_id:
        raise LiveInvalidArgument("Tool response must include an id")

    if error:
        response: dict[str, Any] = {"error": error}
    elif output is MISSING:
        raise LiveInvalidArgument(
            "Tool response must include an output when no error is provided"
        )
    else:
        response = {"output": output}

    return {"toolResponse": {"functionResponses": [{"response": response, "id": call_id}]}}


def redact_url(url: str) -> str:
    """Strip the query string (which carries the API key) for logging."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "<redacted>", ""))
