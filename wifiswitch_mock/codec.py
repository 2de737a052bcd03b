"""JSON envelope codec for the wifiswitch protocol.

Every message on the wire is a UTF-8 text frame holding a JSON object
with a string ``type`` discriminator. Anything else is rejected.
"""

from __future__ import annotations

import json
from typing import Any

import voluptuous as vol
from aiohttp import WSMessage, WSMsgType

from .exceptions import MalformedMessageError, UnsupportedFrameError

Envelope = dict[str, Any]

ENVELOPE_SCHEMA = vol.Schema({vol.Required("type"): str}, extra=vol.ALLOW_EXTRA)


def decode(raw: str) -> Envelope:
    """Parse a text frame into an envelope"""
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as err:
        raise MalformedMessageError(f"Invalid JSON: {err}") from err

    if not isinstance(data, dict):
        raise MalformedMessageError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    try:
        return ENVELOPE_SCHEMA(data)
    except vol.Invalid as err:
        raise MalformedMessageError(f"Invalid envelope: {err}") from err


def decode_frame(msg: WSMessage) -> Envelope:
    """Decode a WebSocket frame; only text frames are understood"""
    if msg.type != WSMsgType.TEXT:
        raise UnsupportedFrameError(f"I only understand text data, got {msg.type.name}")
    return decode(msg.data)


def encode(envelope: Envelope) -> str:
    """Serialize an envelope into a text frame"""
    return json.dumps(envelope, separators=(",", ":"))
