"""Encode and decode WebSocket wire protocol frames.

Text frames: UTF-8 JSON control envelope ``{"type": <str>, "payload": <any>}``.
Binary frames: raw int16 PCM, passed through untouched (no codec needed).
"""

import json
from typing import Any

from platestream.network.types import MOCK_DB_RESULT, WsControlMessage, WsLookupResult


# ---------------------------------------------------------------------------
# Control envelope
# ---------------------------------------------------------------------------

def encode_control_message(msg: WsControlMessage) -> str:
    """Encode a control message to a JSON string for a text frame.

    The ``payload`` key is omitted when the payload is ``None``, so
    ``audio_start``/``audio_end`` serialize as ``{"type": "audio_start"}``.

    Args:
        msg: Control message to encode.

    Returns:
        JSON string suitable for sending as a WebSocket text frame.

    Raises:
        TypeError: If the payload is not JSON-serializable.
    """
    obj: dict[str, Any] = {"type": msg.type}
    if msg.payload is not None:
        obj["payload"] = msg.payload
    return json.dumps(obj)


def decode_control_message(text: str | bytes) -> WsControlMessage:
    """Decode a text frame into a WsControlMessage.

    Args:
        text: Raw JSON from a WebSocket text frame.

    Returns:
        Decoded control message.

    Raises:
        ValueError: On invalid UTF-8/JSON, a non-object document, or a
            missing or non-string ``type`` field.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"Control frame is not valid UTF-8: {exc}") from exc

    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in control message: {exc}") from exc

    if not isinstance(obj, dict):
        raise ValueError(f"Control message must be a JSON object, got {type(obj).__name__}")

    msg_type = obj.get("type")
    if msg_type is None:
        raise ValueError("Control message missing 'type' field")
    if not isinstance(msg_type, str):
        raise ValueError(f"Control message 'type' must be a string, got {msg_type!r}")

    return WsControlMessage(type=msg_type, payload=obj.get("payload"))


# ---------------------------------------------------------------------------
# Lookup acknowledgment (server → client)
# ---------------------------------------------------------------------------

def encode_lookup_result(result: WsLookupResult) -> str:
    """Encode a lookup acknowledgment as a ``mock_db_result`` control message.

    Args:
        result: Lookup outcome to report.

    Returns:
        JSON string for a WebSocket text frame.
    """
    return encode_control_message(
        WsControlMessage(
            type=MOCK_DB_RESULT,
            payload={"plate": result.plate, "match": result.match, "score": result.score},
        )
    )


def decode_lookup_result(msg: WsControlMessage) -> WsLookupResult:
    """Extract a WsLookupResult from a decoded ``mock_db_result`` message.

    Args:
        msg: Control message with ``type == "mock_db_result"``.

    Returns:
        Decoded lookup result.

    Raises:
        ValueError: If the message type is wrong or the payload is malformed.
    """
    if msg.type != MOCK_DB_RESULT:
        raise ValueError(f"Expected type {MOCK_DB_RESULT!r}, got {msg.type!r}")

    payload = msg.payload
    if not isinstance(payload, dict):
        raise ValueError("mock_db_result payload must be an object")

    try:
        return WsLookupResult(
            plate=str(payload["plate"]),
            match=bool(payload["match"]),
            score=float(payload["score"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed mock_db_result payload: {exc}") from exc
