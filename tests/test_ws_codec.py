"""Tests for the WebSocket control envelope codec.

Covers: envelope shape (payload omitted when None), decode validation errors,
mock_db_result encode/decode.
"""

import json

import pytest

from platestream.network.codec import (
    decode_control_message,
    decode_lookup_result,
    encode_control_message,
    encode_lookup_result,
)
from platestream.network.types import (
    AUDIO_END,
    AUDIO_START,
    FINAL,
    MOCK_DB_RESULT,
    WsControlMessage,
    WsLookupResult,
)


# ---------------------------------------------------------------------------
# encode_control_message
# ---------------------------------------------------------------------------

class TestEncodeControlMessage:
    def test_audio_start_has_no_payload_key(self) -> None:
        assert json.loads(encode_control_message(WsControlMessage(type=AUDIO_START))) == {"type": "audio_start"}

    def test_audio_end_has_no_payload_key(self) -> None:
        assert json.loads(encode_control_message(WsControlMessage(type=AUDIO_END))) == {"type": "audio_end"}

    def test_payload_is_embedded_as_object(self) -> None:
        payload = {"alternatives": [{"text": "ME47", "confidence": 0.8}]}
        obj = json.loads(encode_control_message(WsControlMessage(type=FINAL, payload=payload)))
        assert obj == {"type": "final", "payload": payload}

    def test_unserializable_payload_raises_type_error(self) -> None:
        with pytest.raises(TypeError):
            encode_control_message(WsControlMessage(type=FINAL, payload=object()))


# ---------------------------------------------------------------------------
# decode_control_message
# ---------------------------------------------------------------------------

class TestDecodeControlMessage:
    def test_decodes_type_and_payload(self) -> None:
        msg = decode_control_message('{"type": "partial", "payload": {"partial": "mike"}}')
        assert msg == WsControlMessage(type="partial", payload={"partial": "mike"})

    def test_missing_payload_is_none(self) -> None:
        assert decode_control_message('{"type": "audio_start"}').payload is None

    def test_accepts_utf8_bytes(self) -> None:
        assert decode_control_message(b'{"type": "audio_end"}').type == AUDIO_END

    def test_unknown_type_is_decoded_not_rejected(self) -> None:
        assert decode_control_message('{"type": "hello"}').type == "hello"

    @pytest.mark.parametrize("text", [
        "{not json",
        "[1, 2]",
        '"audio_start"',
        "{}",
        '{"payload": {}}',
        '{"type": 5}',
        '{"type": null}',
    ])
    def test_invalid_documents_raise_value_error(self, text: str) -> None:
        with pytest.raises(ValueError):
            decode_control_message(text)

    def test_invalid_utf8_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="UTF-8"):
            decode_control_message(b'\xff\xfe{"type": "x"}')


# ---------------------------------------------------------------------------
# mock_db_result
# ---------------------------------------------------------------------------

class TestLookupResult:
    def test_encode_matches_wire_shape(self) -> None:
        text = encode_lookup_result(WsLookupResult(plate="G7B2JK", match=True, score=0.98))
        assert json.loads(text) == {
            "type": "mock_db_result",
            "payload": {"plate": "G7B2JK", "match": True, "score": 0.98},
        }

    def test_decode_from_envelope(self) -> None:
        msg = decode_control_message(
            '{"type": "mock_db_result", "payload": {"plate": "AB", "match": false, "score": 0}}'
        )
        assert decode_lookup_result(msg) == WsLookupResult(plate="AB", match=False, score=0.0)

    def test_decode_wrong_type_raises(self) -> None:
        with pytest.raises(ValueError, match="Expected type"):
            decode_lookup_result(WsControlMessage(type=FINAL, payload={}))

    def test_decode_missing_field_raises(self) -> None:
        with pytest.raises(ValueError, match="Malformed"):
            decode_lookup_result(WsControlMessage(type=MOCK_DB_RESULT, payload={"plate": "AB"}))

    def test_decode_non_object_payload_raises(self) -> None:
        with pytest.raises(ValueError):
            decode_lookup_result(WsControlMessage(type=MOCK_DB_RESULT, payload=None))
