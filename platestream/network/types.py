"""WebSocket wire protocol message types for the plate streaming protocol.

Every text frame carries one control envelope ``{"type": ..., "payload": ...}``.
Every binary frame carries raw little-endian int16 mono PCM at 16 kHz with no
header.  A frame is never both.
"""

from dataclasses import dataclass
from typing import Any, Final


# ---------------------------------------------------------------------------
# Control message types
# ---------------------------------------------------------------------------

AUDIO_START: Final = "audio_start"
AUDIO_END: Final = "audio_end"
PARTIAL: Final = "partial"
FINAL: Final = "final"
MOCK_DB_RESULT: Final = "mock_db_result"

CLIENT_MESSAGE_TYPES: Final = frozenset({AUDIO_START, AUDIO_END, PARTIAL, FINAL})

# ---------------------------------------------------------------------------
# Audio frame format
# ---------------------------------------------------------------------------

SAMPLE_RATE: Final = 16000
CHANNELS: Final = 1
SAMPLE_WIDTH: Final = 2  # bytes per int16 sample


@dataclass
class WsControlMessage:
    """JSON control envelope exchanged in both directions.

    Args:
        type: Message type, e.g. ``"audio_start"`` or ``"mock_db_result"``.
        payload: Opaque structured data; shape depends on ``type``.
            ``None`` when the sender omitted it.
    """

    type: str
    payload: Any = None


@dataclass
class WsLookupResult:
    """Payload of the server → client ``mock_db_result`` acknowledgment.

    Args:
        plate: Plate the server matched (or the candidate it tried).
        match: Whether the lookup found a record.
        score: Confidence of the match in ``[0.0, 1.0]``.
    """

    plate: str
    match: bool
    score: float
