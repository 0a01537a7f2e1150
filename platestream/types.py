"""Type definitions shared by the client, server and matching pipeline."""

from dataclasses import dataclass, field
from enum import Enum, auto


class ConnectionState(Enum):
    """Client WebSocket connection states.

    Transitions:
    DISCONNECTED → CONNECTING: connect() called
    CONNECTING → CONNECTING: handshake failed, retry budget remains
    CONNECTING → CONNECTED: handshake succeeded, receive loop started
    CONNECTING → DISCONNECTED: budget exhausted or cancelled
    CONNECTED → CLOSING → DISCONNECTED: close(), remote close or transport error
    """
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    CLOSING = auto()


class SessionState(Enum):
    """Server-side per-connection session states.

    IDLE: connected, binary frames are dropped
    AUDIO_ACTIVE: between audio_start and audio_end, binary frames are buffered
    CLOSED: connection gone, buffer released
    """
    IDLE = auto()
    AUDIO_ACTIVE = auto()
    CLOSED = auto()


@dataclass(frozen=True)
class Alternative:
    """One candidate transcription with its recognizer confidence."""
    text: str
    confidence: float


@dataclass
class RecognitionResult:
    """Ranked alternatives produced by the recognizer for one utterance."""
    alternatives: list[Alternative] = field(default_factory=list)


@dataclass(frozen=True)
class VehicleRecord:
    """Read-only projection of a registry entry."""
    plate: str
    year: int | None = None
    make: str = ""
    model: str = ""
    status: str = ""


class ServerPhase(Enum):
    """Server lifecycle: STARTING → RUNNING → SHUTDOWN (terminal).

    STARTING may go straight to SHUTDOWN when binding fails.
    """
    STARTING = "starting"
    RUNNING = "running"
    SHUTDOWN = "shutdown"
