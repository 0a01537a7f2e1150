"""Per-WebSocket-connection session: owns the audio buffer and control dispatch.

Each ClientSession isolates one connected client. It is created on connect,
mutated only by that connection's handler task, and released on disconnect.
No state is shared between sessions.
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, TYPE_CHECKING

from platestream.network.codec import decode_control_message, encode_lookup_result
from platestream.network.types import AUDIO_END, AUDIO_START, FINAL, PARTIAL, WsControlMessage
from platestream.server.WavWriter import recording_filename, write_wav
from platestream.types import SessionState

if TYPE_CHECKING:
    from platestream.server.LookupResponder import LookupResponder

logger = logging.getLogger(__name__)


class ClientSession:
    """State machine for one streaming session.

    States: IDLE → AUDIO_ACTIVE (audio_start) → IDLE (audio_end, audio saved)
    → CLOSED (connection gone). Binary frames are buffered only in AUDIO_ACTIVE;
    anything arriving outside that window is dropped.

    Args:
        session_id: UUID string assigned to this session.
        recordings_dir: Directory that receives the WAV files.
        responder: Builds the acknowledgment for partial/final messages.
        audio_config: ``audio`` config section (sample_rate, channels, sample_width).
        now: Wall-clock source used for file names; injectable for tests.
    """

    def __init__(
        self,
        session_id: str,
        recordings_dir: Path,
        responder: "LookupResponder",
        audio_config: dict | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        audio_config = audio_config or {}
        self.session_id = session_id
        self.state = SessionState.IDLE
        self.audio_buffer = bytearray()
        self.created_at = time.time()
        self.saved_files: list[Path] = []
        self.dropped_frames = 0

        self._recordings_dir = Path(recordings_dir)
        self._responder = responder
        self._sample_rate: int = audio_config.get("sample_rate", 16000)
        self._channels: int = audio_config.get("channels", 1)
        self._sample_width: int = audio_config.get("sample_width", 2)
        self._now = now

    # ------------------------------------------------------------------
    # Frame handlers
    # ------------------------------------------------------------------

    def handle_text(self, text: str) -> str | None:
        """Parse and dispatch one text frame.

        Malformed JSON and unknown types are logged and ignored; they never
        end the session.

        Args:
            text: Raw text frame.

        Returns:
            Encoded reply to send back to the client, or None.
        """
        try:
            msg = decode_control_message(text)
        except ValueError as exc:
            logger.warning("ClientSession[%s]: malformed control message: %s", self.session_id, exc)
            return None
        return self.handle_control(msg)

    def handle_control(self, msg: WsControlMessage) -> str | None:
        """Dispatch a decoded control message on its type.

        Returns:
            Encoded reply to send back, or None.
        """
        if msg.type == AUDIO_START:
            self.state = SessionState.AUDIO_ACTIVE
            self.audio_buffer = bytearray()
            logger.info("ClientSession[%s]: audio stream started", self.session_id)
            return None

        if msg.type == AUDIO_END:
            if self.state == SessionState.AUDIO_ACTIVE:
                self._finalize_audio()
                self.state = SessionState.IDLE
            else:
                logger.debug("ClientSession[%s]: audio_end without audio_start", self.session_id)
            return None

        if msg.type in (PARTIAL, FINAL):
            result = self._responder.respond(msg)
            logger.debug(
                "ClientSession[%s]: %s ack plate=%s match=%s",
                self.session_id, msg.type, result.plate, result.match
            )
            return encode_lookup_result(result)

        logger.warning("ClientSession[%s]: unknown control message type %r", self.session_id, msg.type)
        return None

    def handle_binary(self, data: bytes) -> None:
        """Append an audio frame while AUDIO_ACTIVE; drop it otherwise."""
        if self.state == SessionState.AUDIO_ACTIVE:
            self.audio_buffer.extend(data)
        else:
            self.dropped_frames += 1
            logger.debug(
                "ClientSession[%s]: dropped %d audio bytes outside an active stream",
                self.session_id, len(data)
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the audio buffer and mark the session closed.

        Audio of an utterance still active at disconnect is discarded: only
        audio_end persists.
        """
        if self.state == SessionState.AUDIO_ACTIVE and self.audio_buffer:
            logger.info(
                "ClientSession[%s]: discarding %d unfinished audio bytes",
                self.session_id, len(self.audio_buffer)
            )
        self.audio_buffer = bytearray()
        self.state = SessionState.CLOSED
        logger.info("ClientSession[%s]: closed", self.session_id)

    def _finalize_audio(self) -> None:
        """Persist the buffered utterance. A write failure loses only this utterance."""
        base = self._recordings_dir / recording_filename(self.session_id, self._now())
        path = base
        suffix = 1
        # two utterances within the same second
        while path.exists():
            path = base.with_name(f"{base.stem}~{suffix}{base.suffix}")
            suffix += 1
        frame_size = self._channels * self._sample_width
        partial = len(self.audio_buffer) % frame_size
        if partial:
            logger.warning(
                "ClientSession[%s]: dropping %d trailing bytes of an incomplete frame",
                self.session_id, partial
            )
            del self.audio_buffer[-partial:]
        try:
            write_wav(
                path,
                bytes(self.audio_buffer),
                sample_rate=self._sample_rate,
                channels=self._channels,
                sample_width=self._sample_width,
            )
        except (OSError, RuntimeError, ValueError):
            logger.exception("ClientSession[%s]: failed to save audio to %s", self.session_id, path)
        else:
            self.saved_files.append(path)
            logger.info(
                "ClientSession[%s]: audio stream saved to %s (%d bytes)",
                self.session_id, path, len(self.audio_buffer)
            )
        self.audio_buffer = bytearray()
