# platestream/client/AudioStreamer.py
from __future__ import annotations
import json
import logging
import queue
import threading
from typing import Any, Optional, Protocol, TYPE_CHECKING

from platestream.network.types import AUDIO_END, AUDIO_START, FINAL, PARTIAL
from platestream.postprocessing.AlternativeSelector import select_best_alternative
from platestream.postprocessing.TranscriptNormalizer import TranscriptNormalizer

if TYPE_CHECKING:
    from platestream.asr.Recognizer import StreamingRecognizer
    from platestream.postprocessing.PlateAccumulator import PlateAccumulator

logger = logging.getLogger(__name__)

_STOP = object()


class FrameSink(Protocol):
    """Thread-safe outbound side of the WebSocket client."""

    def send_control_threadsafe(self, msg_type: str, payload: Any = None) -> None: ...

    def send_audio_threadsafe(self, data: bytes, length: int | None = None) -> None: ...


class AudioStreamer:
    """Single consumer of captured audio: mirrors it to the server and drives matching.

    The capture callback only puts raw PCM chunks onto chunk_queue. This
    class's worker thread is the only place that touches the recognizer and
    the PlateAccumulator, so neither is ever called re-entrantly.

    Per-capture protocol flow:
        start(): send audio_start, start the worker
        each chunk: send the binary frame, feed the recognizer, then send
            ``final`` (utterance completed) or ``partial`` with its JSON result;
            a final result's best alternative is normalized and fed to the
            accumulator
        stop(): drain remaining chunks, stop the worker, send audio_end

    Args:
        sink: Outbound frame sink (WebSocketClient).
        recognizer: Streaming recognizer fed with each chunk.
        accumulator: Plate accumulator receiving normalized final text.
        chunk_queue: Queue of raw PCM ``bytes`` filled by the capture source.
        normalizer: Transcript normalizer; default table if omitted.
    """

    def __init__(self,
                 sink: FrameSink,
                 recognizer: 'StreamingRecognizer',
                 accumulator: 'PlateAccumulator',
                 chunk_queue: queue.Queue,
                 normalizer: Optional[TranscriptNormalizer] = None):
        self.sink: FrameSink = sink
        self.recognizer = recognizer
        self.accumulator = accumulator
        self.chunk_queue: queue.Queue = chunk_queue
        self.normalizer: TranscriptNormalizer = normalizer if normalizer is not None else TranscriptNormalizer()
        self.is_running: bool = False
        self.thread: Optional[threading.Thread] = None
        self.chunks_processed: int = 0

    def start(self) -> None:
        """Announce the audio stream and start the worker thread."""
        self.sink.send_control_threadsafe(AUDIO_START)
        self.is_running = True
        self.thread = threading.Thread(target=self._run, daemon=True, name="AudioStreamer")
        self.thread.start()
        logger.info("AudioStreamer: started")

    def stop(self, timeout: float = 5.0) -> None:
        """Process chunks already queued, stop the worker and send audio_end."""
        if not self.is_running:
            return
        self.is_running = False
        self.chunk_queue.put(_STOP)
        if self.thread is not None:
            self.thread.join(timeout=timeout)
        self.sink.send_control_threadsafe(AUDIO_END)
        logger.info("AudioStreamer: stopped after %d chunks", self.chunks_processed)

    def _run(self) -> None:
        while True:
            chunk = self.chunk_queue.get()
            if chunk is _STOP:
                return
            try:
                self.process_chunk(chunk)
            except Exception:
                logger.exception("AudioStreamer: error processing audio chunk")

    def process_chunk(self, chunk: bytes) -> None:
        """Mirror one captured chunk to the server and run the recognizer on it.

        Args:
            chunk: Raw int16 PCM bytes exactly as captured.
        """
        self.chunks_processed += 1
        self.sink.send_audio_threadsafe(chunk)

        if self.recognizer.accept_waveform(chunk):
            raw = self.recognizer.result()
            payload = self._decode(raw)
            if payload is None:
                return
            logger.info("AudioStreamer: final %s", raw)
            self.sink.send_control_threadsafe(FINAL, payload)
            self._match(payload)
        else:
            payload = self._decode(self.recognizer.partial_result())
            if payload is not None:
                self.sink.send_control_threadsafe(PARTIAL, payload)

    def _match(self, payload: Any) -> None:
        """Feed the best alternative of a final result into the accumulator."""
        text = select_best_alternative(payload)
        if not text:
            return
        normalized = self.normalizer.normalize(text)
        logger.debug("AudioStreamer: %r normalized to %r", text, normalized)
        self.accumulator.process(normalized)

    @staticmethod
    def _decode(raw: str) -> Any:
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning("AudioStreamer: recognizer returned invalid JSON: %s", exc)
            return None
