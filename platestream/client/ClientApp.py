"""Client orchestrator: capture source + WebSocketClient + AudioStreamer + PlateAccumulator.

ClientApp runs the WebSocket client on an asyncio event loop in a daemon
thread. Capture runs on the sounddevice (or file replay) thread and only
fills a bounded chunk queue; the AudioStreamer worker thread consumes it.
"""

import asyncio
import logging
import queue
import threading
from typing import Any, Callable, Optional, TYPE_CHECKING

from platestream.client.AudioStreamer import AudioStreamer
from platestream.client.WebSocketClient import WebSocketClient
from platestream.network.codec import decode_lookup_result
from platestream.network.types import MOCK_DB_RESULT, WsControlMessage
from platestream.postprocessing.PlateAccumulator import PlateAccumulator
from platestream.types import VehicleRecord

if TYPE_CHECKING:
    from platestream.asr.Recognizer import StreamingRecognizer
    from platestream.registry.VehicleRegistry import VehicleRegistry

logger = logging.getLogger(__name__)


class ClientApp:
    """Wires the client-side components for one capture session.

    Responsibilities:
    - Run an asyncio loop thread for the WebSocketClient.
    - Connect with the configured retry policy (blocking, cancellable).
    - Build the PlateAccumulator and AudioStreamer around the recognizer.
    - Start/stop the capture source and the streamer in order.

    Args:
        config: Application configuration dict.
        recognizer: Streaming recognizer fed with captured PCM.
        registry: Registry the accumulator queries.
        source_factory: Builds the capture source from (chunk_queue, config);
            defaults to the microphone AudioSource.
        on_match: Called with each matched VehicleRecord.
        server_url: Overrides ``client.server_url``.
    """

    def __init__(
        self,
        config: dict,
        recognizer: "StreamingRecognizer",
        registry: "VehicleRegistry",
        source_factory: Optional[Callable[[queue.Queue, dict], Any]] = None,
        on_match: Optional[Callable[[VehicleRecord], None]] = None,
        server_url: Optional[str] = None,
    ) -> None:
        self._config = config
        client_config = config["client"]
        self._max_attempts: int = client_config["max_attempts"]
        self._retry_interval_ms: int = client_config["retry_interval_ms"]

        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._run_loop, daemon=True, name="ClientApp-Loop"
        )
        self._cancel_event: Optional[asyncio.Event] = None
        self._cancel_requested = threading.Event()
        self.matches: list[VehicleRecord] = []
        self._on_match = on_match

        self.client = WebSocketClient(
            url=server_url or client_config["server_url"],
            on_message=self._on_server_message,
        )

        self.accumulator = PlateAccumulator(
            registry=registry,
            reset_timeout=config["matching"]["reset_timeout_sec"],
            min_length=config["matching"]["min_plate_length"],
            on_match=self._handle_match,
        )

        self._chunk_queue: queue.Queue = queue.Queue(maxsize=client_config["chunk_queue_size"])
        if source_factory is None:
            from platestream.client.sound.AudioSource import AudioSource
            source_factory = AudioSource
        self.source = source_factory(self._chunk_queue, config)

        self.streamer = AudioStreamer(
            sink=self.client,
            recognizer=recognizer,
            accumulator=self.accumulator,
            chunk_queue=self._chunk_queue,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Start the loop thread and connect, blocking until done.

        Raises:
            ConnectionFailedError: Attempt budget exhausted.
            ConnectCancelledError: cancel_connect() was called.
        """
        if not self._loop_thread.is_alive():
            self._loop_thread.start()
        future = asyncio.run_coroutine_threadsafe(self._connect(), self._loop)
        future.result()

    def cancel_connect(self) -> None:
        """Thread-safe: abort a connect() in progress.

        A cancel that arrives before connect() is called also aborts it.
        """
        self._cancel_requested.set()
        cancel_event = self._cancel_event
        if cancel_event is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(cancel_event.set)

    def start(self) -> None:
        """Announce the audio stream and start capture."""
        self.streamer.start()
        self.source.start()
        logger.info("ClientApp: streaming to %s", self.client.url)

    def stop(self) -> None:
        """Stop capture, drain the streamer (sends audio_end)."""
        self.source.stop()
        self.streamer.stop()
        logger.info("ClientApp: capture stopped")

    def close(self) -> None:
        """Close the connection and stop the loop thread."""
        if self._loop_thread.is_alive():
            asyncio.run_coroutine_threadsafe(self.client.close(), self._loop).result(timeout=10.0)
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._loop_thread.join(timeout=5.0)
        logger.info("ClientApp: closed")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()
        self._loop.close()

    async def _connect(self) -> None:
        self._cancel_event = asyncio.Event()
        # checked after publishing the event; cancel_connect() sets the flag first
        if self._cancel_requested.is_set():
            self._cancel_event.set()
        await self.client.connect(
            max_attempts=self._max_attempts,
            retry_interval_ms=self._retry_interval_ms,
            cancel_event=self._cancel_event,
        )

    def _handle_match(self, record: VehicleRecord) -> None:
        logger.info(
            "ClientApp: plate %s matched: %s %s %s (%s)",
            record.plate, record.year, record.make, record.model, record.status
        )
        self.matches.append(record)
        if self._on_match is not None:
            self._on_match(record)

    def _on_server_message(self, msg: WsControlMessage) -> None:
        if msg.type != MOCK_DB_RESULT:
            logger.debug("ClientApp: ignoring server message type %r", msg.type)
            return
        try:
            result = decode_lookup_result(msg)
        except ValueError as exc:
            logger.warning("ClientApp: %s", exc)
            return
        logger.debug(
            "ClientApp: server ack plate=%s match=%s score=%.2f", result.plate, result.match, result.score
        )
