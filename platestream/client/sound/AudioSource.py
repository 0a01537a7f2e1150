# platestream/client/sound/AudioSource.py
from __future__ import annotations
import sounddevice as sd
import queue
import logging
from typing import Dict, Any

logger = logging.getLogger(__name__)


class AudioSource:
    """Captures microphone audio and emits raw int16 PCM chunks to a queue.

    Uses a sounddevice RawInputStream at the protocol format (16 kHz, mono,
    16-bit). Each callback delivers ``buffer_ms`` of audio; the callback only
    copies the captured bytes onto chunk_queue so it never blocks the audio
    thread. Recognition and network sends happen on the consumer side.

    Args:
        chunk_queue: Queue receiving ``bytes`` chunks
        config: Configuration dictionary (``audio`` section used)
    """

    def __init__(self,
                 chunk_queue: queue.Queue,
                 config: Dict[str, Any]):

        self.chunk_queue: queue.Queue = chunk_queue

        self.sample_rate: int = config['audio']['sample_rate']
        self.channels: int = config['audio']['channels']
        self.chunk_size: int = int(self.sample_rate * config['audio']['buffer_ms'] / 1000)
        self.is_running: bool = False
        self.stream: sd.RawInputStream | None = None

    def audio_callback(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        """Callback from sounddevice with one block of captured audio.

        Args:
            indata: Raw buffer holding ``frames`` int16 samples
            frames: Number of audio frames
            time_info: Timing information from sounddevice
            status: Status information from sounddevice
        """
        if status:
            logger.error("Audio error: %s", status)

        try:
            self.chunk_queue.put_nowait(bytes(indata))
        except queue.Full:
            logger.warning("chunk_queue full, dropping audio chunk")

    def start(self) -> None:
        """Open the input stream and start capturing."""
        self.is_running = True
        self.stream = sd.RawInputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype='int16',
            callback=self.audio_callback,
            blocksize=self.chunk_size
        )
        self.stream.start()
        logger.info("AudioSource: capturing %d Hz, %d-sample blocks", self.sample_rate, self.chunk_size)

    def stop(self) -> None:
        """Stop capturing and release the device."""
        self.is_running = False
        if self.stream:
            self.stream.stop()
            self.stream.close()
            self.stream = None
