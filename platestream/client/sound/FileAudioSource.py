# platestream/client/sound/FileAudioSource.py
from __future__ import annotations
import queue
import numpy as np
import time
import logging
import threading
from typing import Dict, Any, List

logger = logging.getLogger(__name__)


class FileAudioSource:
    """Replays a WAV file as if it were captured live.

    Same start/stop interface as AudioSource. The file is converted to the
    protocol format (16 kHz, mono, int16) and cut into ``buffer_ms`` chunks,
    which are put on chunk_queue at real-time cadence (or back to back when
    realtime is False).

    Processing steps:
    1. Load audio file using soundfile
    2. Take the first channel if multi-channel
    3. Resample to the configured rate if needed
    4. Split into fixed-size int16 chunks; the last one is padded with silence

    Args:
        chunk_queue: Queue receiving ``bytes`` chunks
        config: Configuration dictionary (``audio`` section used)
        file_path: Path to the audio file
        realtime: Pace chunks at the capture cadence
    """

    def __init__(self,
                 chunk_queue: queue.Queue,
                 config: Dict[str, Any],
                 file_path: str,
                 realtime: bool = True):

        self.chunk_queue: queue.Queue = chunk_queue
        self.file_path: str = file_path
        self.realtime: bool = realtime

        self.sample_rate: int = config['audio']['sample_rate']
        self.chunk_size: int = int(self.sample_rate * config['audio']['buffer_ms'] / 1000)

        self.chunks: List[bytes] = self._load_audio()

        self.is_running: bool = False
        self.finished = threading.Event()
        self.thread: threading.Thread | None = None

        logger.info("FileAudioSource: loaded %d chunks from %s", len(self.chunks), file_path)

    def _load_audio(self) -> List[bytes]:
        """Load, convert and split the file into int16 PCM chunks."""
        import soundfile as sf

        audio, sr = sf.read(self.file_path, dtype='float32')

        if len(audio.shape) > 1:
            audio = audio[:, 0]

        if sr != self.sample_rate:
            from scipy import signal
            num_samples = int(len(audio) * self.sample_rate / sr)
            audio = signal.resample(audio, num_samples).astype(np.float32)

        pcm = (np.clip(audio, -1.0, 1.0) * 32767).astype('<i2')

        chunks: List[bytes] = []
        for i in range(0, len(pcm), self.chunk_size):
            chunk = pcm[i:i + self.chunk_size]
            if len(chunk) < self.chunk_size:
                chunk = np.pad(chunk, (0, self.chunk_size - len(chunk)))
            chunks.append(chunk.tobytes())
        return chunks

    def start(self) -> None:
        """Start feeding chunks to the queue from a background thread."""
        self.is_running = True
        self.finished.clear()
        self.thread = threading.Thread(target=self._feed_chunks, daemon=True, name="FileAudioSource")
        self.thread.start()

    def _feed_chunks(self) -> None:
        chunk_duration = self.chunk_size / self.sample_rate
        start_time = time.monotonic()

        for i, chunk in enumerate(self.chunks):
            if not self.is_running:
                break

            if self.realtime:
                sleep_time = start_time + i * chunk_duration - time.monotonic()
                if sleep_time > 0:
                    time.sleep(sleep_time)

            try:
                self.chunk_queue.put(chunk, timeout=1.0)
            except queue.Full:
                logger.warning("chunk_queue full, dropping chunk")

        self.is_running = False
        self.finished.set()
        logger.info("FileAudioSource: finished feeding all chunks")

    def stop(self) -> None:
        """Stop feeding chunks and wait for the thread to exit."""
        self.is_running = False
        if self.thread:
            self.thread.join(timeout=1.0)
