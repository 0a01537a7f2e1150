"""Tests for ClientApp wired to a real ServerApp.

Strategy: a list-backed capture source instead of the microphone, a
scripted recognizer, and the in-memory registry fixture.
"""

import json
import socket
import time
from pathlib import Path

import pytest

from platestream.client.ClientApp import ClientApp
from platestream.errors import ConnectCancelledError, ConnectionFailedError
from platestream.server.ServerApp import ServerApp
from platestream.server.WavWriter import WAV_HEADER_LEN
from platestream.types import ConnectionState


class ListSource:
    """Capture source double: puts preset chunks on the queue at start()."""

    def __init__(self, chunks):
        self.chunks = chunks

    def __call__(self, chunk_queue, config):
        self.chunk_queue = chunk_queue
        return self

    def start(self):
        for chunk in self.chunks:
            self.chunk_queue.put(chunk)

    def stop(self):
        pass


class SpellingRecognizer:
    """Finalizes every chunk with the next scripted utterance."""

    def __init__(self, utterances):
        self.utterances = list(utterances)
        self._last = ""

    def accept_waveform(self, data):
        self._last = self.utterances.pop(0) if self.utterances else ""
        return True

    def result(self):
        return json.dumps({"alternatives": [{"text": self._last, "confidence": 0.9}]})

    def partial_result(self):
        return json.dumps({"partial": ""})


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def server(config):
    app = ServerApp(config)
    app.start()
    yield app
    app.stop()


def _wait_for(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


def test_streams_audio_and_matches_plate(config, server, registry):
    chunks = [bytes([i, 0]) * 100 for i in range(1, 4)]
    matched = []
    app = ClientApp(
        config,
        recognizer=SpellingRecognizer(["mike echo", "four seven", "x-ray kilo"]),
        registry=registry,
        source_factory=ListSource(chunks),
        on_match=matched.append,
        server_url=f"ws://127.0.0.1:{server.port}/ws",
    )

    app.connect()
    assert app.client.state == ConnectionState.CONNECTED
    app.start()
    _wait_for(lambda: app.streamer.chunks_processed == 3)
    app.stop()
    app.close()

    assert [r.plate for r in matched] == ["ME47XK"]
    assert app.matches == matched

    recordings = Path(config["server"]["recordings_dir"])
    _wait_for(lambda: recordings.exists() and len(list(recordings.glob("*.wav"))) == 1)
    wav = next(recordings.glob("*.wav"))
    assert wav.read_bytes()[WAV_HEADER_LEN:] == b"".join(chunks)


def test_connect_gives_up_after_max_attempts(config):
    config["client"]["max_attempts"] = 2
    app = ClientApp(
        config,
        recognizer=SpellingRecognizer([]),
        registry=None,
        source_factory=ListSource([]),
        server_url=f"ws://127.0.0.1:{_free_port()}/ws",
    )

    with pytest.raises(ConnectionFailedError) as excinfo:
        app.connect()
    app.close()

    assert excinfo.value.attempts == 2
    assert app.client.attempt_count == 2


def test_cancel_before_connect_is_honoured(config):
    config["client"]["max_attempts"] = 0
    app = ClientApp(
        config,
        recognizer=SpellingRecognizer([]),
        registry=None,
        source_factory=ListSource([]),
        server_url=f"ws://127.0.0.1:{_free_port()}/ws",
    )

    app.cancel_connect()
    with pytest.raises(ConnectCancelledError):
        app.connect()
    app.close()

    assert app.client.attempt_count == 0
    assert app.client.state == ConnectionState.DISCONNECTED
