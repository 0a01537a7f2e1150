# tests/test_audio_streamer.py
import json
import queue
from unittest.mock import Mock, call

import pytest

from platestream.client.AudioStreamer import AudioStreamer
from platestream.postprocessing.PlateAccumulator import PlateAccumulator


class ScriptedRecognizer:
    """Recognizer double: finalizes on chunks listed in `finals`, returns scripted JSON."""

    def __init__(self, finals: dict[int, dict] | None = None, partial: str = "mike"):
        self.finals = finals or {}
        self.partial = partial
        self.chunks: list[bytes] = []
        self._final_json = ""

    def accept_waveform(self, data: bytes) -> bool:
        self.chunks.append(data)
        index = len(self.chunks) - 1
        if index in self.finals:
            self._final_json = json.dumps(self.finals[index])
            return True
        return False

    def result(self) -> str:
        return self._final_json

    def partial_result(self) -> str:
        return json.dumps({"partial": self.partial})


@pytest.fixture
def sink():
    return Mock()


def _make_streamer(sink, recognizer, accumulator=None):
    return AudioStreamer(
        sink=sink,
        recognizer=recognizer,
        accumulator=accumulator if accumulator is not None else Mock(),
        chunk_queue=queue.Queue(),
    )


def test_partial_result_is_mirrored_after_audio(sink):
    streamer = _make_streamer(sink, ScriptedRecognizer())

    streamer.process_chunk(b"\x01\x00")

    assert sink.mock_calls == [
        call.send_audio_threadsafe(b"\x01\x00"),
        call.send_control_threadsafe("partial", {"partial": "mike"}),
    ]


def test_final_result_is_sent_and_fed_to_accumulator(sink):
    final = {"alternatives": [{"text": "alpha bravo", "confidence": 0.3},
                              {"text": "mike echo four", "confidence": 0.9}]}
    accumulator = Mock()
    streamer = _make_streamer(sink, ScriptedRecognizer(finals={0: final}), accumulator)

    streamer.process_chunk(b"\x01\x00")

    sink.send_control_threadsafe.assert_called_once_with("final", final)
    accumulator.process.assert_called_once_with("ME4")


def test_final_without_alternatives_does_not_touch_accumulator(sink):
    accumulator = Mock()
    streamer = _make_streamer(sink, ScriptedRecognizer(finals={0: {"alternatives": []}}), accumulator)

    streamer.process_chunk(b"\x01\x00")

    sink.send_control_threadsafe.assert_called_once_with("final", {"alternatives": []})
    accumulator.process.assert_not_called()


def test_invalid_recognizer_json_is_skipped(sink, caplog):
    recognizer = Mock()
    recognizer.accept_waveform.return_value = False
    recognizer.partial_result.return_value = "{nope"
    streamer = _make_streamer(sink, recognizer)

    streamer.process_chunk(b"\x01\x00")

    sink.send_audio_threadsafe.assert_called_once()
    sink.send_control_threadsafe.assert_not_called()
    assert "invalid JSON" in caplog.text


def test_start_and_stop_bracket_the_stream(sink):
    streamer = _make_streamer(sink, ScriptedRecognizer())

    streamer.start()
    streamer.chunk_queue.put(b"\x01\x00")
    streamer.chunk_queue.put(b"\x02\x00")
    streamer.stop()

    control_types = [c.args[0] for c in sink.send_control_threadsafe.call_args_list]
    assert control_types[0] == "audio_start"
    assert control_types[-1] == "audio_end"
    assert streamer.chunks_processed == 2
    assert not streamer.thread.is_alive()


def test_stop_without_start_sends_nothing(sink):
    streamer = _make_streamer(sink, ScriptedRecognizer())
    streamer.stop()
    sink.send_control_threadsafe.assert_not_called()


def test_recognizer_error_does_not_kill_worker(sink):
    recognizer = Mock()
    recognizer.accept_waveform.side_effect = [RuntimeError("engine crashed"), False]
    recognizer.partial_result.return_value = '{"partial": ""}'
    streamer = _make_streamer(sink, recognizer)

    streamer.start()
    streamer.chunk_queue.put(b"\x01\x00")
    streamer.chunk_queue.put(b"\x02\x00")
    streamer.stop()

    assert streamer.chunks_processed == 2
    assert recognizer.accept_waveform.call_count == 2


def test_spelled_plate_across_utterances_matches(sink, registry):
    matches = []
    accumulator = PlateAccumulator(registry=registry, on_match=matches.append)
    finals = {
        0: {"alternatives": [{"text": "mike echo", "confidence": 0.8}]},
        1: {"alternatives": [{"text": "four seven", "confidence": 0.7}]},
        2: {"alternatives": [{"text": "x-ray kilo", "confidence": 0.9}]},
    }
    streamer = _make_streamer(sink, ScriptedRecognizer(finals=finals), accumulator)

    for chunk in (b"\x01\x00", b"\x02\x00", b"\x03\x00"):
        streamer.process_chunk(chunk)

    assert [m.plate for m in matches] == ["ME47XK"]
    assert accumulator.buffer == ""
