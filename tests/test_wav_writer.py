# tests/test_wav_writer.py
import struct
from datetime import datetime

import numpy as np
import pytest
import soundfile as sf

from platestream.server.WavWriter import (
    WAV_HEADER_LEN,
    pcm_to_frames,
    recording_filename,
    write_wav,
)


def test_header_fields_describe_mono_16bit_pcm(tmp_path, pcm_tone):
    path = write_wav(tmp_path / "out.wav", pcm_tone)

    header = path.read_bytes()[:WAV_HEADER_LEN]
    (riff, riff_size, wave, fmt, fmt_size, audio_format, channels, sample_rate,
     byte_rate, block_align, bits, data, data_len) = struct.unpack("<4sI4s4sIHHIIHH4sI", header)
    assert (riff, wave, fmt, data) == (b"RIFF", b"WAVE", b"fmt ", b"data")
    assert riff_size == 36 + len(pcm_tone)
    assert fmt_size == 16
    assert audio_format == 1
    assert channels == 1
    assert sample_rate == 16000
    assert byte_rate == 32000
    assert block_align == 2
    assert bits == 16
    assert data_len == len(pcm_tone)


def test_write_wav_stores_header_then_exact_pcm(tmp_path, pcm_tone):
    path = write_wav(tmp_path / "out.wav", pcm_tone)

    raw = path.read_bytes()
    assert len(raw) == WAV_HEADER_LEN + len(pcm_tone)
    assert raw[WAV_HEADER_LEN:] == pcm_tone


def test_written_file_is_readable_by_soundfile(tmp_path, pcm_tone):
    path = write_wav(tmp_path / "out.wav", pcm_tone)

    audio, sr = sf.read(str(path), dtype="int16")
    assert sr == 16000
    np.testing.assert_array_equal(audio, np.frombuffer(pcm_tone, dtype="<i2"))


def test_stereo_pcm_keeps_interleaving(tmp_path):
    pcm = np.array([1, -1, 2, -2, 3, -3], dtype="<i2").tobytes()

    path = write_wav(tmp_path / "stereo.wav", pcm, channels=2)

    audio, _ = sf.read(str(path), dtype="int16")
    assert audio.shape == (3, 2)
    assert path.read_bytes()[WAV_HEADER_LEN:] == pcm


def test_empty_pcm_is_header_only(tmp_path):
    path = write_wav(tmp_path / "empty.wav", b"")
    assert len(path.read_bytes()) == WAV_HEADER_LEN


def test_missing_directories_are_created(tmp_path):
    path = write_wav(tmp_path / "a" / "b" / "out.wav", b"\x00\x00")
    assert path.exists()


def test_no_temporary_files_left_behind(tmp_path, pcm_tone):
    write_wav(tmp_path / "out.wav", pcm_tone)
    assert [p.name for p in tmp_path.iterdir()] == ["out.wav"]


def test_unwritable_destination_raises_os_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(OSError):
        write_wav(blocker / "out.wav", b"\x00\x00")


def test_incomplete_frame_is_rejected():
    with pytest.raises(ValueError):
        pcm_to_frames(b"\x00\x00\x00", channels=1, sample_width=2)


def test_unsupported_sample_width_is_rejected():
    with pytest.raises(ValueError):
        pcm_to_frames(b"\x00\x00\x00", channels=1, sample_width=3)


def test_recording_filename_is_deterministic():
    when = datetime(2024, 3, 9, 14, 5, 7)
    assert recording_filename("abc-123", when) == "audio_abc-123_20240309_140507.wav"
