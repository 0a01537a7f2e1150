"""Persist buffered PCM as a WAV file.

soundfile writes a plain RIFF/WAVE file with a 44-byte header for integer
PCM, so the PCM bytes of an utterance start at offset WAV_HEADER_LEN.
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path

import numpy as np
import soundfile as sf

WAV_HEADER_LEN = 44

# sample width in bytes -> (numpy dtype of the raw PCM, soundfile subtype)
_PCM_FORMATS = {
    2: ("<i2", "PCM_16"),
    4: ("<i4", "PCM_32"),
}


def recording_filename(session_id: str, when: datetime) -> str:
    """Deterministic file name for one session's utterance: ``audio_<id>_<YYYYmmdd_HHMMSS>.wav``."""
    return f"audio_{session_id}_{when:%Y%m%d_%H%M%S}.wav"


def pcm_to_frames(pcm: bytes, channels: int, sample_width: int) -> np.ndarray:
    """View raw little-endian PCM as a (frames, channels) sample array.

    Raises:
        ValueError: Unsupported sample width, or pcm is not a whole number of frames.
    """
    if sample_width not in _PCM_FORMATS:
        raise ValueError(f"unsupported sample width: {sample_width} bytes")
    frame_size = channels * sample_width
    if len(pcm) % frame_size:
        raise ValueError(f"{len(pcm)} PCM bytes is not a whole number of {frame_size}-byte frames")
    dtype, _ = _PCM_FORMATS[sample_width]
    return np.frombuffer(pcm, dtype=dtype).reshape(-1, channels)


def write_wav(
    path: Path,
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> Path:
    """Write pcm to path as a WAV file, atomically.

    The file is written to a temporary sibling and renamed into place, so a
    reader never sees a half-written recording.

    Args:
        path: Destination file.
        pcm: Raw little-endian PCM bytes.
        sample_rate: Samples per second.
        channels: Channel count.
        sample_width: Bytes per sample (2 or 4).

    Returns:
        The destination path.

    Raises:
        OSError: If the directory cannot be created or the file cannot be written.
        ValueError: If pcm does not fit the given format.
    """
    path = Path(path)
    frames = pcm_to_frames(pcm, channels, sample_width)
    _, subtype = _PCM_FORMATS[sample_width]
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", suffix=".wav", dir=path.parent)
    os.close(fd)
    try:
        sf.write(tmp_name, frames, sample_rate, subtype=subtype, format="WAV")
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return path
