# tests/conftest.py
import numpy as np
import pytest

from platestream.ConfigLoader import load_config
from platestream.registry.VehicleRegistry import InMemoryVehicleRegistry
from platestream.types import VehicleRecord


@pytest.fixture
def config(tmp_path):
    """Provide the default configuration with writable directories.

    Recordings and logs go under tmp_path; the server binds an OS-assigned
    port on the loopback interface; buffer_ms is short so file replay tests
    produce several chunks from a fraction of a second of audio.

    Returns:
        Dict: Configuration dictionary matching production config structure
    """
    cfg = load_config()
    cfg['audio']['buffer_ms'] = 100
    cfg['server']['host'] = '127.0.0.1'
    cfg['server']['port'] = 0
    cfg['server']['recordings_dir'] = str(tmp_path / 'recordings')
    cfg['logging']['dir'] = str(tmp_path / 'logs')
    cfg['client']['retry_interval_ms'] = 10
    return cfg


@pytest.fixture
def registry():
    """In-memory registry holding two known plates."""
    return InMemoryVehicleRegistry([
        VehicleRecord(plate="ABCDE", year=2019, make="Toyota", model="Corolla", status="active"),
        VehicleRecord(plate="ME47XK", year=2015, make="Ford", model="Focus", status="stolen"),
    ])


@pytest.fixture
def pcm_tone():
    """Generate 0.25 s of a 440 Hz tone as int16 little-endian PCM bytes.

    Returns:
        bytes: 4000 samples (8000 bytes) at 16 kHz
    """
    t = np.arange(4000) / 16000
    samples = (np.sin(2 * np.pi * 440 * t) * 8000).astype('<i2')
    return samples.tobytes()
