"""Configuration loading: JSON file merged over built-in defaults."""

import copy
import json
from pathlib import Path
from typing import Any, Dict

DEFAULT_CONFIG_PATH = Path("config") / "platestream_config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "channels": 1,
        "sample_width": 2,
        "buffer_ms": 500,
    },
    "client": {
        "server_url": "ws://localhost:8080/ws",
        "max_attempts": 0,
        "retry_interval_ms": 2000,
        "chunk_queue_size": 100,
    },
    "server": {
        "host": "localhost",
        "port": 8080,
        "path": "/ws",
        "recordings_dir": "recordings",
        "lookup": "mock",
    },
    "matching": {
        "reset_timeout_sec": 3.0,
        "min_plate_length": 5,
    },
    "registry": {
        "url": "",
        "timeout_sec": 2.0,
    },
    "recognizer": {
        "factory": "",
        "max_alternatives": 3,
    },
    "logging": {
        "dir": "logs",
        "verbose": False,
    },
}


def load_config(config_path: str | Path | None = None) -> Dict[str, Any]:
    """Load configuration from a JSON file and merge it over DEFAULT_CONFIG.

    Args:
        config_path: Path to the JSON config. None returns a copy of the defaults.

    Returns:
        Configuration dictionary with every section present.

    Raises:
        FileNotFoundError: If config_path is given but does not exist.
        ValueError: If the file is not a JSON object.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path is None:
        return config

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        overrides = json.load(f)

    if not isinstance(overrides, dict):
        raise ValueError(f"Config file must contain a JSON object: {config_path}")

    return merge_config(config, overrides)


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge overrides into base (in place) and return base."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_config(base[key], value)
        else:
            base[key] = value
    return base
