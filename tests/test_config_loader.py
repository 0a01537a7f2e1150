# tests/test_config_loader.py
import json

import pytest

from platestream.ConfigLoader import DEFAULT_CONFIG, load_config, merge_config


def test_no_path_returns_copy_of_defaults():
    config = load_config()
    assert config == DEFAULT_CONFIG
    config["server"]["port"] = 1
    assert DEFAULT_CONFIG["server"]["port"] == 8080


def test_file_overrides_are_deep_merged(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"server": {"port": 9000}, "matching": {"min_plate_length": 6}}))

    config = load_config(path)

    assert config["server"]["port"] == 9000
    assert config["server"]["path"] == "/ws"
    assert config["matching"]["min_plate_length"] == 6
    assert config["matching"]["reset_timeout_sec"] == 3.0


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.json")


def test_non_object_document_raises(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_config(path)


def test_invalid_json_raises(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{")
    with pytest.raises(ValueError):
        load_config(path)


def test_merge_replaces_non_dict_values():
    base = {"a": {"b": 1}, "c": 2}
    assert merge_config(base, {"a": 5, "d": {"e": 1}}) == {"a": 5, "c": 2, "d": {"e": 1}}


def test_shipped_config_matches_defaults():
    from pathlib import Path
    shipped = Path(__file__).parent.parent / "config" / "platestream_config.json"
    assert load_config(shipped) == DEFAULT_CONFIG
