#!/usr/bin/env python3
"""
platestream – capture client
Streams microphone (or WAV file) audio to the platestream server, runs the
local recognizer and matches spoken plates against the vehicle registry.
"""

import argparse
import logging
import signal
import sys
import threading
from functools import partial
from pathlib import Path

from platestream.ConfigLoader import DEFAULT_CONFIG_PATH, load_config
from platestream.LoggingSetup import setup_logging
from platestream.asr.Recognizer import load_recognizer
from platestream.client.ClientApp import ClientApp
from platestream.errors import ConnectCancelledError, ConnectionFailedError
from platestream.registry.VehicleRegistry import HttpVehicleRegistry, InMemoryVehicleRegistry


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="platestream capture client")
    parser.add_argument("--config", default=None,
                        help=f"JSON config file (default: {DEFAULT_CONFIG_PATH} if present)")
    parser.add_argument("--server-url", default=None, help="WebSocket URL (overrides config)")
    parser.add_argument("--file", default=None, help="Replay a WAV file instead of the microphone")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def _build_registry(config: dict):
    registry_config = config["registry"]
    if registry_config["url"]:
        return HttpVehicleRegistry(registry_config["url"], timeout=registry_config["timeout_sec"])
    return InMemoryVehicleRegistry()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config_path = args.config
    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH
    config = load_config(config_path)

    setup_logging(Path(config["logging"]["dir"]),
                  verbose=args.verbose or config["logging"]["verbose"],
                  log_name="client.log")
    logger = logging.getLogger("platestream.client")

    source_factory = None
    if args.file:
        from platestream.client.sound.FileAudioSource import FileAudioSource
        source_factory = partial(FileAudioSource, file_path=args.file)

    registry = _build_registry(config)
    app = ClientApp(
        config,
        recognizer=load_recognizer(config),
        registry=registry,
        source_factory=source_factory,
        server_url=args.server_url,
    )

    stop_requested = threading.Event()

    def _on_signal(*_):
        stop_requested.set()
        app.cancel_connect()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    try:
        app.connect()
    except (ConnectionFailedError, ConnectCancelledError) as exc:
        logger.error("%s", exc)
        app.close()
        return 1

    app.start()
    finished = getattr(app.source, "finished", None)
    while not stop_requested.wait(0.5):
        if finished is not None and finished.is_set():
            break

    app.stop()
    app.close()
    if isinstance(registry, HttpVehicleRegistry):
        registry.close()
    logger.info("Client finished, %d plate(s) matched", len(app.matches))
    return 0


if __name__ == "__main__":
    sys.exit(main())
