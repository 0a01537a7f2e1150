#!/usr/bin/env python3
"""
platestream – WebSocket server
Accepts capture clients, buffers their audio per session, saves each
utterance as a WAV file and acknowledges recognition messages.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from platestream.ConfigLoader import DEFAULT_CONFIG_PATH, load_config
from platestream.LoggingSetup import setup_logging
from platestream.server.ServerApp import ServerApp


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="platestream WebSocket server")
    parser.add_argument("--config", default=None,
                        help=f"JSON config file (default: {DEFAULT_CONFIG_PATH} if present)")
    parser.add_argument("--host", default=None, help="Bind address (overrides config)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config_path = args.config
    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH
    config = load_config(config_path)

    setup_logging(Path(config["logging"]["dir"]),
                  verbose=args.verbose or config["logging"]["verbose"],
                  log_name="server.log")
    logger = logging.getLogger("platestream.server")

    app = ServerApp(config, host=args.host, port=args.port)
    try:
        app.start()
    except OSError as exc:
        logger.error("Server failed to start: %s", exc)
        return 1

    signal.signal(signal.SIGINT, lambda *_: app.app_state.request_shutdown())
    signal.signal(signal.SIGTERM, lambda *_: app.app_state.request_shutdown())

    logger.info("Server running, press Ctrl+C to stop")
    while not app.app_state.wait_for_shutdown(timeout=0.5):
        pass

    app.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
