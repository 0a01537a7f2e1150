"""Orchestrates SessionManager and WsServer: the server-side entry point.

ServerApp owns ServerApplicationState, the lookup responder, SessionManager
and WsServer. It starts and stops all components in the correct order.
"""

import logging
from pathlib import Path
from typing import Any, TYPE_CHECKING

from platestream.ServerApplicationState import ServerApplicationState
from platestream.registry.VehicleRegistry import HttpVehicleRegistry
from platestream.types import ServerPhase
from platestream.server.LookupResponder import MockLookupResponder, RegistryLookupResponder
from platestream.server.SessionManager import SessionManager
from platestream.server.WsServer import WsServer

if TYPE_CHECKING:
    from platestream.registry.VehicleRegistry import VehicleRegistry
    from platestream.server.LookupResponder import LookupResponder

logger = logging.getLogger(__name__)


def build_responder(config: dict[str, Any], registry: "VehicleRegistry | None" = None) -> "LookupResponder":
    """Choose the lookup responder from ``server.lookup``.

    ``"mock"`` (default) answers every recognition message with the fixed
    acknowledgment. ``"registry"`` queries ``registry`` if given, otherwise an
    HttpVehicleRegistry at ``registry.url``.

    Raises:
        ValueError: For an unknown lookup mode, or registry mode without a URL.
    """
    mode = config["server"].get("lookup", "mock")
    if mode == "mock":
        return MockLookupResponder()
    if mode == "registry":
        if registry is None:
            url = config["registry"].get("url")
            if not url:
                raise ValueError("server.lookup is 'registry' but registry.url is empty")
            registry = HttpVehicleRegistry(url, timeout=config["registry"].get("timeout_sec", 2.0))
        return RegistryLookupResponder(registry)
    raise ValueError(f"Unknown server.lookup mode: {mode!r}")


class ServerApp:
    """Orchestrates all server-side components for one server lifecycle.

    Args:
        config: Application config dict (see ConfigLoader.DEFAULT_CONFIG).
        host: Overrides ``server.host``.
        port: Overrides ``server.port``; 0 for OS-assigned.
        registry: Optional registry used when ``server.lookup == "registry"``.
    """

    def __init__(
        self,
        config: dict[str, Any],
        host: str | None = None,
        port: int | None = None,
        registry: "VehicleRegistry | None" = None,
    ) -> None:
        server_config = config["server"]
        self._stopped = False

        self.app_state = ServerApplicationState()
        self._responder = build_responder(config, registry)

        self._session_manager = SessionManager(
            recordings_dir=Path(server_config["recordings_dir"]),
            responder=self._responder,
            app_state=self.app_state,
            audio_config=config["audio"],
        )

        self._ws_server = WsServer(
            session_manager=self._session_manager,
            host=host if host is not None else server_config["host"],
            port=port if port is not None else server_config["port"],
            path=server_config.get("path", "/ws"),
        )

    @property
    def port(self) -> int:
        """Bound WebSocket port (available after start()).

        Returns:
            Port number.
        """
        return self._ws_server.port

    @property
    def session_manager(self) -> SessionManager:
        return self._session_manager

    def start(self) -> None:
        """Start WsServer and move the phase to RUNNING.

        Raises:
            OSError: If the server socket cannot be bound; the phase goes
                straight to SHUTDOWN.
        """
        try:
            self._ws_server.start()
        except OSError:
            self._stopped = True
            self.app_state.request_shutdown()
            raise
        self.app_state.set_phase(ServerPhase.RUNNING)
        logger.info("ServerApp: running on port %s", self.port)

    def stop(self) -> None:
        """Stop all server components gracefully.

        Algorithm:
            1. Guard against double-stop (idempotent).
            2. Move the phase to SHUTDOWN (no-op if a signal already did).
            3. Stop WsServer event loop; join to wait for thread exit.
            4. Close any session the handlers did not get to destroy.
            5. Release the responder's registry connection, if any.
        """
        if self._stopped:
            return
        self._stopped = True

        self.app_state.request_shutdown()
        self._ws_server.stop()
        self._ws_server.join()
        self._session_manager.close_all_sessions()
        close_responder = getattr(self._responder, "close", None)
        if close_responder is not None:
            close_responder()
        logger.info("ServerApp: stopped")
