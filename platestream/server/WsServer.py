"""Listening side of the plate streaming protocol.

A websockets server runs on its own asyncio loop in a daemon thread, so the
synchronous ServerApp can start it, read the bound port and stop it from the
main thread. Every accepted connection runs as its own handler task with its
own ClientSession.
"""

import asyncio
import logging
import threading
from http import HTTPStatus
from typing import Any

import websockets

from platestream.server.SessionManager import SessionManager
from platestream.server.WsSessionReceiver import receive_session

logger = logging.getLogger(__name__)


class WsServer:
    """Thread-hosted WebSocket listener.

    Only upgrades on ``path`` are accepted; other paths are answered with
    HTTP 404 before the handshake, and non-upgrade HTTP requests get the
    websockets library's 426.

    Args:
        session_manager: Creates a session per connection and destroys it afterwards.
        host: Interface to bind.
        port: TCP port; 0 lets the OS choose (read it back from ``port``).
        path: Request path of the streaming endpoint.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        host: str = "127.0.0.1",
        port: int = 0,
        path: str = "/ws",
    ) -> None:
        self._session_manager = session_manager
        self._host = host
        self._port = port
        self._path = path

        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._shutdown: asyncio.Future | None = None
        self._listening = threading.Event()
        self._bind_error: OSError | None = None

    @property
    def port(self) -> int:
        """Port actually bound once start() returned; the requested one before."""
        return self._port

    def start(self) -> None:
        """Spawn the loop thread and block until the listener is bound.

        Raises:
            OSError: The listener could not be bound (e.g. port in use).
        """
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._thread_main, daemon=True, name="WsServer")
        self._thread.start()
        self._listening.wait()
        if self._bind_error is not None:
            raise self._bind_error

    def stop(self) -> None:
        """Ask the loop thread to close the listener and every open connection.

        Returns immediately; use join() to wait.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._trigger_shutdown)

    def join(self, timeout: float = 5.0) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    # ------------------------------------------------------------------
    # Loop thread
    # ------------------------------------------------------------------

    def _thread_main(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._listen())
        except OSError as exc:
            logger.error("WsServer: cannot listen on %s:%s: %s", self._host, self._port, exc)
            self._bind_error = exc
        finally:
            self._listening.set()
            self._loop.close()

    def _trigger_shutdown(self) -> None:
        if self._shutdown is not None and not self._shutdown.done():
            self._shutdown.set_result(None)

    async def _listen(self) -> None:
        self._shutdown = asyncio.get_running_loop().create_future()
        async with websockets.serve(
            self._handle_connection,
            self._host,
            self._port,
            process_request=self._check_path,
        ) as server:
            # port=0 resolves to a real port only after binding
            self._port = server.sockets[0].getsockname()[1]
            logger.info("WsServer: listening on ws://%s:%s%s", self._host, self._port, self._path)
            self._listening.set()
            await self._shutdown
        logger.info("WsServer: listener closed")

    def _check_path(self, connection: Any, request: Any) -> Any:
        # request.path carries the query string
        if request.path.split("?", 1)[0] == self._path:
            return None
        logger.warning("WsServer: rejecting request for %s", request.path)
        return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")

    async def _handle_connection(self, websocket: Any) -> None:
        """Own one connection from handshake to teardown.

        The session is destroyed on every exit path, including transport
        errors, so its buffer never outlives the connection.
        """
        session = self._session_manager.create_session()
        sid = session.session_id
        logger.info("WsServer: client %s connected as session %s", websocket.remote_address, sid)

        try:
            reason = await receive_session(websocket, session)
            logger.info("WsServer: session %s ended (%s)", sid, reason)
        except Exception:
            logger.exception("WsServer: session %s failed", sid)
        finally:
            try:
                await websocket.close()
            except Exception:
                logger.debug("WsServer: closing handshake for session %s did not complete", sid)
            self._session_manager.destroy_session(sid)
