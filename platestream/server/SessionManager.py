"""Session lifecycle manager: creates and destroys ClientSession instances.

Every new WebSocket connection gets a fresh uuid4 session with its own audio
buffer. The manager only tracks sessions; it never touches their buffers.
"""

import logging
import threading
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from platestream.server.ClientSession import ClientSession
from platestream.types import ServerPhase

if TYPE_CHECKING:
    from platestream.server.LookupResponder import LookupResponder
    from platestream.ServerApplicationState import ServerApplicationState

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates and destroys ClientSession objects; tracks active sessions.

    Observes ServerApplicationState for server shutdown.

    Args:
        recordings_dir: Directory for persisted WAV files.
        responder: Lookup responder shared by all sessions (stateless).
        app_state: Server lifecycle state; optional for tests.
        audio_config: ``audio`` config section passed to each session.
    """

    def __init__(
        self,
        recordings_dir: Path,
        responder: "LookupResponder",
        app_state: "ServerApplicationState | None" = None,
        audio_config: dict | None = None,
    ) -> None:
        self._recordings_dir = Path(recordings_dir)
        self._responder = responder
        self._audio_config = audio_config or {}

        self._sessions: dict[str, ClientSession] = {}
        self._sessions_lock = threading.Lock()

        if app_state is not None:
            app_state.register_component_observer(self._on_phase_change)

    @property
    def active_count(self) -> int:
        with self._sessions_lock:
            return len(self._sessions)

    def create_session(self) -> ClientSession:
        """Create and register a new session in the Idle state.

        Returns:
            New ClientSession with a unique uuid4 session_id.
        """
        session_id = str(uuid.uuid4())
        session = ClientSession(
            session_id=session_id,
            recordings_dir=self._recordings_dir,
            responder=self._responder,
            audio_config=self._audio_config,
        )

        with self._sessions_lock:
            self._sessions[session_id] = session

        logger.info("SessionManager: session created id=%s", session_id)
        return session

    def get_session(self, session_id: str) -> ClientSession | None:
        with self._sessions_lock:
            return self._sessions.get(session_id)

    def destroy_session(self, session_id: str) -> None:
        """Close and remove a session by ID.

        Args:
            session_id: UUID of the session to destroy.
        """
        with self._sessions_lock:
            session = self._sessions.pop(session_id, None)

        if session is None:
            logger.warning("SessionManager: destroy_session called for unknown id=%s", session_id)
            return

        session.close()
        logger.info("SessionManager: session destroyed id=%s", session_id)

    def close_all_sessions(self) -> None:
        """Close all active sessions (called on server shutdown)."""
        with self._sessions_lock:
            session_items = list(self._sessions.items())
            self._sessions.clear()

        for session_id, session in session_items:
            try:
                session.close()
            except Exception:
                logger.exception("SessionManager: error closing session %s", session_id)

        logger.info("SessionManager: all sessions closed")

    def _on_phase_change(self, old_phase: ServerPhase, new_phase: ServerPhase) -> None:
        """Observe server shutdown.

        Sessions are owned by their handler tasks, so they are not closed
        here; ServerApp calls close_all_sessions() once the event loop thread
        has exited.
        """
        if new_phase is ServerPhase.SHUTDOWN:
            logger.info("SessionManager: server shutdown observed")
