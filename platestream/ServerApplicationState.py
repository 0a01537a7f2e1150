"""Server lifecycle phase shared by ServerApp, SessionManager and the entry script."""

import logging
import threading
from typing import Callable

from platestream.types import ServerPhase

logger = logging.getLogger(__name__)

PhaseObserver = Callable[[ServerPhase, ServerPhase], None]


class ServerApplicationState:
    """Thread-safe server phase with observer notification.

    Observers receive ``(old_phase, new_phase)`` in the thread that made the
    transition, after the lock is released. An observer that raises is
    logged and does not prevent the remaining observers from running.

    Any thread may block in wait_for_shutdown(); signal handlers only call
    request_shutdown(), which is idempotent.
    """

    _VALID_TRANSITIONS: dict[ServerPhase, frozenset[ServerPhase]] = {
        ServerPhase.STARTING: frozenset({ServerPhase.RUNNING, ServerPhase.SHUTDOWN}),
        ServerPhase.RUNNING: frozenset({ServerPhase.SHUTDOWN}),
        ServerPhase.SHUTDOWN: frozenset(),
    }

    def __init__(self) -> None:
        self._phase = ServerPhase.STARTING
        self._changed = threading.Condition()
        self._observers: list[PhaseObserver] = []

    @property
    def phase(self) -> ServerPhase:
        with self._changed:
            return self._phase

    @property
    def is_running(self) -> bool:
        return self.phase is ServerPhase.RUNNING

    def set_phase(self, new_phase: ServerPhase) -> None:
        """Transition to new_phase and notify observers.

        Raises:
            ValueError: If the transition is not allowed.
        """
        with self._changed:
            old_phase = self._phase
            if new_phase not in self._VALID_TRANSITIONS[old_phase]:
                raise ValueError(f"Invalid phase transition: {old_phase.value} -> {new_phase.value}")
            self._phase = new_phase
            observers = list(self._observers)
            self._changed.notify_all()

        logger.info("ServerApplicationState: %s -> %s", old_phase.value, new_phase.value)
        for observer in observers:
            try:
                observer(old_phase, new_phase)
            except Exception:
                logger.exception("ServerApplicationState: observer %r failed", observer)

    def request_shutdown(self) -> bool:
        """Move to SHUTDOWN unless already there.

        Returns:
            True if this call performed the transition.
        """
        with self._changed:
            if self._phase is ServerPhase.SHUTDOWN:
                return False
        try:
            self.set_phase(ServerPhase.SHUTDOWN)
        except ValueError:
            # another thread got there between the check and the transition
            return False
        return True

    def wait_for_shutdown(self, timeout: float | None = None) -> bool:
        """Block until the phase is SHUTDOWN.

        Returns:
            True if shutdown was reached, False on timeout.
        """
        with self._changed:
            return self._changed.wait_for(lambda: self._phase is ServerPhase.SHUTDOWN, timeout)

    def register_component_observer(self, observer: PhaseObserver) -> None:
        with self._changed:
            self._observers.append(observer)
