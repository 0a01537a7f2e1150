"""Terminal errors surfaced to the top-level caller.

Everything else (parse errors, registry failures, persistence failures) is
absorbed and logged by the component that detects it.
"""


class PlateStreamError(Exception):
    """Base class for platestream errors."""


class ConnectionFailedError(PlateStreamError):
    """Raised when the connect attempt budget is exhausted.

    Args:
        url: Server URL that could not be reached.
        attempts: Number of attempts made.
    """

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(f"Failed to connect to {url} after {attempts} attempts")
        self.url = url
        self.attempts = attempts


class ConnectCancelledError(PlateStreamError):
    """Raised when the connect/retry loop is cancelled by the caller."""
