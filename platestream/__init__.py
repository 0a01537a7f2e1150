# platestream/__init__.py
from .errors import ConnectCancelledError, ConnectionFailedError, PlateStreamError
from .types import Alternative, ConnectionState, RecognitionResult, ServerPhase, SessionState, VehicleRecord

__all__ = [
    'Alternative',
    'ConnectCancelledError',
    'ConnectionFailedError',
    'ConnectionState',
    'PlateStreamError',
    'RecognitionResult',
    'ServerPhase',
    'SessionState',
    'VehicleRecord',
]
