"""Server-side answers to the client's ``partial``/``final`` recognition messages.

The acknowledgment is independent of the lookups the client performs itself.
MockLookupResponder answers every message with one fixed matched plate;
RegistryLookupResponder performs a real registry query.
"""

import logging
from typing import Protocol, TYPE_CHECKING

from platestream.network.types import PARTIAL, WsControlMessage, WsLookupResult
from platestream.postprocessing.AlternativeSelector import parse_recognition_result, select_alternative
from platestream.postprocessing.TranscriptNormalizer import TranscriptNormalizer

if TYPE_CHECKING:
    from platestream.registry.VehicleRegistry import VehicleRegistry

logger = logging.getLogger(__name__)

MOCK_PLATE = "G7B2JK"
MOCK_SCORE = 0.98


class LookupResponder(Protocol):
    """Builds the acknowledgment for one ``partial``/``final`` message."""

    def respond(self, msg: WsControlMessage) -> WsLookupResult: ...


class MockLookupResponder:
    """Always acknowledges with the same matched plate."""

    def __init__(self, plate: str = MOCK_PLATE, score: float = MOCK_SCORE) -> None:
        self._result = WsLookupResult(plate=plate, match=True, score=score)

    def respond(self, msg: WsControlMessage) -> WsLookupResult:
        return self._result


class RegistryLookupResponder:
    """Looks the recognized text up in a registry.

    Final messages use the best alternative (its confidence becomes the
    score); partial messages use the interim ``partial`` text with score 0.
    The text is normalized before the lookup.

    Args:
        registry: Registry backend.
        normalizer: Transcript normalizer; a default one is created if omitted.
    """

    def __init__(self, registry: "VehicleRegistry", normalizer: TranscriptNormalizer | None = None) -> None:
        self._registry = registry
        self._normalizer = normalizer if normalizer is not None else TranscriptNormalizer()

    def respond(self, msg: WsControlMessage) -> WsLookupResult:
        text, score = self._extract(msg)
        candidate = self._normalizer.normalize(text) if text else ""
        if not candidate:
            return WsLookupResult(plate="", match=False, score=0.0)

        try:
            record = self._registry.lookup(candidate)
        except Exception:
            logger.exception("RegistryLookupResponder: lookup failed for %r", candidate)
            record = None

        if record is None:
            return WsLookupResult(plate=candidate, match=False, score=score)
        return WsLookupResult(plate=record.plate, match=True, score=score)

    def _extract(self, msg: WsControlMessage) -> tuple[str, float]:
        payload = msg.payload
        if msg.type == PARTIAL:
            if isinstance(payload, dict) and isinstance(payload.get("partial"), str):
                return payload["partial"], 0.0
            return "", 0.0

        if payload is None:
            return "", 0.0
        result = parse_recognition_result(payload)
        best = select_alternative(result) if result is not None else None
        if best is None:
            return "", 0.0
        return best.text, max(0.0, min(1.0, best.confidence))

    def close(self) -> None:
        """Release the registry's resources if it holds any (HTTP pool)."""
        close = getattr(self._registry, "close", None)
        if close is not None:
            close()
