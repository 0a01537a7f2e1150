"""Picks the highest-confidence hypothesis from a recognizer result.

Two shapes resolve identically:
    {"alternatives": [{"text": ..., "confidence": ...}, ...]}            raw recognizer output
    {"type": "final", "payload": {"alternatives": [...]}}                protocol envelope

A result with a flat ``text`` field and no alternatives (recognizer running
without alternatives) counts as one alternative with confidence 1.0.
"""

import json
import logging
from typing import Any

from platestream.types import Alternative, RecognitionResult

logger = logging.getLogger(__name__)


def parse_recognition_result(raw: Any) -> RecognitionResult | None:
    """Parse recognizer output into a RecognitionResult.

    Args:
        raw: JSON string/bytes or an already-decoded dict.

    Returns:
        Parsed result, or None if the input is malformed. Malformed input is
        logged, never raised.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("AlternativeSelector: unparseable recognizer result: %s", exc)
            return None

    if not isinstance(raw, dict):
        logger.warning("AlternativeSelector: result must be an object, got %s", type(raw).__name__)
        return None

    body = raw
    if "alternatives" not in body and isinstance(body.get("payload"), dict):
        body = body["payload"]

    if "alternatives" not in body:
        text = body.get("text")
        if isinstance(text, str):
            return RecognitionResult(alternatives=[Alternative(text=text, confidence=1.0)])
        logger.warning("AlternativeSelector: result has no alternatives")
        return None

    items = body["alternatives"]
    if not isinstance(items, list):
        logger.warning("AlternativeSelector: 'alternatives' is not a list")
        return None

    alternatives: list[Alternative] = []
    for item in items:
        try:
            text = item["text"]
            confidence = float(item["confidence"])
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("AlternativeSelector: malformed alternative %r: %s", item, exc)
            return None
        if not isinstance(text, str):
            logger.warning("AlternativeSelector: alternative text is not a string: %r", text)
            return None
        alternatives.append(Alternative(text=text, confidence=confidence))

    return RecognitionResult(alternatives=alternatives)


def select_alternative(result: RecognitionResult) -> Alternative | None:
    """Return the alternative with strictly greatest confidence.

    Ties keep the first one encountered.

    Args:
        result: Parsed recognition result.

    Returns:
        Best alternative, or None when there are no alternatives.
    """
    best: Alternative | None = None
    for alternative in result.alternatives:
        if best is None or alternative.confidence > best.confidence:
            best = alternative
    return best


def select_best_alternative(raw: Any) -> str | None:
    """Return the text of the highest-confidence alternative.

    Args:
        raw: RecognitionResult, JSON string/bytes, or decoded dict in either
            the flat or the ``payload``-nested shape.

    Returns:
        Selected text, or None for "no selection" (empty or malformed input).
    """
    result = raw if isinstance(raw, RecognitionResult) else parse_recognition_result(raw)
    if result is None:
        return None

    best = select_alternative(result)
    if best is None:
        logger.debug("AlternativeSelector: empty alternatives, no selection")
        return None
    return best.text
