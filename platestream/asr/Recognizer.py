"""Recognizer boundary consumed by the client stream processor.

The speech engine is external. Anything with the Vosk-style streaming
interface below can be plugged in through ``recognizer.factory``; results
are JSON strings.
"""

import importlib
import json
import logging
from typing import Any, Protocol

from platestream.postprocessing.TranscriptNormalizer import PLATE_GRAMMAR

logger = logging.getLogger(__name__)


class StreamingRecognizer(Protocol):
    """Incremental recognizer fed with raw int16 PCM chunks.

    accept_waveform() returns True when the chunk completed an utterance;
    result() then holds the final JSON (``{"alternatives": [...]}`` or
    ``{"text": ...}``). Otherwise partial_result() holds the interim JSON.
    """

    def accept_waveform(self, data: bytes) -> bool: ...

    def result(self) -> str: ...

    def partial_result(self) -> str: ...


class NullRecognizer:
    """Recognizer that never finalizes; used when only audio streaming is wanted."""

    def accept_waveform(self, data: bytes) -> bool:
        return False

    def result(self) -> str:
        return json.dumps({"alternatives": []})

    def partial_result(self) -> str:
        return json.dumps({"partial": ""})


def load_recognizer(config: dict[str, Any]) -> StreamingRecognizer:
    """Build the recognizer named by ``recognizer.factory``.

    The factory is a ``"package.module:callable"`` path. It is called with
    keyword arguments ``sample_rate``, ``grammar`` (PLATE_GRAMMAR) and
    ``max_alternatives``. An empty factory gives a NullRecognizer.

    Raises:
        ValueError: If the factory path has no ``:callable`` part.
        ImportError: If the module cannot be imported.
        AttributeError: If the module has no such callable.
    """
    recognizer_config = config.get("recognizer", {})
    factory_path = recognizer_config.get("factory", "")
    if not factory_path:
        logger.info("Recognizer: no recognizer.factory configured, streaming audio only")
        return NullRecognizer()

    module_name, _, attr = factory_path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"recognizer.factory must look like 'module:callable', got {factory_path!r}")

    factory = getattr(importlib.import_module(module_name), attr)
    recognizer = factory(
        sample_rate=config["audio"]["sample_rate"],
        grammar=PLATE_GRAMMAR,
        max_alternatives=recognizer_config.get("max_alternatives", 3),
    )
    logger.info("Recognizer: using %s", factory_path)
    return recognizer
