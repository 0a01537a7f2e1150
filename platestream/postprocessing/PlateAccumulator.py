# platestream/postprocessing/PlateAccumulator.py
import logging
import time
from typing import Callable, Optional, TYPE_CHECKING

from ..types import VehicleRecord

if TYPE_CHECKING:
    from platestream.registry.VehicleRegistry import VehicleRegistry

logger = logging.getLogger(__name__)

DEFAULT_RESET_TIMEOUT = 3.0
DEFAULT_MIN_PLATE_LENGTH = 5


class PlateAccumulator:
    """Aggregates normalized characters across utterances into a candidate plate.

    Each call to process() extends the buffer with one utterance's normalized
    text. Once the buffer reaches min_length every further append triggers
    exactly one registry lookup for the whole buffer. A match is reported and
    clears the buffer; a miss keeps the buffer untouched so the next utterance
    extends it. The only other reset is inactivity: when more than
    reset_timeout seconds pass between appends, the stale partial plate is
    discarded before the new text is appended.

    There is no length cap: a speaker who keeps talking without a registry hit
    grows the buffer until the timeout fires.

    Not thread-safe. The owning stream-processing thread must be the only caller.

    Args:
        registry: Lookup backend; exceptions it raises count as "no match".
        reset_timeout: Seconds of inactivity after which the buffer is discarded.
        min_length: Minimum buffer length before lookups start.
        on_match: Optional callback receiving each matched VehicleRecord.
        clock: Monotonic time source (seconds); injectable for tests.
    """

    def __init__(self,
                 registry: 'VehicleRegistry',
                 reset_timeout: float = DEFAULT_RESET_TIMEOUT,
                 min_length: int = DEFAULT_MIN_PLATE_LENGTH,
                 on_match: Optional[Callable[[VehicleRecord], None]] = None,
                 clock: Callable[[], float] = time.monotonic
                 ) -> None:
        self.registry: 'VehicleRegistry' = registry
        self.reset_timeout: float = reset_timeout
        self.min_length: int = min_length
        self.on_match: Optional[Callable[[VehicleRecord], None]] = on_match
        self._clock: Callable[[], float] = clock

        self.buffer: str = ""
        self.collecting: bool = False
        self.last_char_time: float = 0.0
        self.lookup_count: int = 0

    def process(self, text: str) -> Optional[VehicleRecord]:
        """Extend the candidate with one utterance and look it up when long enough.

        Algorithm:
            1. Skip empty/whitespace text.
            2. If collecting and the previous append is older than reset_timeout,
               discard the buffer.
            3. Record the append time, mark collecting, append text.
            4. If len(buffer) >= min_length, look the buffer up once:
               match → reset, notify on_match, return the record;
               miss → keep collecting.

        Args:
            text: Normalized characters for one utterance.

        Returns:
            The matched VehicleRecord, or None.
        """
        if not text or not text.strip():
            return None

        now = self._clock()
        if self.collecting and now - self.last_char_time > self.reset_timeout:
            logger.info(
                "PlateAccumulator: %.1fs without input, discarding partial plate %r",
                now - self.last_char_time, self.buffer
            )
            self.reset()

        self.last_char_time = now
        self.collecting = True
        self.buffer += text
        logger.debug("PlateAccumulator: buffer=%r", self.buffer)

        if len(self.buffer) < self.min_length:
            return None

        record = self._lookup(self.buffer)
        if record is None:
            return None

        logger.info("PlateAccumulator: registry match %s for buffer %r", record.plate, self.buffer)
        # buffer is already empty when on_match runs, even if it raises
        self.reset()
        if self.on_match is not None:
            self.on_match(record)
        return record

    def reset(self) -> None:
        """Clear the buffer and stop collecting."""
        self.buffer = ""
        self.collecting = False

    def _lookup(self, candidate: str) -> Optional[VehicleRecord]:
        """Query the registry; any failure is reported as no match."""
        self.lookup_count += 1
        try:
            return self.registry.lookup(candidate)
        except Exception:
            logger.exception("PlateAccumulator: registry lookup failed for %r", candidate)
            return None
