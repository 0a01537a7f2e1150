"""Vehicle registry boundary: keyed lookup of a candidate plate.

The matching pipeline only needs ``lookup(candidate) -> VehicleRecord | None``.
Network, auth and decode failures all collapse into ``None``.
"""

import logging
from typing import Any, Iterable, Protocol
from urllib.parse import quote

import httpx

from platestream.types import VehicleRecord

logger = logging.getLogger(__name__)


class VehicleRegistry(Protocol):
    """Structural interface for registry backends."""

    def lookup(self, candidate: str) -> VehicleRecord | None:
        """Return the record registered under ``candidate`` or None."""
        ...


def record_from_dict(obj: dict[str, Any]) -> VehicleRecord:
    """Build a VehicleRecord from a JSON object.

    Raises:
        KeyError: If ``plate`` is missing.
        ValueError: If ``year`` is present but not an integer.
    """
    year = obj.get("year")
    return VehicleRecord(
        plate=str(obj["plate"]),
        year=int(year) if year is not None else None,
        make=str(obj.get("make", "")),
        model=str(obj.get("model", "")),
        status=str(obj.get("status", "")),
    )


class InMemoryVehicleRegistry:
    """Registry backed by a dict, keyed by uppercase plate.

    Args:
        records: Initial records.
    """

    def __init__(self, records: Iterable[VehicleRecord] = ()) -> None:
        self._records: dict[str, VehicleRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: VehicleRecord) -> None:
        self._records[record.plate.upper()] = record

    def lookup(self, candidate: str) -> VehicleRecord | None:
        return self._records.get(candidate.upper())

    def __len__(self) -> int:
        return len(self._records)


class HttpVehicleRegistry:
    """Registry client for an HTTP lookup service.

    ``GET {base_url}/vehicles/{candidate}`` (candidate percent-encoded): 200 with a JSON record is a
    match, 404 is "not found". Any other outcome is logged and reported as
    "not found" so the caller's stream loop keeps going.

    Args:
        base_url: Service root, e.g. ``http://localhost:8000``.
        timeout: Request timeout in seconds.
        client: Optional pre-built httpx.Client (tests inject a MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 2.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = client if client is not None else httpx.Client(timeout=timeout)

    def lookup(self, candidate: str) -> VehicleRecord | None:
        url = f"{self.base_url}/vehicles/{quote(candidate, safe='')}"
        try:
            response = self._http.get(url)
        except httpx.HTTPError as exc:
            logger.warning("HttpVehicleRegistry: lookup %s failed: %s", candidate, exc)
            return None

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            logger.warning(
                "HttpVehicleRegistry: lookup %s returned HTTP %s", candidate, response.status_code
            )
            return None

        try:
            return record_from_dict(response.json())
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("HttpVehicleRegistry: malformed record for %s: %s", candidate, exc)
            return None

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._http.close()
