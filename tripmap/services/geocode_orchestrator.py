"""Geocode orchestration with supersession.

Each call to ``resolve`` is one run, tagged with a monotonically
increasing sequence number. Starting a run supersedes the previous one:
its cancel event is set (so the adapter can abort HTTP requests) and its
result, whenever it arrives, comes back as ``SUPERSEDED`` instead of
being applied. Only the run whose sequence is still current at
completion time reports a real status.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..domain.errors import GeocodingError, GeocodingUnavailableError
from ..domain.models import GeocodeBatch, GeocodeStatus, LocationRequest
from ..ports.geocoding import GeocoderPort


@dataclass
class CancellationToken:
    """Abort signal for one orchestration run."""

    sequence: int
    event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def cancelled(self) -> bool:
        return self.event.is_set()

    def cancel(self) -> None:
        self.event.set()


@dataclass
class GeocodeOrchestrator:
    """Runs one batch geocode per request list, latest run wins.

    Attributes:
        geocoder: Batch geocoding backend
    """

    geocoder: GeocoderPort

    _sequence: int = field(default=0, repr=False)
    _active: Optional[CancellationToken] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @property
    def sequence(self) -> int:
        """Sequence number of the most recent run (or cancellation)."""
        return self._sequence

    @property
    def has_outstanding_call(self) -> bool:
        """Check if the current run is still waiting on the geocoder."""
        return self._active is not None and not self._active.cancelled

    def is_current(self, sequence: int) -> bool:
        """Check if a run's result may still be applied."""
        return sequence == self._sequence

    def cancel(self) -> None:
        """Supersede the active run without starting a new one."""
        if self._active is not None:
            self._logger.debug(
                "Cancelling geocode run",
                extra={"sequence": self._active.sequence},
            )
            self._active.cancel()
            self._active = None
        self._sequence += 1

    def _begin(self) -> CancellationToken:
        self.cancel()
        token = CancellationToken(sequence=self._sequence)
        self._active = token
        return token

    def _superseded(self, token: CancellationToken) -> GeocodeBatch:
        self._logger.debug(
            "Discarding superseded geocode result",
            extra={"sequence": token.sequence, "current": self._sequence},
        )
        return GeocodeBatch(sequence=token.sequence, status=GeocodeStatus.SUPERSEDED)

    def _failed(self, token: CancellationToken, error: GeocodingError) -> GeocodeBatch:
        self._logger.error(
            "Geocode batch failed",
            extra={"sequence": token.sequence, "error": str(error)},
        )
        return GeocodeBatch(
            sequence=token.sequence, status=GeocodeStatus.FAILED, error=error
        )

    async def resolve(self, requests: Sequence[LocationRequest]) -> GeocodeBatch:
        """Geocode a request list in a single batch call.

        Args:
            requests: Deduplicated requests, in display order.

        Returns:
            The batch outcome. ``SUPERSEDED`` if a newer run started (or
            ``cancel`` was called) before this one finished.
        """
        token = self._begin()
        count = len(requests)

        try:
            try:
                available = self.geocoder.is_available()
            except Exception as e:
                return self._failed(
                    token,
                    GeocodingError(
                        "Geocoder availability check failed",
                        cause=e,
                        query_count=count,
                    ),
                )

            if not available:
                self._logger.info(
                    "Geocoding unavailable, skipping markers",
                    extra={"sequence": token.sequence, "requests": count},
                )
                return GeocodeBatch(
                    sequence=token.sequence, status=GeocodeStatus.UNAVAILABLE
                )

            if not requests:
                return GeocodeBatch(
                    sequence=token.sequence, status=GeocodeStatus.NO_RESULTS
                )

            self._logger.info(
                "Geocode run started",
                extra={"sequence": token.sequence, "requests": count},
            )

            error: Optional[GeocodingError] = None
            outcomes: Sequence = ()
            try:
                outcomes = await self.geocoder.resolve_batch(
                    [request.address for request in requests], token.event
                )
            except GeocodingUnavailableError:
                if not self.is_current(token.sequence):
                    return self._superseded(token)
                return GeocodeBatch(
                    sequence=token.sequence, status=GeocodeStatus.UNAVAILABLE
                )
            except GeocodingError as e:
                error = e
            except Exception as e:
                error = GeocodingError("Geocoding failed", cause=e, query_count=count)

            if not self.is_current(token.sequence):
                return self._superseded(token)

            if error is None and len(outcomes) != count:
                error = GeocodingError(
                    f"Geocoder returned {len(outcomes)} results for {count} addresses",
                    query_count=count,
                )

            if error is not None:
                return self._failed(token, error)

            resolved = sum(1 for outcome in outcomes if outcome is not None)
            self._logger.info(
                "Geocode run finished",
                extra={
                    "sequence": token.sequence,
                    "requests": count,
                    "resolved": resolved,
                },
            )
            return GeocodeBatch(
                sequence=token.sequence,
                status=GeocodeStatus.RESOLVED if resolved else GeocodeStatus.NO_RESULTS,
                outcomes=tuple(outcomes),
            )
        finally:
            if self._active is token:
                self._active = None
