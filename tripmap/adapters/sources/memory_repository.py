"""In-memory trip repository.

Implements both TripSourcePort and ReservationSourcePort over plain
dictionaries. Used by tests and local demos in place of the app backend;
an optional artificial latency makes loading states observable.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ...domain.models import Reservation, ReservationType, Trip


@dataclass
class InMemoryTripRepository:
    """Trip and reservation store held in memory.

    Attributes:
        latency_seconds: Delay applied to every read
    """

    latency_seconds: float = 0.0

    _trips: Dict[str, Trip] = field(default_factory=dict, repr=False)
    _reservations: Dict[str, List[Reservation]] = field(default_factory=dict, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_records(
        cls,
        trips: Iterable[Mapping[str, Any]],
        reservations: Iterable[Mapping[str, Any]] = (),
        latency_seconds: float = 0.0,
    ) -> InMemoryTripRepository:
        """Build a repository from plain dict records.

        Reservation records use the app's field names (``tripId``,
        ``providerName``) or their snake_case equivalents.

        Raises:
            KeyError: If a record lacks its ``id``.
            ValueError: If a reservation type is not recognised.
        """
        repo = cls(latency_seconds=latency_seconds)
        for record in trips:
            repo.add_trip(
                Trip(
                    id=str(record["id"]),
                    destination=str(record.get("destination") or ""),
                    date_range=str(record.get("dateRange") or record.get("date_range") or ""),
                    status=str(record.get("status") or "upcoming"),
                )
            )
        for record in reservations:
            repo.add_reservation(
                Reservation(
                    id=str(record["id"]),
                    trip_id=str(record.get("tripId") or record.get("trip_id") or ""),
                    type=ReservationType(record.get("type") or "flight"),
                    provider_name=str(
                        record.get("providerName") or record.get("provider_name") or ""
                    ),
                    route=str(record.get("route") or ""),
                    address=record.get("address"),
                )
            )
        return repo

    def add_trip(self, trip: Trip) -> None:
        self._trips[trip.id] = trip

    def add_reservation(self, reservation: Reservation) -> None:
        self._reservations.setdefault(reservation.trip_id, []).append(reservation)

    def replace_reservations(self, trip_id: str, reservations: Sequence[Reservation]) -> None:
        self._reservations[trip_id] = list(reservations)

    async def _delay(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

    async def get(self, trip_id: str) -> Optional[Trip]:
        await self._delay()
        trip = self._trips.get(trip_id)
        if trip is None:
            self._logger.debug("Trip not found", extra={"trip_id": trip_id})
        return trip

    async def list_by_trip(self, trip_id: str) -> Sequence[Reservation]:
        await self._delay()
        return tuple(self._reservations.get(trip_id, ()))
