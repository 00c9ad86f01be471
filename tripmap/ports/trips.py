"""Trip data ports - Read access to trips and their reservations.

Data access is owned elsewhere (the app's backend client); the map
pipeline only needs these two reads.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import Reservation, Trip


class TripSourcePort(Protocol):
    """Port for loading a single trip.

    Implementation: adapters/sources/memory_repository.py
    """

    async def get(self, trip_id: str) -> Optional[Trip]:
        """Load a trip by id.

        Args:
            trip_id: Trip identifier.

        Returns:
            The trip, or None if it does not exist.
        """
        ...


class ReservationSourcePort(Protocol):
    """Port for listing the reservations of a trip.

    Implementation: adapters/sources/memory_repository.py
    """

    async def list_by_trip(self, trip_id: str) -> Sequence[Reservation]:
        """List reservations attached to a trip.

        Args:
            trip_id: Trip identifier.

        Returns:
            Reservations in display order (possibly empty).
        """
        ...
