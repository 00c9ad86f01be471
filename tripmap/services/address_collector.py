"""Address collection for trip maps.

Turns a trip and its reservations into the ordered, deduplicated list of
addresses to geocode. Pure functions only: the controller calls
``collect_locations`` on every upstream change and compares results by
value.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..domain.models import LocationRequest, Reservation, ReservationType, Trip


def normalize_address(address: str) -> str:
    """Normalize an address for deduplication (trim + lower-case only)."""
    return address.strip().lower()


def reservation_display_address(reservation: Reservation) -> Optional[str]:
    """Pick the address to show for a reservation.

    The explicit address wins; hotels fall back to their route line, which
    holds the hotel location. Other bookings have no address otherwise.
    """
    if reservation.address and reservation.address.strip():
        return reservation.address
    if reservation.type is ReservationType.HOTEL and reservation.route.strip():
        return reservation.route
    return None


def collect_locations(
    trip_id: str,
    trip: Optional[Trip],
    reservations: Iterable[Reservation] = (),
    destination_only: bool = False,
) -> tuple[LocationRequest, ...]:
    """Build the geocoding requests for a trip.

    The destination is considered first so it wins any collision with a
    reservation address; reservations follow in list order.

    Args:
        trip_id: Trip being displayed (used for the destination id).
        trip: Loaded trip, or None while loading.
        reservations: Reservations loaded so far.
        destination_only: Ignore reservations entirely.

    Returns:
        Requests with unique normalized addresses.
    """
    requests: list[LocationRequest] = []
    seen: set[str] = set()

    if trip is not None and trip.destination:
        norm = normalize_address(trip.destination)
        if norm:
            seen.add(norm)
            requests.append(
                LocationRequest(
                    id=f"destination-{trip_id}",
                    address=trip.destination,
                    title=trip.destination,
                    is_destination=True,
                )
            )

    if destination_only:
        return tuple(requests)

    for reservation in reservations:
        address = reservation_display_address(reservation)
        if not address:
            continue
        norm = normalize_address(address)
        if norm in seen:
            continue
        seen.add(norm)
        requests.append(
            LocationRequest(
                id=f"res-{reservation.id}",
                address=address,
                title=reservation.provider_name or address,
                is_destination=False,
            )
        )

    return tuple(requests)
