"""Ports layer - Protocol contracts for external collaborators.

Available ports:
- GeocoderPort: batch address geocoding
- TripSourcePort: trip lookup
- ReservationSourcePort: reservations by trip
"""

from .geocoding import GeocoderPort
from .trips import ReservationSourcePort, TripSourcePort

__all__ = ["GeocoderPort", "ReservationSourcePort", "TripSourcePort"]
