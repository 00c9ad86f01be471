"""Domain layer - models and errors with no I/O."""

from .errors import (
    ConfigurationError,
    GeocodingError,
    GeocodingUnavailableError,
    TripMapError,
    UpstreamFetchError,
)
from .models import (
    Coordinate,
    GeocodeBatch,
    GeocodeStatus,
    LocationRequest,
    MapMarker,
    MapRegion,
    PipelineState,
    Reservation,
    ReservationType,
    Trip,
    TripMapResult,
)

__all__ = [
    "ConfigurationError",
    "Coordinate",
    "GeocodeBatch",
    "GeocodeStatus",
    "GeocodingError",
    "GeocodingUnavailableError",
    "LocationRequest",
    "MapMarker",
    "MapRegion",
    "PipelineState",
    "Reservation",
    "ReservationType",
    "Trip",
    "TripMapError",
    "TripMapResult",
    "UpstreamFetchError",
]
