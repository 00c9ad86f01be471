"""Immutable domain models for the trip map pipeline.

All models are frozen dataclasses with slots. They are rebuilt on every
pipeline run and never mutated; equality is by content, which is what the
controller relies on to decide whether a new request list really changed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from .errors import GeocodingError


class ReservationType(str, Enum):
    """Kind of booking attached to a trip."""

    FLIGHT = "flight"
    HOTEL = "hotel"
    TRAIN = "train"
    CAR = "car"


class PipelineState(Enum):
    """Lifecycle of one controller cycle."""

    IDLE = auto()
    LOADING = auto()
    READY = auto()
    ERRORED = auto()


class GeocodeStatus(Enum):
    """How a geocode batch ended.

    ``FAILED`` is the only status that carries an error. ``UNAVAILABLE``
    and ``NO_RESULTS`` look the same to the UI but stay distinct here so
    callers and logs can tell them apart.
    """

    RESOLVED = auto()
    NO_RESULTS = auto()
    UNAVAILABLE = auto()
    FAILED = auto()
    SUPERSEDED = auto()


@dataclass(frozen=True, slots=True)
class Coordinate:
    """GPS coordinates returned by the geocoder."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        """Validate coordinate ranges."""
        if not -90 <= self.latitude <= 90:
            raise ValueError(
                f"Latitude must be between -90 and 90, got {self.latitude}"
            )
        if not -180 <= self.longitude <= 180:
            raise ValueError(
                f"Longitude must be between -180 and 180, got {self.longitude}"
            )


@dataclass(frozen=True, slots=True)
class Trip:
    """A trip as seen by the map pipeline.

    Attributes:
        id: Trip identifier
        destination: Free-text destination (e.g. "Paris, France")
        date_range: Display date range
        status: upcoming, ongoing or completed
    """

    id: str
    destination: str = ""
    date_range: str = ""
    status: str = "upcoming"


@dataclass(frozen=True, slots=True)
class Reservation:
    """A booking belonging to a trip.

    Attributes:
        id: Reservation identifier
        trip_id: Owning trip
        type: Booking kind
        provider_name: Airline, hotel or rental company name
        route: Route line; for hotels this is the hotel location
        address: Explicit street address, if known
    """

    id: str
    trip_id: str
    type: ReservationType = ReservationType.FLIGHT
    provider_name: str = ""
    route: str = ""
    address: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LocationRequest:
    """One address to geocode.

    ``id`` is derived from the source record so it survives recomputation
    and becomes the marker id.
    """

    id: str
    address: str
    title: str
    is_destination: bool = False


@dataclass(frozen=True, slots=True)
class MapMarker:
    """A geocoded point ready for display."""

    id: str
    latitude: float
    longitude: float
    title: str
    is_destination: bool = False


@dataclass(frozen=True, slots=True)
class MapRegion:
    """Map viewport: center plus zoom spans in degrees."""

    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float


@dataclass(frozen=True, slots=True)
class GeocodeBatch:
    """Outcome of one orchestration run.

    Attributes:
        sequence: Run number assigned by the orchestrator
        status: How the run ended
        outcomes: Coordinates or None, aligned with the submitted requests
        error: Set only when status is FAILED
    """

    sequence: int
    status: GeocodeStatus
    outcomes: tuple[Optional[Coordinate], ...] = field(default_factory=tuple)
    error: Optional[GeocodingError] = None

    @property
    def is_superseded(self) -> bool:
        """Check if a newer run replaced this one."""
        return self.status is GeocodeStatus.SUPERSEDED


@dataclass(frozen=True, slots=True)
class TripMapResult:
    """What the map screen renders.

    Attributes:
        region: Viewport, or None when there are no markers
        markers: Markers for the current request list
        is_loading: Upstream data or geocoding still pending
        error: Batch failure, if the last run failed
        state: Controller state for this snapshot
    """

    region: Optional[MapRegion] = None
    markers: tuple[MapMarker, ...] = field(default_factory=tuple)
    is_loading: bool = True
    error: Optional[GeocodingError] = None
    state: PipelineState = PipelineState.LOADING

    @property
    def has_data(self) -> bool:
        """Check if there is a region and at least one marker."""
        return self.region is not None and len(self.markers) > 0
