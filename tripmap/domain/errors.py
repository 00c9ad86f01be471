"""Typed domain errors for the trip map pipeline.

All errors inherit from TripMapError and can optionally wrap a root
cause exception for debugging.

Only ``GeocodingError`` ever reaches the UI (as ``TripMapResult.error``).
Missing geocoding credentials and addresses that do not resolve are
reported as statuses, not exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class TripMapError(Exception):
    """Base error for the trip map domain.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class GeocodingError(TripMapError):
    """The geocode batch call failed as a whole.

    Attributes:
        query_count: Number of addresses in the failed batch
        is_rate_limited: Whether the provider rejected us for quota reasons
    """

    query_count: int = 0
    is_rate_limited: bool = False


@dataclass
class GeocodingUnavailableError(TripMapError):
    """Geocoding is not configured in this deployment.

    Attributes:
        provider: Configured provider name
    """

    provider: str = ""


@dataclass
class UpstreamFetchError(TripMapError):
    """Loading the trip or its reservations failed.

    Attributes:
        source: "trip" or "reservations"
        trip_id: Trip being loaded
    """

    source: str = ""
    trip_id: str = ""


@dataclass
class ConfigurationError(TripMapError):
    """Invalid or missing configuration.

    Attributes:
        setting_name: Name of the problematic setting
        expected_type: Expected type or format
    """

    setting_name: str = ""
    expected_type: Optional[str] = None
