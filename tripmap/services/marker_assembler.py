"""Marker assembly: zip geocode outcomes back onto their requests."""

from __future__ import annotations

from typing import Optional, Sequence

from ..domain.models import Coordinate, LocationRequest, MapMarker


def assemble_markers(
    requests: Sequence[LocationRequest],
    outcomes: Sequence[Optional[Coordinate]],
) -> tuple[MapMarker, ...]:
    """Build markers for every request that resolved.

    Order follows ``requests``; unresolved positions are dropped.

    Raises:
        ValueError: If outcomes are not aligned with requests.
    """
    if len(outcomes) != len(requests):
        raise ValueError(
            f"Expected {len(requests)} geocode outcomes, got {len(outcomes)}"
        )

    return tuple(
        MapMarker(
            id=request.id,
            latitude=outcome.latitude,
            longitude=outcome.longitude,
            title=request.title,
            is_destination=request.is_destination,
        )
        for request, outcome in zip(requests, outcomes)
        if outcome is not None
    )
