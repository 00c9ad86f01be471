"""Map viewport computation.

The default ``focus`` policy centers on the destination marker (or the
first marker) with a fixed span, whatever the number of markers. The
``fit`` policy frames every marker and is only used when configured.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..config import MapConfig, get_config
from ..domain.models import MapMarker, MapRegion


def _focus_region(markers: Sequence[MapMarker], delta: float) -> MapRegion:
    center = next((m for m in markers if m.is_destination), markers[0])
    return MapRegion(
        latitude=center.latitude,
        longitude=center.longitude,
        latitude_delta=delta,
        longitude_delta=delta,
    )


def _fit_region(
    markers: Sequence[MapMarker], min_delta: float, padding: float
) -> MapRegion:
    lats = [m.latitude for m in markers]
    lons = [m.longitude for m in markers]
    min_lat, max_lat = min(lats), max(lats)
    min_lon, max_lon = min(lons), max(lons)
    return MapRegion(
        latitude=(min_lat + max_lat) / 2,
        longitude=(min_lon + max_lon) / 2,
        latitude_delta=max((max_lat - min_lat) * padding, min_delta),
        longitude_delta=max((max_lon - min_lon) * padding, min_delta),
    )


def compute_region(
    markers: Sequence[MapMarker],
    config: Optional[MapConfig] = None,
) -> Optional[MapRegion]:
    """Derive the viewport for a marker set.

    Args:
        markers: Current markers.
        config: Map settings (defaults to the application config).

    Returns:
        The region, or None when there are no markers.
    """
    if not markers:
        return None

    config = config or get_config().map
    if config.region_mode == "fit":
        return _fit_region(markers, config.min_delta, config.padding_factor)
    return _focus_region(markers, config.single_delta)
