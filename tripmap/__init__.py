"""Top-level package for the trip map pipeline.

Given a trip id, the pipeline loads the trip and its reservations,
geocodes their deduplicated addresses in one batch, and exposes map
markers plus a viewport through ``TripMapController``.
"""

from .domain.models import MapMarker, MapRegion, TripMapResult
from .services import TripMapController

__all__ = ["MapMarker", "MapRegion", "TripMapController", "TripMapResult"]
