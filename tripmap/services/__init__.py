"""Services layer - The trip location pipeline.

Stages, in order:
- collect_locations: trip + reservations -> deduplicated requests
- GeocodeOrchestrator: one batch geocode per request list, latest wins
- assemble_markers: outcomes -> markers
- compute_region: markers -> viewport
- TripMapController: wires the stages to upstream data for one view
"""

from .address_collector import (
    collect_locations,
    normalize_address,
    reservation_display_address,
)
from .geocode_orchestrator import CancellationToken, GeocodeOrchestrator
from .marker_assembler import assemble_markers
from .region_computer import compute_region
from .trip_map_controller import TripMapController

__all__ = [
    "CancellationToken",
    "GeocodeOrchestrator",
    "TripMapController",
    "assemble_markers",
    "collect_locations",
    "compute_region",
    "normalize_address",
    "reservation_display_address",
]
