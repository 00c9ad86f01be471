"""Geocoding port - Abstraction for batch address resolution.

This protocol defines the contract for geocoding services, allowing
different implementations (geopy providers, fakes in tests) to be used.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import Coordinate


class GeocoderPort(Protocol):
    """Port for geocoding services.

    Implementation: adapters/geocoding/geopy_adapter.py

    A batch call resolves every address at once and returns one entry per
    address, in input order. ``None`` marks an address that could not be
    resolved; only a failure of the whole call raises.
    """

    def is_available(self) -> bool:
        """Check whether geocoding is configured at all.

        Returns:
            False when credentials or the provider are missing.
        """
        ...

    async def resolve_batch(
        self,
        addresses: Sequence[str],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> list[Optional[Coordinate]]:
        """Geocode a batch of addresses.

        Args:
            addresses: Free-text addresses to resolve.
            cancel_event: When set, outstanding requests should be aborted.

        Returns:
            Coordinates or None per address, aligned with ``addresses``.

        Raises:
            GeocodingError: If the batch failed as a whole.
        """
        ...
