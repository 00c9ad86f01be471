"""Geocoding adapters - Implementations of GeocoderPort.

Available implementations:
- GeopyBatchGeocoder: any geopy provider over asyncio/aiohttp
"""

from .geopy_adapter import KEYLESS_PROVIDERS, GeopyBatchGeocoder

__all__ = ["GeopyBatchGeocoder", "KEYLESS_PROVIDERS"]
