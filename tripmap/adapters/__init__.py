"""Adapters layer - Concrete implementations of the ports.

Subpackages:
- geocoding: GeopyBatchGeocoder
- sources: InMemoryTripRepository
"""
