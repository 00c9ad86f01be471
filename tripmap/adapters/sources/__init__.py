"""Trip data adapters - Implementations of TripSourcePort/ReservationSourcePort.

Available implementations:
- InMemoryTripRepository: dict-backed store with optional latency
"""

from .memory_repository import InMemoryTripRepository

__all__ = ["InMemoryTripRepository"]
