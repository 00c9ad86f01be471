"""Shared fixtures for the trip map tests."""

from __future__ import annotations

import pytest

from tests.fakes import LYON, PARIS, SHINJUKU, TOKYO, FakeGeocoder
from tripmap.adapters.sources import InMemoryTripRepository
from tripmap.config import MapConfig, reset_config
from tripmap.domain.models import Reservation, ReservationType, Trip
from tripmap.services import GeocodeOrchestrator


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def map_config() -> MapConfig:
    return MapConfig(single_delta=0.05, min_delta=0.02, padding_factor=1.4)


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder(
        {
            "Paris, France": PARIS,
            "Tokyo": TOKYO,
            "Shinjuku, Tokyo": SHINJUKU,
            "Lyon": LYON,
        }
    )


@pytest.fixture
def orchestrator(geocoder: FakeGeocoder) -> GeocodeOrchestrator:
    return GeocodeOrchestrator(geocoder)


@pytest.fixture
def repository() -> InMemoryTripRepository:
    """Tokyo trip: one hotel that resolves, one car rental that does not."""
    repo = InMemoryTripRepository()
    repo.add_trip(Trip(id="t1", destination="Tokyo"))
    repo.add_reservation(
        Reservation(
            id="r1",
            trip_id="t1",
            type=ReservationType.HOTEL,
            provider_name="Park Hyatt",
            address="Shinjuku, Tokyo",
        )
    )
    repo.add_reservation(
        Reservation(
            id="r2",
            trip_id="t1",
            type=ReservationType.CAR,
            provider_name="Nowhere Rentals",
            address="Atlantis",
        )
    )
    return repo
