"""Tests for configuration, logging setup and the DI container."""

import logging

import pytest
import structlog

from tests.fakes import TOKYO, FakeGeocoder
from tripmap.adapters.geocoding import GeopyBatchGeocoder
from tripmap.adapters.sources import InMemoryTripRepository
from tripmap.config import AppConfig, GeocodingConfig, ObservabilityConfig, get_config
from tripmap.container import Container, get_container, reset_container
from tripmap.domain.errors import ConfigurationError
from tripmap.domain.models import Trip
from tripmap.observability import configure_logging
from tripmap.ports.geocoding import GeocoderPort
from tripmap.ports.trips import ReservationSourcePort, TripSourcePort
from tripmap.services import GeocodeOrchestrator, TripMapController


class TestConfig:
    def test_defaults(self):
        config = get_config()

        assert config.geocoding.provider == "nominatim"
        assert not config.geocoding.has_api_key
        assert config.map.single_delta == 0.05
        assert config.map.region_mode == "focus"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TRIPMAP_GEO_PROVIDER", "opencage")
        monkeypatch.setenv("TRIPMAP_GEO_API_KEY", "abc123")
        monkeypatch.setenv("TRIPMAP_MAP_REGION_MODE", "fit")

        config = AppConfig()

        assert config.geocoding.provider == "opencage"
        assert config.geocoding.has_api_key
        assert config.map.region_mode == "fit"

    def test_api_key_is_not_exposed_in_repr(self):
        config = GeocodingConfig(api_key="abc123")
        assert "abc123" not in repr(config)

    def test_config_is_cached(self):
        assert get_config() is get_config()

    def test_invalid_setting_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("TRIPMAP_MAP_REGION_MODE", "zoomed")

        with pytest.raises(ConfigurationError) as exc_info:
            get_config()

        assert "region_mode" in exc_info.value.setting_name
        assert exc_info.value.cause is not None


class TestConfigureLogging:
    def test_plain_formatter(self):
        handler = configure_logging(ObservabilityConfig(level="debug"))

        assert logging.getLogger("tripmap").level == logging.DEBUG
        assert not isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_structured_formatter_replaces_previous_handler(self):
        configure_logging(ObservabilityConfig())
        handler = configure_logging(ObservabilityConfig(structured=True))

        names = [h.get_name() for h in logging.getLogger("tripmap").handlers]
        assert names.count("tripmap") == 1
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)


class TestContainer:
    @pytest.fixture(autouse=True)
    def _reset(self):
        reset_container()
        yield
        reset_container()

    def test_default_bindings(self):
        container = Container.create_default(AppConfig())

        assert isinstance(container.resolve(GeocoderPort), GeopyBatchGeocoder)
        assert container.resolve(GeocoderPort) is container.resolve(GeocoderPort)
        assert container.resolve(TripSourcePort) is container.resolve(ReservationSourcePort)

    def test_each_view_gets_its_own_orchestrator(self):
        container = Container.create_default(AppConfig())

        first = container.resolve(GeocodeOrchestrator)
        second = container.resolve(GeocodeOrchestrator)

        assert first is not second
        assert first.geocoder is second.geocoder

    def test_unregistered_type_raises(self):
        with pytest.raises(KeyError):
            Container(config=AppConfig()).resolve(GeocoderPort)

    def test_global_container_is_reused(self):
        assert get_container() is get_container()

    @pytest.mark.asyncio
    async def test_create_controller_with_test_bindings(self):
        container = Container.create_default(AppConfig())
        repo = InMemoryTripRepository()
        repo.add_trip(Trip(id="t1", destination="Tokyo"))
        container.register(TripSourcePort, lambda: repo)
        container.register(ReservationSourcePort, lambda: repo)
        container.register(GeocoderPort, lambda: FakeGeocoder({"Tokyo": TOKYO}))

        controller = container.create_controller("t1", destination_only=True)
        assert isinstance(controller, TripMapController)

        async with controller:
            result = await controller.wait_until_settled()

        assert [m.id for m in result.markers] == ["destination-t1"]
