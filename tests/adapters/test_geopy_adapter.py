"""Tests for the geopy batch geocoder adapter."""

import asyncio
from types import SimpleNamespace

import pytest
from geopy.exc import (
    GeocoderAuthenticationFailure,
    GeocoderQueryError,
    GeocoderQuotaExceeded,
    GeocoderTimedOut,
    GeocoderUnavailable,
)
from geopy.extra.rate_limiter import AsyncRateLimiter

from tests.fakes import drain
from tripmap.adapters.geocoding import GeopyBatchGeocoder
from tripmap.config import GeocodingConfig
from tripmap.domain.errors import GeocodingError, GeocodingUnavailableError
from tripmap.domain.models import Coordinate


def _location(lat, lon):
    return SimpleNamespace(latitude=lat, longitude=lon)


class FakeGeopyGeocoder:
    """Stands in for a geopy geocoder built on AioHTTPAdapter.

    ``results`` maps a query to a location, an exception to raise, or an
    ``asyncio.Event`` to wait on (simulating a slow request).
    """

    def __init__(self, results):
        self.results = results
        self.queries = []
        self.cancelled = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    async def geocode(self, query, exactly_one=True):
        self.queries.append(query)
        value = self.results.get(query)
        if isinstance(value, BaseException):
            raise value
        if isinstance(value, asyncio.Event):
            try:
                await value.wait()
            except asyncio.CancelledError:
                self.cancelled.append(query)
                raise
            return None
        return value


def _config(**overrides):
    values = {"provider": "nominatim", "rate_limit_delay": 0.0}
    values.update(overrides)
    return GeocodingConfig(**values)


def _adapter(fake, **overrides):
    return GeopyBatchGeocoder(config=_config(**overrides), geocoder_factory=lambda: fake)


class TestAvailability:
    def test_keyless_provider_is_available(self):
        assert GeopyBatchGeocoder(config=_config()).is_available()

    def test_key_provider_without_key_is_unavailable(self):
        assert not GeopyBatchGeocoder(config=_config(provider="opencage")).is_available()

    def test_placeholder_key_is_unavailable(self):
        adapter = GeopyBatchGeocoder(
            config=_config(provider="opencage", api_key="your_geoapify_api_key")
        )
        assert not adapter.is_available()

    def test_key_provider_with_key_is_available(self):
        adapter = GeopyBatchGeocoder(config=_config(provider="opencage", api_key="secret"))
        assert adapter.is_available()

    def test_unknown_provider_is_unavailable(self):
        assert not GeopyBatchGeocoder(config=_config(provider="no-such-geocoder")).is_available()

    def test_blank_provider_is_unavailable(self):
        assert not GeopyBatchGeocoder(config=_config(provider="  ")).is_available()

    @pytest.mark.asyncio
    async def test_resolve_while_unavailable_raises(self):
        adapter = GeopyBatchGeocoder(config=_config(provider="opencage"))

        with pytest.raises(GeocodingUnavailableError):
            await adapter.resolve_batch(["Tokyo"])


class TestResolveBatch:
    @pytest.mark.asyncio
    async def test_results_are_positional(self):
        fake = FakeGeopyGeocoder(
            {
                "Tokyo": _location(35.68, 139.69),
                "Paris, France": _location(48.8566, 2.3522),
            }
        )

        results = await _adapter(fake).resolve_batch(["Tokyo", "Atlantis", "Paris, France"])

        assert results == [
            Coordinate(35.68, 139.69),
            None,
            Coordinate(48.8566, 2.3522),
        ]
        assert fake.closed

    @pytest.mark.asyncio
    async def test_blank_address_is_not_queried(self):
        fake = FakeGeopyGeocoder({"Tokyo": _location(35.68, 139.69)})

        results = await _adapter(fake).resolve_batch(["  ", " Tokyo "])

        assert results == [None, Coordinate(35.68, 139.69)]
        assert fake.queries == ["Tokyo"]

    @pytest.mark.asyncio
    async def test_empty_batch_makes_no_session(self):
        factory_calls = []
        adapter = GeopyBatchGeocoder(
            config=_config(), geocoder_factory=lambda: factory_calls.append(1)
        )

        assert await adapter.resolve_batch([]) == []
        assert factory_calls == []

    @pytest.mark.asyncio
    async def test_single_timeout_is_absorbed(self):
        fake = FakeGeopyGeocoder(
            {
                "Tokyo": _location(35.68, 139.69),
                "Kyoto": GeocoderTimedOut("timed out"),
            }
        )

        results = await _adapter(fake).resolve_batch(["Tokyo", "Kyoto"])

        assert results == [Coordinate(35.68, 139.69), None]

    @pytest.mark.asyncio
    async def test_rejected_query_is_absorbed(self):
        fake = FakeGeopyGeocoder({"???": GeocoderQueryError("bad query")})

        assert await _adapter(fake).resolve_batch(["???"]) == [None]

    @pytest.mark.asyncio
    async def test_malformed_provider_response_is_absorbed(self):
        fake = FakeGeopyGeocoder(
            {
                "Tokyo": _location(35.68, 139.69),
                "Broken": KeyError("features"),
            }
        )

        results = await _adapter(fake).resolve_batch(["Tokyo", "Broken"])

        assert results == [Coordinate(35.68, 139.69), None]

    @pytest.mark.asyncio
    async def test_invalid_coordinates_are_absorbed(self):
        fake = FakeGeopyGeocoder({"Nowhere": _location(123.0, 0.0)})

        assert await _adapter(fake).resolve_batch(["Nowhere"]) == [None]

    @pytest.mark.asyncio
    async def test_every_address_unreachable_fails_the_batch(self):
        fake = FakeGeopyGeocoder(
            {
                "Tokyo": GeocoderUnavailable("connection refused"),
                "Kyoto": GeocoderTimedOut("timed out"),
            }
        )

        with pytest.raises(GeocodingError) as exc_info:
            await _adapter(fake).resolve_batch(["Tokyo", "Kyoto"])

        assert exc_info.value.query_count == 2
        assert fake.closed

    @pytest.mark.asyncio
    async def test_authentication_failure_fails_the_batch(self):
        slow = asyncio.Event()
        fake = FakeGeopyGeocoder(
            {
                "Tokyo": GeocoderAuthenticationFailure("invalid key"),
                "Kyoto": slow,
            }
        )

        with pytest.raises(GeocodingError) as exc_info:
            await _adapter(fake).resolve_batch(["Tokyo", "Kyoto"])

        assert isinstance(exc_info.value.cause, GeocoderAuthenticationFailure)
        assert not exc_info.value.is_rate_limited
        await drain()
        assert fake.cancelled == ["Kyoto"]

    @pytest.mark.asyncio
    async def test_quota_exceeded_is_flagged(self):
        fake = FakeGeopyGeocoder({"Tokyo": GeocoderQuotaExceeded("quota")})

        with pytest.raises(GeocodingError) as exc_info:
            await _adapter(fake).resolve_batch(["Tokyo"])

        assert exc_info.value.is_rate_limited


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_event_aborts_outstanding_lookups(self):
        slow = asyncio.Event()
        fake = FakeGeopyGeocoder({"Tokyo": _location(35.68, 139.69), "Kyoto": slow})
        cancel = asyncio.Event()

        call = asyncio.ensure_future(
            _adapter(fake).resolve_batch(["Tokyo", "Kyoto"], cancel)
        )
        await drain()
        cancel.set()
        results = await call

        assert results == [None, None]
        assert fake.cancelled == ["Kyoto"]
        assert fake.closed

    @pytest.mark.asyncio
    async def test_already_cancelled_makes_no_requests(self):
        fake = FakeGeopyGeocoder({"Tokyo": _location(35.68, 139.69)})
        cancel = asyncio.Event()
        cancel.set()

        assert await _adapter(fake).resolve_batch(["Tokyo"], cancel) == [None]
        assert fake.queries == []


class TestRateLimiting:
    def test_no_limiter_when_delay_is_zero(self):
        async def geocode(query, exactly_one=True):
            return None

        adapter = GeopyBatchGeocoder(config=_config(rate_limit_delay=0.0))
        assert adapter._wrap_rate_limit(geocode) is geocode

    def test_limiter_wraps_geocode_when_delay_set(self):
        async def geocode(query, exactly_one=True):
            return None

        adapter = GeopyBatchGeocoder(config=_config(rate_limit_delay=1.0))
        assert isinstance(adapter._wrap_rate_limit(geocode), AsyncRateLimiter)
