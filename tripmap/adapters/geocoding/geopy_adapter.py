"""Geopy batch geocoder adapter.

This adapter resolves a whole batch of addresses through any geopy
provider running on geopy's asyncio transport (``AioHTTPAdapter``):
- Provider and credentials from configuration
- Availability check without touching the network
- Per-address failures absorbed as ``None``
- Rate limiting via ``AsyncRateLimiter``
- Cancellation that aborts in-flight HTTP requests
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Sequence

from geopy.adapters import AioHTTPAdapter
from geopy.exc import (
    ConfigurationError as GeopyConfigurationError,
    GeocoderAuthenticationFailure,
    GeocoderInsufficientPrivileges,
    GeocoderNotFound,
    GeocoderQuotaExceeded,
    GeocoderServiceError,
    GeocoderTimedOut,
    GeocoderUnavailable,
)
from geopy.extra.rate_limiter import AsyncRateLimiter
from geopy.geocoders import get_geocoder_for_service

from ...config import GeocodingConfig, get_config
from ...domain.errors import GeocodingError, GeocodingUnavailableError
from ...domain.models import Coordinate

# Providers usable without an API key.
KEYLESS_PROVIDERS = frozenset({"nominatim", "photon", "arcgis", "banfrance", "databc"})

# Provider errors that mean no other address in the batch can succeed.
_FATAL_ERRORS = (
    GeocoderAuthenticationFailure,
    GeocoderInsufficientPrivileges,
    GeocoderQuotaExceeded,
)

GeocodeFn = Callable[..., Awaitable[Any]]


def _cancel_all(lookups: Sequence["asyncio.Future[Any]"]) -> None:
    for lookup in lookups:
        lookup.cancel()


@dataclass
class GeopyBatchGeocoder:
    """Batch geocoder over a geopy provider.

    This adapter implements GeocoderPort.

    Attributes:
        config: Geocoding configuration
        geocoder_factory: Optional factory returning a geopy-compatible
            geocoder (an async context manager with ``geocode``). Defaults
            to building the configured provider on ``AioHTTPAdapter``.
    """

    config: GeocodingConfig = field(default_factory=lambda: get_config().geocoding)
    geocoder_factory: Optional[Callable[[], Any]] = field(default=None, repr=False)

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @property
    def provider(self) -> str:
        return self.config.provider.strip().lower()

    def _geocoder_class(self) -> Optional[type]:
        try:
            return get_geocoder_for_service(self.provider)
        except GeocoderNotFound:
            return None

    def is_available(self) -> bool:
        """Check whether a provider is configured and usable.

        Returns:
            True when the provider is known and has the credentials it needs.
        """
        if not self.provider:
            return False

        if self.geocoder_factory is None and self._geocoder_class() is None:
            self._logger.warning(
                "Unknown geocoding provider",
                extra={"provider": self.provider},
            )
            return False

        if self.provider in KEYLESS_PROVIDERS:
            return True

        return self.config.has_api_key

    def _build_geocoder(self) -> Any:
        geocoder_cls = self._geocoder_class()
        if geocoder_cls is None:
            raise GeocodingUnavailableError(
                f"Unknown geocoding provider {self.provider!r}",
                provider=self.provider,
            )

        kwargs: dict[str, Any] = {
            "user_agent": self.config.user_agent,
            "timeout": self.config.timeout_seconds,
            "adapter_factory": AioHTTPAdapter,
        }
        if self.config.has_api_key and self.config.api_key is not None:
            kwargs["api_key"] = self.config.api_key.get_secret_value()

        self._logger.debug(
            "Initializing geocoder",
            extra={
                "provider": self.provider,
                "timeout": self.config.timeout_seconds,
            },
        )
        return geocoder_cls(**kwargs)

    def _wrap_rate_limit(self, geocode: GeocodeFn) -> GeocodeFn:
        if self.config.rate_limit_delay <= 0:
            return geocode

        return AsyncRateLimiter(
            geocode,
            min_delay_seconds=self.config.rate_limit_delay,
            max_retries=self.config.max_retries,
            error_wait_seconds=max(
                self.config.error_wait_seconds, self.config.rate_limit_delay
            ),
            swallow_exceptions=False,
        )

    async def resolve_batch(
        self,
        addresses: Sequence[str],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> list[Optional[Coordinate]]:
        """Geocode all addresses in one call.

        Args:
            addresses: Free-text addresses to resolve.
            cancel_event: When set, outstanding lookups are cancelled and
                every position resolves to None.

        Returns:
            Coordinates or None per address, in input order.

        Raises:
            GeocodingUnavailableError: If called while not available.
            GeocodingError: If the provider rejected the batch or every
                address failed at the transport level.
        """
        if not addresses:
            return []

        if not self.is_available():
            raise GeocodingUnavailableError(
                "Geocoding is not configured",
                provider=self.provider,
            )

        empty: list[Optional[Coordinate]] = [None] * len(addresses)
        if cancel_event is not None and cancel_event.is_set():
            return empty

        try:
            geolocator = (self.geocoder_factory or self._build_geocoder)()
        except GeopyConfigurationError as e:
            raise GeocodingError(
                "Geocoder misconfigured",
                cause=e,
                query_count=len(addresses),
            )

        self._logger.info(
            "Geocoding batch",
            extra={"provider": self.provider, "addresses": len(addresses)},
        )

        async with geolocator:
            geocode = self._wrap_rate_limit(geolocator.geocode)
            transport_failures: list[Exception] = []
            lookups = [
                asyncio.ensure_future(
                    self._resolve_one(geocode, address, transport_failures)
                )
                for address in addresses
            ]
            batch = asyncio.gather(*lookups)

            if not await self._wait_unless_cancelled(batch, cancel_event):
                self._logger.info(
                    "Geocoding batch aborted",
                    extra={"addresses": len(addresses)},
                )
                return empty

            try:
                results = list(batch.result())
            except _FATAL_ERRORS as e:
                _cancel_all(lookups)
                self._logger.error(
                    "Geocoding provider rejected batch",
                    extra={"provider": self.provider, "error": str(e)},
                )
                raise GeocodingError(
                    "Geocoding failed",
                    cause=e,
                    query_count=len(addresses),
                    is_rate_limited=isinstance(e, GeocoderQuotaExceeded),
                )
            except Exception:
                _cancel_all(lookups)
                raise

        attempted = sum(1 for address in addresses if address.strip())
        if attempted and len(transport_failures) == attempted:
            self._logger.error(
                "Geocoding service unreachable for entire batch",
                extra={"provider": self.provider, "addresses": attempted},
            )
            raise GeocodingError(
                "Geocoding failed",
                cause=transport_failures[-1],
                query_count=len(addresses),
            )

        return results

    async def _wait_unless_cancelled(
        self,
        batch: "asyncio.Future[Any]",
        cancel_event: Optional[asyncio.Event],
    ) -> bool:
        """Wait for the batch, or cancel it when the event fires first.

        Returns:
            True if the batch completed, False if it was aborted.
        """
        if cancel_event is None:
            await asyncio.wait({batch})
            return True

        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {batch, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()

        if batch in done:
            return True

        batch.cancel()
        await asyncio.wait({batch})
        if not batch.cancelled():
            # Finished between the two waits; nobody will read it now.
            batch.exception()
        return False

    async def _resolve_one(
        self,
        geocode: GeocodeFn,
        address: str,
        transport_failures: list[Exception],
    ) -> Optional[Coordinate]:
        query = address.strip()
        if not query:
            return None

        try:
            location = await geocode(query, exactly_one=True)
        except _FATAL_ERRORS:
            raise
        except (GeocoderTimedOut, GeocoderUnavailable) as e:
            transport_failures.append(e)
            self._logger.warning(
                "Geocode service error",
                extra={"query": query, "error": str(e)},
            )
            return None
        except GeocoderServiceError as e:
            self._logger.warning(
                "Geocode query rejected",
                extra={"query": query, "error": str(e)},
            )
            return None
        except Exception as e:
            self._logger.error(
                "Geocode unexpected error",
                extra={"query": query, "error": str(e)},
            )
            return None

        if location is None:
            self._logger.debug("Geocode returned no result", extra={"query": query})
            return None

        try:
            return Coordinate(
                latitude=float(location.latitude),
                longitude=float(location.longitude),
            )
        except (TypeError, ValueError) as e:
            self._logger.warning(
                "Geocode returned invalid coordinates",
                extra={"query": query, "error": str(e)},
            )
            return None
