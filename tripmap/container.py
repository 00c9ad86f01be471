"""Dependency injection container.

This module provides a simple DI container without external frameworks.
It allows registering and resolving dependencies for the application.

Design principles:
1. No magic - explicit registration and resolution
2. Testable - easy to swap implementations
3. Lazy loading - adapters instantiated on first use
4. Thread-safe - for web server contexts
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar

from .config import AppConfig, get_config

T = TypeVar("T")


@dataclass
class Container:
    """Dependency injection container.

    Usage:
        # Production
        container = Container.create_default()
        controller = container.create_controller("trip-1")

        # Testing
        container = Container()
        container.register(GeocoderPort, lambda: FakeGeocoder())
        geocoder = container.resolve(GeocoderPort)

    Attributes:
        config: Application configuration
    """

    config: AppConfig = field(default_factory=get_config)

    _factories: Dict[type[Any], Callable[[], Any]] = field(
        default_factory=dict, repr=False
    )
    _singletons: Dict[type[Any], Any] = field(default_factory=dict, repr=False)
    _singleton_types: set[type[Any]] = field(default_factory=set, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def register(
        self,
        port_type: type[Any],
        factory: Callable[[], Any],
        singleton: bool = True,
    ) -> None:
        """Register a factory for a port type.

        Args:
            port_type: The type (usually a Protocol) to register.
            factory: A callable that creates instances of the type.
            singleton: If True, only one instance is created.
        """
        with self._lock:
            self._factories[port_type] = factory
            if singleton:
                self._singleton_types.add(port_type)
            else:
                self._singleton_types.discard(port_type)
            self._singletons.pop(port_type, None)

    def resolve(self, port_type: type[Any]) -> Any:
        """Resolve an instance of a port type.

        Raises:
            KeyError: If the type is not registered.
        """
        with self._lock:
            if port_type not in self._factories:
                raise KeyError(f"Type not registered: {port_type}")

            if port_type in self._singleton_types:
                if port_type not in self._singletons:
                    self._singletons[port_type] = self._factories[port_type]()
                return self._singletons[port_type]

            return self._factories[port_type]()

    def clear_all(self) -> None:
        """Clear all registrations and singletons."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()
            self._singleton_types.clear()

    def create_controller(self, trip_id: str, destination_only: bool = False) -> Any:
        """Build a controller for one map view.

        Each view gets its own orchestrator so supersession never crosses
        views.

        Args:
            trip_id: Trip to display.
            destination_only: Only show the destination marker.

        Returns:
            A TripMapController (not started).
        """
        from .ports.trips import ReservationSourcePort, TripSourcePort
        from .services import GeocodeOrchestrator, TripMapController

        return TripMapController(
            trip_id=trip_id,
            trip_source=self.resolve(TripSourcePort),
            reservation_source=self.resolve(ReservationSourcePort),
            orchestrator=self.resolve(GeocodeOrchestrator),
            destination_only=destination_only,
            map_config=self.config.map,
        )

    @classmethod
    def create_default(cls, config: Optional[AppConfig] = None) -> Container:
        """Create a container with default bindings.

        Trips and reservations come from one shared in-memory repository;
        geocoding uses the configured geopy provider.

        Args:
            config: Optional configuration override.

        Returns:
            A configured Container instance.
        """
        from .adapters.geocoding import GeopyBatchGeocoder
        from .adapters.sources import InMemoryTripRepository
        from .ports.geocoding import GeocoderPort
        from .ports.trips import ReservationSourcePort, TripSourcePort
        from .services import GeocodeOrchestrator

        config = config or get_config()
        container = cls(config=config)

        repository = InMemoryTripRepository()
        container.register(TripSourcePort, lambda: repository)
        container.register(ReservationSourcePort, lambda: repository)

        container.register(
            GeocoderPort,
            lambda: GeopyBatchGeocoder(config.geocoding),
        )

        # One orchestrator per view
        container.register(
            GeocodeOrchestrator,
            lambda: GeocodeOrchestrator(container.resolve(GeocoderPort)),
            singleton=False,
        )

        return container


# Global default container (lazy initialized)
_default_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get the default application container.

    Returns:
        The default Container instance (creates one if needed).
    """
    global _default_container
    if _default_container is None:
        with _container_lock:
            if _default_container is None:
                _default_container = Container.create_default()
    return _default_container


def reset_container() -> None:
    """Reset the default container.

    Call this in tests to ensure a fresh container.
    """
    global _default_container
    with _container_lock:
        if _default_container is not None:
            _default_container.clear_all()
        _default_container = None
