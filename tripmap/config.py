"""Centralized configuration using Pydantic Settings.

This module provides a single source of truth for the map pipeline
settings: the geocoding provider and its credentials, the viewport
constants used when framing markers, and logging.

Configuration can be overridden via environment variables:
- TRIPMAP_GEO_API_KEY=...
- TRIPMAP_GEO_PROVIDER=nominatim
- TRIPMAP_MAP_REGION_MODE=fit
- TRIPMAP_LOG_LEVEL=DEBUG
- etc.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.errors import ConfigurationError

# Value shipped in the sample .env; treated the same as a missing key.
PLACEHOLDER_API_KEY = "your_geoapify_api_key"

# Fixed span used to frame the map, in degrees.
SINGLE_DELTA = 0.05
MIN_DELTA = 0.02
PADDING_FACTOR = 1.4


class GeocodingConfig(BaseSettings):
    """Geocoding configuration.

    Environment variables prefixed with TRIPMAP_GEO_.
    """

    model_config = SettingsConfigDict(env_prefix="TRIPMAP_GEO_")

    provider: str = "nominatim"
    api_key: Optional[SecretStr] = None
    user_agent: str = "tripmap"
    timeout_seconds: int = 10
    rate_limit_delay: float = 1.0
    max_retries: int = 2
    error_wait_seconds: float = 2.0

    @property
    def has_api_key(self) -> bool:
        """True when a usable (non-placeholder) API key is configured."""
        if self.api_key is None:
            return False
        value = self.api_key.get_secret_value().strip()
        return bool(value) and value != PLACEHOLDER_API_KEY


class MapConfig(BaseSettings):
    """Viewport configuration.

    Environment variables prefixed with TRIPMAP_MAP_.
    """

    model_config = SettingsConfigDict(env_prefix="TRIPMAP_MAP_")

    single_delta: float = Field(default=SINGLE_DELTA, gt=0)
    min_delta: float = Field(default=MIN_DELTA, gt=0)
    padding_factor: float = Field(default=PADDING_FACTOR, ge=1.0)
    region_mode: Literal["focus", "fit"] = "focus"


class ObservabilityConfig(BaseSettings):
    """Logging configuration.

    Environment variables prefixed with TRIPMAP_LOG_.
    """

    model_config = SettingsConfigDict(env_prefix="TRIPMAP_LOG_")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False  # Set True for JSON logging


class AppConfig(BaseSettings):
    """Main application configuration aggregating all sub-configs.

        config = get_config()
        print(config.geocoding.provider)
        print(config.map.single_delta)

    Environment variables prefixed with TRIPMAP_.
    """

    model_config = SettingsConfigDict(env_prefix="TRIPMAP_")

    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    map: MapConfig = Field(default_factory=MapConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the singleton application configuration.

    Configuration is loaded once and cached. To reload configuration
    (e.g., in tests), use reset_config() first.

    Returns:
        The application configuration instance.

    Raises:
        ConfigurationError: If a setting from the environment is invalid.
    """
    try:
        return AppConfig()
    except ValidationError as e:
        first = e.errors()[0]
        setting = ".".join(str(part) for part in first["loc"])
        raise ConfigurationError(
            f"Invalid setting {setting}: {first['msg']}",
            cause=e,
            setting_name=setting,
            expected_type=first["type"],
        ) from e


def reset_config() -> None:
    """Reset the configuration cache.

    Call this in tests to ensure a fresh configuration is loaded.
    """
    get_config.cache_clear()
