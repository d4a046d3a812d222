"""Interfaces and helpers for forecast data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from dronecast.data_sources.open_meteo_client import GeoResult, ProviderForecast


class ForecastDataSource(Protocol):
    """Interface for anything that can geocode a place and supply hourly forecasts."""

    def geocode(self, query: str) -> Optional[GeoResult]:
        """Return the best match for a place name, or None."""
        ...

    def fetch_forecast_hours(
        self,
        latitude: float,
        longitude: float,
        *,
        timezone: str = "auto",
        forecast_days: int = 7,
    ) -> ProviderForecast:
        """Return time-ordered hourly observations and their timezone."""
        ...


@dataclass
class CallableForecastDataSource(ForecastDataSource):
    """Wrap two callables so they can be swapped for different backends."""

    geocoder: Callable[..., Optional[GeoResult]]
    forecast_hours: Callable[..., ProviderForecast]

    def geocode(self, *args, **kwargs) -> Optional[GeoResult]:
        """Delegate to the configured geocoding callable."""
        return self.geocoder(*args, **kwargs)

    def fetch_forecast_hours(self, *args, **kwargs) -> ProviderForecast:
        """Delegate to the configured hourly-forecast callable."""
        return self.forecast_hours(*args, **kwargs)
