"""Data source factories for plugging different forecast backends."""

from .base import CallableForecastDataSource, ForecastDataSource
from .factory import build_data_source
from .open_meteo_client import (
    GeoResult,
    ProviderForecast,
    fetch_forecast_hours,
    geocode,
)

__all__ = [
    "build_data_source",
    "ForecastDataSource",
    "CallableForecastDataSource",
    "GeoResult",
    "ProviderForecast",
    "fetch_forecast_hours",
    "geocode",
]
