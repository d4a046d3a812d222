"""Factory helpers for choosing a forecast data source at startup."""

from __future__ import annotations

from dronecast import config
from dronecast.data_sources.base import CallableForecastDataSource, ForecastDataSource
from dronecast.data_sources.open_meteo_client import fetch_forecast_hours, geocode
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "open_meteo"


def build_data_source(settings: config.Settings | None = None) -> ForecastDataSource:
    """Instantiate the configured forecast data source."""
    settings = settings or config.settings
    source = (settings.forecast_source or DEFAULT_SOURCE_NAME).lower()

    if source == "open_meteo":
        logger.info("Using Open-Meteo data source")
        return CallableForecastDataSource(
            geocoder=geocode,
            forecast_hours=fetch_forecast_hours,
        )

    raise ValueError(f"Unknown forecast source '{source}'")
