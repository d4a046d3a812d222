"""Resolve a location and fetch its hourly forecast."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dronecast.config import settings
from dronecast.data_sources import ForecastDataSource, build_data_source
from dronecast.domain import HourlyObservation
from dronecast.rating_engine import best_window, format_fixed, rate_hour
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="forecast_service")

_LAT_LONG_RE = re.compile(r"(-?\d+\.\d+|-?\d+)\s*,\s*(-?\d+\.\d+|-?\d+)")


class LocationNotFoundError(LookupError):
    """Raised when a free-text place query has no geocoding match."""


@dataclass
class ResolvedLocation:
    """Coordinates and display label for a location query."""
    latitude: float
    longitude: float
    label: str
    timezone: Optional[str] = None


@dataclass
class LocationForecast:
    """Hourly observations for one location."""
    hours: List[HourlyObservation]
    name: str
    timezone: str


def coordinates_label(latitude: float, longitude: float) -> str:
    return f"Lat {format_fixed(latitude, 2)}, Lon {format_fixed(longitude, 2)}"


def parse_lat_long(text: str) -> Optional[Tuple[float, float]]:
    """Parse "lat, lon" out of free text; None when no pair is present."""
    match = _LAT_LONG_RE.search(text or "")
    if not match:
        return None
    return float(match.group(1)), float(match.group(2))


def resolve_location(query: str, data_source: ForecastDataSource) -> ResolvedLocation:
    """
    Turn a search box query into coordinates.

    "43.07, -89.40" style input is used directly; anything else goes
    through the data source's geocoder.
    """
    query = (query or "").strip()
    if not query:
        raise ValueError("Location query is empty")

    coords = parse_lat_long(query)
    if coords:
        lat, lon = coords
        return ResolvedLocation(latitude=lat, longitude=lon, label=coordinates_label(lat, lon))

    geo = data_source.geocode(query)
    if geo is None:
        raise LocationNotFoundError(query)
    logger.debug("Geocoded location", extra={"query": query, "name": geo.name})
    return ResolvedLocation(latitude=geo.latitude, longitude=geo.longitude, label=geo.name, timezone=geo.timezone)


def get_location_forecast(
    latitude: float,
    longitude: float,
    *,
    data_source: ForecastDataSource | None = None,
    label: str | None = None,
    forecast_days: int | None = None,
) -> LocationForecast:
    """
    Return the hourly forecast for a coordinate pair.

    Repeat lookups near the same coordinates are answered from the Open-Meteo
    client's response cache. Provider errors (requests exceptions) propagate
    to the caller.
    """
    name = label or coordinates_label(latitude, longitude)
    ds = data_source or build_data_source(settings)
    logger.info(
        "Fetching hourly forecast",
        extra={"latitude": latitude, "longitude": longitude},
    )
    provider = ds.fetch_forecast_hours(
        latitude,
        longitude,
        timezone="auto",
        forecast_days=forecast_days or settings.forecast_days,
    )
    logger.info("Fetched forecast", extra={"hours_count": len(provider.hours), "timezone": provider.timezone})

    return LocationForecast(hours=provider.hours, name=name, timezone=provider.timezone)


def main():
    """Manual test helper: rate the next 24 hours for a fixed location."""
    forecast = get_location_forecast(43.07, -89.40)
    for h in forecast.hours[:24]:
        rating = rate_hour(h, settings.thresholds)
        print(f"{h.time}  {rating.label.value:<5}  {'; '.join(rating.reasons)}")
    print(f"best window: {best_window(forecast.hours[:24], settings.thresholds)}")


if __name__ == "__main__":
    main()
