"""Helpers for fetching geocoding results and hourly forecasts from Open-Meteo."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import requests_cache
from retry_requests import retry

from dronecast.config import settings
from dronecast.domain import HourlyObservation
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag='open_meteo_client')

COORDINATE_DECIMALS = 3

# In-memory SQLite cache; coordinates are rounded before the request so nearby
# lookups (within ~100 m) resolve to the same cached response.
cache_session = requests_cache.CachedSession(
    "dronecast_forecasts",
    backend="sqlite",
    use_memory=True,
    expire_after=settings.forecast_cache_seconds,
)
session = retry(cache_session, retries=settings.http_retries, backoff_factor=0.2)
logger.info("Using requests_cache and retry_requests")

OPEN_METEO_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"

HOURLY_VARS = [
    "temperature_2m",
    "precipitation_probability",
    "precipitation",
    "weather_code",
    "wind_speed_10m",
    "wind_gusts_10m",
    "cloud_cover",
    "visibility",
]

# Units we convert from; Open-Meteo defaults when no unit params are sent.
EXPECTED_HOURLY_UNITS = {
    "temperature_2m": "°C",
    "precipitation_probability": "%",
    "precipitation": "mm",
    "wind_speed_10m": "km/h",
    "wind_gusts_10m": "km/h",
    "cloud_cover": "%",
    "visibility": "m",
}

ALLOWED_HOURLY_UNIT_SYNONYMS = {
    "precipitation_probability": {"%", "percent"},
    "cloud_cover": {"%", "percent"},
    "visibility": {"m", "meters"},
}

THUNDER_CODES = {95, 96, 99}

# WMO weather interpretation codes that carry precipitation.
WEATHER_CODE_DESCRIPTIONS = {
    51: "Light drizzle",
    53: "Drizzle",
    55: "Heavy drizzle",
    61: "Light rain",
    63: "Rain",
    65: "Heavy rain",
    66: "Freezing rain",
    67: "Heavy freezing rain",
    71: "Snow",
    73: "Snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Rain showers",
    81: "Rain showers",
    82: "Heavy rain showers",
    85: "Snow showers",
    86: "Snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Thunderstorm with hail",
}


@dataclass
class GeoResult:
    """First geocoding match for a free-text place query."""
    latitude: float
    longitude: float
    name: str
    timezone: Optional[str]


@dataclass
class ProviderForecast:
    """Hourly observations plus the timezone Open-Meteo resolved for them."""
    hours: List[HourlyObservation]
    timezone: str


def c_to_f(temp_c: float) -> float:
    return temp_c * 9 / 5 + 32


def kph_to_mph(kph: float) -> float:
    return kph * 0.621371


def meters_to_miles(meters: float) -> float:
    return meters / 1609.34


def is_thunder(code: Optional[int]) -> bool:
    """WMO codes 95/96/99 are thunderstorms."""
    return code in THUNDER_CODES


def describe_weather_code(code: Optional[int], precipitation: Optional[float] = None) -> Optional[str]:
    """Map a WMO code to a precipitation descriptor, or None for dry codes."""
    if code is None:
        return "Precipitation" if precipitation and precipitation > 0 else None
    return WEATHER_CODE_DESCRIPTIONS.get(int(code))


def _warn_on_unexpected_units(units: dict, *, context: str):
    """Log a warning if Open-Meteo returns units our conversions do not expect."""
    if not units:
        return
    for field, expected in EXPECTED_HOURLY_UNITS.items():
        actual = units.get(field)
        if not actual or actual == expected:
            continue
        allowed = ALLOWED_HOURLY_UNIT_SYNONYMS.get(field, set())
        if actual not in allowed:
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": field, "unit": actual, "expected": expected},
            )


def geocode(query: str) -> Optional[GeoResult]:
    """Resolve a place name to coordinates; None when nothing matches."""
    params = {"name": query, "count": 1}

    resp = session.get(OPEN_METEO_GEOCODING_URL, params=params, timeout=settings.http_timeout_seconds)
    resp.raise_for_status()
    data = resp.json()

    results = data.get("results") or []
    if not results:
        logger.info("No geocoding results", extra={"query": query})
        return None

    first = results[0]
    return GeoResult(
        latitude=first["latitude"],
        longitude=first["longitude"],
        name=f"{first['name']}, {first.get('country_code', '')}".rstrip(", "),
        timezone=first.get("timezone"),
    )


def _observation_at(hourly: dict, i: int, t: str) -> HourlyObservation:
    """Build one HourlyObservation from column-oriented hourly arrays."""
    def col(name):
        values = hourly.get(name)
        return values[i] if values is not None and i < len(values) else None

    temp_c = col("temperature_2m")
    wind_kph = col("wind_speed_10m") or 0.0
    gust_kph = col("wind_gusts_10m") or 0.0
    precip = col("precipitation") or 0.0
    visibility_m = col("visibility")
    code = col("weather_code")

    return HourlyObservation(
        time=t,
        temperature_c=temp_c,
        temperature_f=c_to_f(temp_c),
        wind_speed_kph=wind_kph,
        wind_speed_mph=kph_to_mph(wind_kph),
        wind_gust_kph=gust_kph,
        wind_gust_mph=kph_to_mph(gust_kph),
        precipitation_probability=col("precipitation_probability") or 0,
        precipitation_mm=precip,
        precipitation_type=describe_weather_code(code, precip),
        cloud_cover=col("cloud_cover"),
        visibility_km=visibility_m / 1000 if visibility_m is not None else None,
        visibility_miles=meters_to_miles(visibility_m) if visibility_m is not None else None,
        thunder=is_thunder(code),
    )


def prune_expired_responses(cached: requests_cache.CachedSession | None = None) -> None:
    """Delete expired responses so one-off coordinates do not pile up in the cache."""
    (cached or cache_session).cache.delete(expired=True)


def fetch_forecast_hours(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "auto",
    forecast_days: int = 7,
) -> ProviderForecast:
    """Fetch up to `forecast_days` of hourly weather as HourlyObservations."""
    params = {
        "latitude": round(latitude, COORDINATE_DECIMALS),
        "longitude": round(longitude, COORDINATE_DECIMALS),
        "hourly": ",".join(HOURLY_VARS),
        "forecast_days": forecast_days,
        "timezone": timezone,
    }

    resp = session.get(OPEN_METEO_FORECAST_URL, params=params, timeout=settings.http_timeout_seconds)
    resp.raise_for_status()
    data = resp.json()

    if getattr(resp, "from_cache", False):
        logger.debug("Forecast served from cache", extra={"latitude": latitude, "longitude": longitude})
    else:
        prune_expired_responses(session if isinstance(session, requests_cache.CachedSession) else None)

    hourly = data["hourly"]
    _warn_on_unexpected_units(data.get("hourly_units", {}), context="forecast_hourly")

    out: List[HourlyObservation] = []
    for i, t in enumerate(hourly["time"]):
        if hourly["temperature_2m"][i] is None:
            # Open-Meteo pads the tail of some models with nulls.
            logger.debug("Skipping hour without temperature", extra={"time": t})
            continue
        out.append(_observation_at(hourly, i, t))

    resolved_tz = data.get("timezone") or settings.default_timezone
    logger.debug("Fetched forecast hours", extra={"count": len(out), "timezone": resolved_tz})
    return ProviderForecast(hours=out, timezone=resolved_tz)
