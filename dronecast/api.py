"""HTTP API for drone flight ratings."""

import hmac
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel

from dronecast.domain import HourlyObservation, Rating, RuleDescription, Thresholds, Window
from dronecast.presentation import (
    RULE_NOTE,
    CalendarFilter,
    FlightReport,
    TempUnit,
    ViewMode,
    WindUnit,
    build_flight_report,
)
from dronecast.rating_engine import best_window, rate_hour, rule_descriptions
from .config import settings
from .data_sources import build_data_source
from .forecast_service import (
    LocationNotFoundError,
    ResolvedLocation,
    coordinates_label,
    get_location_forecast,
    resolve_location,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate the X-API-Key header against the configured static key."""
    if not settings.api_key:
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])
DATA_SOURCE = build_data_source(settings)


class RulesResponse(BaseModel):
    """Explainer content for the "how this works" panel."""
    rules: List[RuleDescription]
    note: str


class BestWindowRequest(BaseModel):
    """Hours to search, in time order."""
    hours: List[HourlyObservation]


class BestWindowResponse(BaseModel):
    """Best window, or null when no hours were given."""
    window: Optional[Window] = None


def _resolve_request_location(
    latitude: float | None,
    longitude: float | None,
    query: str | None,
) -> ResolvedLocation:
    """Resolve coordinates or a search query into a location, mapping misses to HTTP errors."""
    if latitude is not None and longitude is not None:
        return ResolvedLocation(latitude=latitude, longitude=longitude,
                                label=coordinates_label(latitude, longitude))

    if not query or not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Provide latitude and longitude, or a search query.")
    try:
        return resolve_location(query, DATA_SOURCE)
    except LocationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail="No results for that search. Try a city name or lat,long.")
    except requests.RequestException as exc:
        logger.error("Geocoding request failed", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                            detail="Unable to fetch forecast. Please try again later.")


def _validate_timezone(tz_str: str) -> str:
    try:
        ZoneInfo(tz_str)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid timezone: {tz_str}")
    return tz_str


@router.get("/rules", response_model=RulesResponse)
def get_rules():
    """Return the rule explainer for the active thresholds."""
    return RulesResponse(rules=rule_descriptions(settings.thresholds), note=RULE_NOTE)


@router.get("/thresholds", response_model=Thresholds)
def get_thresholds():
    """Return the active safety thresholds."""
    return settings.thresholds


@router.post("/rate", response_model=Rating)
def rate(hour: HourlyObservation):
    """Rate a single forecast hour."""
    return rate_hour(hour, settings.thresholds)


@router.post("/best-window", response_model=BestWindowResponse)
def find_best_window(req: BestWindowRequest):
    """Find the lowest-risk, calmest 1-3 hour window among the given hours."""
    return BestWindowResponse(window=best_window(req.hours, settings.thresholds))


@router.get("/forecast", response_model=FlightReport)
def get_forecast(
    latitude: float | None = Query(default=None, ge=-90, le=90),
    longitude: float | None = Query(default=None, ge=-180, le=180),
    query: str | None = Query(default=None, max_length=200),
    view: ViewMode = ViewMode.NEXT_24H,
    wind_unit: WindUnit = WindUnit.MPH,
    temp_unit: TempUnit = TempUnit.F,
    calendar_filter: CalendarFilter = CalendarFilter.ALL,
):
    """Fetch, rate and summarize the forecast for a location."""
    location = _resolve_request_location(latitude, longitude, query)

    try:
        forecast = get_location_forecast(
            location.latitude,
            location.longitude,
            data_source=DATA_SOURCE,
            label=location.label,
        )
    except requests.RequestException as exc:
        logger.error("Forecast request failed", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                            detail="Weather API failed. Try again in a minute.")

    tz_str = _validate_timezone(forecast.timezone or location.timezone or settings.default_timezone)
    logger.info(f"Building {view.value} report for {forecast.name} ({tz_str})")

    return build_flight_report(
        forecast.hours,
        location=forecast.name,
        timezone=tz_str,
        view=view,
        wind_unit=wind_unit,
        temp_unit=temp_unit,
        calendar_filter=calendar_filter,
        thresholds=settings.thresholds,
    )
