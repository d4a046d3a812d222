"""Display-side helpers: view slicing, unit conversion and day summaries.

Everything here works on already-rated hours; no rating decisions are made
in this module.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Sequence
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from dronecast.domain import (
    DEFAULT_THRESHOLDS,
    HourlyObservation,
    RatedHour,
    RatingLabel,
    Thresholds,
    Window,
    worst_label,
)
from dronecast.rating_engine import best_window, format_fixed, rate_hour


class ViewMode(str, Enum):
    """How much of the forecast to show."""
    NEXT_24H = "24h"
    NEXT_72H = "72h"
    WEEKLY = "weekly"


class CalendarFilter(str, Enum):
    """Which day cards to show."""
    ALL = "all"
    GOOD = "Good"
    RISKY = "Risky"
    BAD = "Bad"


class WindUnit(str, Enum):
    MPH = "mph"
    KPH = "kph"


class TempUnit(str, Enum):
    F = "f"
    C = "c"


WEEKLY_SNAPSHOT_HOURS = ("T08:00", "T20:00")
WEEKLY_MAX_SNAPSHOTS = 14

STATUS_DETAIL = "Tap an hour for the why and watch wind + precip to stay safe."
RULE_NOTE = (
    "These limits are intentionally conservative for typical recreational drones. "
    "Tune thresholds through DRONE_THRESHOLDS__* settings to match your aircraft and comfort level."
)


class HourDisplay(BaseModel):
    """Display strings for one rated hour, in the requested units."""
    time: str
    temperature: str
    wind_speed: str
    wind_gust: str
    precipitation: str
    visibility: str
    cloud_cover: str | None = None
    label: RatingLabel
    warnings: List[str]
    reasons: List[str]


class DaySummary(BaseModel):
    """Calendar card for one local day."""
    date_key: str
    day_name: str
    label: RatingLabel
    reasons: List[str]
    max_wind: str
    max_gust: str
    max_precip: float


class FlightReport(BaseModel):
    """Everything a client needs to render one forecast view."""
    location: str
    timezone: str
    view: ViewMode
    overall_label: RatingLabel | None = None
    best_window: Window | None = None
    hours: List[HourDisplay]
    days: List[DaySummary]
    status_copy: str
    status_detail: str = STATUS_DETAIL


def format_hour_key(moment: dt.datetime, tz: str) -> str:
    """Local wall-clock hour of `moment` in `tz`, as "YYYY-MM-DDTHH:00"."""
    local = moment.astimezone(ZoneInfo(tz))
    return local.strftime("%Y-%m-%dT%H:00")


def sample_range(hours: Sequence[HourlyObservation], start_idx: int, total_hours: int,
                 step_hours: int) -> List[HourlyObservation]:
    """Take every `step_hours`-th hour over `total_hours` starting at `start_idx`."""
    out: List[HourlyObservation] = []
    for offset in range(0, total_hours, step_hours):
        idx = start_idx + offset
        if idx >= len(hours):
            break
        out.append(hours[idx])
    return out


def filter_by_view(hours: Sequence[HourlyObservation], tz: str, mode: ViewMode,
                   now: dt.datetime | None = None) -> List[HourlyObservation]:
    """
    Slice the forecast for a view mode, starting at the current local hour.

    Hour times are local ISO strings, so they compare correctly as text
    against the current hour key.
    """
    now = now or dt.datetime.now(dt.timezone.utc)
    now_key = format_hour_key(now, tz)
    begin = next((i for i, h in enumerate(hours) if h.time >= now_key), 0)

    if mode == ViewMode.NEXT_72H:
        return sample_range(hours, begin, 72, 4)

    if mode == ViewMode.WEEKLY:
        snapshots = [
            h for h in hours
            if h.time >= now_key and any(t in h.time for t in WEEKLY_SNAPSHOT_HOURS)
        ]
        return snapshots[:WEEKLY_MAX_SNAPSHOTS]

    return sample_range(hours, begin, 24, 1)


def status_copy_for_mode(mode: ViewMode) -> str:
    if mode == ViewMode.NEXT_72H:
        return "Showing the next 72 hours (every 4 hours) from the current local time."
    if mode == ViewMode.WEEKLY:
        return "Showing 8 AM and 8 PM snapshots for the upcoming week."
    return "Showing the next 24 hours from the current local time."


def overall_label(rated: Sequence[RatedHour]) -> RatingLabel | None:
    """Worst label across the shown hours; None when nothing is shown."""
    if not rated:
        return None
    return worst_label(r.rating.label for r in rated)


def _local_datetime(time_str: str, tz: str) -> dt.datetime:
    """Naive forecast times are already local to `tz`; aware ones are converted."""
    parsed = dt.datetime.fromisoformat(time_str)
    zone = ZoneInfo(tz)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=zone)
    return parsed.astimezone(zone)


def hour_display(rated: RatedHour, *, wind_unit: WindUnit = WindUnit.MPH,
                 temp_unit: TempUnit = TempUnit.F) -> HourDisplay:
    """Format one rated hour for display in the requested units."""
    h = rated.hour
    if temp_unit == TempUnit.F:
        temperature = f"{format_fixed(h.temperature_f)}°F"
    else:
        temperature = f"{format_fixed(h.temperature_c)}°C"

    if wind_unit == WindUnit.MPH:
        wind = f"{format_fixed(h.wind_speed_mph)} mph"
        gust = f"{format_fixed(h.wind_gust_mph)} mph"
    else:
        wind = f"{format_fixed(h.wind_speed_kph)} kph"
        gust = f"{format_fixed(h.wind_gust_kph)} kph"

    precip = f"{format_fixed(h.precipitation_probability)}%"
    if h.precipitation_type:
        precip = f"{precip} • {h.precipitation_type}"

    # Visibility follows the wind unit system: miles with mph, km with kph.
    if h.visibility_miles is None:
        visibility = "Visibility n/a"
    elif wind_unit == WindUnit.MPH:
        visibility = f"{format_fixed(h.visibility_miles, 1)} mi vis"
    elif h.visibility_km is not None:
        visibility = f"{format_fixed(h.visibility_km, 1)} km vis"
    else:
        visibility = f"{format_fixed(h.visibility_miles * 1.609344, 1)} km vis"

    return HourDisplay(
        time=h.time,
        temperature=temperature,
        wind_speed=wind,
        wind_gust=gust,
        precipitation=precip,
        visibility=visibility,
        cloud_cover=f"{format_fixed(h.cloud_cover)}%" if h.cloud_cover is not None else None,
        label=rated.rating.label,
        warnings=list(rated.rating.warnings),
        reasons=list(rated.rating.reasons),
    )


def summarize_by_day(rated: Sequence[RatedHour], tz: str, *,
                     wind_unit: WindUnit = WindUnit.MPH,
                     calendar_filter: CalendarFilter = CalendarFilter.ALL) -> List[DaySummary]:
    """
    Group rated hours into local calendar days.

    A day's label is its worst hour; its reasons are the de-duplicated
    reasons of the hours that share that worst label, in order.
    """
    days: Dict[str, List[RatedHour]] = {}
    for r in rated:
        key = _local_datetime(r.hour.time, tz).date().isoformat()
        days.setdefault(key, []).append(r)

    summaries: List[DaySummary] = []
    for date_key, items in days.items():
        label = worst_label(r.rating.label for r in items)
        reasons = list(dict.fromkeys(
            reason for r in items if r.rating.label == label for reason in r.rating.reasons
        ))
        if wind_unit == WindUnit.MPH:
            max_wind = max(r.hour.wind_speed_mph for r in items)
            max_gust = max(r.hour.wind_gust_mph for r in items)
        else:
            max_wind = max(r.hour.wind_speed_kph for r in items)
            max_gust = max(r.hour.wind_gust_kph for r in items)

        summaries.append(
            DaySummary(
                date_key=date_key,
                day_name=_local_datetime(items[0].hour.time, tz).strftime("%A"),
                label=label,
                reasons=reasons,
                max_wind=f"{format_fixed(max_wind)} {wind_unit.value}",
                max_gust=f"{format_fixed(max_gust)} {wind_unit.value}",
                max_precip=max(r.hour.precipitation_probability for r in items),
            )
        )

    if calendar_filter == CalendarFilter.ALL:
        return summaries
    return [s for s in summaries if s.label.value == calendar_filter.value]


def rate_hours(hours: Sequence[HourlyObservation],
               thresholds: Thresholds = DEFAULT_THRESHOLDS) -> List[RatedHour]:
    return [RatedHour(hour=h, rating=rate_hour(h, thresholds)) for h in hours]


def build_flight_report(
    hours: Sequence[HourlyObservation],
    *,
    location: str,
    timezone: str,
    view: ViewMode = ViewMode.NEXT_24H,
    wind_unit: WindUnit = WindUnit.MPH,
    temp_unit: TempUnit = TempUnit.F,
    calendar_filter: CalendarFilter = CalendarFilter.ALL,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    now: dt.datetime | None = None,
) -> FlightReport:
    """Slice, rate and format a forecast for one render cycle."""
    shown = filter_by_view(hours, timezone, view, now=now)
    rated = rate_hours(shown, thresholds)

    return FlightReport(
        location=location,
        timezone=timezone,
        view=view,
        overall_label=overall_label(rated),
        best_window=best_window(shown, thresholds),
        hours=[hour_display(r, wind_unit=wind_unit, temp_unit=temp_unit) for r in rated],
        days=summarize_by_day(rated, timezone, wind_unit=wind_unit, calendar_filter=calendar_filter),
        status_copy=status_copy_for_mode(view),
    )
