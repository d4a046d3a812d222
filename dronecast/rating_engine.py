"""Deterministic hourly flight rating and best-window selection.

Rating is a fold over an ordered tuple of independent rule checks. Each check
looks at one observation and returns an optional RuleOutcome carrying the
minimum label it demands plus one reason and one warning. The fold combines
the outcomes with max_label, so a label can only move towards Bad and the
reasons/warnings keep rule order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Sequence

from dronecast.domain import (
    DEFAULT_THRESHOLDS,
    HourlyObservation,
    Rating,
    RatingLabel,
    RuleDescription,
    Thresholds,
    Window,
    max_label,
    worst_label,
)

DEFAULT_REASON = "All key weather factors within conservative limits"

HEAVY_PRECIP_MM = 2.5
BAD_PRECIP_KEYWORDS = ("snow", "freezing rain", "ice", "hail")
WET_PRECIP_KEYWORDS = ("rain", "drizzle", "shower")
THUNDER_KEYWORD = "thunder"

MAX_WINDOW_HOURS = 3
GUST_WEIGHT = 0.5
LABEL_PENALTY = {
    RatingLabel.GOOD: 0.0,
    RatingLabel.RISKY: 50.0,
    RatingLabel.BAD: 100.0,
}


@dataclass(frozen=True)
class RuleOutcome:
    """Result of a single triggered rule."""
    label_floor: RatingLabel
    reason: str
    warning: str


RuleCheck = Callable[[HourlyObservation, Thresholds], "RuleOutcome | None"]


def format_fixed(value: float, digits: int = 0) -> str:
    """Fixed-point text with halves rounded away from zero (12.5 -> "13").

    Rounds the exact binary value of the float; NaN and infinities pass through.
    """
    if not math.isfinite(value):
        return f"{value:.{digits}f}"
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _fmt_number(value: float) -> str:
    """Render whole numbers without a trailing .0 (60.0 -> '60')."""
    return f"{value:g}"


def _check_wind(hour: HourlyObservation, t: Thresholds) -> RuleOutcome | None:
    """Sustained wind and gusts; the Bad and Risky branches are exclusive."""
    wind = hour.wind_speed_mph
    gust = hour.wind_gust_mph
    if wind > t.wind_risky or gust > t.gust_risky:
        return RuleOutcome(
            RatingLabel.BAD,
            f"Gusts {format_fixed(gust)} mph or wind {format_fixed(wind)} mph exceed limits",
            "Strong winds",
        )
    if wind >= t.wind_good or gust >= t.gust_good:
        return RuleOutcome(
            RatingLabel.RISKY,
            f"Wind {format_fixed(wind)} mph / gusts {format_fixed(gust)} mph are elevated",
            "Breezy",
        )
    return None


def _check_thunder(hour: HourlyObservation, t: Thresholds) -> RuleOutcome | None:
    """Thunder flag or a thunderstorm precipitation type grounds the aircraft."""
    if hour.thunder or THUNDER_KEYWORD in (hour.precipitation_type or "").lower():
        return RuleOutcome(RatingLabel.BAD, "Thunderstorm reported in forecast", "Lightning risk")
    return None


def _check_precip_type(hour: HourlyObservation, t: Thresholds) -> RuleOutcome | None:
    """Icing or heavy precipitation is Bad, light wet precipitation is Risky."""
    if not hour.precipitation_type:
        return None

    lowered = hour.precipitation_type.lower()
    heavy = hour.precipitation_mm > HEAVY_PRECIP_MM
    if heavy or any(k in lowered for k in BAD_PRECIP_KEYWORDS):
        suffix = " (heavy)" if heavy else ""
        return RuleOutcome(
            RatingLabel.BAD,
            f"Bad precipitation: {hour.precipitation_type}{suffix}",
            "Icing or heavy precip",
        )
    if any(k in lowered for k in WET_PRECIP_KEYWORDS):
        return RuleOutcome(RatingLabel.RISKY, f"Wet conditions: {hour.precipitation_type}", "Moisture")
    return None


def _check_precip_probability(hour: HourlyObservation, t: Thresholds) -> RuleOutcome | None:
    """Chance of precipitation at or above the risky limit."""
    if hour.precipitation_probability >= t.precip_risky_probability:
        return RuleOutcome(
            RatingLabel.RISKY,
            f"Precipitation chance {_fmt_number(hour.precipitation_probability)}%",
            "Rain risk",
        )
    return None


def _check_visibility(hour: HourlyObservation, t: Thresholds) -> RuleOutcome | None:
    """Visibility limits; skipped when the provider has no visibility."""
    vis = hour.visibility_miles
    if vis is None:
        return None
    if vis < t.visibility_bad:
        return RuleOutcome(RatingLabel.BAD, f"Visibility only {format_fixed(vis, 1)} mi", "Low visibility")
    if vis < t.visibility_risky:
        return RuleOutcome(RatingLabel.RISKY, f"Visibility {format_fixed(vis, 1)} mi", "Marginal visibility")
    return None


def _check_temperature(hour: HourlyObservation, t: Thresholds) -> RuleOutcome | None:
    """Cold drains batteries and brings icing risk."""
    temp_f = hour.temperature_f
    if temp_f < t.temp_bad_f:
        return RuleOutcome(RatingLabel.BAD, f"Very cold ({format_fixed(temp_f)}°F)", "Battery & icing risk")
    if temp_f < t.temp_risky_f:
        return RuleOutcome(RatingLabel.RISKY, f"Cold ({format_fixed(temp_f)}°F)", "Battery drain risk")
    return None


# Order matters: it fixes the order of reasons and warnings in a Rating.
RULE_CHECKS: tuple[RuleCheck, ...] = (
    _check_wind,
    _check_thunder,
    _check_precip_type,
    _check_precip_probability,
    _check_visibility,
    _check_temperature,
)


def rate_hour(hour: HourlyObservation, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> Rating:
    """Pure function: rate one forecast hour against the thresholds."""
    label = RatingLabel.GOOD
    reasons: list[str] = []
    warnings: list[str] = []

    for check in RULE_CHECKS:
        outcome = check(hour, thresholds)
        if outcome is None:
            continue
        label = max_label(label, outcome.label_floor)
        reasons.append(outcome.reason)
        warnings.append(outcome.warning)

    if not reasons:
        reasons.append(DEFAULT_REASON)

    return Rating(label=label, reasons=reasons, warnings=warnings)


def _window_wind(hours: Sequence[HourlyObservation]) -> float:
    """Average of sustained wind plus half the gust, in mph."""
    total = sum(h.wind_speed_mph + GUST_WEIGHT * h.wind_gust_mph for h in hours)
    return total / len(hours)


def best_window(
    hours: Sequence[HourlyObservation],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Window | None:
    """
    Pick the lowest-scoring contiguous window of 1-3 hours.

    score = label penalty of the worst hour (0 / 50 / 100) + average of
    (wind + 0.5 * gust). Only a strictly lower score replaces the current
    best, so on ties the earliest start and then the shortest span wins.
    Returns None for an empty forecast.
    """
    labels = [rate_hour(h, thresholds).label for h in hours]

    best: Window | None = None
    best_score = float("inf")
    for start_idx in range(len(hours)):
        for length in range(1, MAX_WINDOW_HOURS + 1):
            end_idx = start_idx + length
            if end_idx > len(hours):
                break
            span = hours[start_idx:end_idx]
            worst = worst_label(labels[start_idx:end_idx])
            score = LABEL_PENALTY[worst] + _window_wind(span)
            if score < best_score:
                best_score = score
                best = Window(start=span[0].time, end=span[-1].time, label=worst, score=score)

    return best


def _f_to_c(temp_f: float) -> str:
    """Whole-degree Celsius for the rule explainer."""
    return format_fixed((temp_f - 32) * 5 / 9)


def rule_descriptions(thresholds: Thresholds = DEFAULT_THRESHOLDS) -> list[RuleDescription]:
    """Static explainer of the six rule categories and the final-label policy."""
    t = thresholds
    n = _fmt_number
    return [
        RuleDescription(
            title="Wind & gusts",
            detail=(
                f"Good < {n(t.wind_good)} mph wind and < {n(t.gust_good)} mph gusts. "
                f"Risky {n(t.wind_good)}–{n(t.wind_risky)} mph or gusts {n(t.gust_good)}–{n(t.gust_risky)} mph. "
                "Bad above that."
            ),
        ),
        RuleDescription(
            title="Precipitation",
            detail=(
                "Bad for thunderstorms, snow, freezing rain, ice, hail or heavy precipitation "
                f"(more than {n(HEAVY_PRECIP_MM)} mm/h). Risky for light rain/drizzle/showers "
                f"or precip chance ≥ {n(t.precip_risky_probability)}%."
            ),
        ),
        RuleDescription(
            title="Visibility",
            detail=(
                f"Bad below {n(t.visibility_bad)} miles, risky {n(t.visibility_bad)}–{n(t.visibility_risky)} miles. "
                "Ignored if not provided by the forecast."
            ),
        ),
        RuleDescription(
            title="Temperature",
            detail=(
                f"Risky below {n(t.temp_risky_f)}°F ({_f_to_c(t.temp_risky_f)}°C). "
                f"Bad below {n(t.temp_bad_f)}°F ({_f_to_c(t.temp_bad_f)}°C) or with icing risk."
            ),
        ),
        RuleDescription(
            title="Why these numbers",
            detail=(
                "They follow conservative VLOS drone practices: avoid gusts, moisture, low visibility, "
                "and extreme cold. Adjust thresholds if your aircraft and experience support different limits."
            ),
        ),
        RuleDescription(
            title="Final label",
            detail="Any Bad trigger → Bad. Else if any Risky trigger → Risky. Otherwise Good.",
        ),
    ]
