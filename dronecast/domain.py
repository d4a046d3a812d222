"""Domain vocabulary and strict schemas for drone flight ratings.

This module defines the stable contract between the rating engine, the
forecast provider and the HTTP layer: the rating labels, the threshold
configuration, and Pydantic models for the payloads that flow through the
system. No interpretation logic lives here beyond label ordering.
"""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class RatingLabel(str, Enum):
    """Flight suitability tier, ordered Good < Risky < Bad."""
    GOOD = "Good"
    RISKY = "Risky"
    BAD = "Bad"

    @property
    def rank(self) -> int:
        """Position of the label in the Good < Risky < Bad order."""
        return _LABEL_RANK[self]


_LABEL_RANK = {
    RatingLabel.GOOD: 0,
    RatingLabel.RISKY: 1,
    RatingLabel.BAD: 2,
}


def max_label(a: RatingLabel, b: RatingLabel) -> RatingLabel:
    """Return the worse of two labels; ties keep the first."""
    return a if a.rank >= b.rank else b


def worst_label(labels) -> RatingLabel:
    """Fold labels with max_label; an empty input is Good."""
    worst = RatingLabel.GOOD
    for label in labels:
        worst = max_label(worst, label)
    return worst


class Thresholds(_StrictBaseModel):
    """Safety limits used by the rule evaluator. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    wind_good: float = 12.0
    wind_risky: float = 18.0
    gust_good: float = 18.0
    gust_risky: float = 25.0
    precip_risky_probability: float = 40.0
    visibility_risky: float = 5.0
    visibility_bad: float = 3.0
    temp_risky_f: float = 14.0
    temp_bad_f: float = 0.0

    @model_validator(mode="after")
    def check_ordering(self) -> "Thresholds":
        """Reject limits whose good/risky/bad bands would overlap."""
        if self.wind_good > self.wind_risky:
            raise ValueError("wind_good must not exceed wind_risky")
        if self.gust_good > self.gust_risky:
            raise ValueError("gust_good must not exceed gust_risky")
        if self.visibility_bad > self.visibility_risky:
            raise ValueError("visibility_bad must not exceed visibility_risky")
        if self.temp_bad_f > self.temp_risky_f:
            raise ValueError("temp_bad_f must not exceed temp_risky_f")
        return self


DEFAULT_THRESHOLDS = Thresholds()


class HourlyObservation(_StrictBaseModel):
    """One forecast hour as supplied by the forecast provider."""
    time: str  # ISO-8601, local time of the location
    temperature_c: float
    temperature_f: float
    wind_speed_mph: float
    wind_speed_kph: float
    wind_gust_mph: float
    wind_gust_kph: float
    precipitation_probability: float
    precipitation_mm: float = 0.0
    precipitation_type: str | None = None
    visibility_miles: float | None = None
    visibility_km: float | None = None
    cloud_cover: float | None = None
    thunder: bool | None = None


class Rating(_StrictBaseModel):
    """Label plus the human-readable justification for one hour."""
    label: RatingLabel
    reasons: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class Window(_StrictBaseModel):
    """Best contiguous span of hours; `end` is the last hour in the span."""
    start: str
    end: str
    label: RatingLabel
    score: float | None = None


class RuleDescription(_StrictBaseModel):
    """Static explanation of one rule category."""
    title: str
    detail: str


class RatedHour(_StrictBaseModel):
    """An observation paired with its rating."""
    hour: HourlyObservation
    rating: Rating
