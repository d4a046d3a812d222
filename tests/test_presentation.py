import datetime as dt

import pytest

from dronecast.domain import HourlyObservation, RatingLabel
from dronecast.presentation import (
    CalendarFilter,
    TempUnit,
    ViewMode,
    WindUnit,
    build_flight_report,
    filter_by_view,
    format_hour_key,
    hour_display,
    overall_label,
    rate_hours,
    summarize_by_day,
)

START = dt.datetime(2025, 1, 1, 0, 0)


def make_hour(offset: int = 0, **overrides) -> HourlyObservation:
    base = {
        "time": (START + dt.timedelta(hours=offset)).strftime("%Y-%m-%dT%H:%M"),
        "temperature_c": 15.0,
        "temperature_f": 59.0,
        "wind_speed_mph": 6.0,
        "wind_speed_kph": 10.0,
        "wind_gust_mph": 9.0,
        "wind_gust_kph": 15.0,
        "precipitation_probability": 10,
        "precipitation_mm": 0.0,
        "visibility_miles": 6.0,
        "visibility_km": 10.0,
        "cloud_cover": 20.0,
        "thunder": False,
    }
    base.update(overrides)
    return HourlyObservation(**base)


@pytest.fixture
def week():
    return [make_hour(i) for i in range(24 * 7)]


NOW = dt.datetime(2025, 1, 1, 5, 30, tzinfo=dt.timezone.utc)


def test_format_hour_key_uses_location_timezone():
    assert format_hour_key(NOW, "UTC") == "2025-01-01T05:00"
    assert format_hour_key(NOW, "America/Chicago") == "2024-12-31T23:00"


def test_24h_view_starts_at_current_hour(week):
    shown = filter_by_view(week, "UTC", ViewMode.NEXT_24H, now=NOW)
    assert len(shown) == 24
    assert shown[0].time == "2025-01-01T05:00"
    assert shown[-1].time == "2025-01-02T04:00"


def test_72h_view_samples_every_four_hours(week):
    shown = filter_by_view(week, "UTC", ViewMode.NEXT_72H, now=NOW)
    assert len(shown) == 18
    assert [h.time[11:13] for h in shown[:3]] == ["05", "09", "13"]


def test_weekly_view_keeps_morning_and_evening_snapshots(week):
    shown = filter_by_view(week, "UTC", ViewMode.WEEKLY, now=NOW)
    assert len(shown) == 14
    assert all(h.time.endswith(("T08:00", "T20:00")) for h in shown)
    assert shown[0].time == "2025-01-01T08:00"


def test_view_falls_back_to_start_when_forecast_is_old(week):
    later = dt.datetime(2026, 1, 1, tzinfo=dt.timezone.utc)
    shown = filter_by_view(week, "UTC", ViewMode.NEXT_24H, now=later)
    assert shown[0].time == "2025-01-01T00:00"


def test_view_is_truncated_at_end_of_forecast():
    hours = [make_hour(i) for i in range(10)]
    shown = filter_by_view(hours, "UTC", ViewMode.NEXT_24H, now=NOW)
    assert len(shown) == 5


def test_overall_label_is_worst():
    rated = rate_hours([make_hour(0), make_hour(1, precipitation_probability=60)])
    assert overall_label(rated) == RatingLabel.RISKY
    assert overall_label([]) is None


def test_hour_display_units():
    rated = rate_hours([make_hour(0, precipitation_type="Light rain")])[0]

    imperial = hour_display(rated)
    assert imperial.temperature == "59°F"
    assert imperial.wind_speed == "6 mph"
    assert imperial.wind_gust == "9 mph"
    assert imperial.precipitation == "10% • Light rain"
    assert imperial.visibility == "6.0 mi vis"
    assert imperial.cloud_cover == "20%"
    assert imperial.label == RatingLabel.RISKY

    metric = hour_display(rated, wind_unit=WindUnit.KPH, temp_unit=TempUnit.C)
    assert metric.temperature == "15°C"
    assert metric.wind_speed == "10 kph"
    assert metric.visibility == "10.0 km vis"


def test_hour_display_without_visibility():
    rated = rate_hours([make_hour(0, visibility_miles=None, visibility_km=None, cloud_cover=None)])[0]
    shown = hour_display(rated)
    assert shown.visibility == "Visibility n/a"
    assert shown.cloud_cover is None


def test_summarize_by_day_groups_and_dedupes():
    hours = [
        make_hour(10, wind_gust_mph=30.0),
        make_hour(11, wind_gust_mph=30.0),
        make_hour(12),
        make_hour(34, precipitation_probability=70, wind_speed_mph=9.0),
    ]
    days = summarize_by_day(rate_hours(hours), "UTC")
    assert [d.date_key for d in days] == ["2025-01-01", "2025-01-02"]

    first, second = days
    assert first.label == RatingLabel.BAD
    assert first.day_name == "Wednesday"
    assert first.reasons == ["Gusts 30 mph or wind 6 mph exceed limits"]
    assert first.max_gust == "30 mph"
    assert second.label == RatingLabel.RISKY
    assert second.max_wind == "9 mph"
    assert second.max_precip == 70


def test_summarize_by_day_calendar_filter():
    hours = [make_hour(10, thunder=True), make_hour(34)]
    rated = rate_hours(hours)
    good_days = summarize_by_day(rated, "UTC", calendar_filter=CalendarFilter.GOOD)
    assert [d.date_key for d in good_days] == ["2025-01-02"]
    assert summarize_by_day(rated, "UTC", calendar_filter=CalendarFilter.RISKY) == []


def test_summarize_by_day_converts_aware_times():
    hours = [make_hour(0, time="2025-01-01T03:00:00+00:00")]
    days = summarize_by_day(rate_hours(hours), "America/Chicago", wind_unit=WindUnit.KPH)
    assert days[0].date_key == "2024-12-31"
    assert days[0].max_wind == "10 kph"


def test_build_flight_report(week):
    hours = list(week)
    hours[6] = make_hour(6, wind_gust_mph=35.0)
    hours[7] = make_hour(7, wind_speed_mph=2.0, wind_gust_mph=3.0)

    report = build_flight_report(hours, location="Home", timezone="UTC", now=NOW)

    assert report.location == "Home"
    assert report.view == ViewMode.NEXT_24H
    assert len(report.hours) == 24
    assert report.overall_label == RatingLabel.BAD
    assert report.best_window.start == "2025-01-01T07:00"
    assert report.best_window.label == RatingLabel.GOOD
    assert [d.date_key for d in report.days] == ["2025-01-01", "2025-01-02"]
    assert report.status_copy.startswith("Showing the next 24 hours")


def test_build_flight_report_empty_forecast():
    report = build_flight_report([], location="Nowhere", timezone="UTC", now=NOW)
    assert report.best_window is None
    assert report.overall_label is None
    assert report.hours == []
    assert report.days == []


def test_hour_display_rounds_halves_away_from_zero():
    rated = rate_hours([make_hour(0, wind_speed_mph=12.5, wind_gust_mph=20.5, temperature_f=40.5)])[0]
    shown = hour_display(rated)
    assert shown.wind_speed == "13 mph"
    assert shown.wind_gust == "21 mph"
    assert shown.temperature == "41°F"
