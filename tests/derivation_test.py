from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from rainstatus.config import Threshold
from rainstatus.derivation import (
    derive_current_conditions,
    derive_recent_rainfall,
    describe_state,
    is_raining,
    local_today,
    rainfall_date_range,
    window_totals,
)
from rainstatus.entities import CurrentObservation, DailyPrecipitation, RainfallSeries, StateKind


TODAY = date(2024, 5, 3)


def make_series(*amounts, today=TODAY):
    """Build a series from the oldest to the most recent complete day."""
    start = today - timedelta(days=len(amounts))
    days = tuple(
        DailyPrecipitation(day=start + timedelta(days=offset), amount_inches=amount)
        for offset, amount in enumerate(amounts)
    )
    return RainfallSeries(station_id="PHL", start=start, end=today - timedelta(days=1), days=days)


def thresholds(**windows):
    return [Threshold(window_days=int(key[1:]), amount_inches=value) for key, value in windows.items()]


@pytest.mark.parametrize(
    "description, expected",
    [
        ("Light Rain", True),
        ("Thunderstorms and Rain Showers", True),
        ("Drizzle", True),
        ("Sunny", False),
        ("Clear", False),
        ("Mostly Cloudy", False),
        ("Fog/Mist", True),
        ("Mostly Cloudy and Breezy", True),
    ],
)
def test_is_raining(description, expected):
    assert is_raining(description) is expected


def test_current_conditions_state():
    state = derive_current_conditions(CurrentObservation(station_id="KPHL", text="Light Rain", observed_at=None))

    assert state.kind is StateKind.BOOLEAN
    assert state.value is True
    assert state.detail == "Light Rain"
    assert state.contributing_amounts == {}


def test_any_window_meeting_its_threshold_sets_the_flag():
    series = make_series(0.05, 0.08)

    state = derive_recent_rainfall(series, TODAY, thresholds(w1=0.1, w2=0.1), lookback_days=2)

    assert state.kind is StateKind.THRESHOLD_FLAG
    assert state.value is True
    assert state.contributing_amounts == {1: 0.08, 2: 0.13}


def test_no_window_met():
    series = make_series(0.02, 0.05, 0.08)

    state = derive_recent_rainfall(series, TODAY, thresholds(w1=0.1, w2=0.25), lookback_days=3)

    assert state.value is False
    assert state.contributing_amounts == {1: 0.08, 2: 0.13, 3: 0.15}


def test_threshold_comparison_is_inclusive():
    series = make_series(0.0, 0.1)

    assert derive_recent_rainfall(series, TODAY, thresholds(w1=0.1), lookback_days=2).value is True


def test_float_drift_does_not_hide_a_met_threshold():
    series = make_series(0.7, 0.1)

    assert derive_recent_rainfall(series, TODAY, thresholds(w2=0.8), lookback_days=2).value is True


def test_missing_days_equal_explicit_zero():
    with_null = make_series(0.3, None, 0.05)
    with_zero = make_series(0.3, 0.0, 0.05)
    rules = thresholds(w1=0.1, w2=0.25)

    assert window_totals(with_null, TODAY, [1, 2, 3]) == window_totals(with_zero, TODAY, [1, 2, 3])
    assert derive_recent_rainfall(with_null, TODAY, rules, 3) == derive_recent_rainfall(with_zero, TODAY, rules, 3)


def test_unthresholded_window_is_informational():
    series = make_series(1.5, 0.0, 0.0)

    state = derive_recent_rainfall(series, TODAY, thresholds(w1=0.1, w2=0.25), lookback_days=3)

    assert state.value is False
    assert state.contributing_amounts[3] == 1.5


def test_today_never_contributes():
    series = RainfallSeries(
        station_id="PHL",
        start=TODAY - timedelta(days=1),
        end=TODAY,
        days=(
            DailyPrecipitation(day=TODAY - timedelta(days=1), amount_inches=0.0),
            DailyPrecipitation(day=TODAY, amount_inches=2.0),
        ),
    )

    assert window_totals(series, TODAY, [1, 2]) == {1: 0.0, 2: 0.0}


def test_rainfall_date_range_excludes_today():
    assert rainfall_date_range(TODAY, 3) == (date(2024, 4, 30), date(2024, 5, 2))
    assert rainfall_date_range(date(2024, 3, 1), 2) == (date(2024, 2, 28), date(2024, 2, 29))
    with pytest.raises(ValueError):
        rainfall_date_range(TODAY, 0)


def test_local_today_uses_the_station_calendar():
    new_york = ZoneInfo("America/New_York")
    just_after_utc_midnight = datetime(2024, 5, 3, 2, 30, tzinfo=timezone.utc)

    assert local_today(new_york, just_after_utc_midnight) == date(2024, 5, 2)
    assert local_today(timezone.utc, just_after_utc_midnight) == date(2024, 5, 3)
    assert local_today(ZoneInfo("Asia/Tokyo"), datetime(2024, 5, 2, 20, 0, tzinfo=timezone.utc)) == date(2024, 5, 3)


def test_describe_state():
    raining = derive_current_conditions(CurrentObservation(station_id="KPHL", text="Light Rain", observed_at=None))
    flagged = derive_recent_rainfall(make_series(0.05, 0.08), TODAY, thresholds(w2=0.1), lookback_days=2)

    assert describe_state(raining) == "Rain detected - Light Rain"
    assert describe_state(flagged) == 'Rainfall totals: 1-day 0.08", 2-day 0.13"; thresholds met'


def test_host_local_calendar_follows_dst(new_york_host):
    winter_late_evening = datetime(2024, 1, 16, 4, 30, tzinfo=timezone.utc)
    summer_late_evening = datetime(2024, 7, 16, 3, 30, tzinfo=timezone.utc)

    assert local_today(None, winter_late_evening) == date(2024, 1, 15)
    assert local_today(None, summer_late_evening) == date(2024, 7, 15)
    assert local_today(None, datetime(2024, 1, 16, 5, 30, tzinfo=timezone.utc)) == date(2024, 1, 16)
