"""Pure functions turning observations into derived states."""
from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, Optional, Tuple

from .config import Threshold
from .entities import CurrentObservation, DerivedState, RainfallSeries, StateKind


# Lower-case substrings that mark a description as precipitation. Short
# METAR-style codes match inside longer words too ("br" in "breezy"); fog and
# mist count as rain.
PRECIPITATION_TERMS: Tuple[str, ...] = (
    "rain",
    "drizzle",
    "shower",
    "precipitation",
    "mist",
    "fog",
    "light rain",
    "ra",
    "dz",
    "shra",
    "fzra",
    "br",
    "fg",
)

# Totals are rounded so 0.7 + 0.1 compares equal to a 0.8 threshold.
TOTAL_PRECISION = 6


def is_raining(description: str) -> bool:
    text = description.lower()
    return any(term in text for term in PRECIPITATION_TERMS)


def derive_current_conditions(observation: CurrentObservation) -> DerivedState:
    return DerivedState(
        kind=StateKind.BOOLEAN,
        value=is_raining(observation.text),
        detail=observation.text,
    )


def local_today(tz: Optional[tzinfo], now: Optional[datetime] = None) -> date:
    """Return the calendar day in ``tz`` at ``now`` (default: the current time).

    With ``tz=None`` the host's local time zone is applied to ``now`` itself,
    so the UTC offset always matches the DST rule in force at that moment.
    Naive moments are taken as already being in ``tz`` (or local time).
    """
    if tz is None:
        return (now or datetime.now()).astimezone().date()
    moment = now or datetime.now(tz)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    return moment.astimezone(tz).date()


def rainfall_date_range(today: date, lookback_days: int) -> Tuple[date, date]:
    """Inclusive range of the ``lookback_days`` days before ``today``."""
    if lookback_days < 1:
        raise ValueError("lookback_days must be positive")
    return today - timedelta(days=lookback_days), today - timedelta(days=1)


def window_totals(series: RainfallSeries, today: date, windows: Iterable[int]) -> Dict[int, float]:
    """Sum the most recent ``w`` complete days for every window ``w``.

    Today is never part of a window and missing days count as 0.0.
    """
    totals: Dict[int, float] = {}
    for window in sorted(set(windows)):
        total = 0.0
        for offset in range(1, window + 1):
            total += series.amount_on(today - timedelta(days=offset))
        totals[window] = round(total, TOTAL_PRECISION)
    return totals


def thresholds_met(totals: Dict[int, float], thresholds: Iterable[Threshold]) -> bool:
    return any(totals.get(threshold.window_days, 0.0) >= threshold.amount_inches for threshold in thresholds)


def derive_recent_rainfall(
    series: RainfallSeries,
    today: date,
    thresholds: Iterable[Threshold],
    lookback_days: int,
) -> DerivedState:
    """Flag the series when any thresholded window reaches its amount.

    Every window up to ``lookback_days`` is reported in
    ``contributing_amounts``; only thresholded windows decide the value.
    """
    thresholds = tuple(thresholds)
    totals = window_totals(series, today, range(1, lookback_days + 1))
    return DerivedState(
        kind=StateKind.THRESHOLD_FLAG,
        value=thresholds_met(totals, thresholds),
        contributing_amounts=totals,
    )


def describe_state(state: DerivedState) -> str:
    if state.kind is StateKind.BOOLEAN:
        verdict = "Rain detected" if state.value else "No rain"
        return f"{verdict} - {state.detail}" if state.detail else verdict
    totals = ", ".join(f'{days}-day {total:.2f}"' for days, total in sorted(state.contributing_amounts.items()))
    verdict = "met" if state.value else "not met"
    return f"Rainfall totals: {totals}; thresholds {verdict}"


__all__ = [
    "PRECIPITATION_TERMS",
    "derive_current_conditions",
    "describe_state",
    "derive_recent_rainfall",
    "is_raining",
    "local_today",
    "rainfall_date_range",
    "thresholds_met",
    "window_totals",
]
