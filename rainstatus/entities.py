"""Normalized observations and derived states shared by every source."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional, Tuple


class SourceId(str, enum.Enum):
    """Independently polled upstream feeds."""

    CURRENT_CONDITIONS = "current_conditions"
    RECENT_RAINFALL = "recent_rainfall"


class StateKind(str, enum.Enum):
    BOOLEAN = "boolean"
    THRESHOLD_FLAG = "threshold_flag"


@dataclass(frozen=True)
class CurrentObservation:
    """Latest observation reported by a station."""

    station_id: str
    text: str
    observed_at: Optional[datetime]


@dataclass(frozen=True)
class DailyPrecipitation:
    """Precipitation for one calendar day, in inches.

    ``amount_inches`` is ``None`` when the upstream had no usable value for
    the day; such days count as 0.0 in every total.
    """

    day: date
    amount_inches: Optional[float]


@dataclass(frozen=True)
class RainfallSeries:
    station_id: str
    start: date
    end: date
    days: Tuple[DailyPrecipitation, ...]
    station_name: Optional[str] = None

    def amount_on(self, day: date) -> float:
        for entry in self.days:
            if entry.day == day:
                return entry.amount_inches or 0.0
        return 0.0


@dataclass(frozen=True)
class DerivedState:
    """The interpreted value a source currently reports.

    ``contributing_amounts`` maps a window length in days to the rainfall
    total over that window. ``detail`` carries the text the state was derived
    from and is ignored when states are compared.
    """

    kind: StateKind
    value: bool
    contributing_amounts: Dict[int, float] = field(default_factory=dict)
    detail: Optional[str] = field(default=None, compare=False)

    def copy(self) -> "DerivedState":
        return DerivedState(
            kind=self.kind,
            value=self.value,
            contributing_amounts=dict(self.contributing_amounts),
            detail=self.detail,
        )

    def as_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind.value,
            "value": self.value,
            "contributing_amounts": {str(days): total for days, total in sorted(self.contributing_amounts.items())},
            "detail": self.detail,
        }


__all__ = [
    "CurrentObservation",
    "DailyPrecipitation",
    "DerivedState",
    "RainfallSeries",
    "SourceId",
    "StateKind",
]
