"""Typed source configuration and its validation rules."""
from __future__ import annotations

import enum
from datetime import tzinfo
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .entities import SourceId


MINIMUM_INTERVALS: Dict[SourceId, int] = {
    SourceId.CURRENT_CONDITIONS: 60,
    SourceId.RECENT_RAINFALL: 15 * 60,
}
SUPPORTED_LOOKBACK_DAYS = (2, 3)
DEFAULT_LOOKBACK_DAYS = 3


class InvalidConfig(ValueError):
    """Raised when a source configuration cannot be used to create a job."""


class NotifyPolicy(str, enum.Enum):
    CHANGE_ONLY = "change_only"
    ALWAYS = "always"


class Threshold(BaseModel):
    """Rainfall amount that trips the flag when a window's total reaches it."""

    model_config = ConfigDict(frozen=True)

    window_days: int = Field(ge=1)
    amount_inches: float = Field(ge=0, allow_inf_nan=False)


class SourceConfig(BaseModel):
    """Settings for one polled source. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source_id: SourceId
    station_id: str
    poll_interval_seconds: int
    thresholds: Tuple[Threshold, ...] = ()
    lookback_days: int = DEFAULT_LOOKBACK_DAYS
    timezone: Optional[str] = None
    name: Optional[str] = None

    @field_validator("station_id")
    @classmethod
    def _validate_station(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("station_id must not be blank")
        return value

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown time zone {value!r}") from exc
        return value

    @model_validator(mode="after")
    def _validate_source_rules(self) -> "SourceConfig":
        minimum = MINIMUM_INTERVALS[self.source_id]
        if self.poll_interval_seconds < minimum:
            raise ValueError(
                f"poll_interval_seconds for {self.source_id.value} must be at least {minimum}, "
                f"got {self.poll_interval_seconds}"
            )
        if self.source_id is SourceId.CURRENT_CONDITIONS:
            if self.thresholds:
                raise ValueError("current_conditions does not take thresholds")
            return self

        if self.lookback_days not in SUPPORTED_LOOKBACK_DAYS:
            raise ValueError(f"lookback_days must be one of {SUPPORTED_LOOKBACK_DAYS}")
        if not self.thresholds:
            raise ValueError("recent_rainfall needs at least one threshold")
        windows = [threshold.window_days for threshold in self.thresholds]
        if len(set(windows)) != len(windows):
            raise ValueError("threshold windows must be unique")
        if max(windows) > self.lookback_days:
            raise ValueError(f"threshold windows cannot exceed lookback_days ({self.lookback_days})")
        return self

    @property
    def display_name(self) -> str:
        return self.name or self.source_id.value

    def tzinfo(self) -> Optional[tzinfo]:
        """Time zone whose calendar days bound the rainfall windows.

        ``None`` means the host's local time, resolved per moment so DST
        changes apply.
        """
        if self.timezone:
            return ZoneInfo(self.timezone)
        return None


def build_source_config(data: Union[SourceConfig, Mapping[str, Any]]) -> SourceConfig:
    if isinstance(data, SourceConfig):
        return data
    try:
        return SourceConfig.model_validate(dict(data))
    except ValidationError as exc:
        raise InvalidConfig(str(exc)) from exc


def source_configs_from_settings(options: Mapping[str, Any]) -> List[SourceConfig]:
    """Build the configured sources from the ``RAIN_STATUS`` settings mapping."""
    configs = [build_source_config(entry) for entry in options.get("sources") or []]
    seen = set()
    for config in configs:
        if config.source_id in seen:
            raise InvalidConfig(f"source {config.source_id.value} is configured twice")
        seen.add(config.source_id)
    return configs


def notify_policy_from_settings(options: Mapping[str, Any]) -> NotifyPolicy:
    raw = options.get("notify_policy") or NotifyPolicy.CHANGE_ONLY.value
    try:
        return NotifyPolicy(raw)
    except ValueError as exc:
        raise InvalidConfig(f"unknown notify policy {raw!r}") from exc


__all__ = [
    "DEFAULT_LOOKBACK_DAYS",
    "InvalidConfig",
    "MINIMUM_INTERVALS",
    "NotifyPolicy",
    "SourceConfig",
    "Threshold",
    "build_source_config",
    "notify_policy_from_settings",
    "source_configs_from_settings",
]
