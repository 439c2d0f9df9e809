"""In-memory health registry for polled sources.

Counters are kept per source so operators can see which feed is failing or
being rate limited without reading the logs. Everything lives in memory; a
restart starts from a clean slate.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Optional


@dataclass(frozen=True)
class SourceHealth:
    """Counters for one source."""

    last_success: Optional[str] = None
    last_failure: Optional[str] = None
    last_error: Optional[str] = None
    consecutive_failures: int = 0
    total_failures: int = 0
    rate_limited: int = 0

    def as_dict(self) -> Dict[str, object]:
        return {
            "last_success": self.last_success,
            "last_failure": self.last_failure,
            "last_error": self.last_error,
            "consecutive_failures": self.consecutive_failures,
            "total_failures": self.total_failures,
            "rate_limited": self.rate_limited,
        }


class HealthRegistry:
    """Stores success/failure times and rate limit counters per source."""

    def __init__(self) -> None:
        self._sources: Dict[str, SourceHealth] = {}
        self._lock = Lock()

    # -- Cycle outcomes -----------------------------------------------------
    def record_success(self, source: str, when: Optional[datetime] = None) -> None:
        if not source:
            raise ValueError("source must be provided")
        iso_value = self._format_datetime(when or datetime.now(timezone.utc))
        with self._lock:
            current = self._sources.get(source, SourceHealth())
            self._sources[source] = replace(current, last_success=iso_value, consecutive_failures=0)

    def record_failure(self, source: str, error: str, when: Optional[datetime] = None) -> None:
        if not source:
            raise ValueError("source must be provided")
        iso_value = self._format_datetime(when or datetime.now(timezone.utc))
        with self._lock:
            current = self._sources.get(source, SourceHealth())
            self._sources[source] = replace(
                current,
                last_failure=iso_value,
                last_error=error,
                consecutive_failures=current.consecutive_failures + 1,
                total_failures=current.total_failures + 1,
            )

    # -- Rate limiting ------------------------------------------------------
    def record_rate_limited(self, source: str, increment: int = 1) -> None:
        if not source:
            raise ValueError("source must be provided")
        if increment <= 0:
            raise ValueError("increment must be positive")
        with self._lock:
            current = self._sources.get(source, SourceHealth())
            self._sources[source] = replace(current, rate_limited=current.rate_limited + increment)

    def forget(self, source: str) -> None:
        with self._lock:
            self._sources.pop(source, None)

    # -- Snapshot -----------------------------------------------------------
    def get(self, source: str) -> SourceHealth:
        with self._lock:
            return self._sources.get(source, SourceHealth())

    def snapshot(self) -> Dict[str, Dict[str, object]]:
        with self._lock:
            return {source: health.as_dict() for source, health in sorted(self._sources.items())}

    @staticmethod
    def _format_datetime(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()


__all__ = ["HealthRegistry", "SourceHealth"]
