from __future__ import annotations

import os
import threading
import time
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

import django
import pytest


os.environ.setdefault("DJANGO_SECRET_KEY", "rain-status-tests")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")
# Views and commands get a patched service; nothing may start polling on import.
os.environ["RAIN_STATUS_AUTOSTART"] = "0"
django.setup()

from rainstatus.entities import CurrentObservation, DailyPrecipitation, RainfallSeries  # noqa: E402


class ManualEvent:
    """Stand-in for ``threading.Event`` whose timed waits end only on ``tick``.

    Poll jobs wait on their stop event between cycles, so ticking the event
    plays the role of the interval elapsing.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._flag = False
        self._ticks = 0
        self.waits = 0

    def is_set(self) -> bool:
        with self._cond:
            return self._flag

    def set(self) -> None:
        with self._cond:
            self._flag = True
            self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            target = self._ticks + 1
            self.waits += 1
            self._cond.notify_all()
            self._cond.wait_for(lambda: self._flag or self._ticks >= target)
            return self._flag

    def settle(self, waits: int = 1, timeout: float = 2.0) -> bool:
        """Block until the worker has entered ``wait`` at least ``waits`` times."""
        with self._cond:
            return self._cond.wait_for(lambda: self.waits >= waits, timeout)

    def tick(self, timeout: float = 2.0) -> bool:
        """Let one interval elapse and block until the next cycle has finished."""
        with self._cond:
            expected = self.waits + 1
            self._ticks += 1
            self._cond.notify_all()
            return self._cond.wait_for(lambda: self.waits >= expected or self._flag, timeout)


class EventRecorder:
    def __init__(self) -> None:
        self.created: List[ManualEvent] = []

    def __call__(self) -> ManualEvent:
        event = ManualEvent()
        self.created.append(event)
        return event

    @property
    def last(self) -> ManualEvent:
        return self.created[-1]


class FakeObservations:
    """Returns (or raises) the queued results in order, repeating the last one."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls: List[str] = []

    def fetch_current_conditions(self, station_id: str) -> CurrentObservation:
        self.calls.append(station_id)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return CurrentObservation(station_id=station_id, text=result, observed_at=None)


class FakePrecipitation:
    def __init__(self, amounts: Dict[date, Optional[float]]) -> None:
        self.amounts = amounts
        self.calls: List[tuple] = []

    def fetch_recent_rainfall(self, station_id: str, start: date, end: date) -> RainfallSeries:
        self.calls.append((station_id, start, end))
        days = []
        current = start
        while current <= end:
            days.append(DailyPrecipitation(day=current, amount_inches=self.amounts.get(current)))
            current += timedelta(days=1)
        return RainfallSeries(station_id=station_id, start=start, end=end, days=tuple(days))


class Recorder:
    """Observer that remembers every notification."""

    def __init__(self) -> None:
        self.calls = []
        self.notified = threading.Event()

    def __call__(self, source_id, state) -> None:
        self.calls.append((source_id, state))
        self.notified.set()


@pytest.fixture()
def events() -> EventRecorder:
    return EventRecorder()


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def sleeps() -> List[float]:
    return []


@pytest.fixture()
def fixed_clock():
    moment = datetime(2024, 5, 3, 15, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture()
def fake_observations():
    return FakeObservations


@pytest.fixture()
def fake_precipitation():
    return FakePrecipitation


@pytest.fixture()
def new_york_host(monkeypatch):
    """Run the test with the host's local time zone set to America/New_York."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
