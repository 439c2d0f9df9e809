"""Applied Climate Information System (ACIS) daily precipitation client."""
from __future__ import annotations

import logging
import math
import re
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .base import PayloadValidationError, WeatherProvider
from .schemas import StationDataPayload
from ..entities import DailyPrecipitation, RainfallSeries


# Leading decimal number of a value such as "0.50A"; the flag letter is ignored.
_NUMERIC_PREFIX = re.compile(r"\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)")


def _format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


class ACISPrecipitationProvider(WeatherProvider):
    base_url = "https://data.rcc-acis.org/StnData"

    def __init__(self, base_url: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url or self.base_url
        self._log = logging.getLogger(self.__class__.__name__)

    def build_request(self, station_id: str, start: date, end: date) -> Dict[str, Any]:
        return {
            "sid": station_id,
            "sdate": _format_date(start),
            "edate": _format_date(end),
            "elems": [{"name": "pcpn", "interval": "dly"}],
            "meta": ["name"],
        }

    def fetch_recent_rainfall(self, station_id: str, start: date, end: date) -> RainfallSeries:
        """Return one entry per day of the inclusive range ``start``..``end``."""
        if end < start:
            raise ValueError("end must not be before start")
        response = self._request(
            "POST",
            self.base_url,
            json=self.build_request(station_id, start, end),
            headers={"Accept": "application/json"},
        )
        body = self._json(response)
        try:
            payload = StationDataPayload.model_validate(body)
        except ValidationError as exc:
            self._log.error("Malformed precipitation data for %s: %s", station_id, exc)
            raise PayloadValidationError("invalid precipitation structure") from exc
        if payload.error:
            raise PayloadValidationError(f"ACIS error for {station_id}: {payload.error}")
        if payload.data is None:
            raise PayloadValidationError(f"no precipitation data for {station_id}")

        amounts: Dict[date, Optional[float]] = {}
        for day, raw in payload.data:
            if start <= day <= end:
                amounts[day] = self._parse_amount(station_id, day, raw)

        days: List[DailyPrecipitation] = []
        current = start
        while current <= end:
            days.append(DailyPrecipitation(day=current, amount_inches=amounts.get(current)))
            current += timedelta(days=1)

        name = payload.meta.get("name")
        return RainfallSeries(
            station_id=station_id,
            start=start,
            end=end,
            days=tuple(days),
            station_name=str(name) if name else None,
        )

    def _parse_amount(self, station_id: str, day: date, raw: Any) -> Optional[float]:
        """Read the numeric part of an ACIS value.

        Flag suffixes are dropped (``"0.50A"`` is 0.5); values without a
        leading number (``"T"``, ``"M"``, ``"S"``) yield ``None``.
        """
        if raw is None:
            return None
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            value = float(raw)
        else:
            match = _NUMERIC_PREFIX.match(str(raw))
            if match is None:
                self._log.warning("Non-numeric precipitation %r for %s on %s, counting 0.0", raw, station_id, day)
                return None
            value = float(match.group(0))
        if math.isnan(value) or math.isinf(value):
            self._log.warning("Non-finite precipitation %r for %s on %s, counting 0.0", raw, station_id, day)
            return None
        return value


__all__ = ["ACISPrecipitationProvider"]
