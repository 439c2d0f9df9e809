"""National Weather Service latest-observation client."""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from .base import PayloadValidationError, WeatherProvider
from .schemas import LatestObservationPayload
from ..entities import CurrentObservation


class NWSObservationProvider(WeatherProvider):
    base_url = "https://api.weather.gov"

    def __init__(self, base_url: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = (base_url or self.base_url).rstrip("/")
        self._log = logging.getLogger(self.__class__.__name__)

    def observation_url(self, station_id: str) -> str:
        return f"{self.base_url}/stations/{station_id}/observations/latest"

    def fetch_current_conditions(self, station_id: str) -> CurrentObservation:
        """Return the latest observation for ``station_id``.

        A missing or blank weather description is a
        :class:`PayloadValidationError`; it is never read as "not raining".
        """
        response = self._request(
            "GET",
            self.observation_url(station_id),
            headers={"Accept": "application/json"},
        )
        body = self._json(response)
        try:
            payload = LatestObservationPayload.model_validate(body)
        except ValidationError as exc:
            self._log.error("Malformed observation for %s: %s", station_id, exc)
            raise PayloadValidationError("invalid observation structure") from exc

        text = (payload.properties.text_description or "").strip()
        if not text:
            raise PayloadValidationError(f"no weather description available for {station_id}")
        return CurrentObservation(
            station_id=station_id,
            text=text,
            observed_at=payload.properties.timestamp,
        )


__all__ = ["NWSObservationProvider"]
