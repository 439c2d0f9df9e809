"""Payload schemas for the upstream JSON bodies."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["LatestObservationPayload", "ObservationProperties", "StationDataPayload"]


class ObservationProperties(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    text_description: Optional[str] = Field(default=None, alias="textDescription")
    timestamp: Optional[datetime] = Field(default=None)
    station: Optional[str] = Field(default=None)


class LatestObservationPayload(BaseModel):
    """Body of ``/stations/{id}/observations/latest``."""

    model_config = ConfigDict(extra="ignore")

    properties: ObservationProperties


class StationDataPayload(BaseModel):
    """Body of an ACIS ``StnData`` response.

    ACIS answers bad requests with HTTP 200 and an ``error`` member instead of
    ``data``.
    """

    model_config = ConfigDict(extra="ignore")

    meta: Dict[str, Any] = Field(default_factory=dict)
    data: Optional[List[Tuple[date, Any]]] = Field(default=None)
    error: Optional[str] = Field(default=None)

    @field_validator("meta", mode="before")
    @classmethod
    def _meta_or_empty(cls, value: Any) -> Any:
        return value if value is not None else {}
