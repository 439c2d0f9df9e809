from __future__ import annotations

from .acis import ACISPrecipitationProvider
from .base import (
    PayloadValidationError,
    RateLimited,
    RequestConfig,
    TransportError,
    UpstreamError,
    UpstreamStatusError,
    WeatherProvider,
)
from .nws import NWSObservationProvider

__all__ = [
    "ACISPrecipitationProvider",
    "NWSObservationProvider",
    "PayloadValidationError",
    "RateLimited",
    "RequestConfig",
    "TransportError",
    "UpstreamError",
    "UpstreamStatusError",
    "WeatherProvider",
]
