from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from requests import Response


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "rain-status/1.0 (https://github.com/rain-status/rain-status)"


class UpstreamError(RuntimeError):
    """Base error for anything that went wrong talking to a weather source."""


class TransportError(UpstreamError):
    """Raised when no response was received (connection error, timeout)."""


class UpstreamStatusError(UpstreamError):
    """Raised when the source answered with a 4xx/5xx status."""

    def __init__(self, code: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"HTTP {code}")
        self.code = code


class RateLimited(UpstreamStatusError):
    """Raised when the source reports a rate limit (HTTP 429)."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(429, message or "rate limited")


class PayloadValidationError(UpstreamError):
    """Raised when a response arrived but lacks required fields."""


@dataclass
class RequestConfig:
    timeout: float = 10.0
    retries: int = 3
    backoff_base: float = 1.0
    user_agent: str = DEFAULT_USER_AGENT


class WeatherProvider:
    """Base class that adds timeouts and status mapping for HTTP sources."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.session = session or self._build_session(self.request_config)
        self._log = logging.getLogger(self.__class__.__name__)

    def _build_session(self, config: RequestConfig) -> requests.Session:
        session = requests.Session()
        session.headers["User-Agent"] = config.user_agent
        return session

    def _handle_response(self, response: Response) -> Response:
        if response.status_code == 429:
            self._log.warning("Rate limited by %s: %s", response.url, response.text[:200])
            raise RateLimited()
        if response.status_code >= 400:
            self._log.error("Source returned %s: %s", response.status_code, response.text[:200])
            raise UpstreamStatusError(response.status_code)
        return response

    def _request(self, method: str, url: str, **kwargs: Any) -> Response:
        try:
            response = self.session.request(
                method,
                url,
                timeout=self.request_config.timeout,
                **kwargs,
            )
        except requests.Timeout as exc:
            self._log.error("Request to %s timed out", url)
            raise TransportError("timeout") from exc
        except requests.RequestException as exc:
            self._log.error("Request to %s failed: %s", url, exc)
            raise TransportError("request failed") from exc
        return self._handle_response(response)

    def _json(self, response: Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON from %s", response.url)
            raise PayloadValidationError("invalid json") from exc


__all__ = [
    "DEFAULT_USER_AGENT",
    "PayloadValidationError",
    "RateLimited",
    "RequestConfig",
    "TransportError",
    "UpstreamError",
    "UpstreamStatusError",
    "WeatherProvider",
]
