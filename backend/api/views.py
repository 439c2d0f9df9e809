"""REST API views exposing the derived rain states."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from rainstatus.entities import SourceId
from rainstatus.services.rain_status import RainStatusService


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_rain_status_service() -> RainStatusService:
    options = settings.RAIN_STATUS
    service = RainStatusService.from_settings(options)
    if options.get("autostart"):
        logger.info("Autostarting rain status polling")
        service.start_all()
    return service


def _parse_source(raw: str) -> Optional[SourceId]:
    try:
        return SourceId(raw)
    except ValueError:
        return None


def _source_payload(service: RainStatusService, source_id: SourceId) -> Optional[dict]:
    for entry in service.sources():
        if entry["source_id"] == source_id.value:
            return entry
    return None


def _not_found(raw: str) -> Response:
    return Response({"detail": f"Source {raw!r} is not configured"}, status=status.HTTP_404_NOT_FOUND)


class RainStatusView(APIView):
    """List every configured source with its latest state."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        """Return the state snapshot of all sources."""
        return Response({"sources": get_rain_status_service().sources()}, status=status.HTTP_200_OK)


class SourceStatusView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, source_id: str, *args, **kwargs):  # noqa: D401
        """Return the state snapshot of one source."""
        source = _parse_source(source_id)
        payload = _source_payload(get_rain_status_service(), source) if source else None
        if payload is None:
            return _not_found(source_id)
        return Response(payload, status=status.HTTP_200_OK)


class SourceRefreshView(APIView):
    """Run one poll cycle now instead of waiting for the next tick."""

    permission_classes = [AllowAny]

    def post(self, request, source_id: str, *args, **kwargs):  # noqa: D401
        service = get_rain_status_service()
        source = _parse_source(source_id)
        if source is None or not service.is_configured(source):
            return _not_found(source_id)
        refreshed = service.refresh(source)
        payload = _source_payload(service, source) or {}
        payload["refreshed"] = refreshed
        return Response(payload, status=status.HTTP_200_OK)


class HealthView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        return Response({"sources": get_rain_status_service().health.snapshot()}, status=status.HTTP_200_OK)
