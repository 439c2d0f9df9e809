"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from backend.api.views import HealthView, RainStatusView, SourceRefreshView, SourceStatusView

urlpatterns = [
    path("rain/status", RainStatusView.as_view(), name="rain-status"),
    path("rain/status/<str:source_id>", SourceStatusView.as_view(), name="rain-source-status"),
    path("rain/status/<str:source_id>/refresh", SourceRefreshView.as_view(), name="rain-source-refresh"),
    path("rain/health", HealthView.as_view(), name="rain-health"),
]
