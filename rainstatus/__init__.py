"""Rain status: poll weather sources and publish derived rain states."""
from __future__ import annotations

from .config import InvalidConfig, NotifyPolicy, SourceConfig, Threshold
from .entities import DerivedState, SourceId, StateKind
from .services.rain_status import JobHandle, RainStatusService

__all__ = [
    "DerivedState",
    "InvalidConfig",
    "JobHandle",
    "NotifyPolicy",
    "RainStatusService",
    "SourceConfig",
    "SourceId",
    "StateKind",
    "Threshold",
]
