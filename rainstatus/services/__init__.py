from __future__ import annotations

from .notifier import ChangeNotifier
from .rain_status import JobHandle, RainStatusService
from .scheduler import JobStatus, PollJob, PollScheduler, SourcePipeline

__all__ = [
    "ChangeNotifier",
    "JobHandle",
    "JobStatus",
    "PollJob",
    "PollScheduler",
    "RainStatusService",
    "SourcePipeline",
]
