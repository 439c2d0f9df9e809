"""One independent recurring poll job per configured source."""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from threading import Lock, RLock
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from ..config import SourceConfig
from ..derivation import describe_state
from ..entities import DerivedState, SourceId
from ..health import HealthRegistry
from ..providers.base import RateLimited, UpstreamError
from ..retry import ExhaustedRetries, RetryPolicy
from .notifier import ChangeNotifier


logger = logging.getLogger(__name__)

EventFactory = Callable[[], threading.Event]


class JobStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class SourcePipeline:
    """How a job fetches an observation and turns it into a state."""

    fetch: Callable[[], Any]
    derive: Callable[[Any], DerivedState]


class PollJob:
    """Polls a single source on its own worker thread.

    ``start`` runs a cycle immediately and then one every
    ``poll_interval_seconds``. Cycles of the same job never overlap. After
    ``stop`` an in-flight cycle may finish, but its result is dropped.
    """

    def __init__(
        self,
        config: SourceConfig,
        pipeline: SourcePipeline,
        *,
        notifier: ChangeNotifier,
        retry_policy: RetryPolicy,
        health: HealthRegistry,
        event_factory: EventFactory = threading.Event,
    ) -> None:
        self.config = config
        self.job_id = uuid4().hex[:12]
        self._pipeline = pipeline
        self._notifier = notifier
        self._retry = retry_policy
        self._health = health
        self._stop_event = event_factory()
        self._cycle_lock = Lock()
        self._status_lock = RLock()
        self._status = JobStatus.IDLE
        self._thread: Optional[threading.Thread] = None

    @property
    def source_id(self) -> SourceId:
        return self.config.source_id

    @property
    def status(self) -> JobStatus:
        with self._status_lock:
            return self._status

    @property
    def context(self) -> str:
        return f"{self.config.display_name} [{self.config.source_id.value} @ {self.config.station_id}]"

    # -- Lifecycle ------------------------------------------------------------
    def start(self) -> bool:
        with self._status_lock:
            if self._status is JobStatus.RUNNING:
                return False
            if self._status is JobStatus.STOPPED:
                logger.warning("%s was stopped; configure the source again to restart it", self.context)
                return False
            self._status = JobStatus.RUNNING
            self._thread = threading.Thread(
                target=self._run,
                name=f"rain-poll-{self.config.source_id.value}",
                daemon=True,
            )
            self._thread.start()
        return True

    def stop(self) -> bool:
        with self._status_lock:
            if self._status is JobStatus.STOPPED:
                return False
            self._status = JobStatus.STOPPED
            self._stop_event.set()
        logger.info("Stopped polling %s", self.context)
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        logger.info(
            "Starting %s polling (%s s intervals)",
            self.context,
            self.config.poll_interval_seconds,
        )
        while not self._stop_event.is_set():
            self.run_cycle()
            if self._stop_event.wait(self.config.poll_interval_seconds):
                break

    # -- Cycles ---------------------------------------------------------------
    def run_cycle(self) -> bool:
        """Run one fetch-derive-notify cycle.

        Returns ``True`` when a fresh state was accepted. Failures are logged
        and recorded, never raised; the previous state stays in place.
        """
        if self.status is JobStatus.STOPPED:
            return False
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("%s cycle already in flight, skipping", self.context)
            return False
        try:
            return self._cycle()
        finally:
            self._cycle_lock.release()

    def _cycle(self) -> bool:
        source = self.config.source_id.value
        try:
            observation = self._retry.call(
                self._pipeline.fetch,
                context=self.context,
                on_retry=self._on_retry,
            )
            state = self._pipeline.derive(observation)
        except ExhaustedRetries as exc:
            if exc.rate_limited:
                self._health.record_rate_limited(source)
            logger.error("%s check failed after %s attempts: %s", self.context, exc.attempts, exc.last_error)
            self._health.record_failure(source, str(exc))
            return False
        except UpstreamError as exc:
            logger.error("%s check failed: %s", self.context, exc)
            self._health.record_failure(source, str(exc))
            return False
        except Exception as exc:  # noqa: BLE001 - a broken cycle must not kill the worker
            logger.exception("Unexpected error while checking %s", self.context)
            self._health.record_failure(source, repr(exc))
            return False

        with self._status_lock:
            if self._status is JobStatus.STOPPED:
                logger.info("%s stopped during a cycle, discarding result", self.context)
                return False
            self._health.record_success(source)
            notified = self._notifier.update(self.config.source_id, state)
        if notified:
            logger.info("%s: %s", self.config.display_name, describe_state(state))
        return True

    def _on_retry(self, attempt: int, exc: UpstreamError, delay: float) -> None:
        if isinstance(exc, RateLimited):
            self._health.record_rate_limited(self.config.source_id.value)


class PollScheduler:
    """Owns every poll job, keyed by source."""

    def __init__(
        self,
        notifier: ChangeNotifier,
        *,
        health: Optional[HealthRegistry] = None,
        retry_factory: Callable[[], RetryPolicy] = RetryPolicy,
        event_factory: EventFactory = threading.Event,
    ) -> None:
        self.notifier = notifier
        self.health = health or HealthRegistry()
        self._retry_factory = retry_factory
        self._event_factory = event_factory
        self._jobs: Dict[SourceId, PollJob] = {}
        self._lock = Lock()

    def add_job(self, config: SourceConfig, pipeline: SourcePipeline) -> PollJob:
        """Create an idle job, replacing (and stopping) any job for the same source."""
        job = PollJob(
            config,
            pipeline,
            notifier=self.notifier,
            retry_policy=self._retry_factory(),
            health=self.health,
            event_factory=self._event_factory,
        )
        with self._lock:
            previous = self._jobs.get(config.source_id)
            self._jobs[config.source_id] = job
        if previous is not None:
            previous.stop()
        self.notifier.forget(config.source_id)
        self.health.forget(config.source_id.value)
        return job

    def get(self, source_id: SourceId) -> Optional[PollJob]:
        with self._lock:
            return self._jobs.get(SourceId(source_id))

    def jobs(self) -> List[PollJob]:
        with self._lock:
            return list(self._jobs.values())

    def start_all(self) -> None:
        for job in self.jobs():
            job.start()

    def stop_all(self, timeout: Optional[float] = None) -> None:
        jobs = self.jobs()
        for job in jobs:
            job.stop()
        if timeout is not None:
            for job in jobs:
                job.join(timeout)


__all__ = ["JobStatus", "PollJob", "PollScheduler", "SourcePipeline"]
