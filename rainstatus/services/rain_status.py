from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..config import (
    InvalidConfig,
    NotifyPolicy,
    SourceConfig,
    build_source_config,
    notify_policy_from_settings,
    source_configs_from_settings,
)
from ..derivation import derive_current_conditions, derive_recent_rainfall, local_today, rainfall_date_range
from ..entities import DerivedState, RainfallSeries, SourceId
from ..health import HealthRegistry
from ..providers.acis import ACISPrecipitationProvider
from ..providers.base import RequestConfig
from ..providers.nws import NWSObservationProvider
from ..retry import RetryPolicy
from .notifier import ChangeNotifier, Observer
from .scheduler import EventFactory, JobStatus, PollJob, PollScheduler, SourcePipeline


@dataclass(frozen=True)
class JobHandle:
    source_id: SourceId
    job_id: str


def _request_config_from_settings(http: Mapping[str, Any]) -> RequestConfig:
    try:
        config = RequestConfig(
            timeout=float(http.get("timeout", RequestConfig.timeout)),
            retries=int(http.get("retries", RequestConfig.retries)),
            backoff_base=float(http.get("backoff_base", RequestConfig.backoff_base)),
            user_agent=http.get("user_agent") or RequestConfig.user_agent,
        )
    except (TypeError, ValueError) as exc:
        raise InvalidConfig(f"invalid http settings: {exc}") from exc
    if config.timeout <= 0:
        raise InvalidConfig(f"http timeout must be positive, got {config.timeout}")
    if config.retries < 0:
        raise InvalidConfig(f"http retries must not be negative, got {config.retries}")
    if config.backoff_base < 0:
        raise InvalidConfig(f"http backoff must not be negative, got {config.backoff_base}")
    return config


class RainStatusService:
    """Configure sources, run their poll jobs and expose the derived states."""

    def __init__(
        self,
        *,
        observation_provider: Optional[NWSObservationProvider] = None,
        precipitation_provider: Optional[ACISPrecipitationProvider] = None,
        request_config: Optional[RequestConfig] = None,
        notify_policy: NotifyPolicy = NotifyPolicy.CHANGE_ONLY,
        health: Optional[HealthRegistry] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        sleep: Callable[[float], Any] = time.sleep,
        event_factory: EventFactory = threading.Event,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.observations = observation_provider or NWSObservationProvider(request_config=self.request_config)
        self.precipitation = precipitation_provider or ACISPrecipitationProvider(request_config=self.request_config)
        self.notifier = ChangeNotifier(notify_policy)
        self.health = health or HealthRegistry()
        self.scheduler = PollScheduler(
            self.notifier,
            health=self.health,
            retry_factory=partial(
                RetryPolicy,
                max_retries=self.request_config.retries,
                base_delay=self.request_config.backoff_base,
                sleep=sleep,
            ),
            event_factory=event_factory,
        )
        self._clock = clock
        self._jobs_by_id: Dict[str, PollJob] = {}
        self._lock = threading.Lock()
        self._log = logger or logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_settings(cls, options: Mapping[str, Any], **kwargs: Any) -> "RainStatusService":
        """Build a service and configure every source in a ``RAIN_STATUS`` mapping.

        Raises :class:`~rainstatus.config.InvalidConfig` if any source is
        unusable; nothing is started.
        """
        http = options.get("http") or {}
        request_config = _request_config_from_settings(http)
        configs = source_configs_from_settings(options)
        if "observation_provider" not in kwargs:
            kwargs["observation_provider"] = NWSObservationProvider(
                base_url=http.get("nws_base_url"), request_config=request_config
            )
        if "precipitation_provider" not in kwargs:
            kwargs["precipitation_provider"] = ACISPrecipitationProvider(
                base_url=http.get("acis_url"), request_config=request_config
            )
        service = cls(
            request_config=request_config,
            notify_policy=notify_policy_from_settings(options),
            **kwargs,
        )
        for config in configs:
            service.configure_source(config)
        return service

    # Public API ---------------------------------------------------------
    def configure_source(self, config: Union[SourceConfig, Mapping[str, Any]]) -> JobHandle:
        """Validate ``config`` and create an idle job for it.

        Raises :class:`~rainstatus.config.InvalidConfig` before any job exists
        when the configuration is unusable. Configuring a source again stops
        the old job and forgets its state.
        """
        config = build_source_config(config)
        previous = self.scheduler.get(config.source_id)
        job = self.scheduler.add_job(config, self._pipeline_for(config))
        with self._lock:
            if previous is not None:
                self._jobs_by_id.pop(previous.job_id, None)
            self._jobs_by_id[job.job_id] = job
        self._log.info(
            "Configured %s for station %s every %s s",
            config.display_name,
            config.station_id,
            config.poll_interval_seconds,
        )
        return JobHandle(source_id=config.source_id, job_id=job.job_id)

    def start(self, handle: JobHandle) -> None:
        self._job(handle).start()

    def stop(self, handle: JobHandle) -> None:
        """Stop the job behind ``handle``; a replaced job is already stopped."""
        with self._lock:
            job = self._jobs_by_id.get(handle.job_id)
        if job is None:
            self._log.debug("Job %s for %s is no longer configured", handle.job_id, handle.source_id.value)
            return
        job.stop()

    def start_all(self) -> None:
        self.scheduler.start_all()

    def stop_all(self, timeout: Optional[float] = None) -> None:
        self.scheduler.stop_all(timeout)

    def on_state_change(self, source_id: Union[SourceId, str], callback: Observer) -> None:
        self.notifier.subscribe(SourceId(source_id), callback)

    def current_state(self, source_id: Union[SourceId, str]) -> Optional[DerivedState]:
        return self.notifier.current(SourceId(source_id))

    def refresh(self, source_id: Union[SourceId, str]) -> bool:
        """Run one cycle for ``source_id`` on the calling thread."""
        job = self.scheduler.get(SourceId(source_id))
        if job is None:
            raise KeyError(f"source {source_id} is not configured")
        return job.run_cycle()

    def sources(self) -> List[Dict[str, object]]:
        result = []
        for job in self.scheduler.jobs():
            state = self.current_state(job.source_id)
            result.append(
                {
                    "source_id": job.source_id.value,
                    "name": job.config.display_name,
                    "station_id": job.config.station_id,
                    "status": job.status.value,
                    "poll_interval_seconds": job.config.poll_interval_seconds,
                    "state": state.as_dict() if state is not None else None,
                }
            )
        return result

    def is_configured(self, source_id: Union[SourceId, str]) -> bool:
        return self.scheduler.get(SourceId(source_id)) is not None

    def status(self, handle: JobHandle) -> JobStatus:
        return self._job(handle).status

    # Helpers ------------------------------------------------------------
    def _job(self, handle: JobHandle) -> PollJob:
        with self._lock:
            job = self._jobs_by_id.get(handle.job_id)
        if job is None:
            raise KeyError(f"unknown job handle {handle.job_id}")
        return job

    def _pipeline_for(self, config: SourceConfig) -> SourcePipeline:
        if config.source_id is SourceId.CURRENT_CONDITIONS:
            return SourcePipeline(
                fetch=partial(self.observations.fetch_current_conditions, config.station_id),
                derive=derive_current_conditions,
            )

        station_tz = config.tzinfo()

        def fetch() -> RainfallSeries:
            today = local_today(station_tz, self._clock())
            start, end = rainfall_date_range(today, config.lookback_days)
            return self.precipitation.fetch_recent_rainfall(config.station_id, start, end)

        def derive(series: RainfallSeries) -> DerivedState:
            return derive_recent_rainfall(
                series,
                today=series.end + timedelta(days=1),
                thresholds=config.thresholds,
                lookback_days=config.lookback_days,
            )

        return SourcePipeline(fetch=fetch, derive=derive)


__all__ = ["JobHandle", "RainStatusService"]
