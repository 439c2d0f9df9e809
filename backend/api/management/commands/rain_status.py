"""Management command that runs the rain status pollers."""
from __future__ import annotations

import json
import logging
import signal
import threading
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from backend.api.views import get_rain_status_service
from rainstatus.config import InvalidConfig
from rainstatus.entities import DerivedState, SourceId


logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Poll the configured rain sources until interrupted, or run one cycle with --once"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--once", action="store_true", help="Run one cycle per source and print the states")
        parser.add_argument(
            "--source",
            choices=[source.value for source in SourceId],
            help="Only run this source",
        )

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        try:
            service = get_rain_status_service()
        except InvalidConfig as exc:
            raise CommandError(f"Invalid rain status configuration: {exc}") from exc

        sources = [job.source_id for job in service.scheduler.jobs()]
        if options.get("source"):
            wanted = SourceId(options["source"])
            if wanted not in sources:
                raise CommandError(f"Source {wanted.value} is not configured")
            sources = [wanted]
        if not sources:
            raise CommandError("No rain sources are configured")

        if options.get("once"):
            payload = {}
            for source in sources:
                service.refresh(source)
                state = service.current_state(source)
                payload[source.value] = state.as_dict() if state is not None else None
            self.stdout.write(json.dumps(payload))
            return

        def _print_change(source_id: SourceId, state: DerivedState) -> None:
            self.stdout.write(json.dumps({source_id.value: state.as_dict()}))

        for source in sources:
            service.on_state_change(source, _print_change)

        finished = threading.Event()

        def _handle_signal(signum, frame):
            logger.info("Received signal %s, shutting down", signum)
            finished.set()

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

        for source in sources:
            service.scheduler.get(source).start()
        logger.info("Polling %s; press Ctrl+C to stop", ", ".join(source.value for source in sources))
        finished.wait()
        service.stop_all(timeout=service.request_config.timeout)
