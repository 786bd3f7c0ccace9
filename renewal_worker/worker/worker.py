import time

from renewal_worker.config.settings import Settings
from renewal_worker.database.connection import get_connection
from renewal_worker.database.models import PipelineEventRecord
from renewal_worker.database.repositories.event_repository import EventRepository
from renewal_worker.logging.logger import Log
from renewal_worker.worker.event_runner import EventRunner


class Worker:
    """Poll loop: claim -> run -> sleep when idle.

    Run several worker processes for concurrency; SKIP LOCKED keeps their
    claims disjoint.
    """

    def __init__(
        self,
        event_repo: EventRepository,
        event_runner: EventRunner,
        settings: Settings,
    ) -> None:
        self._event_repo = event_repo
        self._event_runner = event_runner
        self._settings = settings

    def run(self, max_events: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_events is set, stop after running that many events (for testing).
        """
        Log.info("Worker started, polling for events")
        events_done = 0
        try:
            while max_events is None or events_done < max_events:
                event = self._try_claim_event()
                if event is None:
                    Log.debug("No events available, sleeping")
                    time.sleep(self._settings.event_poll_interval_seconds)
                    continue
                self._event_runner.run(event)
                events_done += 1
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_claim_event(self) -> PipelineEventRecord | None:
        """Attempt to claim the next pending event. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._event_repo.claim_next_event(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
