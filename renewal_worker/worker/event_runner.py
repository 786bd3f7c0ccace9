from renewal_worker.database.models import PipelineEventRecord
from renewal_worker.database.repositories.event_repository import EventRepository
from renewal_worker.logging.logger import Log
from renewal_worker.pipelines.dispatcher import EventDispatcher


class EventRunner:
    """Run one event through the dispatcher and settle its queue status.

    There is no retry: an event that raises is marked failed for good.
    """

    def __init__(self, dispatcher: EventDispatcher, event_repo: EventRepository) -> None:
        self._dispatcher = dispatcher
        self._event_repo = event_repo

    def run(self, event: PipelineEventRecord) -> None:
        Log.info(f"Running event {event.id}", event_type=event.event_type)
        try:
            route = self._dispatcher.dispatch(event)
        except Exception as exc:
            Log.exception(f"Event {event.id} failed: {exc}")
            self._mark_failed(event, exc)
            return

        try:
            self._event_repo.mark_done(event.id)
        except Exception as exc:
            Log.error(f"Could not mark event {event.id} as done: {exc}")
            return
        Log.info(f"Event {event.id} done", route=route or "none")

    def _mark_failed(self, event: PipelineEventRecord, exc: Exception) -> None:
        try:
            self._event_repo.mark_failed(event.id, str(exc) or type(exc).__name__)
        except Exception as mark_exc:
            Log.error(f"Could not mark event {event.id} as failed: {mark_exc}")
