from abc import ABC, abstractmethod

from renewal_worker.database.models import PipelineEventRecord
from renewal_worker.database.repositories.processing_log_repository import (
    ProcessingLogRepository,
)
from renewal_worker.logging.logger import Log
from renewal_worker.progress.tracker import ProgressTracker


class BasePipeline(ABC):
    """Contract for a handler that runs once per dispatched event."""

    @abstractmethod
    def handle(self, event: PipelineEventRecord) -> None:
        """Process one event.

        Pipelines that own a processing log record their own failures there;
        an exception escaping ``handle`` means the failure could not be recorded.
        """


def record_failure(tracker: ProgressTracker, message: str, exc: BaseException) -> None:
    """Drive the log to ``failed`` unless it already reached a terminal stage.

    A failure to write the log is logged and not raised.
    """
    if tracker.terminal:
        return
    try:
        tracker.fail(message, str(exc) or type(exc).__name__)
    except Exception as write_exc:
        Log.error(
            f"Failed to record failure on processing log {tracker.log_id}: {write_exc}"
        )


def is_settled(log_repo: ProcessingLogRepository, log_id: str) -> bool:
    """True when a processing log with this id already reached a terminal stage."""
    entry = log_repo.find_by_id(log_id)
    if entry is None or not entry.stage.is_terminal:
        return False
    Log.warning(
        f"Processing log {log_id} already ended at {entry.stage.value}, skipping event",
        status=entry.status.value,
    )
    return True
