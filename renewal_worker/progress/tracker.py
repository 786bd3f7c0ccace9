from collections.abc import Callable
from typing import Any

from renewal_worker.database.repositories.processing_log_repository import (
    ProcessingLogRepository,
)
from renewal_worker.logging.logger import Log
from renewal_worker.progress.clock import now_ms
from renewal_worker.progress.models import (
    LogStatus,
    LogType,
    ProcessingLogEntry,
    Stage,
    check_transition,
)


class ProgressTracker:
    """Sole writer of one processing log for the duration of one invocation.

    Every stage change is checked against the state machine in
    ``progress.models`` before it is written.
    """

    def __init__(
        self,
        repo: ProcessingLogRepository,
        log_id: str,
        log_type: LogType,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._repo = repo
        self._log_id = log_id
        self._log_type = log_type
        self._clock = clock
        self._stage: Stage | None = None

    @property
    def log_id(self) -> str:
        return self._log_id

    @property
    def stage(self) -> Stage | None:
        return self._stage

    @property
    def terminal(self) -> bool:
        return self._stage is not None and self._stage.is_terminal

    def start(self, stage: Stage, message: str, **fields: Any) -> ProcessingLogEntry:
        """Create the log at an initial stage with status in_progress."""
        check_transition(None, stage)
        entry = ProcessingLogEntry(
            id=self._log_id,
            type=self._log_type,
            stage=stage,
            message=message,
            status=LogStatus.IN_PROGRESS,
            started_at=self._clock(),
            **fields,
        )
        self._repo.create(entry)
        self._stage = stage
        Log.info(f"Processing log {self._log_id}: {stage.value}", detail=message)
        return entry

    def advance(self, stage: Stage, message: str, **fields: Any) -> None:
        """Move to a non-terminal stage."""
        if stage.is_terminal:
            raise ValueError("Use complete() or fail() to reach a terminal stage")
        self._write(stage, {"message": message, **fields})

    def complete(self, status: LogStatus, message: str, **fields: Any) -> None:
        if status is LogStatus.IN_PROGRESS:
            raise ValueError("A completed log needs an outcome status")
        self._write(
            Stage.COMPLETED,
            {"message": message, "status": status, "completed_at": self._clock(), **fields},
        )

    def fail(self, message: str, error: str) -> None:
        self._write(
            Stage.FAILED,
            {
                "message": message,
                "error": error,
                "status": LogStatus.ERROR,
                "completed_at": self._clock(),
            },
        )

    def _write(self, stage: Stage, changes: dict[str, Any]) -> None:
        check_transition(self._stage, stage)
        self._repo.update(self._log_id, {"stage": stage, **changes})
        self._stage = stage
        Log.info(
            f"Processing log {self._log_id}: {stage.value}",
            detail=changes.get("message", ""),
        )
