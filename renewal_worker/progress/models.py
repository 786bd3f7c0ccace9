"""Processing log document and the stage state machine it follows.

    uploading -> processing -> parsing | verifying -> completed
    (any non-terminal stage) -> failed
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from renewal_worker.progress.exceptions import InvalidStageTransitionError


class LogType(str, Enum):
    PDF = "pdf"
    RECEIPT = "receipt"


class Stage(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    PARSING = "parsing"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETED, Stage.FAILED)


class LogStatus(str, Enum):
    """Coarse outcome, independent of stage."""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


INITIAL_STAGES = frozenset({Stage.UPLOADING, Stage.PROCESSING})

ALLOWED_TRANSITIONS: dict[Stage, frozenset[Stage]] = {
    Stage.UPLOADING: frozenset({Stage.PROCESSING, Stage.FAILED}),
    Stage.PROCESSING: frozenset({Stage.PARSING, Stage.VERIFYING, Stage.FAILED}),
    Stage.PARSING: frozenset({Stage.COMPLETED, Stage.FAILED}),
    Stage.VERIFYING: frozenset({Stage.COMPLETED, Stage.FAILED}),
    Stage.COMPLETED: frozenset(),
    Stage.FAILED: frozenset(),
}


def check_transition(current: Stage | None, target: Stage) -> None:
    """Raise InvalidStageTransitionError unless *current* -> *target* is legal.

    ``current`` is None for a log that has not been created yet.
    """
    if current is None:
        if target not in INITIAL_STAGES:
            raise InvalidStageTransitionError(
                f"A processing log cannot start at stage '{target.value}'"
            )
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStageTransitionError(
            f"Illegal stage transition '{current.value}' -> '{target.value}'"
        )


@dataclass
class ProcessingLogEntry:
    """Execution record of one pipeline invocation, keyed by upload id."""

    id: str
    type: LogType
    stage: Stage
    message: str
    status: LogStatus
    started_at: int
    policy_id: str | None = None
    file_name: str | None = None
    policies_found: int | None = None
    page_count: int | None = None
    verification_passed: bool | None = None
    policy_number_match: bool | None = None
    customer_name_match: bool | None = None
    extracted_policy_number: str | None = None
    extracted_customer_name: str | None = None
    confidence: str | None = None
    failure_reasons: list[str] | None = None
    error: str | None = None
    completed_at: int | None = None

    def to_document(self) -> dict[str, Any]:
        """Render the camelCase document observers consume; unset fields are omitted."""
        document: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "id":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            document[_camel_case(f.name)] = value
        return document


LOG_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(ProcessingLogEntry))
UPDATABLE_COLUMNS = frozenset(LOG_COLUMNS) - {"id", "type", "started_at"}


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
