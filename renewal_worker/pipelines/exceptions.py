class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""


class PolicyNotFoundError(PipelineError):
    """Raised when a policy cannot be found in the database."""


class PolicyBatchWriteError(PipelineError):
    """Raised when one chunk of a bulk policy insert fails.

    Chunks committed before the failing one stay committed.
    """

    def __init__(self, message: str, *, committed: int, batch_index: int) -> None:
        super().__init__(message)
        self.committed = committed
        self.batch_index = batch_index
