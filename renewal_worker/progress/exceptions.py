class ProgressLogError(Exception):
    """Base exception for processing log errors."""


class InvalidStageTransitionError(ProgressLogError):
    """Raised when a log is moved along an edge the state machine forbids."""


class ProcessingLogNotFoundError(ProgressLogError):
    """Raised when updating a processing log that does not exist."""
