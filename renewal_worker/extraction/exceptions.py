class ExtractionError(Exception):
    """Raised when structured extraction from a document fails."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""


class ExtractionParseError(ExtractionError):
    """Raised when the model output is not the JSON value the contract requires."""
