class ArtifactStoreError(Exception):
    """Base exception for artifact store failures."""


class ArtifactNotFoundError(ArtifactStoreError):
    """Raised when an object does not exist in its bucket."""


class InvalidObjectNameError(ArtifactStoreError):
    """Raised when an object name would resolve outside its bucket."""
