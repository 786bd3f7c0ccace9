from abc import ABC, abstractmethod
from pathlib import Path


class BaseArtifactStore(ABC):
    """Contract for blob storage holding uploaded PDFs and receipt images."""

    @abstractmethod
    def download(self, bucket: str, object_name: str, destination: Path) -> None:
        """Copy an object's bytes to *destination*.

        Raises:
            ArtifactNotFoundError: if the object does not exist.
            ArtifactStoreError: on any other read failure.
        """

    @abstractmethod
    def list_objects(self, bucket: str, prefix: str) -> list[str]:
        """Return names of all objects in *bucket* that start with *prefix*."""

    @abstractmethod
    def delete(self, bucket: str, object_name: str) -> bool:
        """Delete an object. Returns False if it did not exist."""
