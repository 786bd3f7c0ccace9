import shutil
import tempfile
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from renewal_worker.logging.logger import Log
from renewal_worker.storage.base import BaseArtifactStore
from renewal_worker.storage.exceptions import (
    ArtifactNotFoundError,
    ArtifactStoreError,
    InvalidObjectNameError,
)


class LocalArtifactStore(BaseArtifactStore):
    """Artifact store on the local filesystem: {root}/{bucket}/{object_name}."""

    ROOT = Path("/app/files")

    def __init__(self, root: Path | None = None) -> None:
        self._root = root if root is not None else self.ROOT

    def download(self, bucket: str, object_name: str, destination: Path) -> None:
        source = self._resolve(bucket, object_name)
        if not source.is_file():
            raise ArtifactNotFoundError(f"Object not found: {bucket}/{object_name}")
        try:
            shutil.copyfile(source, destination)
        except OSError as exc:
            raise ArtifactStoreError(
                f"Failed to download {bucket}/{object_name}: {exc}"
            ) from exc

    def list_objects(self, bucket: str, prefix: str) -> list[str]:
        bucket_dir = self._bucket_dir(bucket)
        if not bucket_dir.is_dir():
            return []
        names = (
            path.relative_to(bucket_dir).as_posix()
            for path in bucket_dir.rglob("*")
            if path.is_file()
        )
        return sorted(name for name in names if name.startswith(prefix))

    def delete(self, bucket: str, object_name: str) -> bool:
        path = self._resolve(bucket, object_name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise ArtifactStoreError(
                f"Failed to delete {bucket}/{object_name}: {exc}"
            ) from exc
        return True

    def _bucket_dir(self, bucket: str) -> Path:
        if bucket in ("", ".", "..") or "/" in bucket:
            raise InvalidObjectNameError(f"Invalid bucket name: '{bucket}'")
        return self._root / bucket

    def _resolve(self, bucket: str, object_name: str) -> Path:
        bucket_dir = self._bucket_dir(bucket).resolve()
        path = (bucket_dir / object_name).resolve()
        if not object_name or not path.is_relative_to(bucket_dir) or path == bucket_dir:
            raise InvalidObjectNameError(f"Invalid object name: '{object_name}'")
        return path


@contextmanager
def temporary_download(
    store: BaseArtifactStore,
    bucket: str,
    object_name: str,
    temp_dir: Path | None = None,
) -> Generator[Path, None, None]:
    """Download an object into a fresh temp file that is removed on exit.

    The file is removed on every exit path. A failed removal is logged and
    never replaces the exception already in flight.
    """
    suffix = Path(object_name).suffix
    with tempfile.NamedTemporaryFile(suffix=suffix, dir=temp_dir, delete=False) as handle:
        temp_path = Path(handle.name)
    try:
        store.download(bucket, object_name, temp_path)
        yield temp_path
    finally:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as exc:
            Log.warning(f"Failed to clean up temp file {temp_path}: {exc}")
