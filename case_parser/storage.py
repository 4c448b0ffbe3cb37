"""Storage collaborators that resolve storage paths to file bytes."""

import threading
from pathlib import Path
from typing import Optional, Protocol, Union

from case_parser.exceptions import StorageError
from case_parser.logger import get_logger

logger = get_logger(__name__)


class Storage(Protocol):
    def download(self, storage_path: str) -> bytes:
        """Return the file's bytes or raise StorageError."""
        ...


class LocalStorage:
    """Case files stored under a directory on the local filesystem."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def download(self, storage_path: str) -> bytes:
        path = (self.root / storage_path.lstrip("/")).resolve()
        if self.root not in path.parents and path != self.root:
            raise StorageError(f"Failed to download file: {storage_path} is outside the storage root")

        try:
            return path.read_bytes()
        except OSError as exc:
            logger.error(
                "Failed to read file from storage",
                extra_data={"storage_path": storage_path, "error_type": type(exc).__name__},
            )
            raise StorageError(f"Failed to download file: {exc.strerror or exc}") from exc


class MemoryStorage:
    """In-memory storage, for tests and bulk pipelines that already hold the bytes."""

    def __init__(self, files: Optional[dict[str, bytes]] = None):
        self._files = dict(files or {})
        self._lock = threading.Lock()
        self.download_count = 0

    def put(self, storage_path: str, data: bytes) -> None:
        with self._lock:
            self._files[storage_path] = data

    def download(self, storage_path: str) -> bytes:
        with self._lock:
            self.download_count += 1
            try:
                return self._files[storage_path]
            except KeyError:
                raise StorageError(f"Failed to download file: {storage_path} not found") from None
