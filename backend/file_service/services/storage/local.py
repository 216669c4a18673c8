"""Local filesystem storage backend."""
import logging
import os
from pathlib import Path

import aiofiles

from file_service.services.storage.base import (
    BaseStorage,
    StorageError,
    StorageIOError,
    StorageNotFoundError,
)

logger = logging.getLogger(__name__)


class LocalStorage(BaseStorage):
    """Stores blobs under a base directory, one file per key."""

    storage_type = "local"

    def __init__(self, base_path: str = "uploads"):
        self.base_path = base_path.rstrip("/") or "/"
        self._root = Path(self.base_path).resolve()
        for sub in ("", "files", "thumbnails"):
            (Path(self.base_path) / sub).mkdir(parents=True, exist_ok=True)

    def _full_path(self, key: str) -> str:
        full_path = f"{self.base_path}/{key}"
        resolved = Path(full_path).resolve()
        if resolved != self._root and self._root not in resolved.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return full_path

    async def upload(self, key: str, content: bytes) -> str:
        """Write `content` at base/key. Returns the full path as the locator."""
        full_path = self._full_path(key)
        try:
            Path(full_path).parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            raise StorageIOError(f"Failed to write {key}: {e}") from e
        logger.info(f"Saved file at {full_path}")
        return full_path

    async def download(self, key: str) -> bytes:
        full_path = self._full_path(key)
        if not os.path.isfile(full_path):
            raise StorageNotFoundError(key)
        try:
            async with aiofiles.open(full_path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise StorageIOError(f"Failed to read {key}: {e}") from e

    async def delete(self, key: str) -> None:
        """Delete base/key. Missing files are not an error."""
        full_path = self._full_path(key)
        path = Path(full_path)
        if path.exists():
            try:
                os.remove(path)
            except OSError as e:
                raise StorageIOError(f"Failed to delete {key}: {e}") from e
