"""Storage contract shared by every backend."""
from abc import ABC, abstractmethod


class StorageError(Exception):
    """Base class for storage backend failures."""
    pass


class StorageNotFoundError(StorageError):
    """The requested key does not exist in the backend."""
    pass


class StorageIOError(StorageError):
    """Transport or filesystem failure while reading or writing bytes."""
    pass


class StorageUploadError(StorageError):
    pass


class StorageDeleteError(StorageError):
    pass


class BaseStorage(ABC):
    """Uniform upload/download/delete over a blob store.

    Keys are backend-agnostic logical paths ("files/...", "thumbnails/...").
    `upload` returns a locator that is persisted in the metadata store and
    later reduced back to a key with `storage_key`.
    """

    # Tag recorded as FileRecord.storage_type for blobs written by this backend
    storage_type: str = ""

    @abstractmethod
    async def upload(self, key: str, content: bytes) -> str:
        pass

    @abstractmethod
    async def download(self, key: str) -> bytes:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass


def storage_key(locator: str, storage_type: str, local_root: str = "uploads") -> str:
    """Reduce a stored locator to the key its backend expects.

    S3 locators lose their "s3://" scheme; local locators lose the upload
    root prefix. Anything else is returned unchanged.
    """
    if storage_type == "s3":
        return locator.removeprefix("s3://")
    return locator.removeprefix(f"{local_root.rstrip('/')}/")
