"""Blob storage backends. Local filesystem for dev, S3/MinIO for production."""
import logging

from file_service.config import Settings
from file_service.services.storage.base import (
    BaseStorage,
    StorageDeleteError,
    StorageError,
    StorageIOError,
    StorageNotFoundError,
    StorageUploadError,
    storage_key,
)
from file_service.services.storage.local import LocalStorage
from file_service.services.storage.s3 import S3Storage

logger = logging.getLogger(__name__)


async def init_storage(settings: Settings) -> BaseStorage:
    """Build the backend selected by USE_S3."""
    if settings.USE_S3:
        logger.info("Initializing S3 storage")
        storage = S3Storage(
            bucket=settings.S3_BUCKET,
            region=settings.S3_REGION,
            endpoint_url=settings.S3_ENDPOINT,
            access_key=settings.S3_ACCESS_KEY,
            secret_key=settings.S3_SECRET_KEY,
        )
        await storage.ensure_bucket()
        return storage

    logger.info("Initializing Local storage")
    return LocalStorage(settings.UPLOAD_DIR)


__all__ = [
    "BaseStorage",
    "LocalStorage",
    "S3Storage",
    "StorageError",
    "StorageNotFoundError",
    "StorageIOError",
    "StorageUploadError",
    "StorageDeleteError",
    "init_storage",
    "storage_key",
]
