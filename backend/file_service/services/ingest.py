"""Upload pipeline: validate, deduplicate, store, thumbnail, record.

Steps run strictly in order and any failure short-circuits before metadata
is written. A blob written before a later failure is left behind; there is
no compensating cleanup except when an insert loses the dedup race.
"""
import logging
import posixpath
import uuid
from typing import Optional

import aiofiles
import aiofiles.os
from sqlalchemy.ext.asyncio import AsyncSession

from file_service.config import Settings
from file_service.errors import BadRequest, InternalServerError, PayloadTooLarge, UnsupportedMediaType
from file_service.models.file_record import FileRecord
from file_service.services import file_index
from file_service.services.file_index import DuplicateChecksumError
from file_service.services.file_utils import calculate_sha256, get_file_extension, is_image_mime_type
from file_service.services.multipart_form import MAX_CUSTOM_FILENAME_BYTES, UploadForm
from file_service.services.storage import BaseStorage, StorageError, storage_key
from file_service.services.thumbnails import ThumbnailError, generate_thumbnail

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def build_filename(file_id: uuid.UUID, extension: str, custom_filename: Optional[str]) -> str:
    """"{id}_{custom}" when a custom name was supplied, else "{id}.{ext}"."""
    if custom_filename:
        return f"{file_id}_{custom_filename}"
    return f"{file_id}.{extension}"


def _validate_custom_filename(name: str) -> None:
    if len(name.encode("utf-8")) > MAX_CUSTOM_FILENAME_BYTES:
        raise BadRequest(f"Custom filename exceeds {MAX_CUSTOM_FILENAME_BYTES} bytes")


def _check_blob_key(key: str, file_id: uuid.UUID) -> None:
    """A custom name may nest directories but must stay under this upload's own prefix."""
    prefix = f"files/{file_id}_"
    if key.endswith("/") or not posixpath.normpath(key).startswith(prefix):
        raise BadRequest("Invalid filename")


def validate_upload(form: UploadForm, settings: Settings) -> tuple[bytes, str, str]:
    """Presence, size and extension checks. Returns (data, original_filename, ext)."""
    if form.file_data is None or not form.original_filename:
        raise BadRequest("No file provided")

    if form.file_size > settings.MAX_FILE_SIZE:
        logger.error(
            "File size %d exceeds maximum limit of %d bytes", form.file_size, settings.MAX_FILE_SIZE
        )
        raise PayloadTooLarge(
            f"File size {form.file_size} exceeds maximum limit of {settings.MAX_FILE_SIZE} bytes"
        )

    extension = get_file_extension(form.original_filename)
    if extension is None:
        raise BadRequest("Invalid file extension")
    if extension not in settings.allowed_extensions:
        logger.error(f"File extension .{extension} is not allowed")
        raise UnsupportedMediaType(f"File extension .{extension} is not allowed")

    if form.custom_filename:
        _validate_custom_filename(form.custom_filename)

    return form.file_data, form.original_filename, extension


async def store_thumbnail(storage: BaseStorage, data: bytes, file_id: uuid.UUID) -> Optional[str]:
    """Render, read and upload a thumbnail. Returns its locator, or None on any failure."""
    try:
        rendered_path = await generate_thumbnail(data, str(file_id))
    except ThumbnailError as e:
        logger.error(f"Failed to generate thumbnail: {e}")
        return None

    try:
        async with aiofiles.open(rendered_path, "rb") as f:
            thumb_data = await f.read()
    except OSError as e:
        logger.error(f"Failed to read thumbnail file: {e}")
        return None
    finally:
        try:
            await aiofiles.os.remove(rendered_path)
        except OSError:
            logger.warning(f"Could not remove temporary thumbnail {rendered_path}")

    try:
        return await storage.upload(f"thumbnails/{file_id}.jpg", thumb_data)
    except StorageError as e:
        logger.error(f"Failed to upload thumbnail: {e}")
        return None


async def _discard_blobs(storage: BaseStorage, settings: Settings, *locators: Optional[str]) -> None:
    for locator in locators:
        if not locator:
            continue
        key = storage_key(locator, storage.storage_type, settings.UPLOAD_DIR)
        try:
            await storage.delete(key)
        except StorageError as e:
            logger.warning(f"Could not remove orphaned blob {key}: {e}")


async def ingest_upload(
    form: UploadForm,
    db: AsyncSession,
    storage: BaseStorage,
    settings: Settings,
) -> FileRecord:
    """Run the upload pipeline for a parsed form and return the owning record.

    On a checksum hit the existing record is returned and nothing is written.
    """
    data, original_filename, extension = validate_upload(form, settings)

    file_id = uuid.uuid4()
    filename = build_filename(file_id, extension, form.custom_filename)
    key = f"files/{filename}"
    _check_blob_key(key, file_id)

    checksum = calculate_sha256(data)
    existing = await file_index.find_by_checksum(db, checksum)
    if existing is not None:
        logger.info(f"Duplicate upload of {existing.id} (checksum {checksum})")
        return existing

    try:
        locator = await storage.upload(key, data)
    except StorageError as e:
        logger.error(f"Error uploading file: {e}")
        raise InternalServerError("Failed to upload file") from e

    mime_type = form.mime_type or DEFAULT_MIME_TYPE
    thumbnail_path = None
    if is_image_mime_type(mime_type):
        thumbnail_path = await store_thumbnail(storage, data, file_id)

    record = FileRecord(
        id=file_id,
        filename=filename,
        original_filename=original_filename,
        file_path=locator,
        file_size=len(data),
        mime_type=mime_type,
        storage_type=storage.storage_type,
        checksum=checksum,
        thumbnail_path=thumbnail_path,
    )
    try:
        record = await file_index.insert(db, record)
    except DuplicateChecksumError:
        winner = await file_index.find_by_checksum(db, checksum)
        if winner is None:
            raise InternalServerError("Failed to record file")
        logger.info(f"Lost dedup race for checksum {checksum}; returning {winner.id}")
        await _discard_blobs(storage, settings, locator, thumbnail_path)
        return winner

    logger.info(f"File uploaded: {file_id} ({len(data)} bytes)")
    return record
