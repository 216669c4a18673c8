"""Files API routes."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from file_service.database import get_db, get_state
from file_service.errors import InternalServerError, NotFound
from file_service.models.file_record import FileRecord
from file_service.schemas.file import FileResponse, UploadResponse
from file_service.services import file_index
from file_service.services.ingest import ingest_upload
from file_service.services.multipart_form import read_upload_form
from file_service.services.storage import StorageError, StorageNotFoundError, storage_key
from file_service.state import AppState

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])

FALLBACK_CONTENT_TYPE = "application/octet-stream"
FALLBACK_DISPOSITION = "attachment"


def _is_header_safe(value: str) -> bool:
    if "\r" in value or "\n" in value or "\x00" in value:
        return False
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def _download_headers(record: FileRecord) -> dict[str, str]:
    """Content-Type and Content-Disposition, degrading to generic values if unusable."""
    content_type = record.mime_type if _is_header_safe(record.mime_type) else FALLBACK_CONTENT_TYPE
    disposition = f'attachment; filename="{record.original_filename}"'
    if not _is_header_safe(disposition):
        disposition = FALLBACK_DISPOSITION
    return {"content-type": content_type, "content-disposition": disposition}


async def _get_record_or_404(db: AsyncSession, file_id: UUID) -> FileRecord:
    record = await file_index.find_by_id(db, file_id)
    if record is None:
        raise NotFound("File not found")
    return record


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    request: Request,
    state: AppState = Depends(get_state),
    db: AsyncSession = Depends(get_db),
):
    """Upload a file (multipart field `file`, optional `filename`)."""
    form = await read_upload_form(request, state.settings.MAX_FILE_SIZE)
    record = await ingest_upload(form, db, state.storage, state.settings)
    return UploadResponse.from_record(record)


@router.get("/files", response_model=list[FileResponse])
async def list_files(db: AsyncSession = Depends(get_db)):
    """List the 100 most recently uploaded files."""
    records = await file_index.list_recent(db, limit=file_index.DEFAULT_LIST_LIMIT)
    return [FileResponse.from_record(r) for r in records]


@router.get("/files/{file_id}", response_model=FileResponse)
async def get_file_metadata(
    file_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get file metadata by ID."""
    record = await _get_record_or_404(db, file_id)
    return FileResponse.from_record(record)


@router.get("/files/{file_id}/download")
async def download_file(
    file_id: UUID,
    state: AppState = Depends(get_state),
    db: AsyncSession = Depends(get_db),
):
    """Download a file by ID."""
    record = await _get_record_or_404(db, file_id)
    key = storage_key(record.file_path, record.storage_type, state.settings.UPLOAD_DIR)
    try:
        content = await state.storage.download(key)
    except StorageNotFoundError:
        logger.error(f"Blob missing for file {file_id}: {key}")
        raise NotFound("File content not found")
    except StorageError as e:
        logger.error(f"Error downloading file {key}: {e}")
        raise InternalServerError("Failed to download file") from e

    return Response(content=content, headers=_download_headers(record))


@router.get("/files/{file_id}/thumbnail")
async def get_thumbnail(
    file_id: UUID,
    state: AppState = Depends(get_state),
    db: AsyncSession = Depends(get_db),
):
    """Return the JPEG thumbnail of an image upload."""
    record = await _get_record_or_404(db, file_id)
    if not record.thumbnail_path:
        raise NotFound("Thumbnail not available")

    key = storage_key(record.thumbnail_path, record.storage_type, state.settings.UPLOAD_DIR)
    try:
        content = await state.storage.download(key)
    except StorageError as e:
        logger.error(f"Error downloading thumbnail {key}: {e}")
        raise InternalServerError("Failed to download thumbnail") from e

    return Response(content=content, media_type="image/jpeg")


@router.delete("/files/{file_id}", status_code=204)
async def delete_file(
    file_id: UUID,
    state: AppState = Depends(get_state),
    db: AsyncSession = Depends(get_db),
):
    """Delete a file, its thumbnail and its record."""
    record = await _get_record_or_404(db, file_id)
    upload_dir = state.settings.UPLOAD_DIR

    key = storage_key(record.file_path, record.storage_type, upload_dir)
    try:
        await state.storage.delete(key)
    except StorageError as e:
        logger.error(f"Failed to delete file {key}: {e}")
        raise InternalServerError("Failed to delete file from storage") from e

    if record.thumbnail_path:
        thumb_key = storage_key(record.thumbnail_path, record.storage_type, upload_dir)
        try:
            await state.storage.delete(thumb_key)
        except StorageError as e:
            # Orphaned thumbnails do not block the delete
            logger.warning(f"Failed to delete thumbnail {thumb_key}: {e}")

    await file_index.delete_by_id(db, file_id)
    logger.info(f"File deleted: {file_id}")
    return Response(status_code=204)
