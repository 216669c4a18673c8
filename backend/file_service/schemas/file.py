"""File request/response schemas."""
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from file_service.models.file_record import FileRecord


class UploadResponse(BaseModel):
    id: uuid.UUID
    filename: str
    url: str
    size: int
    mime_type: str

    @classmethod
    def from_record(cls, record: FileRecord) -> "UploadResponse":
        return cls(
            id=record.id,
            filename=record.filename,
            url=f"/files/{record.id}",
            size=record.file_size,
            mime_type=record.mime_type,
        )


class FileResponse(BaseModel):
    id: uuid.UUID
    filename: str
    original_filename: str
    size: int
    mime_type: str
    uploaded_at: Optional[datetime] = None
    download_url: str
    thumbnail_url: Optional[str] = None

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileResponse":
        return cls(
            id=record.id,
            filename=record.filename,
            original_filename=record.original_filename,
            size=record.file_size,
            mime_type=record.mime_type,
            uploaded_at=record.uploaded_at,
            download_url=f"/files/{record.id}/download",
            thumbnail_url=f"/files/{record.id}/thumbnail" if record.thumbnail_path else None,
        )


class ErrorResponse(BaseModel):
    error: str
