"""Metadata store for uploaded files (the `files` table)."""
import logging
import uuid
from typing import Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from file_service.models.file_record import FileRecord

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100


class DuplicateChecksumError(Exception):
    """Insert lost a race: another row already owns this checksum."""

    def __init__(self, checksum: str):
        super().__init__(f"A file with checksum {checksum} already exists")
        self.checksum = checksum


async def find_by_checksum(db: AsyncSession, checksum: str) -> Optional[FileRecord]:
    result = await db.execute(
        select(FileRecord).where(FileRecord.checksum == checksum).limit(1)
    )
    return result.scalar_one_or_none()


async def find_by_id(db: AsyncSession, file_id: uuid.UUID) -> Optional[FileRecord]:
    result = await db.execute(select(FileRecord).where(FileRecord.id == file_id))
    return result.scalar_one_or_none()


async def list_recent(db: AsyncSession, limit: int = DEFAULT_LIST_LIMIT) -> list[FileRecord]:
    """Most recently uploaded files first."""
    result = await db.execute(
        select(FileRecord).order_by(desc(FileRecord.uploaded_at)).limit(limit)
    )
    return list(result.scalars().all())


async def insert(db: AsyncSession, record: FileRecord) -> FileRecord:
    """Persist `record` and return it as stored.

    Raises DuplicateChecksumError when the checksum unique index rejects the
    row; the session is rolled back first so it stays usable.
    """
    db.add(record)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if record.checksum is not None and await find_by_checksum(db, record.checksum):
            raise DuplicateChecksumError(record.checksum) from e
        raise
    await db.refresh(record)
    return record


async def delete_by_id(db: AsyncSession, file_id: uuid.UUID) -> None:
    await db.execute(delete(FileRecord).where(FileRecord.id == file_id))
    await db.commit()
