import uuid
from datetime import datetime, timedelta, timezone

import pytest

from file_service.models.file_record import FileRecord
from file_service.services import file_index
from file_service.services.file_index import DuplicateChecksumError


def _record(checksum=None, uploaded_at=None, **overrides) -> FileRecord:
    file_id = overrides.pop("id", uuid.uuid4())
    values = dict(
        id=file_id,
        filename=f"{file_id}.txt",
        original_filename="original.txt",
        file_path=f"uploads/files/{file_id}.txt",
        file_size=3,
        mime_type="text/plain",
        storage_type="local",
        checksum=checksum,
    )
    values.update(overrides)
    if uploaded_at is not None:
        values["uploaded_at"] = uploaded_at
    return FileRecord(**values)


async def test_insert_returns_persisted_row(db_session):
    record = await file_index.insert(db_session, _record(checksum="a" * 64))
    assert record.uploaded_at is not None
    assert record.updated_at is not None

    found = await file_index.find_by_id(db_session, record.id)
    assert found is not None
    assert found.filename == record.filename
    assert found.storage_type == "local"
    assert found.thumbnail_path is None


async def test_find_by_id_missing(db_session):
    assert await file_index.find_by_id(db_session, uuid.uuid4()) is None


async def test_find_by_checksum(db_session):
    record = await file_index.insert(db_session, _record(checksum="b" * 64))
    found = await file_index.find_by_checksum(db_session, "b" * 64)
    assert found is not None and found.id == record.id
    assert await file_index.find_by_checksum(db_session, "c" * 64) is None


async def test_duplicate_checksum_is_rejected(db_session):
    await file_index.insert(db_session, _record(checksum="d" * 64))
    with pytest.raises(DuplicateChecksumError) as exc_info:
        await file_index.insert(db_session, _record(checksum="d" * 64))
    assert exc_info.value.checksum == "d" * 64
    # Session is still usable after the rollback
    assert await file_index.find_by_checksum(db_session, "d" * 64) is not None


async def test_legacy_rows_without_checksum_coexist(db_session):
    await file_index.insert(db_session, _record(checksum=None))
    await file_index.insert(db_session, _record(checksum=None))
    assert len(await file_index.list_recent(db_session)) == 2


async def test_list_recent_orders_newest_first(db_session):
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    ids = []
    for i in range(5):
        record = await file_index.insert(
            db_session, _record(checksum=f"{i:064x}", uploaded_at=base + timedelta(minutes=i))
        )
        ids.append(record.id)

    listed = await file_index.list_recent(db_session)
    assert [r.id for r in listed] == list(reversed(ids))


async def test_list_recent_caps_at_limit(db_session):
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for i in range(105):
        await file_index.insert(
            db_session, _record(checksum=f"{i:064x}", uploaded_at=base + timedelta(seconds=i))
        )

    listed = await file_index.list_recent(db_session)
    assert len(listed) == 100
    stamps = [r.uploaded_at for r in listed]
    assert stamps == sorted(stamps, reverse=True)
    assert len(await file_index.list_recent(db_session, limit=10)) == 10


async def test_delete_by_id(db_session):
    record = await file_index.insert(db_session, _record(checksum="e" * 64))
    await file_index.delete_by_id(db_session, record.id)
    assert await file_index.find_by_id(db_session, record.id) is None
    # Deleting an absent id is a no-op
    await file_index.delete_by_id(db_session, record.id)
