"""FileRecord model - file metadata (actual bytes on local disk or S3)."""
import uuid
from sqlalchemy import BigInteger, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from file_service.models.base import Base, TimestampMixin


class FileRecord(Base, TimestampMixin):
    __tablename__ = "files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    filename: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    # Locators: "{upload_dir}/files/..." for local, "s3://files/..." for S3
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    storage_type: Mapped[str] = mapped_column(String(50), nullable=False, default="local")
    # Dedup key; NULL for legacy rows
    checksum: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    thumbnail_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
