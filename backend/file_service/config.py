"""Application configuration from environment variables."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

MAX_FILE_SIZE_LIMIT = 104_857_600  # 100MB


class Settings(BaseSettings):
    """All config comes from env vars or a .env file."""

    DATABASE_URL: str
    DB_POOL_SIZE: int = Field(default=5, ge=1)

    USE_S3: bool = False
    UPLOAD_DIR: str = "uploads"

    # S3 / MinIO
    S3_ENDPOINT: Optional[str] = None
    S3_REGION: Optional[str] = None  # falls back to AWS_REGION, then us-east-1
    S3_BUCKET: str = "file-service"
    S3_ACCESS_KEY: str = "minioadmin"
    S3_SECRET_KEY: str = "minioadmin"

    MAX_FILE_SIZE: int = Field(default=10_485_760, ge=1, le=MAX_FILE_SIZE_LIMIT)
    ALLOWED_EXTENSIONS: str = "jpg,jpeg,png,gif,pdf,doc,docx,txt"

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("DATABASE_URL")
    @classmethod
    def use_asyncpg_driver(cls, v: str) -> str:
        # Plain Postgres DSNs get the async driver
        for prefix in ("postgres://", "postgresql://"):
            if v.startswith(prefix):
                return "postgresql+asyncpg://" + v[len(prefix):]
        return v

    @field_validator("S3_ENDPOINT", "S3_REGION", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def allowed_extensions(self) -> set[str]:
        return {e.strip().lower() for e in self.ALLOWED_EXTENSIONS.split(",") if e.strip()}

    @property
    def storage_type(self) -> str:
        return "s3" if self.USE_S3 else "local"


@lru_cache
def get_settings() -> Settings:
    return Settings()
