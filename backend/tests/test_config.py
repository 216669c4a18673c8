import pytest
from pydantic import ValidationError

from file_service.config import Settings

ENV_VARS = [
    "DATABASE_URL", "USE_S3", "UPLOAD_DIR", "S3_ENDPOINT", "S3_REGION", "S3_BUCKET",
    "S3_ACCESS_KEY", "S3_SECRET_KEY", "MAX_FILE_SIZE", "ALLOWED_EXTENSIONS",
    "DB_POOL_SIZE", "API_HOST", "API_PORT", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make(**values) -> Settings:
    values.setdefault("DATABASE_URL", "postgresql+asyncpg://u:p@localhost/files")
    return Settings(_env_file=None, **values)


def test_defaults():
    settings = make()
    assert settings.USE_S3 is False
    assert settings.storage_type == "local"
    assert settings.UPLOAD_DIR == "uploads"
    assert settings.S3_ENDPOINT is None
    assert settings.S3_REGION is None
    assert settings.S3_BUCKET == "file-service"
    assert settings.S3_ACCESS_KEY == "minioadmin"
    assert settings.S3_SECRET_KEY == "minioadmin"
    assert settings.MAX_FILE_SIZE == 10_485_760
    assert settings.allowed_extensions == {"jpg", "jpeg", "png", "gif", "pdf", "doc", "docx", "txt"}
    assert settings.DB_POOL_SIZE == 5
    assert (settings.API_HOST, settings.API_PORT) == ("0.0.0.0", 3000)


def test_database_url_is_required():
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


@pytest.mark.parametrize("url, expected", [
    ("postgres://u:p@db:5432/files", "postgresql+asyncpg://u:p@db:5432/files"),
    ("postgresql://u:p@db/files", "postgresql+asyncpg://u:p@db/files"),
    ("postgresql+asyncpg://u:p@db/files", "postgresql+asyncpg://u:p@db/files"),
    ("sqlite+aiosqlite:///files.db", "sqlite+aiosqlite:///files.db"),
])
def test_database_url_gets_async_driver(url, expected):
    assert make(DATABASE_URL=url).DATABASE_URL == expected


def test_allowed_extensions_are_normalized():
    settings = make(ALLOWED_EXTENSIONS=" JPG, Png ,,txt ")
    assert settings.allowed_extensions == {"jpg", "png", "txt"}


@pytest.mark.parametrize("size", [1, 104_857_600])
def test_max_file_size_bounds_accepted(size):
    assert make(MAX_FILE_SIZE=size).MAX_FILE_SIZE == size


@pytest.mark.parametrize("size", [0, -5, 104_857_601])
def test_max_file_size_bounds_rejected(size):
    with pytest.raises(ValidationError):
        make(MAX_FILE_SIZE=size)


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://env@db/files")
    monkeypatch.setenv("USE_S3", "true")
    monkeypatch.setenv("S3_ENDPOINT", "http://minio:9000")
    monkeypatch.setenv("S3_REGION", "")
    monkeypatch.setenv("MAX_FILE_SIZE", "2048")
    settings = Settings(_env_file=None)
    assert settings.DATABASE_URL == "postgresql+asyncpg://env@db/files"
    assert settings.USE_S3 is True
    assert settings.storage_type == "s3"
    assert settings.S3_ENDPOINT == "http://minio:9000"
    assert settings.S3_REGION is None
    assert settings.MAX_FILE_SIZE == 2048
