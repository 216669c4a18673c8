"""Shared fixtures: SQLite-backed sessions, local storage and an app client."""
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.ext.asyncio import create_async_engine

from file_service.config import Settings
from file_service.database import init_sessionmaker
from file_service.main import create_app
from file_service.models import Base
from file_service.services.storage import LocalStorage
from file_service.state import AppState


class RecordingStorage(LocalStorage):
    """LocalStorage that remembers every key it was asked to write."""

    def __init__(self, base_path: str):
        super().__init__(base_path)
        self.uploaded: list[str] = []

    async def upload(self, key: str, content: bytes) -> str:
        self.uploaded.append(key)
        return await super().upload(key, content)


def make_png(size=(640, 480), color=(200, 30, 30), mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, "PNG")
    return buf.getvalue()


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'files.db'}",
        "UPLOAD_DIR": str(tmp_path / "uploads"),
        "USE_S3": False,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
async def db_session(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'index.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = init_sessionmaker(engine)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def make_client(tmp_path):
    """Factory for TestClients with Settings overrides; clients are closed after the test."""
    clients = []

    def factory(**overrides) -> TestClient:
        settings = make_settings(tmp_path, **overrides)
        engine = create_async_engine(settings.DATABASE_URL)
        state = AppState(
            settings=settings,
            engine=engine,
            session_factory=init_sessionmaker(engine),
            storage=RecordingStorage(settings.UPLOAD_DIR),
        )
        client = TestClient(create_app(state=state))
        client.__enter__()
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
