"""Process-wide handle shared by all request handlers."""
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from file_service.config import Settings
from file_service.services.storage import BaseStorage


@dataclass(frozen=True)
class AppState:
    """Built once at startup and never mutated afterwards."""
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    storage: BaseStorage
