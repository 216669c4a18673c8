"""Async SQLAlchemy engine, session factory and request dependencies.

Usage in routes:
    from file_service.database import get_db

    @router.get("/items")
    async def list_items(db: AsyncSession = Depends(get_db)):
        result = await db.execute(select(Item))
        return result.scalars().all()
"""
import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from file_service.state import AppState

logger = logging.getLogger(__name__)


def init_engine(database_url: str, pool_size: int = 5) -> AsyncEngine:
    """Create the shared engine. The pool never grows past `pool_size`."""
    logger.info("Connecting to database...")
    return create_async_engine(
        database_url,
        echo=False,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
    )


def init_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_state(request: Request) -> AppState:
    """FastAPI dependency returning the per-process state built at startup."""
    return request.app.state.files


async def get_db(state: AppState = Depends(get_state)):
    """FastAPI dependency that yields an async DB session."""
    async with state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
