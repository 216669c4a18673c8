"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from file_service.config import Settings, get_settings
from file_service.database import init_engine, init_sessionmaker
from file_service.errors import register_error_handlers
from file_service.logging_config import setup_logging
from file_service.models import Base
from file_service.routes.files import router as files_router
from file_service.services.storage import init_storage
from file_service.state import AppState

logger = logging.getLogger(__name__)


async def build_state(settings: Settings) -> AppState:
    """Connect the database pool and the storage backend."""
    engine = init_engine(settings.DATABASE_URL, pool_size=settings.DB_POOL_SIZE)
    storage = await init_storage(settings)
    return AppState(
        settings=settings,
        engine=engine,
        session_factory=init_sessionmaker(engine),
        storage=storage,
    )


def create_app(settings: Optional[Settings] = None, state: Optional[AppState] = None) -> FastAPI:
    """Assemble the app. A prebuilt `state` skips connecting on startup."""
    if state is not None:
        settings = state.settings
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build shared state and create tables on startup."""
        app_state = state or await build_state(settings)
        async with app_state.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database connection established")
        app.state.files = app_state

        yield

        await app_state.engine.dispose()

    app = FastAPI(
        title="File Service API",
        version="1.0.0",
        description="Upload, deduplicate and serve files on local disk or S3.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/health", response_class=PlainTextResponse)
    async def health_check():
        return "OK"

    app.include_router(files_router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    app = create_app(settings)
    logger.info(f"Server listening on {settings.API_HOST}:{settings.API_PORT}")
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    run()
