"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tutorhub.api.routes import router
from tutorhub.api.middleware import setup_cors, setup_rate_limiting
from tutorhub.config import LOG_LEVEL, validate_config
from tutorhub.db import create_store
from tutorhub.db.postgres_store import PostgresGamificationStore
from tutorhub.db.schema import ensure_schema
from tutorhub.db.store import GamificationStore
from tutorhub.exceptions import (
    GamificationError,
    StorageConflictError,
    StorageError,
)
from tutorhub.monitoring.sentry_config import capture_exception, init_sentry
from tutorhub.services.container import init_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)

STATUS_BY_REASON = {
    "validation": 400,
    "not_found": 404,
    "configuration": 500,
}


def status_for_error(exc: GamificationError) -> int:
    """HTTP status code for a gamification error"""
    if isinstance(exc, StorageConflictError):
        return 409
    if isinstance(exc, StorageError):
        return 503
    return STATUS_BY_REASON.get(exc.reason, 500)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    store = app.state.container.store
    if isinstance(store, PostgresGamificationStore):
        await store.database.init_pool()
        await ensure_schema(store.database)
        logger.info("Database pool initialized")

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    await store.close()
    logger.info("Gamification store closed")


def create_api_application(store: Optional[GamificationStore] = None) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        store: Gamification store to serve (built from STORE_BACKEND if omitted)
    """
    if store is None:
        validate_config()
        store = create_store()
    init_sentry()

    app = FastAPI(
        title="TutorHub Gamification API",
        description="XP, levels, streaks, badges and leaderboard for TutorHub students",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.container = init_container(store)

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)

    # Include routes
    app.include_router(router)

    @app.exception_handler(GamificationError)
    async def gamification_exception_handler(request: Request, exc: GamificationError):
        status_code = status_for_error(exc)
        if status_code >= 500:
            capture_exception(exc, operation=exc.operation, request_id=exc.request_id)
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        capture_exception(exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    logger.info("FastAPI application created")

    return app
