"""
Formwork Planner API.

The lifespan owns every long-lived resource: the database handle, the
notification client, the application state, the change listener and the
refresh loop. Nothing is a module-level singleton.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from .database import (
    Database,
    DatabaseConnectionError,
    DatabaseConstraintError,
    DatabaseError,
    EntityNotFoundError,
    PasswordResetError,
    ValidationError,
)
from .services.app_state import AppState
from .services.auth import AuthService
from .services.change_feed import ChangeFeed, PostgresChangeListener
from .services.notifications import TaskNotifier
from .utils.background_tasks import drain_background_tasks
from .services.refresh import RefreshLoop
from .web.routes import router as api_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    logger.info(f"Starting {settings.app_name}...")

    db = Database.from_settings(settings)
    try:
        await db.initialize()
    except DatabaseConnectionError as e:
        logger.error(f"Database unavailable, API will answer 502 until it is fixed: {e}")

    notifier = TaskNotifier.from_settings(settings)
    state = AppState.from_database(db, settings, notifier)
    app.state.db = db
    app.state.notifier = notifier
    app.state.app_state = state
    app.state.auth = AuthService.from_settings(state.user_repo, settings)

    if db.initialized:
        try:
            await state.refresh()
        except DatabaseError as e:
            logger.error(f"Initial data load failed: {e}")

    feed = ChangeFeed()
    listener = None
    refresh_loop = RefreshLoop(state, feed, settings.refresh_debounce_seconds)
    if db.initialized and db.is_postgres:
        listener = PostgresChangeListener(db.database_url, settings.change_notify_channel, feed)
        try:
            await listener.start()
            refresh_loop.start()
        except Exception as e:
            logger.warning(f"Change listener failed to start, realtime refresh disabled: {e}")
            listener = None
    app.state.change_feed = feed

    yield

    logger.info("Shutting down...")
    await refresh_loop.stop()
    if listener is not None:
        try:
            await listener.stop()
        except Exception as e:
            logger.warning(f"Failed to stop change listener: {e}")
    await drain_background_tasks()
    await db.close()
    logger.info("Shutdown complete")


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": str(exc)})


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Projects, tasks, time tracking and a lightweight ERP",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url] if settings.frontend_url != "*" else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Root endpoint - health check."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": "1.0.0",
        }

    @app.get("/health")
    async def health_check(request: Request):
        db_health = {"status": "not_configured"}
        db = getattr(request.app.state, "db", None)
        if db is not None:
            db_health = await db.health_check()

        state = getattr(request.app.state, "app_state", None)
        return {
            "status": "healthy" if db_health.get("status") == "healthy" else "degraded",
            "database": db_health,
            "last_refresh_error": state.error if state else None,
        }

    @app.exception_handler(EntityNotFoundError)
    async def not_found_handler(request: Request, exc: EntityNotFoundError):
        return _error(404, exc)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error(422, exc)

    @app.exception_handler(PasswordResetError)
    async def password_reset_handler(request: Request, exc: PasswordResetError):
        return _error(400, exc)

    @app.exception_handler(DatabaseConstraintError)
    async def constraint_handler(request: Request, exc: DatabaseConstraintError):
        return _error(409, exc)

    @app.exception_handler(DatabaseError)
    async def database_error_handler(request: Request, exc: DatabaseError):
        logger.error(f"Database error on {request.url.path}: {exc}")
        return _error(502, exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
