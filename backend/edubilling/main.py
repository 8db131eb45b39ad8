"""EduBilling: FastAPI application entry point."""

import asyncio
import signal
import uuid
from contextlib import asynccontextmanager

# CRITICAL ORDER: configure_structlog MUST be called before all other app imports
# (structlog caches the processor chain on first use).
from edubilling.core.logging import configure_structlog
from edubilling.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from edubilling.api.routes import api_router
from edubilling.billing.webhook_secret import resolve_webhook_secret
from edubilling.core.config import get_settings
from edubilling.db import close_db, close_redis, get_session_factory, init_db, init_redis
from edubilling.jobs.scheduler import DailySweepScheduler
from edubilling.middleware.correlation import get_correlation_id, setup_correlation_middleware
from edubilling.notifications.worker import run_notification_worker

logger = structlog.get_logger(__name__)


def validate_settings() -> None:
    """Fail fast on configuration that must never reach production."""
    settings = get_settings()
    if settings.debug:
        return  # Skip in dev/test mode
    if settings.stripe_log_enabled:
        raise RuntimeError("STRIPE_LOG_ENABLED writes the webhook secret to the logs; only allowed with DEBUG")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so /health returns 503 while connections drain
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    # Startup
    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    validate_settings()

    await init_db()
    logger.info("db_initialized")

    await init_redis()
    logger.info("redis_initialized")

    app.state.webhook_secret = await resolve_webhook_secret(get_session_factory(), settings)

    stop_event = asyncio.Event()
    tasks: list[asyncio.Task] = []
    if settings.run_background_workers:
        tasks.append(asyncio.create_task(DailySweepScheduler().run(stop_event)))
        tasks.append(asyncio.create_task(run_notification_worker(stop_event)))
        logger.info("background_workers_started", count=len(tasks))

    yield

    # Shutdown
    logger.info("shutdown_begin")
    stop_event.set()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking."""
    debug_id = str(uuid.uuid4())

    logger.error(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors with debug_id tracking.

    Logs full exception with traceback, returns generic 500 to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Stripe payment webhooks and subscription lifecycle",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_correlation_middleware(app)

    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "edubilling.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
