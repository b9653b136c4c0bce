"""Editorial AI Suggestions: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# configure_structlog must run before the other imports below: structlog
# caches the processor chain on first use.
from editorial_ai.core.logging import configure_structlog
from editorial_ai.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from editorial_ai.api.routes import api_router
from editorial_ai.core.config import get_settings
from editorial_ai.db import close_redis, get_redis, init_redis
from editorial_ai.middleware.correlation import (
    setup_correlation_middleware,
    get_correlation_id,
)
from editorial_ai.suggestions.reconciler import StaleAttemptSweeper
from editorial_ai.suggestions.state_machine import SuggestionLifecycle
from editorial_ai.suggestions.store import AttemptStore

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: Redis client, then the stale-attempt sweeper. Shutdown in reverse order."""
    # SIGTERM flips this so /api/health answers 503 while connections drain
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    await init_redis()
    logger.info("redis_initialized")

    sweeper = None
    if settings.suggestion_sweep_enabled:
        sweeper = StaleAttemptSweeper(
            SuggestionLifecycle(AttemptStore(get_redis())),
            stale_after_seconds=settings.suggestion_stale_after_seconds,
            interval_seconds=settings.suggestion_sweep_interval_seconds,
        )
        sweeper.start()
    app.state.sweeper = sweeper

    yield

    logger.info("shutdown_begin")
    if sweeper is not None:
        await sweeper.stop()
    await close_redis()
    logger.info("shutdown_complete")


def _error_context(request: Request) -> dict:
    """Fields every error log line carries; debug_id is echoed to the client."""
    return {
        "debug_id": str(uuid.uuid4()),
        "correlation_id": get_correlation_id(),
        "path": request.url.path,
        "method": request.method,
        "user_id": getattr(request.state, "user_id", None),
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTPException → sanitized JSON with a debug_id; 4xx logged as warnings."""
    context = _error_context(request)
    log = logger.warning if exc.status_code < 500 else logger.error
    log("http_exception", status_code=exc.status_code, detail=exc.detail, **context)

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": context["debug_id"]},
        headers=exc.headers,
    )


async def redis_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """Redis outages outside the attempt store (event and profile lookups) → 503."""
    context = _error_context(request)
    logger.error("redis_unavailable", error=str(exc), error_type=type(exc).__name__, **context)

    return JSONResponse(
        status_code=503,
        content={"detail": "Suggestion store unavailable", "debug_id": context["debug_id"]},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything else → generic 500; the traceback stays in the logs."""
    context = _error_context(request)
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
        **context,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": context["debug_id"]},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(RedisConnectionError)(redis_unavailable_handler)
    app.exception_handler(RedisTimeoutError)(redis_unavailable_handler)
    app.exception_handler(Exception)(generic_exception_handler)


def create_app() -> FastAPI:
    """Build the app: middleware, error handlers, routes under /api."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="AI content suggestions for the editorial calendar",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Added last so it wraps CORS and tags every request
    setup_correlation_middleware(app)

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "editorial_ai.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
