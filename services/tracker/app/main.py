"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from qrtrack_shared import ScanEvent, TrackedCode
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import redirect_router, v1_router
from app.core.config import get_settings
from app.core.database import close_db, init_db
from app.core.deps import add_scan_listener
from app.core.exceptions import PersistenceReadError, PersistenceWriteError, QRTrackError
from app.core.observability import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    record_scan,
    setup_observability,
)
from app.core.rate_limit import limiter
from app.core.redis import close_redis
from app.services import close_code_repository

settings = get_settings()

# Get logger (will be configured by setup_observability)
logger = structlog.get_logger()


async def count_scan(code: TrackedCode, scan: ScanEvent) -> None:
    """Scan listener feeding the Prometheus counter."""
    record_scan()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info(
        "Starting QRTrack",
        version=settings.app_version,
        storage_backend=settings.storage_backend,
    )
    if settings.storage_backend == "sql":
        await init_db()
        logger.info("Database tables ready")

    yield

    logger.info("Shutting down QRTrack")
    await close_code_repository()
    await close_redis()
    await close_db()
    logger.info("Storage connections closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="QR codes with scan tracking and analytics",
    lifespan=lifespan,
)

# Set up observability (logging, tracing, metrics, Sentry)
setup_observability(app)
add_scan_listener(count_scan)

# Rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(QRTrackError)
async def qrtrack_exception_handler(request: Request, exc: QRTrackError) -> JSONResponse:
    """Map service errors to their HTTP status."""
    if isinstance(exc, (PersistenceReadError, PersistenceWriteError)):
        logger.error(
            "Storage error",
            error_type=type(exc).__name__,
            detail=exc.detail,
            cause=str(exc.__cause__) if exc.__cause__ else None,
        )
    else:
        logger.warning(
            "Request rejected",
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            detail=exc.detail,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Middleware stack (first added = innermost)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

app.include_router(v1_router)

# Tracking redirects live under /track/{code_id}
app.include_router(redirect_router)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "qrtrack",
        "storage_backend": settings.storage_backend,
    }


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint, also the default fallback for unknown tracking ids."""
    return {"message": "Welcome to QRTrack", "version": settings.app_version}
