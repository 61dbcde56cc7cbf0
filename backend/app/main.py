"""
Tubely API - FastAPI Application Entry Point.

Creates the FastAPI application for the Tubely upload service:
- Lifespan: logging setup, MongoDB connection, asset directory, service context
- Upload body ceilings, CORS and request logging middleware
- `/assets` static mount serving locally stored thumbnails
- `/api` router with the upload and video endpoints
- Root and health endpoints

Run locally with:
    python -m app.main
"""

import logging
import time
import uuid

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app import __app_name__, __version__
from app.api import api_router
from app.config import get_settings
from app.core.context import build_context
from app.core.database import close_db, init_db
from app.core.upload_limits import UploadSizeLimitMiddleware
from app.utils.logger import setup_logging


logger = logging.getLogger(__name__)

# Status codes >= 400 are logged at WARNING
HTTP_ERROR_THRESHOLD = 400


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown.

    Startup fails if MongoDB cannot be reached; the upload endpoints have no
    useful degraded mode without their video records.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info(f"{settings.app_name} API starting (env={settings.app_env}, debug={settings.debug})")

    database = await init_db(settings)

    settings.assets_root.mkdir(parents=True, exist_ok=True)
    if settings.upload_tmp_dir is not None:
        settings.upload_tmp_dir.mkdir(parents=True, exist_ok=True)

    app.state.context = build_context(settings, database)
    logger.info(f"{settings.app_name} API ready on {settings.host}:{settings.port}")

    try:
        yield
    finally:
        logger.info(f"{settings.app_name} API shutting down")
        app.state.context = None
        await close_db(database)


# =============================================================================
# FastAPI Application Instance
# =============================================================================

_settings = get_settings()

app = FastAPI(
    title=f"{_settings.app_name} API",
    description=(
        "Video hosting backend: upload thumbnails and MP4 files for your videos. "
        "Videos are remuxed for fast start and stored in S3-compatible object storage."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)


# =============================================================================
# Middleware Configuration
# =============================================================================

# Caps upload bodies before FastAPI parses the multipart form
app.add_middleware(
    UploadSizeLimitMiddleware,
    limits={
        "/api/thumbnail_upload/": _settings.max_thumbnail_size_bytes,
        "/api/video_upload/": _settings.max_video_size_bytes,
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Log each request with its duration.

    Adds `X-Request-ID` (echoing the client's header when present) and
    `X-Process-Time` to every response.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Request failed: %s %s [Request-ID: %s]",
            request.method,
            request.url.path,
            request_id,
        )
        raise

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.DEBUG if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        f"Request completed: {request.method} {request.url.path} "
        f"[Status: {response.status_code}] [Time: {process_time_ms}ms] "
        f"[Request-ID: {request_id}]",
    )
    return response


# =============================================================================
# Routes
# =============================================================================

app.include_router(api_router, prefix="/api")

# Locally stored thumbnails; directory is created in the lifespan
app.mount("/assets", StaticFiles(directory=_settings.assets_root, check_dir=False), name="assets")


@app.get("/", tags=["root"])
async def root() -> dict[str, Any]:
    """API name, version and docs location."""
    return {
        "name": f"{__app_name__} API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check(request: Request) -> dict[str, Any]:
    """
    Liveness and database health.

    Example Response:
        {"status": "healthy", "database": "connected",
         "timestamp": "2026-01-15T10:30:00+00:00", "service": "Tubely API"}
    """
    context = getattr(request.app.state, "context", None)
    database_ok = bool(context and context.database and await context.database.ping())
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unavailable",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": f"{__app_name__} API",
    }


# =============================================================================
# Main Execution Block
# =============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level,
    )
