"""FastAPI application for the event gallery.

This module provides the main FastAPI application with health endpoints,
API routes, error mapping and lifecycle management.

Run with:
    uvicorn app.main:app --reload

Examples:
    >>> # Health check
    >>> curl http://localhost:3001/health

    >>> # API docs
    >>> # Open http://localhost:3001/docs

Tests:
    - tests/integration/test_api_events.py
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from app import __version__
from app.api import router as api_router
from app.api.deps import close_stores, get_metadata_store
from app.config import MetadataBackend, StorageBackendType, get_settings
from app.database import close_db, init_db
from app.errors import GalleryError, ValidationError
from app.metadata.base import MetadataStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Response models
class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    metadata: bool
    metadata_backend: str
    storage_backend: str


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str
    detail: str | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown tasks:
    - Create tables when the SQL metadata backend is used
    - Close stores and connections on shutdown
    """
    logger.info(f"Starting event gallery v{__version__}")

    if settings.METADATA_BACKEND == MetadataBackend.SQL:
        await init_db()
        logger.info("Database initialized")

    yield

    logger.info("Shutting down event gallery")
    await close_stores()
    await close_db()


settings = get_settings()

app = FastAPI(
    title="Event Gallery",
    description="Event photo gallery with guest uploads and ZIP downloads",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else [settings.PUBLIC_BASE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)

if settings.STORAGE_BACKEND == StorageBackendType.LOCAL:
    Path(settings.STORAGE_ROOT).mkdir(parents=True, exist_ok=True)
    app.mount("/blobs", StaticFiles(directory=settings.STORAGE_ROOT), name="blobs")


# Exception handlers
@app.exception_handler(GalleryError)
async def gallery_exception_handler(request, exc: GalleryError):
    """Map domain errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    detail = exc.field if isinstance(exc, ValidationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "detail": detail},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions with consistent response format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "detail": None},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")

    if settings.DEBUG:
        detail = str(exc)
    else:
        detail = None

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "detail": detail},
    )


# Health endpoints
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(
    store: MetadataStore = Depends(get_metadata_store),
) -> HealthResponse:
    """Check application health.

    Returns:
        HealthResponse with metadata store status and configured backends.
    """
    metadata_healthy = await store.healthy()

    return HealthResponse(
        status="healthy" if metadata_healthy else "degraded",
        version=__version__,
        metadata=metadata_healthy,
        metadata_backend=settings.METADATA_BACKEND.value,
        storage_backend=settings.STORAGE_BACKEND.value,
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint with basic info."""
    return {
        "name": "Event Gallery",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# Entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=3001,
        reload=settings.DEBUG,
    )
