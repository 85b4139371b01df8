"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.core.exceptions import ReadOnlyObjectError, RecordStoreError
from app.core.logging_config import setup_logging
from app.services.grid_service import GridSessionRegistry
from app.services.record_store import RecordStoreClient
from grid_engine.errors import (
    GridError,
    OverlayConflictError,
    SubmissionInProgressError,
    UnknownCriterionError,
    UnknownRowError,
)

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    app.state.record_store = RecordStoreClient.from_settings()
    app.state.grid_registry = GridSessionRegistry(settings.MAX_GRID_SESSIONS)
    yield
    # Shutdown
    logger.info("Shutting down application")
    app.state.grid_registry.clear()
    await app.state.record_store.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Console backend for searching and editing records of arbitrary tables and views",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(GridError)
async def grid_error_handler(request: Request, exc: GridError) -> JSONResponse:
    if isinstance(exc, (OverlayConflictError, SubmissionInProgressError)):
        return _error(status.HTTP_409_CONFLICT, exc.message)
    if isinstance(exc, (UnknownRowError, UnknownCriterionError)):
        return _error(status.HTTP_404_NOT_FOUND, exc.message)
    return _error(status.HTTP_400_BAD_REQUEST, exc.message)


@app.exception_handler(ReadOnlyObjectError)
async def read_only_handler(request: Request, exc: ReadOnlyObjectError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, exc.message)


@app.exception_handler(RecordStoreError)
async def record_store_error_handler(request: Request, exc: RecordStoreError) -> JSONResponse:
    logger.error(f"Record store error on {request.method} {request.url.path}: {exc.message}")
    return _error(status.HTTP_502_BAD_GATEWAY, exc.message)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.APP_VERSION}


# Import and include routers after app is created to avoid circular imports
from app.api.v1.router import api_router

app.include_router(api_router, prefix="/api/v1")
