"""FastAPI application for the MDM engine."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from mdmengine import __version__
from mdmengine.errors import EngineError, NotFoundError, AccessDeniedError
from mdmengine.infrastructure.store_pool import StorePool
from mdmengine.api.routers import (
    data_models,
    attributes,
    records,
    views,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting MDM engine API v{__version__}")
    yield
    StorePool.close_all()
    logger.info("Shutting down MDM engine API")


def error_status(exc: EngineError) -> int:
    """HTTP status for an engine error."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, AccessDeniedError):
        return 403
    return 400


app = FastAPI(
    title="MDM Engine API",
    description="Dynamic schema and attribute engine for master data",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    """Render engine errors as structured JSON."""
    status = error_status(exc)
    if status == 400:
        logger.debug(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=status, content=exc.to_dict())


# Include routers
app.include_router(data_models.router, prefix="/api/v1", tags=["data-models"])
app.include_router(attributes.router, prefix="/api/v1", tags=["attributes"])
app.include_router(records.router, prefix="/api/v1", tags=["records"])
app.include_router(views.router, prefix="/api/v1", tags=["views"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "MDM Engine API",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
