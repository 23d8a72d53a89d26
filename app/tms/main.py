"""
FastAPI application for the rate confirmation extraction service.

Provides endpoints for:
- Parsing rate confirmation documents into structured loads
- Managing the authenticated user's loads
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .database import init_db
from .models import HealthResponse
from .routers import loads, rateconf
from .services.extraction import ExtractionError

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Stable error kind -> HTTP status
ERROR_STATUS_CODES = {
    "InvalidInput": status.HTTP_400_BAD_REQUEST,
    "ExtractionUnavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "MalformedExtraction": status.HTTP_502_BAD_GATEWAY,
    "PersistenceFailure": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Rate Confirmation Service...")
    # Note: In production, use Alembic migrations instead of init_db()
    init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down Rate Confirmation Service...")


# Create FastAPI application
app = FastAPI(
    title="Rate Confirmation API",
    description="Extracts structured freight loads from rate confirmation documents",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for the browser frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(
        status="healthy",
        message="Rate Confirmation API is running",
        version=__version__,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy", version=__version__)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(rateconf.router)
app.include_router(loads.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request: Request, exc: ExtractionError):
    """Render pipeline failures as structured errors with a stable kind tag."""
    status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=exc.to_dict())
