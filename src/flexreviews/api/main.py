"""
FlexReviews FastAPI Application
===============================

REST API behind the reviews dashboard and the public property pages.

Endpoints:
    GET  /api/health          - Health check
    *    /api/reviews/...     - Review routes (see review_routes)
    GET  /api/listings/...    - Listing catalog

Usage:
    uvicorn flexreviews.api.main:app --reload --port 8000

    Or with CLI:
    python -m flexreviews.api.main
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import os

from .. import __version__
from ..exceptions import ConfigurationError, QueryValidationError
from ..logging_config import setup_logging_from_settings
from .models import HealthResponse, SourceHealth
from .review_routes import router as review_router
from .services import ReviewService, get_review_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging_from_settings()
    logger.info("Starting FlexReviews API...")

    service = get_review_service()
    service.init()
    logger.info("Services initialized")

    yield

    logger.info("Shutting down FlexReviews API...")


# Create FastAPI app
app = FastAPI(
    title="FlexReviews API",
    description="Guest review aggregation, curation and analytics",
    version=__version__,
    lifespan=lifespan,
)

# CORS configuration
# Set CORS_ORIGINS (comma-separated) for deployed dashboard domains
_default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra_origins = os.getenv("CORS_ORIGINS", "")
if _extra_origins:
    _default_origins.extend([o.strip() for o in _extra_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=_default_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(review_router)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(QueryValidationError)
async def query_validation_error_handler(request: Request, exc: QueryValidationError):
    return JSONResponse(
        status_code=400,
        content={"status": "error", "message": exc.message, "param": exc.param},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Request failed, no review source configured: {exc.message}")
    return JSONResponse(status_code=503, content={"status": "error", "message": exc.message})


# ============================================================================
# HEALTH ENDPOINT
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check(service: ReviewService = Depends(get_review_service)):
    """
    Health check endpoint.

    Reports which review sources are configured and whether the approval
    state on disk may be behind the in-memory state.
    """
    status = service.integration_status()

    sources = [
        SourceHealth(name=s["name"], configured=s["configured"], status=s["status"])
        for s in status["sources"]
    ]
    approvals = status["approvals"]
    overall = "degraded" if approvals["isStale"] else "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        environment=service.settings.environment,
        sources=sources,
        approvedReviews=approvals["count"],
        approvalStateStale=approvals["isStale"],
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flexreviews.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=False,
    )
