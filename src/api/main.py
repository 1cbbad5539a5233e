"""
Review Trust FastAPI Application
================================

REST API for review moderation and public review display.

Endpoints:
    GET  /api/health                                 - Health check
    GET  /api/admin/reviews                          - Moderation table
    GET  /api/admin/reviews/stats                    - Overview counters
    GET  /api/admin/reviews/{id}                     - One review
    POST /api/admin/reviews/{id}/transition          - Approve / reject
    GET  /api/events/{event_id}/reviews              - Approved reviews
    GET  /api/events/{event_id}/reviews/summary      - Event summary

Usage:
    uvicorn src.api.main:app --reload --port 8000

    Or with CLI:
    python -m src.api.main
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from ..data.config import get_settings
from ..orchestrator.logging_config import setup_logging
from ..orchestrator.review_pipeline import ReviewPipeline
from .models import HealthResponse
from .review_routes import admin_router, public_router
from . import services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    setup_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_logs,
        log_file=settings.logging.log_file,
    )
    logger.info("Starting Review Trust API...")

    services.get_pipeline()

    yield

    pipeline = services.reset_pipeline()
    if pipeline is not None:
        await pipeline.drain()
    if settings.storage.backend == "postgres":
        from ..data import db
        db.close_pool()
    logger.info("Shutting down Review Trust API...")


app = FastAPI(
    title="Review Trust API",
    description="Review moderation, fake-review detection and sentiment enrichment",
    version="1.0.0",
    lifespan=lifespan,
)

# In production, set CORS_ORIGINS env var (comma-separated)
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

app.include_router(admin_router)
app.include_router(public_router)


# ============================================================================
# HEALTH ENDPOINT
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
def health_check(pipeline: ReviewPipeline = Depends(services.get_pipeline)):
    """
    Health check endpoint.

    Reports the review store, database connectivity (postgres store only),
    and whether sentiment enrichment and admin alerts are active.
    """
    settings = get_settings()

    database = None
    overall = "healthy"
    if settings.storage.backend == "postgres":
        from ..data import db
        database = db.check_health()["status"]
        if database != "connected":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=settings.app_version,
        store=settings.storage.backend,
        database=database,
        sentiment="enabled" if pipeline.sentiment_analyzer is not None else "disabled",
        notifications="enabled" if settings.notifications.enabled else "disabled",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=False,
    )
