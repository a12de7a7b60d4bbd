"""
Revenue Tracker
Main FastAPI Application
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from app.core.config import settings
from app.api.revenue import router as revenue_router
from app.services.revenue_store import get_revenue_store

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper()))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Revenue Tracker API...")
    logger.info(
        "Config: env=%s store_backend=%s ingest_enabled=%s page_size=%s/%s",
        settings.ENVIRONMENT,
        settings.REVENUE_STORE_BACKEND,
        settings.REVENUE_INGEST_ENABLED,
        settings.DEFAULT_PAGE_SIZE,
        settings.MAX_PAGE_SIZE,
    )
    # Fail at startup, not on the first request, if the backend is misconfigured.
    get_revenue_store()
    yield
    logger.info("Shutting down Revenue Tracker API...")


app = FastAPI(
    title="Revenue Tracker API",
    description="Records call-to-action revenue events and serves per-channel revenue reports",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
_allowed_origins = [settings.FRONTEND_URL, "http://localhost:3000", "http://localhost:5173"]
if settings.CORS_ALLOW_ALL:
    _allowed_origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Include routers
app.include_router(revenue_router, prefix="/api/track/revenue", tags=["revenue"])


@app.get("/health")
async def health_check():
    """Liveness check (should be fast and not depend on external services)."""
    return {
        "status": "ok",
        "service": "revenue-tracker",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/ready")
def readiness_check():
    """Readiness check (verifies the event store answers)."""
    try:
        store = get_revenue_store()
        store.ping()
        return {"status": "ready", "store": type(store).__name__}
    except Exception as e:
        return JSONResponse(status_code=503, content={"status": "not_ready", "error": str(e)})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Revenue Tracker API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }
