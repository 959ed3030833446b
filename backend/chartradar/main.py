"""
FastAPI Application - Chart Radar
Chart harvesting and artist lead scoring
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging
import time

from chartradar.core.config import settings
from chartradar.api import (
    health_router,
    pipeline_router,
    toptracker_router,
    oracle_router,
    leads_router,
    artists_router,
    catalog_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Performance monitoring middleware
class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))
        # Log slow requests (>1s); backfills are expected to be slow
        if process_time > 1.0:
            logger.warning(f"Slow request: {request.method} {request.url.path} took {process_time:.2f}s")
        return response


app = FastAPI(
    title=settings.app_name,
    description="Music chart harvesting, artist resolution and lead scoring",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

cors_origins = [settings.frontend_url, settings.backend_url]
if settings.app_env == "development":
    cors_origins.extend(["http://localhost:3000", "http://127.0.0.1:3000"])

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
    max_age=600,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Health check endpoints (no prefix)
app.include_router(health_router, tags=["Health"])

# ============================================================================
# API ROUTE REGISTRATION
# ============================================================================
app.include_router(pipeline_router, prefix="/api/v1")
app.include_router(toptracker_router, prefix="/api/v1")
app.include_router(oracle_router, prefix="/api/v1")
app.include_router(leads_router, prefix="/api/v1")
app.include_router(artists_router, prefix="/api/v1")
app.include_router(catalog_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.app_name}")
    # Schema is managed by Alembic migrations
    logger.info("Application started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.app_name}")
