# /health endpoints for monitoring and deployment checks
from fastapi import APIRouter
from datetime import datetime
import os

from chartradar.core.config import settings

router = APIRouter()

@router.get("/health")
async def health_check():
    """
    Health check endpoint for load balancers and monitoring.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": os.getenv("APP_VERSION", "1.0.0"),
        "environment": settings.app_env,
    }

@router.get("/health/detailed")
async def detailed_health_check():
    """
    Detailed health check: database, redis and optional feature switches.
    """
    from chartradar.db.session import SessionLocal
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    import redis

    checks = {
        "database": False,
        "redis": False,
        "toptracker_credentials": bool(
            settings.toptracker_cookie or (settings.toptracker_email and settings.toptracker_password)
        ),
        "songstats_enabled": bool(settings.songstats_api_key),
        "enrichment_enabled": bool(settings.enrichment_enabled and settings.openai_api_key),
        "timestamp": datetime.utcnow().isoformat()
    }

    # Database check
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except SQLAlchemyError as e:
        checks["database_error"] = str(e)
    finally:
        db.close()

    # Redis check
    try:
        r = redis.from_url(settings.redis_url)
        r.ping()
        checks["redis"] = True
    except redis.RedisError as e:
        checks["redis_error"] = str(e)

    checks["status"] = "healthy" if all([checks["database"], checks["redis"]]) else "degraded"

    return checks
