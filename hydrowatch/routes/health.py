"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from hydrowatch.config.firebase import get_db
from hydrowatch.core.settings import settings
from hydrowatch.utils.concurrency import run_sync

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Returns 200 while the process is serving requests."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db")
async def database_health():
    """
    Database connectivity check.
    Lists collections, which needs a round trip but no particular data.
    """
    try:
        collections = await run_sync(lambda: list(get_db().collections()))
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        detail = "Database connection failed"
        if settings.is_development:
            detail = f"{detail}: {e}"
        raise HTTPException(status_code=503, detail=detail)

    return {
        "status": "healthy",
        "database": "mock" if settings.USE_MOCK_DB else "firestore",
        "connected": True,
        "collections_count": len(collections),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
