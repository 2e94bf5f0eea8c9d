"""Health check endpoint — public, no identity header required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.config import get_settings
from src.insights.config_loader import get_insights_config
from src.services.store import get_pool

router = APIRouter(tags=["system"])
logger = logging.getLogger("cycleinsights.health")


@router.get("/health")
async def health_check() -> dict:
    """Liveness check. Returns 200 if the API process is up.

    Also performs a lightweight DB connectivity check and reports the
    loaded engine config version.
    """
    settings = get_settings()
    db_ok = False
    try:
        pool = get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        db_ok = True
    except Exception as exc:
        logger.warning("Health check DB query failed: %s", exc)

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "insights_config": get_insights_config().version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
