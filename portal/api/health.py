"""Liveness and readiness probes.

/health answers "is the process alive" and always returns 200, with a
per-dependency breakdown in the body.  /ready answers "can this
instance serve traffic": 503 when the configured database is
unreachable.  Redis is not critical for readiness because every Redis
feature has an in-memory fallback.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from portal.db.engine import engine, ping_database
from portal.db.redis import ping_redis, redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _database_status() -> str:
    if engine is None:
        return "not_configured"
    try:
        await ping_database()
    except Exception:
        logger.exception("Database health check failed")
        return "down"
    return "ok"


async def _redis_status() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await ping_redis()
    except Exception:
        logger.exception("Redis health check failed")
        return "down"
    return "ok"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _database_status(),
        "redis": await _redis_status(),
    }
    overall = "degraded" if "down" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> JSONResponse:
    database = await _database_status()
    if database == "down":
        return JSONResponse(
            status_code=503, content={"status": "unavailable", "database": database}
        )
    return JSONResponse(status_code=200, content={"status": "ready", "database": database})
