"""
Liveness and readiness probes.

- /healthz: process is up
- /readyz: database pool answers and attribution settings are sane
- /health/database: raw pool diagnostics
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.db.pool import db_health_check
from app.infrastructure.observability.logging import SERVICE_NAME, log_health_check

router = APIRouter(tags=["health"])


async def _database_check() -> dict:
    started = time.time()
    try:
        pool_health = await db_health_check()
    except Exception as e:
        return {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - started) * 1000, 1),
        }

    latency_ms = round((time.time() - started) * 1000, 1)
    healthy = pool_health.get("healthy", False)
    check = {"ok": healthy, "latency_ms": latency_ms}

    pool_stats = pool_health.get("pool_stats")
    if pool_stats:
        check.update(
            pool_size=pool_stats.get("pool_size", 0),
            pool_available=pool_stats.get("pool_available", 0),
            pool_utilization_percent=pool_stats.get("pool_utilization_percent", 0),
            connection_time_ms=pool_health.get("connection_time_ms", 0),
        )
    if "warnings" in pool_health:
        check["warnings"] = pool_health["warnings"]
    if not healthy:
        check["error"] = pool_health.get("error", "Database unhealthy")

    log_health_check("database", healthy, latency_ms, pool_health.get("error"))
    return check


def _configuration_check() -> dict:
    issues = []
    if not settings.DATABASE_URL:
        issues.append("DATABASE_URL not set")
    if not 0 < settings.MATCH_CONFIDENCE_FLOOR <= 1:
        issues.append("MATCH_CONFIDENCE_FLOOR must be in (0, 1]")
    if settings.MATCH_CANDIDATE_LIMIT < 1:
        issues.append("MATCH_CANDIDATE_LIMIT must be positive")
    if settings.CLICK_TTL_HOURS < 1:
        issues.append("CLICK_TTL_HOURS must be positive")

    return {"ok": not issues, "issues": issues or None, "environment": settings.environment}


@router.get("/healthz")
async def healthz():
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/readyz")
async def readyz():
    """Always 200; overall_ok carries the verdict so probes can read the details."""
    checks = {
        "database": await _database_check(),
        "configuration": _configuration_check(),
    }
    overall_ok = all(check["ok"] for check in checks.values())

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}


@router.get("/health/database")
async def database_health():
    return await db_health_check()
