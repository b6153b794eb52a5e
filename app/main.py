"""
Deferred deep-link service entrypoint.

Startup opens the Postgres pool and, unless disabled, creates the
attribution tables. Shutdown closes the pool.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.db.pool import db_pool
from app.db.schema import ensure_schema
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.middleware import RequestContextMiddleware
from app.routes import click, health, match, referral

setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Service starting",
        environment=settings.environment,
        database_host=settings.database_host(),
        confidence_floor=settings.MATCH_CONFIDENCE_FLOOR,
        click_ttl_hours=settings.CLICK_TTL_HOURS,
    )

    await db_pool.initialize()
    try:
        if settings.AUTO_CREATE_SCHEMA:
            await ensure_schema()
    except Exception as e:
        logger.error("Schema bootstrap failed", error=str(e))
        await db_pool.close()
        raise

    yield

    logger.info("Service shutting down")
    await db_pool.close()


app = FastAPI(
    title="Deferred Deep Link Service",
    description="Referral click recording and deferred install attribution",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(click.router)
app.include_router(match.router)
app.include_router(referral.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return response


# Outermost, so request_id is bound before log_requests runs
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
