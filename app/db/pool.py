"""
PostgreSQL connection pool for the attribution store.

Every pooled connection runs in autocommit with dict rows, so a single
statement (in particular the conditional UPDATE that consumes a click)
commits on its own. Multi-statement work goes through transaction().
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Utilization above which the pool reports unhealthy / warns
UNHEALTHY_UTILIZATION = 90
WARN_UTILIZATION = 80


class DatabasePoolManager:
    """Opens the pool on startup, hands out connections, closes on shutdown."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def ready(self) -> bool:
        return self._initialized and not self._closed

    async def initialize(self) -> None:
        if self._initialized:
            logger.warning("Database pool already initialized")
            return
        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        pool_config = settings.get_db_pool_config()
        logger.info(
            "Opening database pool",
            host=settings.database_host(),
            environment=settings.environment,
            **pool_config,
        )

        self.pool = AsyncConnectionPool(
            conninfo=settings.DATABASE_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **pool_config,
        )

        try:
            await self.pool.open()
            await self.pool.wait()
            # _probe goes through connection(), which requires the flag
            self._initialized = True
            latency_ms = await self._probe()
        except Exception as e:
            logger.error("Database pool failed to open", error=str(e))
            self._initialized = False
            try:
                await self.pool.close()
            except Exception as close_error:
                logger.warning("Error closing half-open pool", error=str(close_error))
            self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info("Database pool ready", probe_ms=latency_ms)

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Per-connection session setup, run once when the pool creates a connection."""
        try:
            conn.row_factory = dict_row
            await conn.set_autocommit(True)

            # SET cannot be parameterized; inline the name as a literal
            app_name = f"deferred-deeplink-{settings.environment}"
            await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
            await conn.execute("SET timezone = 'UTC'")
            await conn.execute("SET statement_timeout = '30s'")
        except Exception:
            logger.exception("Failed to configure database connection")

    async def _probe(self) -> float:
        """Round-trip a SELECT 1 and return the latency in milliseconds."""
        started = time.perf_counter()
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT 1 AS ok")
            row = await cursor.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError(f"Unexpected probe result: {row!r}")
        return round((time.perf_counter() - started) * 1000, 2)

    async def close(self) -> None:
        if not self.ready:
            return

        logger.info("Closing database pool")
        try:
            await asyncio.wait_for(self.pool.close(), timeout=30.0)
        except TimeoutError:
            logger.warning("Database pool close timed out")
        except Exception as e:
            logger.error("Error closing database pool", error=str(e))
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a pooled connection (autocommit, dict rows)."""
        if not self.ready:
            raise RuntimeError("Database pool is not open")

        try:
            async with self.pool.connection() as conn:
                yield conn
        except Exception as e:
            logger.error("Database connection error", error=str(e), error_type=type(e).__name__)
            raise

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a connection wrapped in a transaction; rolls back on error."""
        async with self.connection() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> dict[str, Any]:
        """
        Pool utilization plus a live probe.

        Returns:
            dict: healthy flag, connection_time_ms, pool_stats and optional warnings
        """
        if not self.ready:
            reason = "Pool is closed" if self._closed else "Pool not initialized"
            return {"healthy": False, "error": reason, "service": "database_pool"}

        try:
            stats = self.pool.get_stats()
            connection_time_ms = await self._probe()
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        pool_size = stats.get("pool_size", 0)
        pool_available = stats.get("pool_available", 0)
        requests_waiting = stats.get("requests_waiting", 0)
        utilization = (pool_size - pool_available) / pool_size * 100 if pool_size else 0

        health = {
            "healthy": utilization < UNHEALTHY_UTILIZATION,
            "service": "database_pool",
            "connection_time_ms": connection_time_ms,
            "pool_stats": {
                "pool_size": pool_size,
                "pool_available": pool_available,
                "pool_utilization_percent": round(utilization, 2),
                "requests_waiting": requests_waiting,
            },
        }

        warnings = []
        if utilization > WARN_UTILIZATION:
            warnings.append(f"High pool utilization: {utilization:.1f}%")
        if requests_waiting:
            warnings.append(f"Requests waiting for connections: {requests_waiting}")
        if warnings:
            health["warnings"] = warnings

        return health


db_pool = DatabasePoolManager()


async def get_db_connection():
    """Connection context manager from the shared pool."""
    return db_pool.connection()


async def get_db_transaction():
    """Transaction context manager from the shared pool."""
    return db_pool.transaction()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
