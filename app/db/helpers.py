"""
Query helpers used by the repositories.

Each helper borrows a pooled connection, runs one statement and converts
psycopg failures into DatabaseError, keeping the psycopg error as __cause__
so callers (and with_db_retry) can tell connection trouble from bad SQL.
"""

import asyncio
import functools
from typing import Any

import psycopg

from app.db.pool import get_db_connection
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """A statement failed. `recoverable` means retrying later may succeed."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def _run(operation: str, query: str, params: tuple, consume):
    try:
        async with await get_db_connection() as conn:
            cursor = await conn.execute(query, params)
            return await consume(cursor)
    except psycopg.Error as e:
        logger.error("Database query failed", operation=operation, query=query[:100], error=str(e))
        raise DatabaseError(
            f"Query failed: {e}",
            operation=operation,
            recoverable=isinstance(e, psycopg.OperationalError),
        ) from e


async def fetch_one(query: str, params: tuple = ()) -> dict[str, Any] | None:
    """First row as a dict, or None."""

    async def consume(cursor):
        return await cursor.fetchone()

    return await _run("fetch_one", query, params, consume)


async def fetch_all(query: str, params: tuple = ()) -> list[dict[str, Any]]:
    """All rows as dicts."""

    async def consume(cursor):
        return await cursor.fetchall()

    return await _run("fetch_all", query, params, consume)


async def execute_query(query: str, params: tuple = ()) -> int:
    """
    Run a statement for its effect.

    Returns:
        Number of affected rows
    """

    async def consume(cursor):
        return cursor.rowcount

    return await _run("execute", query, params, consume)


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry a coroutine on connection-level failures with exponential backoff.

    Only wrap idempotent reads: a write whose reply was lost may already
    have committed.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except DatabaseError as e:
                    if not isinstance(e.__cause__, psycopg.OperationalError):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database operation failed after all retries",
                            operation=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise

                    delay = base_delay * (2**attempt)
                    attempt += 1
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
