"""
Click Cleanup Background Job - retention for expired click records.

Expired clicks stop being match candidates as soon as expires_at passes;
this job deletes them once they are older than the retention horizon.

Design:
- Never raises (errors are logged and reported in the result)
- Skips a run if the previous one is still in progress

Usage:
    python -m app.jobs.worker click_cleanup
"""

import asyncio
from datetime import UTC, datetime, timedelta

from app.config import settings
from app.db.helpers import DatabaseError
from app.db.pool import db_pool
from app.features.attribution.repository import ClickRepository, click_repository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ClickCleanupJob:
    """Deletes click records past the retention horizon."""

    def __init__(self, repository: ClickRepository | None = None):
        self.repository = repository or click_repository
        self.is_running = False

    async def run_cleanup(self) -> dict:
        """
        Run one cleanup pass.

        Returns:
            dict: {"success": bool, "deleted_expired_clicks": int, "errors": list}
        """
        if self.is_running:
            logger.warning("Cleanup job already running, skipping")
            return {"success": False, "deleted_expired_clicks": 0, "errors": ["Already running"]}

        self.is_running = True
        start_time = datetime.now(UTC)
        cutoff = start_time - timedelta(days=settings.CLICK_RETENTION_DAYS)

        logger.info("Starting click cleanup job", cutoff=cutoff.isoformat())

        result = {"success": True, "deleted_expired_clicks": 0, "errors": []}

        try:
            result["deleted_expired_clicks"] = await self.repository.delete_expired_before(cutoff)
        except DatabaseError as e:
            error_msg = f"Failed to delete expired clicks: {e}"
            logger.error(error_msg, operation=e.operation)
            result["success"] = False
            result["errors"].append(error_msg)
        finally:
            self.is_running = False

        duration = (datetime.now(UTC) - start_time).total_seconds()
        logger.info("Click cleanup job completed", duration_seconds=duration, result=result)

        return result


click_cleanup_job = ClickCleanupJob()


async def run_click_cleanup_once() -> None:
    """Open the pool, run a single cleanup pass, close the pool."""
    await db_pool.initialize()
    try:
        await click_cleanup_job.run_cleanup()
    finally:
        await db_pool.close()


async def start_click_cleanup_scheduler() -> None:
    """Run cleanup every CLICK_CLEANUP_INTERVAL_SECONDS until cancelled."""
    await db_pool.initialize()
    logger.info(
        "Click cleanup scheduler started",
        interval_seconds=settings.CLICK_CLEANUP_INTERVAL_SECONDS,
        retention_days=settings.CLICK_RETENTION_DAYS,
    )
    try:
        while True:
            await click_cleanup_job.run_cleanup()
            await asyncio.sleep(settings.CLICK_CLEANUP_INTERVAL_SECONDS)
    finally:
        await db_pool.close()


if __name__ == "__main__":
    asyncio.run(run_click_cleanup_once())
