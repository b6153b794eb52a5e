"""
Background worker entrypoint.

    deeplink-worker [job]          # or WORKER_JOB=<job>
    python -m app.jobs.worker click_cleanup_once

Jobs:
- click_cleanup: delete clicks past retention every CLICK_CLEANUP_INTERVAL_SECONDS
- click_cleanup_once: a single pass, for cron-style schedulers
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from app.config import settings
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.jobs.click_cleanup_job import run_click_cleanup_once, start_click_cleanup_scheduler

logger = get_logger(__name__)

DEFAULT_JOB = "click_cleanup"

JOB_REGISTRY: dict[str, Callable[[], Awaitable[None]]] = {
    "click_cleanup": start_click_cleanup_scheduler,
    "click_cleanup_once": run_click_cleanup_once,
}


def _resolve_job_name() -> str:
    """First CLI argument wins, then WORKER_JOB, then the default."""
    raw = sys.argv[1] if len(sys.argv) > 1 else os.getenv("WORKER_JOB", DEFAULT_JOB)
    return raw.strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    name = (job_name or _resolve_job_name()).strip().lower()
    job = JOB_REGISTRY.get(name)
    if job is None:
        available = ", ".join(sorted(JOB_REGISTRY))
        raise ValueError(f"Unknown worker job '{name}'. Available jobs: {available}")

    logger.info("Worker starting", job=name)
    await job()


def main() -> None:
    setup_logging(log_level=settings.LOG_LEVEL)
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
