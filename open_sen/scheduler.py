"""
APScheduler wiring.

One cron job runs the full collection once per day (UTC). The scheduler is
started/stopped as part of the FastAPI lifespan.

CLI usage (run one collection, log the summary, exit):
    python -m open_sen.scheduler --run-now
"""

import asyncio
import sys

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from open_sen.collection import run_collection
from open_sen.config import settings
from open_sen.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

JOB_ID = "daily_collection"


def create_scheduler() -> AsyncIOScheduler:
    """Create and configure the APScheduler instance (not yet started)."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_collection,
        "cron",
        hour=settings.collection_cron_hour,
        minute=settings.collection_cron_minute,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


# --------------------------------------------------------------------------- #
# CLI entry point: python -m open_sen.scheduler --run-now
# --------------------------------------------------------------------------- #

async def _run_now() -> None:
    setup_logging()
    summary = await run_collection()
    logger.info("run_now_result", **summary)


if __name__ == "__main__":
    if "--run-now" in sys.argv:
        asyncio.run(_run_now())
    else:
        print("Usage: python -m open_sen.scheduler --run-now")
        sys.exit(1)
