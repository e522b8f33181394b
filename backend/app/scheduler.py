"""
Background Scheduler - Periodic JTS Refresh

In-process alternative to Celery beat for single-node deployments. Uses
APScheduler to refresh the stored JTS of the first batch_refresh_limit
freelancers (onboarded or not).

Default Schedule: Every 6 hours (configurable via BATCH_REFRESH_INTERVAL_HOURS)

Run standalone with the `jobtolk-scheduler` console script, or wrap another
asyncio host in `scheduler_lifespan()`.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import get_settings
from app.schemas import BatchResult
from app.services.ranking import RankingSystem, build_ranking_system

logger = logging.getLogger(__name__)

settings = get_settings()
scheduler = AsyncIOScheduler()

_system: Optional[RankingSystem] = None


def get_system() -> RankingSystem:
    global _system
    if _system is None:
        _system = build_ranking_system(settings)
    return _system


async def refresh_jts_scores() -> BatchResult:
    """
    Scheduled task that refreshes up to batch_refresh_limit stored scores.

    Failures for individual users are collected in the result.
    """
    logger.info("Starting scheduled JTS refresh")
    result = await get_system().batch_refresh(limit=settings.batch_refresh_limit)
    logger.info(
        f"Scheduled JTS refresh done: {result.succeeded} succeeded, {result.failed} failed"
    )
    return result


async def trigger_manual_refresh() -> BatchResult:
    """Trigger an immediate JTS refresh"""
    return await refresh_jts_scores()


def start_scheduler():
    """Start the background scheduler"""
    scheduler.add_job(
        refresh_jts_scores,
        trigger=IntervalTrigger(hours=settings.batch_refresh_interval_hours),
        id="refresh_jts_scores",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started: refreshing JTS every {settings.batch_refresh_interval_hours} hours"
    )


async def stop_scheduler():
    """Stop the background scheduler and release the ranking system"""
    global _system
    scheduler.shutdown()
    if _system is not None:
        await _system.close()
        _system = None


@asynccontextmanager
async def scheduler_lifespan() -> AsyncIterator[RankingSystem]:
    """
    Manage the scheduler lifecycle inside an asyncio host.

    Startup:
        1. Create ranking tables if missing
        2. Start the periodic JTS refresh

    Shutdown:
        1. Stop the scheduler and close the ranking system
    """
    system = get_system()
    await system.init()
    start_scheduler()
    try:
        yield system
    finally:
        await stop_scheduler()


async def serve() -> None:
    """Run the scheduler until cancelled."""
    async with scheduler_lifespan():
        await asyncio.Event().wait()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")
