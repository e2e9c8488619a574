"""
Background refresh monitor using APScheduler.
Periodically runs a refresh cycle so prices and rates stay current.
"""

import asyncio
import logging
import sys

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from app import ZenWealthApp, configure_logging
from config import get_settings
from services import RefreshOutcome, format_amount

logger = logging.getLogger(__name__)

JOB_ID = 'portfolio_refresh'


async def refresh_job(app: ZenWealthApp):
    """
    Main job function. Called by the scheduler at the configured interval.
    Overlapping runs are dropped by the coordinator's single-flight guard.
    """
    logger.info("=" * 60)
    logger.info("Starting scheduled portfolio refresh...")

    report = await app.start_refresh()
    if report.outcome == RefreshOutcome.SKIPPED:
        logger.info("Previous refresh still running, skipped")
        return report

    if report.degraded:
        logger.warning(
            f"Refresh degraded (rates: {report.rates_error or 'ok'}, "
            f"prices: {report.prices_error or 'ok'})"
        )

    summary = app.summary()
    logger.info(
        f"Portfolio value: {format_amount(summary.total_value)} {summary.base_currency} "
        f"({summary.asset_count} assets, {report.assets_repriced} repriced)"
    )
    logger.info("=" * 60)
    return report


def start_monitor_scheduler(app: ZenWealthApp, interval_minutes: int = None) -> AsyncIOScheduler:
    """
    Start the scheduler on the running event loop.
    The job first fires one interval after start; run_monitor performs the initial refresh.
    """
    interval = interval_minutes or get_settings().refresh_interval_minutes
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        refresh_job,
        trigger=IntervalTrigger(minutes=interval),
        args=[app],
        id=JOB_ID,
        name='Portfolio Refresh',
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )

    scheduler.start()
    logger.info(f"Refresh monitor started. Running every {interval} minutes.")
    return scheduler


async def run_monitor():
    """Run the initial refresh, then keep refreshing until interrupted."""
    app = ZenWealthApp.bootstrap()
    await refresh_job(app)
    scheduler = start_monitor_scheduler(app)
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        logger.info("Shutting down refresh monitor...")
        scheduler.shutdown(wait=False)


async def run_one_time_refresh():
    """Run a single refresh cycle (useful for testing)."""
    logger.info("Running one-time portfolio refresh...")
    app = ZenWealthApp.bootstrap()
    return await refresh_job(app)


if __name__ == "__main__":
    load_dotenv()
    configure_logging()

    if len(sys.argv) > 1 and sys.argv[1] == "--once":
        asyncio.run(run_one_time_refresh())
    else:
        try:
            asyncio.run(run_monitor())
        except (KeyboardInterrupt, SystemExit):
            logger.info("Refresh monitor stopped.")
