"""
Scheduler - Periodic housekeeping for the scoring service

Job Schedule:
1. Cache Sweep: Every CACHE_SWEEP_INTERVAL_MINUTES (drop expired contexts)
2. Budget Rollover: Every minute (apply the UTC day reset without waiting
   for the next scoring call)

The API starts these jobs in its lifespan. Running this module directly
hosts them in a standalone process, which only makes sense together with
a worker that shares the same ScoringServices.

Usage:
    python scheduler.py              # Run scheduler daemon
    python scheduler.py --once       # Run every job once and exit
"""
import asyncio
import sys
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from config import settings, ensure_directories
from services import ScoringServices, get_services


class ScoringScheduler:
    """Runs the cache sweep and budget rollover against shared services."""

    def __init__(self, services: ScoringServices):
        self.services = services
        self.scheduler = AsyncIOScheduler()

    def setup(self):
        """Setup scheduled jobs."""
        # Job 1: Cache sweep
        self.scheduler.add_job(
            self.sweep_cache,
            IntervalTrigger(minutes=self.services.settings.CACHE_SWEEP_INTERVAL_MINUTES),
            id="cache_sweep",
            name="Sweep Expired Contexts",
            replace_existing=True,
        )

        # Job 2: Budget day rollover
        self.scheduler.add_job(
            self.roll_over_budget,
            IntervalTrigger(minutes=1),
            id="budget_rollover",
            name="Budget Day Rollover",
            replace_existing=True,
            next_run_time=datetime.now() + timedelta(seconds=5),
        )

        logger.info("Scheduler setup complete with 2 jobs")
        self._log_schedule()

    def _log_schedule(self):
        """Log current job schedule."""
        jobs = self.scheduler.get_jobs()
        logger.info(f"Scheduled jobs ({len(jobs)}):")
        for job in jobs:
            logger.info(f"  - {job.name}: {job.trigger}")

    async def sweep_cache(self) -> int:
        """Job: remove expired cache entries."""
        try:
            removed = self.services.sweep_cache()
        except Exception as e:
            logger.exception(f"Cache sweep failed: {e}")
            return 0
        if removed:
            logger.info(f"Cache sweep: {removed} expired entries removed")
        return removed

    async def roll_over_budget(self) -> None:
        """Job: apply a pending daily budget reset."""
        try:
            self.services.roll_over_budget()
        except Exception as e:
            logger.exception(f"Budget rollover failed: {e}")

    def start(self):
        """Start the scheduler. Needs a running event loop."""
        self.setup()
        self.scheduler.start()
        logger.info("Scheduler started")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    async def run_once(self) -> int:
        """Run every job once. Returns the number of swept entries."""
        removed = await self.sweep_cache()
        await self.roll_over_budget()
        return removed


async def _run_forever(scheduler: ScoringScheduler):
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()


def main():
    """Main entry point with CLI arguments."""
    import argparse

    parser = argparse.ArgumentParser(description="Opportunity Scoring Scheduler")
    parser.add_argument("--once", action="store_true", help="Run every job once and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    # Configure logging
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else settings.LOG_LEVEL)

    ensure_directories()
    scheduler = ScoringScheduler(get_services())

    if args.once:
        removed = asyncio.run(scheduler.run_once())
        logger.info(f"Run complete: {removed} cache entries swept")
        sys.exit(0)

    try:
        asyncio.run(_run_forever(scheduler))
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")


if __name__ == "__main__":
    main()
