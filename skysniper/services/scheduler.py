"""
Cache Sweep Scheduler.

Runs TTLCache.sweep on a fixed interval, independent of request handling.
Started and stopped by the app lifespan.
"""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from skysniper.services.cache import TTLCache

logger = structlog.get_logger(__name__)


class CacheSweepScheduler:
    """Background scheduler owning the periodic cache sweep job."""

    def __init__(self, cache: TTLCache, interval_seconds: float):
        self.cache = cache
        self.interval_seconds = interval_seconds
        self.scheduler = AsyncIOScheduler()

    def start(self):
        """Register and start the sweep job."""
        self.scheduler.add_job(
            self.sweep,
            IntervalTrigger(seconds=self.interval_seconds),
            id="cache_sweep",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("cache_sweep_scheduler_started", interval_seconds=self.interval_seconds)

    def stop(self):
        """Stop without waiting on a sweep in progress."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("cache_sweep_scheduler_stopped")

    async def sweep(self) -> int:
        try:
            return self.cache.sweep()
        except Exception as e:
            logger.error("cache_sweep_failed", error=str(e))
            return 0
