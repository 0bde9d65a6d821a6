"""
Cache Sweep Scheduler Tests.
"""

import pytest

from conftest import ManualClock
from skysniper.services.cache import TTLCache
from skysniper.services.scheduler import CacheSweepScheduler


class TestCacheSweepScheduler:

    @pytest.mark.asyncio
    async def test_sweep_job_removes_expired(self):
        clock = ManualClock()
        cache = TTLCache(default_ttl=1, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        clock.advance(5)
        sweeper = CacheSweepScheduler(cache, interval_seconds=60)
        assert await sweeper.sweep() == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_start_registers_job_and_stop(self):
        sweeper = CacheSweepScheduler(TTLCache(), interval_seconds=60)
        sweeper.start()
        try:
            job = sweeper.scheduler.get_job("cache_sweep")
            assert job is not None
            assert sweeper.scheduler.running
        finally:
            sweeper.stop()

    def test_stop_before_start_is_noop(self):
        CacheSweepScheduler(TTLCache(), interval_seconds=60).stop()
