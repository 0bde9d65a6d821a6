"""
Monitoring Endpoints.

GET /api/latency           — stats for every timed operation
GET /api/latency/{op}      — stats for one operation
GET /api/cache/stats       — cache size, hit rate, evictions
"""

from fastapi import APIRouter, Depends, HTTPException

from skysniper.api.deps import get_cache, get_latency_monitor
from skysniper.schemas.prediction import CacheStatsResponse, LatencyStatsResponse
from skysniper.services.cache import TTLCache
from skysniper.services.latency import LatencyMonitor

router = APIRouter(prefix="/api", tags=["monitoring"])


@router.get("/latency", response_model=dict[str, LatencyStatsResponse])
async def latency_stats(monitor: LatencyMonitor = Depends(get_latency_monitor)):
    return {op: s.to_dict() for op, s in monitor.all_stats().items()}


@router.get("/latency/{operation}", response_model=LatencyStatsResponse)
async def operation_latency(
    operation: str,
    monitor: LatencyMonitor = Depends(get_latency_monitor),
):
    stats = monitor.stats(operation)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"No latency data for {operation}")
    return stats.to_dict()


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(cache: TTLCache = Depends(get_cache)):
    return cache.stats()
