"""
Prometheus Metrics Endpoint.

GET /metrics — cache and latency metrics in Prometheus text format.
"""

import time

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from skysniper.api.deps import get_cache, get_latency_monitor
from skysniper.services.cache import TTLCache
from skysniper.services.latency import LatencyMonitor

router = APIRouter(tags=["observability"])

_start_time = time.time()


def _format_prometheus(metrics: dict[str, float | int | str]) -> str:
    """Format metrics dict as Prometheus text exposition format."""
    lines: list[str] = []
    for key, value in metrics.items():
        safe_key = key.replace(".", "_").replace("-", "_")
        if isinstance(value, (int, float)):
            lines.append(f"skysniper_{safe_key} {value}")
    return "\n".join(lines) + "\n"


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics",
)
async def prometheus_metrics(
    cache: TTLCache = Depends(get_cache),
    monitor: LatencyMonitor = Depends(get_latency_monitor),
):
    cache_stats = cache.stats()
    metrics: dict[str, float | int | str] = {
        "uptime_seconds": round(time.time() - _start_time, 1),
        "cache_size": cache_stats["size"],
        "cache_hits_total": cache_stats["hits"],
        "cache_misses_total": cache_stats["misses"],
        "cache_hit_rate": cache_stats["hit_rate"],
        "cache_evictions_total": cache_stats["evictions"],
        "cache_expirations_total": cache_stats["expirations"],
    }
    for op, s in monitor.all_stats().items():
        metrics[f"latency_{op}_count"] = s.count
        metrics[f"latency_{op}_avg_ms"] = round(s.average, 2)
        metrics[f"latency_{op}_p50_ms"] = s.p50
        metrics[f"latency_{op}_p95_ms"] = s.p95
        metrics[f"latency_{op}_p99_ms"] = s.p99
        metrics[f"latency_{op}_degraded"] = 1 if s.status == "degraded" else 0

    return _format_prometheus(metrics)
