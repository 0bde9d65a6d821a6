"""
FastAPI dependencies.

Components live on app.state.container (see skysniper.container).
"""

from fastapi import Request

from skysniper.container import AppContainer
from skysniper.services.cache import TTLCache
from skysniper.services.latency import LatencyMonitor
from skysniper.services.orchestrator import PredictionOrchestrator


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_orchestrator(request: Request) -> PredictionOrchestrator:
    return get_container(request).orchestrator


def get_cache(request: Request) -> TTLCache:
    return get_container(request).cache


def get_latency_monitor(request: Request) -> LatencyMonitor:
    return get_container(request).latency_monitor
