"""
Test fixtures for SkySniper.

Provides:
- Scripted fake oracle (per-temperature responses, failures, delays)
- Manual clock for cache expiry tests
- Sample crash series
- Orchestrator wired to in-memory components
"""

import asyncio
import json
import os

import pytest

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("GROQ_API_KEY", "")
os.environ.setdefault("SUPABASE_URL", "")

from skysniper.engine.analytics import AnalyticsEngine
from skysniper.services.cache import TTLCache
from skysniper.services.latency import LatencyMonitor
from skysniper.services.orchestrator import Posture, PredictionOrchestrator

POSTURES = (
    Posture("conservative", 0.3),
    Posture("balanced", 0.7),
    Posture("aggressive", 0.9),
)


def vote_json(
    prediction: str = "2.50x",
    confidence: str = "Medium",
    risk_level: int = 5,
    entry_timing: str = "Immediate",
    **overrides,
) -> str:
    """Build a schema-conforming oracle response body."""
    body = {
        "prediction": prediction,
        "confidence": confidence,
        "comment": "Test vote",
        "strategy": "Balanced",
        "entry_timing": entry_timing,
        "risk_level": risk_level,
        "pattern_signal": "neutral",
        "mathematical_basis": "Harmonic mean",
        "streak_factor": "None",
        "volatility_adjustment": "None",
    }
    body.update(overrides)
    return json.dumps(body)


class FakeOracle:
    """
    Scripted oracle keyed by temperature.

    A script value may be a str (returned), an Exception (raised), or a
    (delay_seconds, value) tuple.
    """

    def __init__(self, script: dict):
        self.script = script
        self.calls: list[float] = []
        self.prompts: list[str] = []

    async def complete(self, prompt: str, temperature: float) -> str:
        self.calls.append(temperature)
        self.prompts.append(prompt)
        value = self.script[temperature]
        if isinstance(value, tuple):
            delay, value = value
            await asyncio.sleep(delay)
        if isinstance(value, BaseException):
            raise value
        return value


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingAuditLog:
    """Audit sink that keeps records in memory."""

    def __init__(self, fail: bool = False):
        self.records: list[dict] = []
        self.fail = fail

    async def record_prediction(self, result, strategy, series, models_used=0):
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.records.append({
            "result": result,
            "strategy": strategy,
            "series": list(series),
            "models_used": models_used,
        })
        return True


@pytest.fixture
def sample_series() -> list[float]:
    return [1.2, 3.4, 1.8, 2.5, 7.1, 1.1, 1.9, 4.2, 2.2, 1.5, 3.3, 1.4]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def make_orchestrator():
    """Factory: orchestrator over a FakeOracle with isolated state."""

    def _make(script: dict, call_timeout: float = 1.0, audit_log=None) -> PredictionOrchestrator:
        return PredictionOrchestrator(
            oracle=FakeOracle(script),
            cache=TTLCache(max_size=100, default_ttl=300),
            latency_monitor=LatencyMonitor(),
            audit_log=audit_log or RecordingAuditLog(),
            engine=AnalyticsEngine(seed=42, monte_carlo_trials=200),
            postures=POSTURES,
            call_timeout=call_timeout,
            cache_ttl=300,
            min_series_length=10,
            analysis_window=50,
        )

    return _make
