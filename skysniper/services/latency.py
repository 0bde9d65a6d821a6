"""
Latency Monitor.

Per operation, keeps a sliding window of the most recent durations and
reports count / average / min / max / p50 / p95 / p99.

Threshold breaches produce a DegradationSignal that is returned to the
caller and delivered to subscribers. The monitor itself never switches
behaviour on a breach.

Percentiles index the sorted window at floor(n * q), with no interpolation.
"""

import math
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_SIZE = 100

DEFAULT_THRESHOLDS: dict[str, float] = {
    "oracle_prediction": 5000.0,    # 5 seconds
    "audit_write": 2000.0,          # 2 seconds
}


@dataclass(frozen=True)
class LatencyRecord:
    operation: str
    duration_ms: float
    timestamp: datetime


@dataclass(frozen=True)
class DegradationSignal:
    """A single duration exceeded the operation's threshold."""
    operation: str
    duration_ms: float
    threshold_ms: float
    timestamp: datetime


@dataclass(frozen=True)
class LatencyStats:
    operation: str
    count: int
    average: float
    min: float
    max: float
    p50: float
    p95: float
    p99: float
    threshold: Optional[float]
    status: str                     # "healthy" | "degraded"

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "count": self.count,
            "average": round(self.average),
            "min": self.min,
            "max": self.max,
            "p50": self.p50,
            "p95": self.p95,
            "p99": self.p99,
            "threshold": self.threshold,
            "status": self.status,
        }


@dataclass(frozen=True)
class RecordResult:
    stats: LatencyStats
    degradation: Optional[DegradationSignal] = None


DegradationListener = Callable[[DegradationSignal], None]


def percentile(sorted_values: list[float], q: float) -> float:
    """Value at index floor(n * q) of an ascending list."""
    index = min(math.floor(len(sorted_values) * q), len(sorted_values) - 1)
    return sorted_values[index]


class LatencyMonitor:
    """Rolling latency windows keyed by operation name."""

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        thresholds: Optional[dict[str, float]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.window_size = window_size
        self.thresholds = dict(DEFAULT_THRESHOLDS if thresholds is None else thresholds)
        self._clock = clock
        self._windows: dict[str, deque[LatencyRecord]] = {}
        self._listeners: list[DegradationListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: DegradationListener) -> None:
        """Register a callback for degradation signals."""
        self._listeners.append(listener)

    def set_threshold(self, operation: str, threshold_ms: float) -> None:
        with self._lock:
            self.thresholds[operation] = threshold_ms

    def record(self, operation: str, duration_ms: float) -> RecordResult:
        """Append a duration, check the threshold, return fresh stats."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(operation)
            if window is None:
                window = deque(maxlen=self.window_size)
                self._windows[operation] = window
            window.append(LatencyRecord(operation, duration_ms, now))
            threshold = self.thresholds.get(operation)
            stats = self._compute(operation, window, threshold)

        signal = None
        if threshold is not None and duration_ms > threshold:
            signal = DegradationSignal(
                operation=operation,
                duration_ms=duration_ms,
                threshold_ms=threshold,
                timestamp=now,
            )
            logger.warning(
                "latency_threshold_exceeded",
                operation=operation,
                duration_ms=duration_ms,
                threshold_ms=threshold,
            )
            for listener in list(self._listeners):
                listener(signal)

        return RecordResult(stats=stats, degradation=signal)

    def stats(self, operation: str) -> Optional[LatencyStats]:
        with self._lock:
            window = self._windows.get(operation)
            if not window:
                return None
            return self._compute(operation, window, self.thresholds.get(operation))

    def all_stats(self) -> dict[str, LatencyStats]:
        with self._lock:
            operations = list(self._windows)
        result: dict[str, LatencyStats] = {}
        for op in operations:
            s = self.stats(op)
            if s is not None:
                result[op] = s
        return result

    def health(self) -> str:
        """'degraded' if any operation's running average exceeds its threshold."""
        for s in self.all_stats().values():
            if s.status == "degraded":
                return "degraded"
        return "healthy"

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    @staticmethod
    def _compute(
        operation: str,
        window: deque[LatencyRecord],
        threshold: Optional[float],
    ) -> LatencyStats:
        durations = [r.duration_ms for r in window]
        ordered = sorted(durations)
        average = sum(durations) / len(durations)
        status = "degraded" if threshold is not None and average > threshold else "healthy"
        return LatencyStats(
            operation=operation,
            count=len(durations),
            average=average,
            min=ordered[0],
            max=ordered[-1],
            p50=percentile(ordered, 0.5),
            p95=percentile(ordered, 0.95),
            p99=percentile(ordered, 0.99),
            threshold=threshold,
            status=status,
        )
