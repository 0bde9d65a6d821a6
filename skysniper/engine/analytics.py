"""
Crash Series Analytics Engine.

Reduces a raw observation series into a structured snapshot:
- Population moments (mean, variance, skewness, excess kurtosis)
- Low / medium / high distribution buckets
- Recent volatility, trend direction, momentum
- Model estimates (harmonic mean, Fibonacci level, Bollinger midpoint, Monte Carlo)
- Pattern signals (alternating, trend, clustering)
- Streak state over a low/high split

Pure and stateless apart from the injected random source used by Monte Carlo.
"""

import math
import random
from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

LOW_THRESHOLD: float = 2.0           # low < 2.0
HIGH_THRESHOLD: float = 5.0          # high > 5.0
RECENT_WINDOW: int = 10
TREND_WINDOW: int = 5
GOLDEN_RATIO: float = 1.618
MONTE_CARLO_TRIALS: int = 1000
MONTE_CARLO_SPREAD: float = 0.25     # ±25% perturbation
MIN_MULTIPLIER: float = 1.0

VOLATILE_RATIO: float = 1.5
CALM_RATIO: float = 0.5

ALTERNATING_MIN_COUNT: int = 3
TREND_SHARE: float = 0.7
CLUSTER_TOLERANCE: float = 0.5
CLUSTER_MIN_MEMBERS: int = 3
CLUSTERING_CONFIDENCE: int = 75

STREAK_BASE_BREAK_PROBABILITY: float = 50.0
STREAK_STEP: float = 8.0
STREAK_MIN_LENGTH: int = 3
STREAK_MAX_BREAK_PROBABILITY: float = 90.0


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Derived statistics of a crash series. Immutable once built."""
    n: int
    mean: float
    median: float
    variance: float
    std_dev: float
    skewness: float
    kurtosis: float                 # Excess kurtosis (normal = 0)
    low_count: int
    medium_count: int
    high_count: int
    low_percentage: float
    medium_percentage: float
    high_percentage: float
    recent_volatility: float
    trend_direction: str            # "upward" | "downward" | "stable"
    momentum: float
    harmonic_mean: float
    fibonacci_level: float
    bollinger_prediction: float     # Always equals mean; kept for output compatibility
    monte_carlo_estimate: float
    market_condition: str           # "volatile" | "calm" | "stable"
    entry_risk: int                 # 1-10
    pattern_reliability: int        # 1-10
    correction_probability: float


@dataclass(frozen=True)
class PatternSignal:
    """A detected structural pattern."""
    type: str
    description: str
    confidence: int                 # 0-100
    cycle: str


@dataclass(frozen=True)
class Cluster:
    """A group of observations around a running centroid."""
    center: float
    members: tuple[float, ...]


@dataclass(frozen=True)
class Streak:
    count: int
    type: str                       # "low" | "high"


@dataclass(frozen=True)
class StreakState:
    """Run-length structure over the low/high split."""
    current: Streak
    longest: Streak
    break_probability: float        # 0-100


@dataclass(frozen=True)
class SeriesAnalysis:
    """Everything the prompt builder needs from one series."""
    snapshot: AnalyticsSnapshot
    patterns: list[PatternSignal] = field(default_factory=list)
    streaks: Optional[StreakState] = None


# ── Helpers ───────────────────────────────────────────────────────────────


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _population_std(values: Sequence[float]) -> float:
    mu = _mean(values)
    return math.sqrt(sum((v - mu) ** 2 for v in values) / len(values))


def _median(values: Sequence[float]) -> float:
    ordered = sorted(values)
    n = len(ordered)
    mid = n // 2
    if n % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def _is_low(value: float) -> bool:
    return value < LOW_THRESHOLD


def _bucket(value: float) -> str:
    return "low" if _is_low(value) else "high"


# ── Engine ────────────────────────────────────────────────────────────────


class AnalyticsEngine:
    """
    Compute analytics, patterns and streaks for a crash series.

    The Monte Carlo estimate is the only stochastic field. Pass `seed`
    (or a ready `rng`) for reproducible output.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        monte_carlo_trials: int = MONTE_CARLO_TRIALS,
    ):
        self.rng = rng or random.Random(seed)
        self.monte_carlo_trials = monte_carlo_trials

    def analyze(self, series: Sequence[float]) -> SeriesAnalysis:
        """Snapshot + patterns + streaks in one pass."""
        return SeriesAnalysis(
            snapshot=self.compute_snapshot(series),
            patterns=self.detect_patterns(series),
            streaks=self.analyze_streaks(series),
        )

    def compute_snapshot(self, series: Sequence[float]) -> AnalyticsSnapshot:
        """
        Statistical snapshot using population (divide-by-n) formulas.

        skewness = E[((x-μ)/σ)^3], kurtosis = E[((x-μ)/σ)^4] - 3.
        Both are 0.0 for a constant series.
        """
        points = self._require_points(series)
        n = len(points)

        mean = _mean(points)
        median = _median(points)
        variance = sum((p - mean) ** 2 for p in points) / n
        std_dev = math.sqrt(variance)

        if std_dev > 0:
            skewness = sum(((p - mean) / std_dev) ** 3 for p in points) / n
            kurtosis = sum(((p - mean) / std_dev) ** 4 for p in points) / n - 3
        else:
            skewness = 0.0
            kurtosis = 0.0

        low_count = sum(1 for p in points if p < LOW_THRESHOLD)
        medium_count = sum(1 for p in points if LOW_THRESHOLD <= p <= HIGH_THRESHOLD)
        high_count = sum(1 for p in points if p > HIGH_THRESHOLD)

        recent_volatility = _population_std(points[-RECENT_WINDOW:])

        first_avg = _mean(points[:TREND_WINDOW])
        last_avg = _mean(points[-TREND_WINDOW:])
        if last_avg > first_avg:
            trend_direction = "upward"
        elif last_avg < first_avg:
            trend_direction = "downward"
        else:
            trend_direction = "stable"
        momentum = (last_avg - first_avg) / first_avg

        harmonic_mean = n / sum(1 / p for p in points)
        fibonacci_level = mean * GOLDEN_RATIO
        bollinger_upper = mean + 2 * std_dev
        bollinger_lower = mean - 2 * std_dev
        bollinger_prediction = (bollinger_upper + bollinger_lower) / 2

        if recent_volatility > std_dev * VOLATILE_RATIO:
            market_condition = "volatile"
        elif recent_volatility < std_dev * CALM_RATIO:
            market_condition = "calm"
        else:
            market_condition = "stable"

        entry_risk = _clamp(_round_half_up(recent_volatility * 3), 1, 10)
        pattern_reliability = _clamp(_round_half_up(10 - std_dev * 2), 1, 10)
        if low_count > n * 0.6:
            correction_probability = 80.0
        elif high_count > n * 0.3:
            correction_probability = 70.0
        else:
            correction_probability = 50.0

        return AnalyticsSnapshot(
            n=n,
            mean=mean,
            median=median,
            variance=variance,
            std_dev=std_dev,
            skewness=skewness,
            kurtosis=kurtosis,
            low_count=low_count,
            medium_count=medium_count,
            high_count=high_count,
            low_percentage=low_count / n * 100,
            medium_percentage=medium_count / n * 100,
            high_percentage=high_count / n * 100,
            recent_volatility=recent_volatility,
            trend_direction=trend_direction,
            momentum=momentum,
            harmonic_mean=harmonic_mean,
            fibonacci_level=fibonacci_level,
            bollinger_prediction=bollinger_prediction,
            monte_carlo_estimate=self.monte_carlo_estimate(points),
            market_condition=market_condition,
            entry_risk=entry_risk,
            pattern_reliability=pattern_reliability,
            correction_probability=correction_probability,
        )

    def monte_carlo_estimate(self, series: Sequence[float]) -> float:
        """
        Resample one historical point per trial, perturb by a uniform
        factor in [-25%, +25%], floor at 1.0, and average the trials.
        """
        points = self._require_points(series)
        total = 0.0
        for _ in range(self.monte_carlo_trials):
            sample = points[self.rng.randrange(len(points))]
            variation = self.rng.uniform(-MONTE_CARLO_SPREAD, MONTE_CARLO_SPREAD)
            total += max(MIN_MULTIPLIER, sample * (1 + variation))
        return total / self.monte_carlo_trials

    # ── Patterns ──────────────────────────────────────────────────────────

    def detect_patterns(self, series: Sequence[float]) -> list[PatternSignal]:
        """Run the alternating, trend and clustering scans. All may fire."""
        points = self._require_points(series)
        patterns: list[PatternSignal] = []

        alternating = 0
        for i in range(1, len(points) - 1):
            prev_low, cur_low, next_low = (
                _is_low(points[i - 1]), _is_low(points[i]), _is_low(points[i + 1])
            )
            if prev_low != cur_low and next_low == prev_low:
                alternating += 1

        if alternating >= ALTERNATING_MIN_COUNT:
            patterns.append(PatternSignal(
                type="Alternating",
                description="High-Low alternating pattern detected",
                confidence=min(95, alternating * 15),
                cycle="2",
            ))

        deltas = [b - a for a, b in zip(points, points[1:])]
        if deltas:
            rising = sum(1 for d in deltas if d > 0)
            falling = sum(1 for d in deltas if d < 0)
            if rising > len(deltas) * TREND_SHARE:
                patterns.append(PatternSignal(
                    type="Ascending",
                    description="Strong upward trend detected",
                    confidence=_round_half_up(rising / len(deltas) * 100),
                    cycle="trend",
                ))
            if falling > len(deltas) * TREND_SHARE:
                patterns.append(PatternSignal(
                    type="Descending",
                    description="Strong downward trend detected",
                    confidence=_round_half_up(falling / len(deltas) * 100),
                    cycle="trend",
                ))

        clusters = self.find_clusters(points)
        if len(clusters) >= 2:
            patterns.append(PatternSignal(
                type="Clustering",
                description=f"{len(clusters)} distinct value clusters identified",
                confidence=CLUSTERING_CONFIDENCE,
                cycle=str(len(clusters)),
            ))

        return patterns

    def find_clusters(self, series: Sequence[float]) -> list[Cluster]:
        """
        Greedy single-pass clustering.

        Each point joins the first cluster whose running centroid is within
        CLUSTER_TOLERANCE; otherwise it seeds a new one. Only clusters with
        at least CLUSTER_MIN_MEMBERS members are returned.
        """
        working: list[list] = []  # [center, members]
        for point in series:
            for cluster in working:
                if abs(cluster[0] - point) <= CLUSTER_TOLERANCE:
                    cluster[1].append(point)
                    cluster[0] = _mean(cluster[1])
                    break
            else:
                working.append([point, [point]])

        return [
            Cluster(center=center, members=tuple(members))
            for center, members in working
            if len(members) >= CLUSTER_MIN_MEMBERS
        ]

    # ── Streaks ───────────────────────────────────────────────────────────

    def analyze_streaks(self, series: Sequence[float]) -> StreakState:
        """Current and longest low/high runs plus break probability."""
        points = self._require_points(series)

        current_type = _bucket(points[-1])
        current_count = 1
        for value in reversed(points[:-1]):
            if _bucket(value) != current_type:
                break
            current_count += 1

        longest = Streak(count=0, type=_bucket(points[0]))
        run_type = _bucket(points[0])
        run_count = 1
        for value in points[1:]:
            kind = _bucket(value)
            if kind == run_type:
                run_count += 1
                continue
            if run_count > longest.count:
                longest = Streak(count=run_count, type=run_type)
            run_type, run_count = kind, 1
        if run_count > longest.count:
            longest = Streak(count=run_count, type=run_type)

        break_probability = STREAK_BASE_BREAK_PROBABILITY
        if current_count >= STREAK_MIN_LENGTH:
            break_probability = min(
                STREAK_MAX_BREAK_PROBABILITY,
                STREAK_BASE_BREAK_PROBABILITY + current_count * STREAK_STEP,
            )

        return StreakState(
            current=Streak(count=current_count, type=current_type),
            longest=longest,
            break_probability=break_probability,
        )

    @staticmethod
    def _require_points(series: Sequence[float]) -> list[float]:
        if not series:
            raise ValueError("observation series must not be empty")
        return [float(v) for v in series]
