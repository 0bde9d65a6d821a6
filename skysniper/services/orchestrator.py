"""
Prediction Orchestrator.

Request flow:
    validate → cache lookup → analytics → prompt → oracle fan-out (x3)
    → consensus merge | fallback → cache write → latency record → audit

Fan-out semantics:
- Three postures (conservative / balanced / aggressive) submitted in that order
- Each call bounded by a fixed timeout; no retries
- Wait for ALL calls to settle; keep only schema-valid votes
- Zero votes → AllOraclesFailed → deterministic fallback (never an error response)
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import structlog

from skysniper.config import settings
from skysniper.engine.analytics import AnalyticsEngine
from skysniper.engine.consensus import ConsensusResult, ForecastVote, Strategy, merge_votes
from skysniper.engine.fallback import generate_fallback
from skysniper.exceptions import AllOraclesFailed, InputValidationError, OracleCallError
from skysniper.services.audit_log import PredictionAuditLog
from skysniper.services.cache import TTLCache, prediction_cache_key
from skysniper.services.latency import DegradationSignal, LatencyMonitor
from skysniper.services.oracle import OracleClient, parse_vote
from skysniper.services.prompt_builder import PromptContext, build_prompt

logger = structlog.get_logger(__name__)

PREDICTION_OPERATION = "oracle_prediction"
AUDIT_OPERATION = "audit_write"


@dataclass(frozen=True)
class Posture:
    """One oracle call's parameterization."""
    name: str
    temperature: float


def default_postures() -> tuple[Posture, ...]:
    return (
        Posture("conservative", settings.temperature_conservative),
        Posture("balanced", settings.temperature_balanced),
        Posture("aggressive", settings.temperature_aggressive),
    )


@dataclass(frozen=True)
class PredictionOutcome:
    """Everything the HTTP layer needs to answer one request."""
    result: ConsensusResult
    cached: bool
    latency_ms: int
    models_used: int
    error: Optional[str] = None
    degradation: Optional[DegradationSignal] = None

    @property
    def fallback(self) -> bool:
        return self.result.fallback

    def to_dict(self) -> dict:
        r = self.result
        return {
            "prediction": r.prediction,
            "confidence": r.confidence,
            "comment": r.comment,
            "strategy": r.strategy,
            "entry_timing": r.entry_timing,
            "risk_level": r.risk_level,
            "explanation": r.explanation or None,
            "models_used": self.models_used,
            "voting_consensus": r.voting_consensus,
            "cached": self.cached,
            "latency": self.latency_ms,
            "fallback": r.fallback,
            "error": self.error,
            "pattern_signal": r.pattern_signal,
            "mathematical_basis": r.mathematical_basis,
            "streak_factor": r.streak_factor,
            "volatility_adjustment": r.volatility_adjustment,
        }


class PredictionOrchestrator:
    """
    Owns one request's path from raw series to answer.

    Cache, latency monitor, oracle and audit log are injected so each test
    (and each app instance) gets independent state.
    """

    def __init__(
        self,
        oracle: OracleClient,
        cache: TTLCache,
        latency_monitor: LatencyMonitor,
        audit_log: Optional[PredictionAuditLog] = None,
        engine: Optional[AnalyticsEngine] = None,
        postures: Optional[Sequence[Posture]] = None,
        call_timeout: Optional[float] = None,
        cache_ttl: Optional[float] = None,
        min_series_length: Optional[int] = None,
        analysis_window: Optional[int] = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.oracle = oracle
        self.cache = cache
        self.latency_monitor = latency_monitor
        self.audit_log = audit_log
        self.engine = engine or AnalyticsEngine(
            seed=settings.monte_carlo_seed,
            monte_carlo_trials=settings.monte_carlo_trials,
        )
        self.postures = tuple(postures) if postures is not None else default_postures()
        self.call_timeout = call_timeout or settings.oracle_timeout_seconds
        self.cache_ttl = cache_ttl or settings.cache_ttl_seconds
        self.min_series_length = (
            settings.min_series_length if min_series_length is None else min_series_length
        )
        self.analysis_window = analysis_window or settings.analysis_window
        self._timer = timer

    # ── Validation ──────────────────────────────────────────────────────

    def validate(self, series: Optional[Sequence[float]]) -> list[float]:
        """Reject short or invalid series before any oracle call."""
        if not series or len(series) < self.min_series_length:
            raise InputValidationError(
                f"Need at least {self.min_series_length} crash points for prediction",
                details={"received": len(series or [])},
            )
        points = [float(v) for v in series]
        invalid = [v for v in points if not v >= 1.0]
        if invalid:
            raise InputValidationError(
                "Crash points must be >= 1.0",
                details={"invalid": invalid[:5]},
            )
        return points

    # ── Fan-out ─────────────────────────────────────────────────────────

    async def gather_votes(self, prompt: str) -> list[ForecastVote]:
        """
        Issue every posture concurrently and wait for all to settle.

        Returns successful votes in submission order. Raises
        AllOraclesFailed when none succeed.
        """
        settled = await asyncio.gather(
            *(self._call(posture, order, prompt) for order, posture in enumerate(self.postures)),
            return_exceptions=True,
        )

        votes: list[ForecastVote] = []
        errors: list[BaseException] = []
        for posture, outcome in zip(self.postures, settled):
            if isinstance(outcome, BaseException):
                errors.append(outcome)
                logger.warning(
                    "oracle_call_failed",
                    posture=posture.name,
                    temperature=posture.temperature,
                    error=str(outcome),
                )
            else:
                votes.append(outcome)

        logger.info(
            "oracle_fanout_settled",
            succeeded=len(votes),
            failed=len(errors),
        )

        if not votes:
            raise AllOraclesFailed(errors)
        return votes

    async def _call(self, posture: Posture, order: int, prompt: str) -> ForecastVote:
        try:
            raw = await asyncio.wait_for(
                self.oracle.complete(prompt, posture.temperature),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError as e:
            raise OracleCallError(
                f"Oracle call timed out after {self.call_timeout}s",
                temperature=posture.temperature,
            ) from e
        except OracleCallError:
            raise
        except Exception as e:
            raise OracleCallError(str(e), temperature=posture.temperature) from e

        parsed = parse_vote(raw, temperature=posture.temperature, order=order)
        if not parsed.ok:
            raise OracleCallError(
                f"Non-conforming oracle response: {parsed.error}",
                temperature=posture.temperature,
            )
        return parsed.vote

    # ── Full request ────────────────────────────────────────────────────

    async def predict(
        self,
        series: Optional[Sequence[float]],
        strategy: Strategy | str = Strategy.BALANCED,
        context: Optional[PromptContext] = None,
    ) -> PredictionOutcome:
        """
        Answer one prediction request.

        Raises InputValidationError only. Oracle failure of any kind yields
        a fallback outcome.
        """
        started = self._timer()
        strategy_name = strategy.value if isinstance(strategy, Strategy) else str(strategy)
        points = self.validate(series)

        key = prediction_cache_key(points, strategy_name)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("prediction_cache_hit", strategy=strategy_name)
            return PredictionOutcome(
                result=cached,
                cached=True,
                latency_ms=self._elapsed_ms(started),
                models_used=cached.voting_consensus,
            )

        error: Optional[str] = None
        try:
            analysis = self.engine.analyze(points[-self.analysis_window:])
            prompt = build_prompt(points, strategy_name, analysis, context)
            votes = await self.gather_votes(prompt)
            result = merge_votes(votes, strategy_name)
            models_used = len(votes)
            self.cache.set(key, result, ttl=self.cache_ttl)
        except AllOraclesFailed as e:
            logger.error("all_oracles_failed", errors=e.details["errors"])
            result = generate_fallback(points)
            models_used = 0
            error = e.message
        except Exception as e:
            logger.exception("prediction_pipeline_error", error=str(e))
            result = generate_fallback(points)
            models_used = 0
            error = str(e)

        latency_ms = self._elapsed_ms(started)
        recorded = self.latency_monitor.record(PREDICTION_OPERATION, latency_ms)

        await self._audit(result, strategy_name, points, models_used)

        logger.info(
            "prediction_served",
            strategy=strategy_name,
            prediction=result.prediction,
            models_used=models_used,
            fallback=result.fallback,
            latency_ms=latency_ms,
        )

        return PredictionOutcome(
            result=result,
            cached=False,
            latency_ms=latency_ms,
            models_used=models_used,
            error=error,
            degradation=recorded.degradation,
        )

    async def _audit(
        self,
        result: ConsensusResult,
        strategy: str,
        points: list[float],
        models_used: int,
    ) -> None:
        if self.audit_log is None:
            return
        started = self._timer()
        try:
            await self.audit_log.record_prediction(result, strategy, points, models_used)
        except Exception as e:
            logger.error("prediction_audit_error", error=str(e))
        self.latency_monitor.record(AUDIT_OPERATION, self._elapsed_ms(started))

    def _elapsed_ms(self, started: float) -> int:
        return int(round((self._timer() - started) * 1000))
