"""
Prediction API Schemas.

The response is success-shaped even on total oracle failure:
`fallback: true` plus the triggering `error` string.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from skysniper.engine.consensus import ConfidenceLabel, Strategy


class PredictRequest(BaseModel):
    """Inbound prediction request. Length is checked by the orchestrator."""
    crash_points: list[float] = Field(
        default_factory=list,
        description="Observed multipliers, most recent last (>= 10 values, each >= 1.0)",
    )
    strategy: Strategy = Strategy.BALANCED
    pattern_summary: Optional[Any] = None
    hash_history: Optional[Any] = None
    round_data: Optional[Any] = None
    volatility_index: float = 0.0


class PredictionResponse(BaseModel):
    prediction: str                   # "<value>x"
    confidence: ConfidenceLabel
    comment: str
    strategy: str
    entry_timing: str
    risk_level: int = Field(ge=1, le=10)
    explanation: Optional[str] = None
    models_used: int
    voting_consensus: int
    cached: bool
    latency: int                      # milliseconds
    fallback: bool = False
    error: Optional[str] = None
    pattern_signal: Optional[str] = None
    mathematical_basis: Optional[str] = None
    streak_factor: Optional[str] = None
    volatility_adjustment: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    message: str


class LatencyStatsResponse(BaseModel):
    operation: str
    count: int
    average: float
    min: float
    max: float
    p50: float
    p95: float
    p99: float
    threshold: Optional[float] = None
    status: str


class CacheStatsResponse(BaseModel):
    size: int
    max_size: int
    hits: int
    misses: int
    hit_rate: float
    evictions: int
    expirations: int
