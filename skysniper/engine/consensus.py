"""
Consensus Merger.

Collapses several oracle forecast votes into one result.

Merged value by strategy:
- Conservative → minimum
- Aggressive   → maximum
- Balanced (and anything else) → median

Confidence labels are averaged as ordinals (Low=1 … EXTREME=4) and rounded
half-up; an ordinal outside [1, 4] maps to Medium. This is lossy by
construction and the Medium fallback is deliberate.
"""

import math
import statistics
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import structlog

logger = structlog.get_logger(__name__)


class Strategy(str, Enum):
    CONSERVATIVE = "Conservative"
    BALANCED = "Balanced"
    AGGRESSIVE = "Aggressive"


class ConfidenceLabel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    EXTREME = "EXTREME"


CONFIDENCE_ORDINALS: dict[str, int] = {
    ConfidenceLabel.LOW.value: 1,
    ConfidenceLabel.MEDIUM.value: 2,
    ConfidenceLabel.HIGH.value: 3,
    ConfidenceLabel.EXTREME.value: 4,
}
ORDINAL_LABELS: dict[int, str] = {v: k for k, v in CONFIDENCE_ORDINALS.items()}

CONSENSUS_EXPLANATION = "AI consensus reached through multi-model voting system"


@dataclass(frozen=True)
class ForecastVote:
    """One oracle's answer, tagged with the posture that produced it."""
    prediction: str                 # e.g. "2.35x"
    confidence: str                 # ConfidenceLabel value
    risk_level: int                 # 1-10
    entry_timing: str
    comment: str = ""
    strategy: str = Strategy.BALANCED.value
    pattern_signal: Optional[str] = None
    mathematical_basis: Optional[str] = None
    streak_factor: Optional[str] = None
    volatility_adjustment: Optional[str] = None
    temperature: Optional[float] = None
    order: int = 0                  # Submission order, conservative first

    @property
    def prediction_value(self) -> float:
        return parse_multiplier(self.prediction)


@dataclass(frozen=True)
class ConsensusResult:
    """The single answer returned (and cached) per request."""
    prediction: str
    confidence: str
    comment: str
    strategy: str
    entry_timing: str
    risk_level: int
    voting_consensus: int
    explanation: str = ""
    fallback: bool = False
    pattern_signal: Optional[str] = None
    mathematical_basis: Optional[str] = None
    streak_factor: Optional[str] = None
    volatility_adjustment: Optional[str] = None


def parse_multiplier(text: str) -> float:
    """'2.35x' → 2.35. Raises ValueError if no number remains."""
    return float(str(text).strip().rstrip("xX").strip())


def format_multiplier(value: float) -> str:
    return f"{value:.2f}x"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _strategy_value(strategy: Strategy | str) -> str:
    return strategy.value if isinstance(strategy, Strategy) else str(strategy)


def merge_votes(votes: Sequence[ForecastVote], strategy: Strategy | str) -> ConsensusResult:
    """
    Merge votes (conservative-first order) into one ConsensusResult.

    A single vote passes through unchanged.
    """
    if not votes:
        raise ValueError("merge_votes requires at least one vote")

    if len(votes) == 1:
        vote = votes[0]
        return ConsensusResult(
            prediction=vote.prediction,
            confidence=vote.confidence,
            comment=vote.comment,
            strategy=vote.strategy,
            entry_timing=vote.entry_timing,
            risk_level=vote.risk_level,
            voting_consensus=1,
            pattern_signal=vote.pattern_signal,
            mathematical_basis=vote.mathematical_basis,
            streak_factor=vote.streak_factor,
            volatility_adjustment=vote.volatility_adjustment,
        )

    strategy_name = _strategy_value(strategy)
    values = [v.prediction_value for v in votes]

    if strategy_name == Strategy.CONSERVATIVE.value:
        merged = min(values)
    elif strategy_name == Strategy.AGGRESSIVE.value:
        merged = max(values)
    else:
        merged = statistics.median(values)

    avg_ordinal = sum(CONFIDENCE_ORDINALS.get(v.confidence, 0) for v in votes) / len(votes)
    confidence = ORDINAL_LABELS.get(_round_half_up(avg_ordinal), ConfidenceLabel.MEDIUM.value)

    risk_level = _round_half_up(sum(v.risk_level for v in votes) / len(votes))

    logger.debug(
        "votes_merged",
        strategy=strategy_name,
        n_votes=len(votes),
        values=values,
        merged=merged,
    )

    return ConsensusResult(
        prediction=format_multiplier(merged),
        confidence=confidence,
        comment=f"Merged prediction from {len(votes)} AI models using {strategy_name} strategy",
        strategy=strategy_name,
        entry_timing=votes[0].entry_timing,
        risk_level=risk_level,
        voting_consensus=len(votes),
        explanation=CONSENSUS_EXPLANATION,
    )
