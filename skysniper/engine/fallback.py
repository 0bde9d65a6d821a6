"""
Deterministic Fallback Generator.

Used when no oracle call succeeds, or when there is no series at all.
No randomness: the total-failure path is always reproducible.
"""

from typing import Optional, Sequence

from skysniper.engine.consensus import (
    ConfidenceLabel,
    ConsensusResult,
    Strategy,
    format_multiplier,
)

FALLBACK_WINDOW: int = 5
FALLBACK_UPLIFT: float = 1.1
FALLBACK_FLOOR: float = 1.5
FALLBACK_CEILING: float = 10.0

CANNED_FALLBACK = ConsensusResult(
    prediction="2.15x",
    confidence=ConfidenceLabel.LOW.value,
    comment="Fallback prediction - insufficient data",
    strategy=Strategy.CONSERVATIVE.value,
    entry_timing="Wait 1-2 rounds",
    risk_level=3,
    voting_consensus=0,
    fallback=True,
)


def generate_fallback(series: Optional[Sequence[float]]) -> ConsensusResult:
    """mean(last 5) × 1.1, clamped to [1.5, 10.0]; canned result if empty."""
    if not series:
        return CANNED_FALLBACK

    recent = [float(v) for v in series[-FALLBACK_WINDOW:]]
    avg = sum(recent) / len(recent)
    value = max(FALLBACK_FLOOR, min(avg * FALLBACK_UPLIFT, FALLBACK_CEILING))

    return ConsensusResult(
        prediction=format_multiplier(value),
        confidence=ConfidenceLabel.MEDIUM.value,
        comment="Mathematical fallback based on recent average",
        strategy=Strategy.BALANCED.value,
        entry_timing="Immediate",
        risk_level=4,
        voting_consensus=0,
        fallback=True,
    )
