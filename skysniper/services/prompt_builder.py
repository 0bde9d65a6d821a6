"""
Oracle Prompt Builder.

Renders the analytics snapshot, pattern signals and streak state into the
prompt sent to every oracle call. Secondary context (pattern summary,
volatility index, auxiliary history) is passed through uninterpreted.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from skysniper.engine.analytics import SeriesAnalysis
from skysniper.engine.consensus import Strategy

RECENT_WINDOW = 50

STRATEGY_INSTRUCTIONS: dict[str, str] = {
    Strategy.CONSERVATIVE.value: """\
**CONSERVATIVE STRATEGY PARAMETERS**:
- Prioritize safety and risk minimization
- Favor predictions in 1.5x - 3.0x range
- High confidence threshold required
- Prefer "Wait" entry timing for uncertain conditions
- Risk level should not exceed 5/10
- Focus on pattern reliability over potential gains""",
    Strategy.AGGRESSIVE.value: """\
**AGGRESSIVE STRATEGY PARAMETERS**:
- Maximize potential returns
- Consider higher crash point predictions (3x+)
- Accept higher risk levels (6-9/10)
- Favor "Immediate" entry timing
- Exploit streak break opportunities
- Weight momentum and volatility heavily""",
    Strategy.BALANCED.value: """\
**BALANCED STRATEGY PARAMETERS**:
- Balance risk and reward optimization
- Target 2.0x - 5.0x prediction range
- Moderate confidence and risk levels
- Adaptive entry timing based on conditions
- Consider both safety and opportunity
- Integrate multiple analytical approaches""",
}


@dataclass(frozen=True)
class PromptContext:
    """Caller-supplied context forwarded into the prompt verbatim."""
    pattern_summary: Optional[Any] = None
    hash_history: Optional[Any] = None
    round_data: Optional[Any] = None
    volatility_index: float = 0.0


def strategy_instructions(strategy: str) -> str:
    return STRATEGY_INSTRUCTIONS.get(strategy, STRATEGY_INSTRUCTIONS[Strategy.BALANCED.value])


def _fmt_points(points: Sequence[float]) -> str:
    return ", ".join(f"{p:g}" for p in points)


def build_prompt(
    series: Sequence[float],
    strategy: str,
    analysis: SeriesAnalysis,
    context: Optional[PromptContext] = None,
) -> str:
    """Render the full oracle prompt. `analysis` must cover series[-50:]."""
    context = context or PromptContext()
    recent = list(series[-RECENT_WINDOW:])
    a = analysis.snapshot
    streaks = analysis.streaks

    if analysis.patterns:
        pattern_lines = "\n".join(
            f"- {p.type}: {p.description} (Confidence: {p.confidence})"
            for p in analysis.patterns
        )
        cycle = analysis.patterns[0].cycle
    else:
        pattern_lines = "- None detected"
        cycle = "No clear cycle"

    if streaks is not None:
        streak_lines = (
            f"- Current streak: {streaks.current.count} {streaks.current.type} rounds\n"
            f"- Longest streak: {streaks.longest.count} {streaks.longest.type} rounds\n"
            f"- Streak probability: {streaks.break_probability:.1f}%"
        )
    else:
        streak_lines = "- Not available"

    secondary = []
    if context.pattern_summary:
        secondary.append(f"**Pattern Summary**: {context.pattern_summary}")
    if context.hash_history:
        secondary.append(f"**Hash History**: {context.hash_history}")
    if context.round_data:
        secondary.append(f"**Round Data**: {context.round_data}")
    secondary_block = "\n".join(secondary) if secondary else "None supplied"

    return f"""\
# SKYSNIPER AI ARCHON - PREDICTION ENGINE

You are the ARCHON, an AI prediction system for crash-multiplier games with pattern recognition, mathematical modeling and multi-dimensional analysis.

## MISSION PARAMETERS
- **Strategy Mode**: {strategy}
- **Volatility Index**: {context.volatility_index}
- **Data Quality**: {len(recent)} crash points available

## HISTORICAL CRASH DATA (Most Recent Last)
**Last {len(recent)} Rounds**: [{_fmt_points(recent)}]
**Last 10 Rounds**: [{_fmt_points(recent[-10:])}]
**Last 5 Rounds**: [{_fmt_points(recent[-5:])}]

## SECONDARY CONTEXT
{secondary_block}

## ADVANCED ANALYTICS
**Statistical Metrics**:
- Mean: {a.mean:.3f}x
- Median: {a.median:.3f}x
- Standard Deviation: {a.std_dev:.3f}
- Variance: {a.variance:.3f}
- Skewness: {a.skewness:.3f}
- Kurtosis: {a.kurtosis:.3f}

**Distribution Analysis**:
- Low crashes (<2.0x): {a.low_count} ({a.low_percentage:.1f}%)
- Medium crashes (2.0x-5.0x): {a.medium_count} ({a.medium_percentage:.1f}%)
- High crashes (>5.0x): {a.high_count} ({a.high_percentage:.1f}%)

**Volatility Indicators**:
- Recent volatility: {a.recent_volatility:.3f}
- Trend direction: {a.trend_direction}
- Momentum: {a.momentum:.3f}

## PATTERN RECOGNITION
**Detected Patterns**:
{pattern_lines}

**Streak Analysis**:
{streak_lines}

**Cycle Analysis**:
- Pattern cycle: {cycle}
- Correction probability: {a.correction_probability:.1f}%

## STRATEGY-SPECIFIC INSTRUCTIONS

{strategy_instructions(strategy)}

## MATHEMATICAL MODELS
1. **Harmonic Mean Reversion**: {a.harmonic_mean:.3f}x
2. **Fibonacci Retracement**: {a.fibonacci_level:.3f}x
3. **Bollinger Band Midpoint**: {a.bollinger_prediction:.3f}x
4. **Monte Carlo Simulation**: {a.monte_carlo_estimate:.3f}x

## RISK ASSESSMENT MATRIX
- **Market Condition**: {a.market_condition}
- **Entry Risk**: {a.entry_risk}/10
- **Volatility Risk**: {context.volatility_index}/10
- **Pattern Reliability**: {a.pattern_reliability}/10

## OUTPUT REQUIREMENTS
Respond with EXACTLY this JSON format (no additional text):

{{
    "prediction": "X.XXx",
    "confidence": "Low|Medium|High|EXTREME",
    "comment": "Technical analysis with specific reasoning (max 150 chars)",
    "strategy": "{strategy}",
    "entry_timing": "Immediate|Wait 1-2 rounds|Wait 3+ rounds",
    "risk_level": 1-10,
    "pattern_signal": "bullish|bearish|neutral",
    "mathematical_basis": "Primary model used for prediction",
    "streak_factor": "How current streak affects prediction",
    "volatility_adjustment": "How volatility influenced the prediction"
}}
"""
