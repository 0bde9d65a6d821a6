"""
Prompt Builder Tests.
"""

from skysniper.engine.analytics import AnalyticsEngine
from skysniper.services.prompt_builder import (
    PromptContext,
    build_prompt,
    strategy_instructions,
)


def _prompt(series, strategy="Balanced", context=None):
    analysis = AnalyticsEngine(seed=3, monte_carlo_trials=50).analyze(series[-50:])
    return build_prompt(series, strategy, analysis, context)


class TestBuildPrompt:

    def setup_method(self):
        self.series = [1.5, 3.0] * 40

    def test_header_and_strategy(self):
        prompt = _prompt(self.series, "Aggressive")
        assert "# SKYSNIPER AI ARCHON - PREDICTION ENGINE" in prompt
        assert "**Strategy Mode**: Aggressive" in prompt
        assert "**AGGRESSIVE STRATEGY PARAMETERS**" in prompt
        assert '"strategy": "Aggressive"' in prompt

    def test_only_last_fifty_points_listed(self):
        prompt = _prompt([9.0] * 30 + self.series)
        assert "**Last 50 Rounds**" in prompt
        assert "9," not in prompt.split("**Last 50 Rounds**")[1].split("\n")[0]

    def test_patterns_rendered(self):
        prompt = _prompt(self.series)
        assert "- Alternating: High-Low alternating pattern detected (Confidence: 95)" in prompt
        assert "- Pattern cycle: 2" in prompt

    def test_no_patterns(self):
        prompt = _prompt([1.0, 2.3, 7.5, 1.9, 12.0, 3.3, 1.2, 1.2, 40.0, 4.4])
        assert "- None detected" in prompt
        assert "- Pattern cycle: No clear cycle" in prompt

    def test_secondary_context_passthrough(self):
        context = PromptContext(
            pattern_summary="hot table",
            round_data={"round": 42},
            volatility_index=7.5,
        )
        prompt = _prompt(self.series, context=context)
        assert "**Pattern Summary**: hot table" in prompt
        assert "**Round Data**: {'round': 42}" in prompt
        assert "**Volatility Index**: 7.5" in prompt
        assert "**Hash History**" not in prompt

    def test_no_secondary_context(self):
        assert "None supplied" in _prompt(self.series)

    def test_json_schema_requested(self):
        prompt = _prompt(self.series)
        for key in ("prediction", "confidence", "entry_timing", "risk_level", "volatility_adjustment"):
            assert f'"{key}"' in prompt


class TestStrategyInstructions:

    def test_known(self):
        assert strategy_instructions("Conservative").startswith("**CONSERVATIVE")

    def test_unknown_defaults_to_balanced(self):
        assert strategy_instructions("Yolo") == strategy_instructions("Balanced")
