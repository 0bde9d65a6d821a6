"""
Fallback Generator Tests.
"""

from skysniper.engine.fallback import CANNED_FALLBACK, generate_fallback


class TestGenerateFallback:

    def test_empty_series_returns_canned(self):
        result = generate_fallback([])
        assert result is CANNED_FALLBACK
        assert result.prediction == "2.15x"
        assert result.confidence == "Low"
        assert result.strategy == "Conservative"
        assert result.entry_timing == "Wait 1-2 rounds"
        assert result.risk_level == 3
        assert result.fallback is True

    def test_none_series_returns_canned(self):
        assert generate_fallback(None) is CANNED_FALLBACK

    def test_recent_average_uplift(self):
        """mean([1..5]) = 3 → 3.3."""
        result = generate_fallback([1, 2, 3, 4, 5])
        assert result.prediction == "3.30x"
        assert result.confidence == "Medium"
        assert result.comment == "Mathematical fallback based on recent average"
        assert result.strategy == "Balanced"
        assert result.entry_timing == "Immediate"
        assert result.risk_level == 4
        assert result.voting_consensus == 0
        assert result.fallback is True

    def test_only_last_five_points_count(self):
        result = generate_fallback([100.0] * 20 + [1, 2, 3, 4, 5])
        assert result.prediction == "3.30x"

    def test_floor(self):
        assert generate_fallback([1.0] * 10).prediction == "1.50x"

    def test_ceiling(self):
        assert generate_fallback([50.0] * 10).prediction == "10.00x"

    def test_short_series(self):
        """Fewer than five points averages what is there."""
        assert generate_fallback([2.0, 4.0]).prediction == "3.30x"

    def test_deterministic(self):
        series = [1.2, 3.4, 1.8, 2.5, 7.1, 1.1]
        assert generate_fallback(series) == generate_fallback(series)
