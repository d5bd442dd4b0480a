from __future__ import annotations

import pytest

from orbtrack.core.risk import RiskLevel, classify, format_probability, parse_risk_level, risk_rank


class TestClassify:
    """Risk tier classification from miss distance and probability."""

    def test_range_trigger_high(self):
        """Close approach alone is enough for HIGH."""
        assert classify(0.5, 0.00005) is RiskLevel.HIGH

    def test_probability_trigger_high(self):
        """High probability alone is enough for HIGH."""
        assert classify(10, 0.0002) is RiskLevel.HIGH

    def test_low(self):
        assert classify(6, 0.000005) is RiskLevel.LOW

    def test_medium_by_range(self):
        assert classify(4.9, 0.0) is RiskLevel.MEDIUM

    def test_medium_by_probability(self):
        assert classify(50.0, 2e-5) is RiskLevel.MEDIUM

    def test_thresholds_are_strict(self):
        # probability must exceed the threshold; range must be strictly below
        assert classify(1.0, 1e-4) is RiskLevel.MEDIUM
        assert classify(5.0, 1e-5) is RiskLevel.LOW

    def test_zero_range_is_high(self):
        assert classify(0.0, 0.0) is RiskLevel.HIGH

    def test_out_of_range_probability_not_clamped(self):
        assert classify(100.0, 1.5) is RiskLevel.HIGH
        assert classify(100.0, -0.3) is RiskLevel.LOW

    def test_pure_function(self):
        results = {classify(2.5, 1e-5) for _ in range(10)}
        assert results == {RiskLevel.MEDIUM}

    def test_string_value(self):
        assert classify(0.1, 0.0) == "high"
        assert str(RiskLevel.LOW) == "low"


class TestRiskRank:
    def test_ranks(self):
        assert risk_rank(RiskLevel.HIGH) == 3
        assert risk_rank("medium") == 2
        assert risk_rank(RiskLevel.LOW) == 1

    def test_unknown_rank_zero(self):
        assert risk_rank("critical") == 0
        assert risk_rank(None) == 0


class TestParseRiskLevel:
    def test_case_insensitive(self):
        assert parse_risk_level(" HIGH ") is RiskLevel.HIGH

    def test_passthrough(self):
        assert parse_risk_level(RiskLevel.LOW) is RiskLevel.LOW

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown risk level"):
            parse_risk_level("severe")


class TestFormatProbability:
    def test_odds(self):
        assert format_probability(1e-4) == "1 in 10,000"

    def test_zero_and_negative(self):
        assert format_probability(0) == "0"
        assert format_probability(-1e-3) == "0"

    def test_certain(self):
        assert format_probability(1.0) == "1 in 1"
