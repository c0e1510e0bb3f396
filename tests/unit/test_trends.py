"""Unit tests for monthly trend classification"""

import pytest

from finsight_engine.domain.models import MonthlyValue
from finsight_engine.domain.trends import analyze_trend, half_split_change


def _series(values):
    return [MonthlyValue(f"2024-{i + 1:02d}", v) for i, v in enumerate(values)]


def test_half_split_gives_odd_element_to_second_half():
    first, second, change = half_split_change([100, 100, 130])
    assert first == 100
    assert second == 115
    assert change == pytest.approx(15.0)


def test_half_split_change_undefined_for_zero_first_half():
    assert half_split_change([0, 0, 50, 50])[2] is None


def test_trend_needs_three_months():
    """Test short series report insufficient data"""
    result = analyze_trend(_series([100, 200]))
    assert result.direction == "insufficient"
    assert result.confidence == "insufficient"
    assert result.change_percent is None


def test_increasing_trend():
    result = analyze_trend(_series([100, 100, 100, 120, 120, 120]))
    assert result.direction == "increasing"
    assert result.change_percent == pytest.approx(20.0)
    assert result.rolling_avg_3_month == pytest.approx(120.0)
    assert result.rolling_avg_6_month == pytest.approx(110.0)
    assert result.confidence == "high"


def test_decreasing_trend_with_medium_confidence():
    result = analyze_trend(_series([200, 200, 170, 170]))
    assert result.direction == "decreasing"
    assert result.confidence == "medium"


def test_volatility_takes_precedence_over_direction():
    """Test CV above 0.3 is reported as volatile"""
    result = analyze_trend(_series([100, 400, 50, 500, 20, 600]))
    assert result.direction == "volatile"
    assert result.coefficient_of_variation > 0.3


def test_stable_trend():
    result = analyze_trend(_series([100, 103, 98, 101]))
    assert result.direction == "stable"
    assert "stable" in result.explanation
