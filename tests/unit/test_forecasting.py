"""Unit tests for exponential-smoothing forecasts"""

from datetime import date

import pytest

from finsight_engine.domain.exceptions import InvalidInputError
from finsight_engine.domain.forecasting import (
    ForecastOptions,
    assess_forecast_confidence,
    calculate_confidence_interval,
    detect_trend,
    forecast_all_categories,
    forecast_category,
    forecast_total_expenses,
    holt_winters_smoothing,
    holts_linear_smoothing,
    simple_exponential_smoothing,
)


def _monthly(make_transaction, category, amounts, year=2023):
    return [
        make_transaction(date(year + (i // 12), i % 12 + 1, 10), amount, f"{category} Shop", category)
        for i, amount in enumerate(amounts)
    ]


def test_simple_smoothing_starts_from_first_three_mean():
    """Test level seeds at mean of the first three values"""
    result = simple_exponential_smoothing([10, 20, 30])
    # 20 -> 0.3*20 + 0.7*20 = 20 -> 0.3*30 + 0.7*20 = 23
    assert result.smoothed_values == pytest.approx([20, 20, 23])
    assert result.forecast == pytest.approx(23)


def test_simple_smoothing_short_series_is_mean():
    assert simple_exponential_smoothing([10, 30]).forecast == 20
    assert simple_exponential_smoothing([]).forecast == 0.0


def test_holt_follows_linear_growth():
    result = holts_linear_smoothing([100, 110, 120, 130, 140, 150])
    assert result.trend > 0
    assert result.forecast > 150
    assert len(result.smoothed_values) == 6


def test_holt_forecast_floored_at_zero():
    result = holts_linear_smoothing([300, 200, 100, 10, 5, 1], horizon_months=12)
    assert result.forecast == 0.0


def test_holt_winters_constant_series():
    """Test a flat year keeps unit seasonal indices and a flat forecast"""
    result = holt_winters_smoothing([100.0] * 12)
    assert result.forecast == pytest.approx(100.0)
    assert result.seasonal_indices == pytest.approx([1.0] * 12)


def test_holt_winters_falls_back_below_a_season():
    result = holt_winters_smoothing([100, 110, 120])
    assert result.seasonal_indices == [1.0] * 12


def test_holt_winters_tolerates_zero_months():
    values = [0.0, 100.0] * 9
    result = holt_winters_smoothing(values)
    assert result.forecast >= 0.0


def test_confidence_interval_from_residuals():
    interval = calculate_confidence_interval([100, 110, 90], [100, 100, 100], 100)
    # Residuals 0, 10, -10 -> sample stdDev 10
    assert interval.lower == pytest.approx(100 - 19.6)
    assert interval.upper == pytest.approx(100 + 19.6)


def test_confidence_interval_fallback_band():
    interval = calculate_confidence_interval([100], [100], 80)
    assert (interval.lower, interval.upper) == (40, 120)


@pytest.mark.parametrize("cv, expected", [(None, "insufficient"), (0.1, "high"), (0.3, "medium"), (0.6, "low")])
def test_assess_forecast_confidence(cv, expected):
    assert assess_forecast_confidence(cv) == expected


def test_detect_trend():
    assert detect_trend([100, 100, 130, 130]) == "increasing"
    assert detect_trend([100, 100, 80, 80]) == "decreasing"
    assert detect_trend([100, 101]) == "stable"


@pytest.mark.parametrize(
    "options",
    [
        {"alpha": 0},
        {"beta": 1.5},
        {"horizon_months": 0},
        {"user_override_weight": 1.2},
    ],
)
def test_invalid_options_raise(options):
    with pytest.raises(InvalidInputError):
        ForecastOptions(**options)


def test_forecast_category_without_history(make_transaction):
    result = forecast_category([], "Dining")
    assert result.method == "insufficient_data"
    assert result.confidence == "insufficient"
    assert result.forecast == 0.0


def test_forecast_category_short_history_uses_average(make_transaction):
    transactions = _monthly(make_transaction, "Dining", [100, 200])
    result = forecast_category(transactions, "Dining")
    assert result.method == "simple_average"
    assert result.forecast == 150
    assert (result.confidence_interval.lower, result.confidence_interval.upper) == (75, 225)
    assert result.confidence == "low"


def test_forecast_category_steady_spending(make_transaction):
    transactions = _monthly(make_transaction, "Utilities", [120.0] * 6)
    result = forecast_category(transactions, "Utilities")

    assert result.method == "exponential_smoothing"
    assert result.forecast == pytest.approx(120.0)
    assert result.confidence == "high"
    assert result.trend == "stable"
    assert [p.month for p in result.monthly_history][:2] == ["2023-01", "2023-02"]


def test_user_override_is_blended(make_transaction):
    """Test override blends as 0.6 * model + 0.4 * override"""
    transactions = _monthly(make_transaction, "Utilities", [100.0] * 6)
    result = forecast_category(transactions, "Utilities", ForecastOptions(user_override=200))
    assert result.forecast == pytest.approx(140.0)


def test_seasonal_model_for_a_year_of_history(make_transaction):
    amounts = [100.0] * 11 + [300.0] + [100.0] * 2
    transactions = _monthly(make_transaction, "Gifts", amounts)
    result = forecast_category(transactions, "Gifts")
    assert result.method == "exponential_smoothing"
    assert result.forecast > 0


def test_total_forecast_uses_weakest_confidence(make_transaction):
    steady = _monthly(make_transaction, "Utilities", [100.0] * 6)
    noisy = _monthly(make_transaction, "Dining", [20.0, 200.0, 50.0, 300.0, 10.0, 250.0])

    total = forecast_total_expenses(steady + noisy)

    assert total.category == "Total"
    assert total.confidence == "low"
    dining = forecast_category(noisy, "Dining")
    assert total.forecast == pytest.approx(100.0 + dining.forecast, abs=0.01)
    assert len(total.monthly_history) == 6
    assert total.monthly_history[0].value == 120.0


def test_total_forecast_without_expenses():
    total = forecast_total_expenses([])
    assert total.confidence == "insufficient"
    assert total.method == "insufficient_data"
    assert total.forecast == 0.0


def test_all_categories_largest_first(make_transaction):
    transactions = (
        _monthly(make_transaction, "Utilities", [100.0] * 6)
        + _monthly(make_transaction, "Rent", [1200.0] * 6)
        + [make_transaction(date(2023, 3, 1), 5000.0, "Payroll", "Salary", "income")]
    )

    results = forecast_all_categories(transactions)

    assert [r.category for r in results] == ["Rent", "Utilities"]
