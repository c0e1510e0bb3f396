"""Expense forecasting with single, double (Holt) and triple (Holt-Winters) exponential smoothing"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Optional, Sequence

from finsight_engine.domain.aggregation import monthly_amounts_for_category
from finsight_engine.domain.constants import (
    FORECAST_ALPHA,
    FORECAST_BETA,
    FORECAST_CONFIDENCE_INTERVAL,
    FORECAST_GAMMA,
    FORECAST_HIGH_CONFIDENCE_CV,
    FORECAST_HORIZON,
    FORECAST_MEDIUM_CONFIDENCE_CV,
    FORECAST_OVERRIDE_WEIGHT,
    MIN_MONTHS_FOR_SEASONALITY,
)
from finsight_engine.domain.exceptions import InvalidInputError
from finsight_engine.domain.models import ConfidenceLevel, MonthlyValue, Transaction
from finsight_engine.domain.statistics import coefficient_of_variation, mean, standard_deviation
from finsight_engine.domain.trends import half_split_change

ForecastTrend = Literal["increasing", "decreasing", "stable"]
ForecastMethod = Literal["exponential_smoothing", "simple_average", "insufficient_data"]

SEASON_LENGTH = 12

_CONFIDENCE_RANK: Dict[str, int] = {"insufficient": 0, "low": 1, "medium": 2, "high": 3}


@dataclass(frozen=True)
class ForecastOptions:
    alpha: float = FORECAST_ALPHA
    beta: float = FORECAST_BETA
    gamma: float = FORECAST_GAMMA
    horizon_months: int = FORECAST_HORIZON
    user_override: Optional[float] = None
    user_override_weight: float = FORECAST_OVERRIDE_WEIGHT
    interval_z: float = FORECAST_CONFIDENCE_INTERVAL

    def __post_init__(self):
        for name in ("alpha", "beta", "gamma"):
            value = getattr(self, name)
            if not 0 < value <= 1:
                raise InvalidInputError(f"{name} must be in (0, 1], got {value}")
        if self.horizon_months < 1:
            raise InvalidInputError(f"horizon_months must be at least 1, got {self.horizon_months}")
        if not 0 <= self.user_override_weight <= 1:
            raise InvalidInputError(f"user_override_weight must be in [0, 1], got {self.user_override_weight}")


@dataclass
class SmoothingResult:
    forecast: float
    smoothed_values: List[float]
    trend: float = 0.0
    seasonal_indices: List[float] = field(default_factory=list)


@dataclass
class ConfidenceInterval:
    lower: float
    upper: float


@dataclass
class ForecastResult:
    category: str
    forecast: float
    confidence_interval: ConfidenceInterval
    confidence: ConfidenceLevel
    trend: ForecastTrend
    monthly_history: List[MonthlyValue]
    method: ForecastMethod


def simple_exponential_smoothing(values: Sequence[float], alpha: float = FORECAST_ALPHA) -> SmoothingResult:
    """
    Level-only smoothing for series without trend.

    Below three points the forecast is the plain mean and nothing is smoothed.
    Otherwise the level starts at the mean of the first three values.
    """
    if not values:
        return SmoothingResult(forecast=0.0, smoothed_values=[])
    if len(values) < 3:
        return SmoothingResult(forecast=mean(values), smoothed_values=list(values))

    smoothed = [mean(values[:3])]
    for value in values[1:]:
        smoothed.append(alpha * value + (1 - alpha) * smoothed[-1])

    return SmoothingResult(forecast=smoothed[-1], smoothed_values=smoothed)


def holts_linear_smoothing(
    values: Sequence[float],
    alpha: float = FORECAST_ALPHA,
    beta: float = FORECAST_BETA,
    horizon_months: int = FORECAST_HORIZON,
) -> SmoothingResult:
    """
    Level + trend smoothing. Forecast is level + horizon * trend, floored at 0.

    Level starts at the first-half mean; trend at the half-over-half
    difference spread over the first half's length.
    """
    if len(values) < 3:
        return SmoothingResult(forecast=mean(values), smoothed_values=list(values))

    mid = len(values) // 2
    first_half, second_half = values[:mid], values[mid:]
    level = mean(first_half)
    trend = (mean(second_half) - level) / max(len(first_half), 1)

    smoothed = [level]
    for value in values[1:]:
        prev_level = level
        level = alpha * value + (1 - alpha) * (level + trend)
        trend = beta * (level - prev_level) + (1 - beta) * trend
        smoothed.append(level)

    forecast = level + horizon_months * trend
    return SmoothingResult(forecast=max(0.0, forecast), smoothed_values=smoothed, trend=trend)


def holt_winters_smoothing(
    values: Sequence[float],
    alpha: float = FORECAST_ALPHA,
    beta: float = FORECAST_BETA,
    gamma: float = FORECAST_GAMMA,
    season_length: int = SEASON_LENGTH,
    horizon_months: int = FORECAST_HORIZON,
) -> SmoothingResult:
    """
    Multiplicative seasonal smoothing; falls back to Holt below one full season.

    Seasonal indices start from the first season's ratios to its mean; the
    trend starts from the second season when there is one. A zero index or
    level leaves the affected ratio unscaled.
    """
    if len(values) < season_length:
        holt = holts_linear_smoothing(values, alpha, beta, horizon_months)
        holt.seasonal_indices = [1.0] * season_length
        return holt

    first_season = values[:season_length]
    first_mean = mean(first_season)
    indices = [v / first_mean if first_mean > 0 else 1.0 for v in first_season]

    level = first_mean
    trend = 0.0
    if len(values) > season_length:
        second_mean = mean(values[season_length : season_length * 2])
        trend = (second_mean - first_mean) / season_length

    smoothed = []
    for t, value in enumerate(values):
        slot = t % season_length
        prev_index = indices[slot]

        prev_level = level
        deseasonalized = value / prev_index if prev_index else value
        level = alpha * deseasonalized + (1 - alpha) * (level + trend)
        trend = beta * (level - prev_level) + (1 - beta) * trend
        ratio = value / level if level else prev_index
        indices[slot] = gamma * ratio + (1 - gamma) * prev_index

        smoothed.append(level * prev_index)

    future_slot = (len(values) + horizon_months - 1) % season_length
    forecast = (level + horizon_months * trend) * indices[future_slot]

    return SmoothingResult(
        forecast=max(0.0, forecast),
        smoothed_values=smoothed,
        trend=trend,
        seasonal_indices=indices,
    )


def calculate_confidence_interval(
    actual_values: Sequence[float],
    smoothed_values: Sequence[float],
    forecast: float,
    z: float = FORECAST_CONFIDENCE_INTERVAL,
) -> ConfidenceInterval:
    """
    forecast +/- z * stdDev(actual - smoothed), lower bound floored at 0.

    Without usable residuals the interval is a wide 50%-150% band.
    """
    if len(actual_values) != len(smoothed_values) or len(actual_values) < 2:
        return ConfidenceInterval(lower=forecast * 0.5, upper=forecast * 1.5)

    residuals = [actual - fitted for actual, fitted in zip(actual_values, smoothed_values)]
    spread = z * standard_deviation(residuals)
    return ConfidenceInterval(lower=max(0.0, forecast - spread), upper=forecast + spread)


def assess_forecast_confidence(cv: Optional[float]) -> ConfidenceLevel:
    if cv is None:
        return "insufficient"
    if cv < FORECAST_HIGH_CONFIDENCE_CV:
        return "high"
    if cv < FORECAST_MEDIUM_CONFIDENCE_CV:
        return "medium"
    return "low"


def detect_trend(values: Sequence[float]) -> ForecastTrend:
    """Half-over-half direction with a +/-10% band; short or zero-based series are stable"""
    if len(values) < 3:
        return "stable"
    first_avg, second_avg, _ = half_split_change(values)
    if first_avg == 0:
        return "stable"

    change = (second_avg - first_avg) / first_avg
    if change > 0.1:
        return "increasing"
    if change < -0.1:
        return "decreasing"
    return "stable"


def forecast_category(
    transactions: Iterable[Transaction],
    category: str,
    options: ForecastOptions = ForecastOptions(),
) -> ForecastResult:
    """
    Next-period forecast for one category.

    Method by history length:
    - no months: insufficient_data, forecast 0
    - 1-2 months: simple average with a 50%-150% interval
    - 3-11 months: Holt's linear smoothing
    - 12+ months: Holt-Winters seasonal smoothing

    A user override is blended in as (1 - w) * model + w * override.
    """
    history = [MonthlyValue(month, amount) for month, amount in monthly_amounts_for_category(transactions, category)]
    values = [point.value for point in history]

    if not values:
        return ForecastResult(
            category=category,
            forecast=0.0,
            confidence_interval=ConfidenceInterval(0.0, 0.0),
            confidence="insufficient",
            trend="stable",
            monthly_history=[],
            method="insufficient_data",
        )

    if len(values) < 3:
        avg = mean(values)
        return ForecastResult(
            category=category,
            forecast=avg,
            confidence_interval=ConfidenceInterval(avg * 0.5, avg * 1.5),
            confidence="low",
            trend="stable",
            monthly_history=history,
            method="simple_average",
        )

    if len(values) >= MIN_MONTHS_FOR_SEASONALITY:
        model = holt_winters_smoothing(
            values, options.alpha, options.beta, options.gamma, SEASON_LENGTH, options.horizon_months
        )
    else:
        model = holts_linear_smoothing(values, options.alpha, options.beta, options.horizon_months)

    forecast = model.forecast
    if options.user_override is not None:
        weight = options.user_override_weight
        forecast = (1 - weight) * forecast + weight * options.user_override

    interval = calculate_confidence_interval(values, model.smoothed_values, forecast, options.interval_z)

    return ForecastResult(
        category=category,
        forecast=round(forecast, 2),
        confidence_interval=ConfidenceInterval(round(interval.lower, 2), round(interval.upper, 2)),
        confidence=assess_forecast_confidence(coefficient_of_variation(values)),
        trend=detect_trend(values),
        monthly_history=history,
        method="exponential_smoothing",
    )


def forecast_all_categories(
    transactions: Sequence[Transaction],
    options: ForecastOptions = ForecastOptions(),
) -> List[ForecastResult]:
    """Forecast every expense category, largest forecast first"""
    categories = list(dict.fromkeys(t.category for t in transactions if t.type == "expense"))
    results = [forecast_category(transactions, category, options) for category in categories]
    return sorted(results, key=lambda r: r.forecast, reverse=True)


def forecast_total_expenses(
    transactions: Sequence[Transaction],
    options: ForecastOptions = ForecastOptions(),
) -> ForecastResult:
    """Sum of category forecasts; confidence is the weakest category's confidence"""
    forecasts = forecast_all_categories(transactions, options)

    confidence: ConfidenceLevel = "high" if forecasts else "insufficient"
    for result in forecasts:
        if _CONFIDENCE_RANK[result.confidence] < _CONFIDENCE_RANK[confidence]:
            confidence = result.confidence

    monthly_totals: Dict[str, float] = {}
    for result in forecasts:
        for point in result.monthly_history:
            monthly_totals[point.month] = monthly_totals.get(point.month, 0.0) + point.value
    history = [MonthlyValue(month, monthly_totals[month]) for month in sorted(monthly_totals)]

    return ForecastResult(
        category="Total",
        forecast=round(sum(f.forecast for f in forecasts), 2),
        confidence_interval=ConfidenceInterval(
            round(sum(f.confidence_interval.lower for f in forecasts), 2),
            round(sum(f.confidence_interval.upper for f in forecasts), 2),
        ),
        confidence=confidence,
        trend=detect_trend([point.value for point in history]),
        monthly_history=history,
        method="exponential_smoothing" if forecasts else "insufficient_data",
    )
