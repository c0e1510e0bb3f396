"""Trend classification for monthly series"""

from typing import List, Optional, Sequence, Tuple

from finsight_engine.domain.constants import MIN_MONTHS_FOR_TREND
from finsight_engine.domain.models import MonthlyValue, TrendAnalysis, TrendDirection
from finsight_engine.domain.statistics import (
    coefficient_of_variation,
    mean,
    rolling_average,
    standard_deviation,
)

# CV above which a series is called volatile regardless of direction
VOLATILE_CV = 0.3
# Half-over-half change (percent) needed to call a direction
DIRECTION_CHANGE_PERCENT = 10.0


def half_split_change(values: Sequence[float]) -> Tuple[float, float, Optional[float]]:
    """
    Compare the first half of a series to the second half.

    The split point is floor(n/2), so the second half takes the odd element.
    Returns (first_avg, second_avg, change_percent); change is None when the
    first half averages to zero or less.
    """
    mid = len(values) // 2
    first_avg = mean(values[:mid])
    second_avg = mean(values[mid:])
    change = ((second_avg - first_avg) / first_avg) * 100 if first_avg > 0 else None
    return first_avg, second_avg, change


def analyze_trend(monthly_data: Sequence[MonthlyValue]) -> TrendAnalysis:
    """
    Classify a chronological monthly series.

    Requirements:
    - Fewer than 3 points: direction and confidence are "insufficient"
    - CV > 0.3 reports "volatile" ahead of any direction
    - Otherwise +/-10% half-over-half change picks increasing/decreasing
    - Confidence is "high" with 6+ points, else "medium"
    """
    series: List[MonthlyValue] = list(monthly_data)
    values = [point.value for point in series]

    if len(values) < MIN_MONTHS_FOR_TREND:
        return TrendAnalysis(
            direction="insufficient",
            change_percent=None,
            rolling_avg_3_month=None,
            rolling_avg_6_month=None,
            standard_deviation=None,
            coefficient_of_variation=None,
            monthly_values=series,
            explanation=(
                f"Need at least {MIN_MONTHS_FOR_TREND} months of data for trend analysis. "
                f"Currently have {len(values)}."
            ),
            confidence="insufficient",
        )

    cv = coefficient_of_variation(values)
    _, _, change = half_split_change(values)

    direction: TrendDirection = "stable"
    if cv is not None and cv > VOLATILE_CV:
        direction = "volatile"
    elif change is not None:
        if change > DIRECTION_CHANGE_PERCENT:
            direction = "increasing"
        elif change < -DIRECTION_CHANGE_PERCENT:
            direction = "decreasing"

    if direction == "increasing":
        explanation = f"Trending upward: {change:.1f}% change comparing recent months to earlier months."
    elif direction == "decreasing":
        explanation = f"Trending downward: {change:.1f}% change comparing recent months to earlier months."
    elif direction == "volatile":
        explanation = (
            f"Highly variable: Values fluctuate significantly (CV: {cv * 100:.1f}%). "
            "Look for irregular large items."
        )
    else:
        explanation = "Relatively stable: Values remain consistent within normal variation."

    return TrendAnalysis(
        direction=direction,
        change_percent=change,
        rolling_avg_3_month=rolling_average(values, 3),
        rolling_avg_6_month=rolling_average(values, 6),
        standard_deviation=standard_deviation(values),
        coefficient_of_variation=cv,
        monthly_values=series,
        explanation=explanation,
        confidence="high" if len(values) >= 6 else "medium",
    )
