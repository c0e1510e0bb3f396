"""Cash flow stability index - how predictable monthly net cash flow is"""

import math
from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Sequence

from finsight_engine.domain.aggregation import sorted_monthly_aggregates
from finsight_engine.domain.constants import (
    MIN_MONTHS_FOR_TREND,
    STABILITY_INDEX_MODERATE,
    STABILITY_INDEX_STABLE,
    STABILITY_INDEX_VERY_STABLE,
    STABILITY_UNSTABLE_CV,
    STABILITY_VOLATILITY_SOURCE_CV,
)
from finsight_engine.domain.models import ConfidenceLevel, MonthlyAggregate, Transaction
from finsight_engine.domain.statistics import clamp, coefficient_of_variation, mean, standard_deviation

StabilityRating = Literal["Very Stable", "Stable", "Moderate", "Volatile"]
VolatilitySource = Literal["income", "expenses", "both", "neither"]

PROJECTION_MONTHS = 3


@dataclass(frozen=True)
class StabilityOptions:
    lookback_months: int = 12
    # Scale the index by the share of expenses that recur
    weight_by_recurring: bool = False


@dataclass
class RecurringAnalysis:
    recurring_expenses: float
    non_recurring_expenses: float
    recurring_ratio: float
    non_recurring_ratio: float


@dataclass
class CashFlowStabilityResult:
    stability_index: int  # 0-100
    rating: StabilityRating
    coefficient_of_variation: Optional[float]
    mean_net_cash_flow: float
    std_dev_net_cash_flow: float
    recurring_ratio: float
    probability_negative_month: Optional[float]
    probability_negative_3_months: Optional[float]
    confidence: ConfidenceLevel
    explanation: str


@dataclass
class VolatilitySources:
    income_volatility: Optional[int]  # CV as a whole percent
    expense_volatility: Optional[int]
    primary_source: VolatilitySource
    explanation: str


def calculate_cash_flow_cv(monthly_net: Sequence[float]) -> Optional[float]:
    return coefficient_of_variation(monthly_net)


def calculate_stability_index(monthly_net: Sequence[float], non_recurring_ratio: float = 0.0) -> int:
    """
    0-100 score: 100 * (1 - min(1, CV)), optionally scaled by (1 - non_recurring_ratio).

    A negative average net flow scores 0 no matter how steady it is.
    """
    if len(monthly_net) < 2 or mean(monthly_net) < 0:
        return 0

    cv = coefficient_of_variation(monthly_net)
    if cv is None:
        return 0

    raw = 100 * (1 - min(1.0, cv)) * (1 - non_recurring_ratio)
    return round(clamp(raw, 0, 100))


def get_stability_rating(index: float) -> StabilityRating:
    if index >= STABILITY_INDEX_VERY_STABLE:
        return "Very Stable"
    if index >= STABILITY_INDEX_STABLE:
        return "Stable"
    if index >= STABILITY_INDEX_MODERATE:
        return "Moderate"
    return "Volatile"


def probability_of_negative_cash_flow(avg: float, std_dev: float) -> float:
    """P(net < 0) for one month under a normal approximation, to 3 decimals"""
    if std_dev == 0:
        return 0.0 if avg >= 0 else 1.0
    z = -avg / std_dev
    probability = 0.5 * (1 + math.erf(z / math.sqrt(2)))
    return round(probability, 3)


def probability_negative_within(monthly_probability: float, months: int = PROJECTION_MONTHS) -> float:
    """Chance of at least one negative month among `months` independent months"""
    return round(1 - (1 - monthly_probability) ** months, 3)


def analyze_recurring_expenses(monthly: Sequence[MonthlyAggregate]) -> RecurringAnalysis:
    """
    Heuristic recurring share when no detected patterns are supplied:
    baseline spending (mean - stdDev) is treated as recurring.
    """
    if len(monthly) < 3:
        return RecurringAnalysis(0.0, 0.0, 0.0, 1.0)

    expenses = [m.expenses for m in monthly]
    avg = mean(expenses)
    recurring = max(0.0, avg - standard_deviation(expenses))
    ratio = recurring / avg if avg > 0 else 0.0

    return RecurringAnalysis(
        recurring_expenses=round(recurring, 2),
        non_recurring_expenses=round(avg - recurring, 2),
        recurring_ratio=round(ratio, 2),
        non_recurring_ratio=round(1 - ratio, 2),
    )


def recurring_analysis_from_total(monthly: Sequence[MonthlyAggregate], recurring_monthly_total: float) -> RecurringAnalysis:
    """Recurring share from the confirmed recurring monthly total over average monthly expenses"""
    avg = mean([m.expenses for m in monthly])
    recurring = min(recurring_monthly_total, avg) if avg > 0 else 0.0
    ratio = recurring / avg if avg > 0 else 0.0
    return RecurringAnalysis(
        recurring_expenses=round(recurring, 2),
        non_recurring_expenses=round(avg - recurring, 2),
        recurring_ratio=round(ratio, 2),
        non_recurring_ratio=round(1 - ratio, 2),
    )


def assess_stability_confidence(month_count: int) -> ConfidenceLevel:
    if month_count < MIN_MONTHS_FOR_TREND:
        return "insufficient"
    if month_count >= 12:
        return "high"
    if month_count >= 6:
        return "medium"
    return "low"


def generate_stability_explanation(rating: StabilityRating, cv: Optional[float], probability_negative: Optional[float]) -> str:
    explanations = {
        "Very Stable": "Cash flow is highly predictable with minimal variation.",
        "Stable": "Cash flow shows minor variations but remains generally consistent.",
        "Moderate": "Cash flow has noticeable fluctuations. Consider building a larger emergency fund buffer.",
        "Volatile": (
            "Cash flow varies significantly month-to-month. "
            "Budget conservatively using your lowest income months."
        ),
    }
    explanation = explanations[rating]

    if cv is not None and cv > STABILITY_UNSTABLE_CV:
        explanation += f" Coefficient of variation ({cv * 100:.1f}%) indicates high volatility."
    if probability_negative is not None and probability_negative > 0.1:
        explanation += f" There's a {probability_negative * 100:.0f}% chance of negative cash flow in any given month."

    return explanation


def analyze_cash_flow_stability(
    transactions: Iterable[Transaction],
    options: StabilityOptions = StabilityOptions(),
    recurring_monthly_total: Optional[float] = None,
) -> CashFlowStabilityResult:
    """
    Stability of monthly net cash flow over the lookback window.

    `recurring_monthly_total` is the confirmed recurring monthly cost from
    recurring detection; without it the recurring ratio is estimated from
    the expense series.
    """
    monthly = sorted_monthly_aggregates(transactions)[-options.lookback_months :]
    confidence = assess_stability_confidence(len(monthly))

    if confidence == "insufficient":
        return CashFlowStabilityResult(
            stability_index=0,
            rating="Volatile",
            coefficient_of_variation=None,
            mean_net_cash_flow=0.0,
            std_dev_net_cash_flow=0.0,
            recurring_ratio=0.0,
            probability_negative_month=None,
            probability_negative_3_months=None,
            confidence=confidence,
            explanation=(
                f"Need at least {MIN_MONTHS_FOR_TREND} months of data for stability analysis. "
                f"Currently have {len(monthly)}."
            ),
        )

    net_flows = [m.net for m in monthly]
    avg_net = mean(net_flows)
    std_dev_net = standard_deviation(net_flows)
    cv = calculate_cash_flow_cv(net_flows)

    if recurring_monthly_total is not None:
        recurring = recurring_analysis_from_total(monthly, recurring_monthly_total)
    else:
        recurring = analyze_recurring_expenses(monthly)

    non_recurring = recurring.non_recurring_ratio if options.weight_by_recurring else 0.0
    index = calculate_stability_index(net_flows, non_recurring)
    rating = get_stability_rating(index)
    probability = probability_of_negative_cash_flow(avg_net, std_dev_net)

    return CashFlowStabilityResult(
        stability_index=index,
        rating=rating,
        coefficient_of_variation=round(cv, 3) if cv is not None else None,
        mean_net_cash_flow=round(avg_net, 2),
        std_dev_net_cash_flow=round(std_dev_net, 2),
        recurring_ratio=recurring.recurring_ratio,
        probability_negative_month=probability,
        probability_negative_3_months=probability_negative_within(probability),
        confidence=confidence,
        explanation=generate_stability_explanation(rating, cv, probability),
    )


def analyze_volatility_sources(monthly: Sequence[MonthlyAggregate]) -> VolatilitySources:
    """Whether income, expenses, both or neither drive cash flow swings"""
    if len(monthly) < 3:
        return VolatilitySources(None, None, "neither", "Insufficient data to analyze volatility sources.")

    income_cv = coefficient_of_variation([m.income for m in monthly])
    expense_cv = coefficient_of_variation([m.expenses for m in monthly])

    income_volatile = income_cv is not None and income_cv > STABILITY_VOLATILITY_SOURCE_CV
    expense_volatile = expense_cv is not None and expense_cv > STABILITY_VOLATILITY_SOURCE_CV

    if income_volatile and expense_volatile:
        source: VolatilitySource = "both"
        explanation = "Both income and expenses show significant variation."
    elif income_volatile:
        source = "income"
        explanation = "Income is the primary source of cash flow volatility. Expenses are relatively stable."
    elif expense_volatile:
        source = "expenses"
        explanation = "Expenses are the primary source of cash flow volatility. Income is relatively stable."
    else:
        source = "neither"
        explanation = "Both income and expenses are relatively stable."

    return VolatilitySources(
        income_volatility=round(income_cv * 100) if income_cv is not None else None,
        expense_volatility=round(expense_cv * 100) if expense_cv is not None else None,
        primary_source=source,
        explanation=explanation,
    )
