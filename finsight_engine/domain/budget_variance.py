"""Budget variance engine - planned vs actual spending per category"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from finsight_engine.domain.aggregation import aggregate_by_category
from finsight_engine.domain.constants import (
    BUDGET_VARIANCE_ALERT,
    BUDGET_VARIANCE_ON_TRACK,
    EXCLUDED_BUDGET_CATEGORIES,
    MIN_MONTHS_FOR_SEASONALITY,
    VARIANCE_REVIEW_SENTINEL,
)
from finsight_engine.domain.models import Budget, ConfidenceLevel, Transaction
from finsight_engine.domain.statistics import mean
from finsight_engine.utils.date_utils import format_month_key, month_key, parse_month_key

VarianceStatus = Literal["On Track", "Over Budget", "Under Budget"]

# Spread between the largest and smallest seasonal factor that counts as seasonal
SEASONAL_SWING = 0.4


@dataclass(frozen=True)
class BudgetVarianceOptions:
    on_track_threshold: float = BUDGET_VARIANCE_ON_TRACK
    alert_threshold: float = BUDGET_VARIANCE_ALERT
    excluded_categories: Tuple[str, ...] = EXCLUDED_BUDGET_CATEGORIES


@dataclass
class BudgetVarianceResult:
    category: str
    budgeted: float
    actual: float
    variance: float  # percent; math.inf when nothing was budgeted but money was spent
    variance_amount: float
    status: VarianceStatus
    is_red_flag: bool


@dataclass
class MonthlyBudgetReport:
    month: str
    total_budgeted: float
    total_actual: float
    total_variance: float
    surplus: float
    categories: List[BudgetVarianceResult]
    red_flag_count: int


@dataclass
class YTDCategoryResult(BudgetVarianceResult):
    ytd_actual: float = 0.0
    annual_budget: float = 0.0


@dataclass
class YTDTracking:
    ytd_budgeted: float
    ytd_actual: float
    ytd_variance: float
    months_elapsed: int
    projected_year_end: float
    categories: List[YTDCategoryResult] = field(default_factory=list)


@dataclass
class SeasonalityResult:
    has_seasonal: bool
    seasonal_factors: Dict[int, float]  # calendar month (1-12) -> factor vs overall mean


@dataclass
class BudgetSuggestion:
    suggested: float
    confidence: ConfidenceLevel
    note: str


def calculate_budget_variance(budget: float, actual: float) -> float:
    """
    Variance as a percentage of budget: (actual - budget) / budget * 100.

    A zero budget with spending returns math.inf, flagging the category for
    review rather than reporting a ratio.
    """
    if budget == 0:
        return math.inf if actual > 0 else 0.0
    return ((actual - budget) / budget) * 100


def serializable_variance(variance: float) -> float:
    """Replace the infinite review sentinel with 999 for JSON output"""
    return variance if math.isfinite(variance) else VARIANCE_REVIEW_SENTINEL


def classify_variance_status(variance: float, options: BudgetVarianceOptions = BudgetVarianceOptions()) -> VarianceStatus:
    if not math.isfinite(variance):
        return "Over Budget"
    if variance > options.on_track_threshold * 100:
        return "Over Budget"
    if variance < -options.on_track_threshold * 100:
        return "Under Budget"
    return "On Track"


def is_red_flag(variance: float, options: BudgetVarianceOptions = BudgetVarianceOptions()) -> bool:
    """Only overspending flags; underspend never does"""
    if not math.isfinite(variance):
        return True
    return variance > options.alert_threshold * 100


def calculate_month_surplus(income: float, expenses: float) -> float:
    return income - expenses


def calculate_category_variance(
    category: str,
    budgeted: float,
    actual: float,
    options: BudgetVarianceOptions = BudgetVarianceOptions(),
) -> BudgetVarianceResult:
    variance = calculate_budget_variance(budgeted, actual)
    return BudgetVarianceResult(
        category=category,
        budgeted=budgeted,
        actual=actual,
        variance=variance,
        variance_amount=actual - budgeted,
        status=classify_variance_status(variance, options),
        is_red_flag=is_red_flag(variance, options),
    )


def generate_category_variance_report(
    budgets: Sequence[Budget],
    actuals: Dict[str, float],
    options: BudgetVarianceOptions = BudgetVarianceOptions(),
) -> List[BudgetVarianceResult]:
    """
    Variance for every budgeted category plus every unbudgeted category with
    spending, largest overspend first. Transfer-like categories are skipped.
    """
    results = []
    budgeted_categories = {b.category for b in budgets}

    for budget in budgets:
        if budget.category in options.excluded_categories:
            continue
        actual = actuals.get(budget.category, 0.0)
        results.append(calculate_category_variance(budget.category, budget.amount, actual, options))

    for category, actual in actuals.items():
        if category in options.excluded_categories or category in budgeted_categories:
            continue
        results.append(calculate_category_variance(category, 0.0, actual, options))

    return sorted(results, key=lambda r: r.variance_amount, reverse=True)


def generate_monthly_budget_report(
    month: str,
    budgets: Sequence[Budget],
    transactions: Iterable[Transaction],
    income: Optional[float] = None,
    options: BudgetVarianceOptions = BudgetVarianceOptions(),
) -> MonthlyBudgetReport:
    """
    Full budget report for one YYYY-MM month.

    Income defaults to the month's income transactions when not supplied.
    An infinite total variance (nothing budgeted at all) is reported as 0.
    """
    target = parse_month_key(month)
    month_txns = [t for t in transactions if month_key(t.date) == target]

    actuals = aggregate_by_category(month_txns, "expense")
    categories = generate_category_variance_report(budgets, actuals, options)

    total_budgeted = sum(b.amount for b in budgets)
    total_actual = sum(c.actual for c in categories)
    total_variance = calculate_budget_variance(total_budgeted, total_actual)

    if income is None:
        income = sum(abs(t.amount) for t in month_txns if t.type == "income")

    return MonthlyBudgetReport(
        month=format_month_key(target),
        total_budgeted=total_budgeted,
        total_actual=total_actual,
        total_variance=total_variance if math.isfinite(total_variance) else 0.0,
        surplus=calculate_month_surplus(income, total_actual),
        categories=categories,
        red_flag_count=sum(1 for c in categories if c.is_red_flag),
    )


def get_ytd_tracking(
    budgets: Sequence[Budget],
    transactions: Iterable[Transaction],
    year: Optional[int] = None,
    as_of: date | None = None,
    options: BudgetVarianceOptions = BudgetVarianceOptions(),
) -> YTDTracking:
    """
    Year-to-date budget tracking.

    Annual budgets are pro-rated by elapsed months; monthly budgets are
    multiplied by them. A past year counts as 12 elapsed months. Year-end is
    projected from the current monthly run rate.
    """
    if as_of is None:
        as_of = date.today()
    target_year = year if year is not None else as_of.year
    months_elapsed = as_of.month if target_year == as_of.year else 12

    year_txns = [t for t in transactions if t.date.year == target_year]
    ytd_actuals = aggregate_by_category(year_txns, "expense")

    categories: List[YTDCategoryResult] = []
    ytd_budgeted = 0.0

    for budget in budgets:
        if budget.category in options.excluded_categories:
            continue

        if budget.period == "annual":
            annual_budget = budget.amount
            ytd_budget = (budget.amount / 12) * months_elapsed
        else:
            annual_budget = budget.amount * 12
            ytd_budget = budget.amount * months_elapsed

        ytd_budgeted += ytd_budget
        ytd_actual = ytd_actuals.get(budget.category, 0.0)
        base = calculate_category_variance(budget.category, ytd_budget, ytd_actual, options)
        categories.append(
            YTDCategoryResult(**vars(base), ytd_actual=ytd_actual, annual_budget=annual_budget)
        )

    ytd_actual_total = sum(c.ytd_actual for c in categories)
    ytd_variance = calculate_budget_variance(ytd_budgeted, ytd_actual_total)

    return YTDTracking(
        ytd_budgeted=ytd_budgeted,
        ytd_actual=ytd_actual_total,
        ytd_variance=ytd_variance if math.isfinite(ytd_variance) else 0.0,
        months_elapsed=months_elapsed,
        projected_year_end=(ytd_actual_total / months_elapsed) * 12,
        categories=sorted(categories, key=lambda c: c.variance_amount, reverse=True),
    )


def detect_seasonality(monthly_amounts: Sequence[Tuple[str, float]]) -> SeasonalityResult:
    """
    Per-calendar-month spending factors relative to the overall mean.

    Needs 12+ months. The series is seasonal when the largest and smallest
    factors differ by more than 0.4.
    """
    if len(monthly_amounts) < MIN_MONTHS_FOR_SEASONALITY:
        return SeasonalityResult(has_seasonal=False, seasonal_factors={})

    by_calendar_month: Dict[int, List[float]] = {}
    for month, amount in monthly_amounts:
        _, calendar_month = parse_month_key(month)
        by_calendar_month.setdefault(calendar_month, []).append(amount)

    overall_mean = mean([amount for _, amount in monthly_amounts])
    factors = {
        calendar_month: (mean(amounts) / overall_mean if overall_mean > 0 else 1.0)
        for calendar_month, amounts in by_calendar_month.items()
    }

    swing = max(factors.values()) - min(factors.values())
    return SeasonalityResult(has_seasonal=swing > SEASONAL_SWING, seasonal_factors=factors)


def get_seasonally_adjusted_budget(base_budget: float, target_month: int, seasonal_factors: Dict[int, float]) -> float:
    return base_budget * seasonal_factors.get(target_month, 1.0)


def suggest_initial_budget(
    transactions: Iterable[Transaction],
    category: str,
    lookback_months: int = 3,
) -> BudgetSuggestion:
    """Suggest a first budget: historical monthly average rounded up to the next $10"""
    monthly_totals: Dict[Tuple[int, int], float] = {}
    for txn in transactions:
        if txn.category != category or txn.type != "expense":
            continue
        key = month_key(txn.date)
        monthly_totals[key] = monthly_totals.get(key, 0.0) + abs(txn.amount)

    if not monthly_totals:
        return BudgetSuggestion(suggested=0.0, confidence="low", note="No historical data for this category")

    month_count = len(monthly_totals)
    suggested = math.ceil(mean(list(monthly_totals.values())) / 10) * 10

    if month_count >= lookback_months:
        return BudgetSuggestion(suggested, "high", f"Based on {month_count} months of data")
    if month_count >= 2:
        return BudgetSuggestion(suggested, "medium", f"Based on {month_count} months - more data will improve accuracy")
    return BudgetSuggestion(suggested, "low", "Only 1 month of data - budget may need adjustment")
