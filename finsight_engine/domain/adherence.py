"""Budget adherence tracking - are spending targets being met, and is it getting better"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Optional, Sequence

from finsight_engine.domain.aggregation import aggregate_by_category
from finsight_engine.domain.constants import (
    ADHERENCE_EXCELLENT,
    ADHERENCE_FAIR,
    ADHERENCE_GOOD,
    ADHERENCE_TREND_DECLINE,
    ADHERENCE_TREND_IMPROVEMENT,
    MIN_MONTHS_FOR_TREND,
)
from finsight_engine.domain.models import Budget, MonthKey, Transaction
from finsight_engine.domain.statistics import clamp, mean
from finsight_engine.domain.trends import half_split_change
from finsight_engine.utils.date_utils import format_month_key, month_key

AdherenceRating = Literal["Excellent", "Good", "Fair", "Needs Improvement"]
AdherenceTrend = Literal["improving", "stable", "declining", "insufficient"]

# A category scoring at least this much counts as on track for the month
ON_TRACK_SCORE = 70
# Average overage (percent) that makes a frequent offender chronic
OFFENDER_VARIANCE_PERCENT = 20.0
OFFENDER_MONTH_RATIO = 0.5


@dataclass(frozen=True)
class AdherenceOptions:
    lookback_months: int = 6
    # Overall score averages this many most recent months
    recent_months: int = 3


@dataclass
class MonthlyAdherence:
    score: int
    categories_on_track: int
    total_categories: int


@dataclass
class AdherenceHistoryEntry:
    month: str
    adherence_score: int
    categories_on_track: int
    total_categories: int


@dataclass
class AdherenceTrendResult:
    direction: AdherenceTrend
    trend_percent: Optional[int]


@dataclass
class CategoryMonthScore:
    month: str
    score: int
    variance: float


@dataclass
class CategoryAdherenceHistory:
    category: str
    monthly_scores: List[CategoryMonthScore] = field(default_factory=list)


@dataclass
class ProblemCategory:
    category: str
    avg_variance: float
    times_over_budget: int
    is_consistent_offender: bool


@dataclass
class AdherenceAnalysis:
    overall_score: int
    rating: AdherenceRating
    trend: AdherenceTrend
    trend_percent: Optional[int]
    history: List[AdherenceHistoryEntry]
    problem_categories: List[ProblemCategory]
    insights: List[str]


def calculate_category_adherence(budgeted: float, actual: float) -> int:
    """
    100 * max(0, 1 - |actual - budget| / budget), rounded.

    Spending exactly the budget scores 100. A zero budget scores 100 with no
    spending and 0 with any.
    """
    if budgeted == 0:
        return 100 if actual == 0 else 0
    variance = abs((actual - budgeted) / budgeted)
    return round(clamp(100 * (1 - variance), 0, 100))


def calculate_monthly_adherence(budgets: Sequence[Budget], actuals: Dict[str, float]) -> MonthlyAdherence:
    """Budget-amount weighted average of category scores"""
    if not budgets:
        return MonthlyAdherence(0, 0, 0)

    weighted = 0.0
    total_weight = 0.0
    on_track = 0
    for budget in budgets:
        score = calculate_category_adherence(budget.amount, actuals.get(budget.category, 0.0))
        weighted += score * budget.amount
        total_weight += budget.amount
        if score >= ON_TRACK_SCORE:
            on_track += 1

    overall = weighted / total_weight if total_weight > 0 else 0.0
    return MonthlyAdherence(round(overall), on_track, len(budgets))


def get_adherence_rating(score: float) -> AdherenceRating:
    if score >= ADHERENCE_EXCELLENT:
        return "Excellent"
    if score >= ADHERENCE_GOOD:
        return "Good"
    if score >= ADHERENCE_FAIR:
        return "Fair"
    return "Needs Improvement"


def analyze_adherence_trend(history: Sequence[AdherenceHistoryEntry]) -> AdherenceTrendResult:
    """First-half vs second-half average score; +/-10% marks improving or declining"""
    if len(history) < MIN_MONTHS_FOR_TREND:
        return AdherenceTrendResult("insufficient", None)

    first_avg, second_avg, _ = half_split_change([h.adherence_score for h in history])
    if first_avg == 0:
        return AdherenceTrendResult("stable", None)

    change = (second_avg - first_avg) / first_avg
    percent = round(change * 100)
    if change >= ADHERENCE_TREND_IMPROVEMENT:
        return AdherenceTrendResult("improving", percent)
    if change <= ADHERENCE_TREND_DECLINE:
        return AdherenceTrendResult("declining", percent)
    return AdherenceTrendResult("stable", percent)


def calculate_category_history(
    transactions: Iterable[Transaction],
    budgets: Sequence[Budget],
    months: Sequence[MonthKey],
) -> List[CategoryAdherenceHistory]:
    """Per budgeted category, the score and percent variance for each month"""
    spent: Dict[tuple, float] = {}
    for txn in transactions:
        if txn.type != "expense":
            continue
        key = (month_key(txn.date), txn.category)
        spent[key] = spent.get(key, 0.0) + abs(txn.amount)

    results = []
    for budget in budgets:
        history = CategoryAdherenceHistory(category=budget.category)
        for month in months:
            actual = spent.get((month, budget.category), 0.0)
            variance = ((actual - budget.amount) / budget.amount) * 100 if budget.amount > 0 else 0.0
            history.monthly_scores.append(
                CategoryMonthScore(
                    month=format_month_key(month),
                    score=calculate_category_adherence(budget.amount, actual),
                    variance=variance,
                )
            )
        results.append(history)
    return results


def identify_problem_categories(
    category_history: Sequence[CategoryAdherenceHistory],
    min_months: int = MIN_MONTHS_FOR_TREND,
    problem_threshold: float = OFFENDER_VARIANCE_PERCENT,
) -> List[ProblemCategory]:
    """
    Categories over budget on average, worst first.

    A consistent offender is over budget in more than half of its months and
    averages more than `problem_threshold` percent over.
    """
    problems = []
    for history in category_history:
        scores = history.monthly_scores
        if len(scores) < min_months:
            continue

        avg_variance = mean([s.variance for s in scores])
        if avg_variance <= 0:
            continue

        times_over = sum(1 for s in scores if s.variance > 0)
        offender = times_over / len(scores) > OFFENDER_MONTH_RATIO and avg_variance > problem_threshold
        problems.append(
            ProblemCategory(
                category=history.category,
                avg_variance=round(avg_variance, 1),
                times_over_budget=times_over,
                is_consistent_offender=offender,
            )
        )

    return sorted(problems, key=lambda p: p.avg_variance, reverse=True)


def generate_adherence_insights(
    overall_score: float,
    trend: AdherenceTrend,
    problems: Sequence[ProblemCategory],
) -> List[str]:
    insights = []

    if overall_score >= ADHERENCE_EXCELLENT:
        insights.append("Excellent budget discipline! You consistently stay close to your spending targets.")
    elif overall_score >= ADHERENCE_GOOD:
        insights.append("Good budget management. Minor adjustments could improve consistency.")
    elif overall_score >= ADHERENCE_FAIR:
        insights.append("Budget adherence needs attention. Consider reviewing your category allocations.")
    else:
        insights.append(
            "Budget adherence needs significant improvement. Consider starting with just 3-4 key categories."
        )

    if trend == "improving":
        insights.append("Great progress! Your budget adherence is improving over time.")
    elif trend == "declining":
        insights.append("Budget adherence has been declining. Review recent spending patterns.")

    offenders = [p.category for p in problems if p.is_consistent_offender][:3]
    if offenders:
        insights.append(
            f"Chronic overspending in: {', '.join(offenders)}. "
            "Consider increasing these budgets or finding ways to reduce spending."
        )

    if problems and problems[0].avg_variance > 50:
        top = problems[0]
        insights.append(
            f"{top.category} is {top.avg_variance:.0f}% over budget on average. "
            "This is your biggest opportunity for improvement."
        )

    return insights


def analyze_adherence(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    options: AdherenceOptions = AdherenceOptions(),
) -> AdherenceAnalysis:
    """
    Adherence over the most recent `lookback_months` months with activity.

    The overall score is the mean of the last three monthly scores.
    """
    if not budgets:
        return AdherenceAnalysis(0, "Needs Improvement", "insufficient", None, [], [],
                                 ["No budgets configured. Set up category budgets to track adherence."])

    months = sorted({month_key(t.date) for t in transactions})[-options.lookback_months :]
    if not months:
        return AdherenceAnalysis(0, "Needs Improvement", "insufficient", None, [], [],
                                 ["No transaction history. Add transactions to analyze budget adherence."])

    by_month: Dict[MonthKey, List[Transaction]] = {}
    for txn in transactions:
        if txn.type == "expense":
            by_month.setdefault(month_key(txn.date), []).append(txn)

    history = []
    for month in months:
        monthly = calculate_monthly_adherence(budgets, aggregate_by_category(by_month.get(month, []), "expense"))
        history.append(
            AdherenceHistoryEntry(
                month=format_month_key(month),
                adherence_score=monthly.score,
                categories_on_track=monthly.categories_on_track,
                total_categories=monthly.total_categories,
            )
        )

    overall = round(mean([h.adherence_score for h in history[-options.recent_months :]]))
    trend = analyze_adherence_trend(history)
    problems = identify_problem_categories(calculate_category_history(transactions, budgets, months))

    return AdherenceAnalysis(
        overall_score=overall,
        rating=get_adherence_rating(overall),
        trend=trend.direction,
        trend_percent=trend.trend_percent,
        history=history,
        problem_categories=problems,
        insights=generate_adherence_insights(overall, trend.direction, problems),
    )
