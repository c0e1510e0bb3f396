"""Adaptive budget recommendations driven by spending trends and savings goals"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Literal, Optional, Sequence, Tuple

from finsight_engine.domain.aggregation import monthly_amounts_for_category
from finsight_engine.domain.constants import (
    ADAPTIVE_HIGH_CONFIDENCE_CV,
    ADAPTIVE_MEDIUM_CONFIDENCE_CV,
    ADAPTIVE_TREND_THRESHOLD,
    MIN_MONTHS_FOR_TREND,
    QUICK_WIN_MIN_SAVINGS,
)
from finsight_engine.domain.models import Budget, ConfidenceLevel, Transaction
from finsight_engine.domain.statistics import coefficient_of_variation, mean
from finsight_engine.domain.trends import half_split_change

logger = logging.getLogger(__name__)

SpendingDirection = Literal["increasing", "decreasing", "stable"]

OVERSPEND_RATIO = 1.15
UNDERSPEND_RATIO = 0.8
TREND_RULE_PERCENT = 10
MIN_CHANGE_PERCENT = 5
VOLATILE_CATEGORY_CV = 0.5
QUICK_WIN_MAX_CV = 0.3
DEFAULT_DISCRETIONARY = ("Dining", "Entertainment", "Shopping", "Hobbies")


@dataclass(frozen=True)
class BudgetOptimizerOptions:
    lookback_months: int = 6
    target_monthly_savings: Optional[float] = None
    discretionary_categories: Tuple[str, ...] = DEFAULT_DISCRETIONARY


@dataclass
class SpendingTrend:
    avg_monthly: float
    trend: SpendingDirection
    trend_percent: int
    cv: Optional[float]
    month_count: int


@dataclass
class BudgetRecommendation:
    category: str
    current_budget: float
    recommended_budget: float
    change_percent: int
    reason: str
    confidence: ConfidenceLevel
    risk: Optional[str] = None


@dataclass
class AdaptiveBudgetResult:
    recommendations: List[BudgetRecommendation]
    total_current_budget: float
    total_recommended_budget: float
    projected_savings_impact: float
    warnings: List[str] = field(default_factory=list)


@dataclass
class DiscretionarySpend:
    category: str
    budget: float
    avg_spend: float


@dataclass
class QuickWin:
    category: str
    potential_savings: float
    confidence: ConfidenceLevel


def round_up_to_ten(value: float) -> float:
    return math.ceil(value / 10) * 10


def analyze_spending_trend(
    transactions: Sequence[Transaction], category: str, lookback_months: int = 6
) -> SpendingTrend:
    """
    Average, volatility and direction of one category's recent monthly spend.

    Direction needs at least three months and compares the first half of the
    window to the second; a move beyond 15% is increasing or decreasing.
    """
    amounts = [amount for _, amount in monthly_amounts_for_category(transactions, category)[-lookback_months:]]
    if not amounts:
        return SpendingTrend(0.0, "stable", 0, None, 0)

    trend: SpendingDirection = "stable"
    trend_percent = 0.0
    if len(amounts) >= MIN_MONTHS_FOR_TREND:
        _, _, change = half_split_change(amounts)
        if change is not None:
            trend_percent = change
            if change > ADAPTIVE_TREND_THRESHOLD * 100:
                trend = "increasing"
            elif change < -ADAPTIVE_TREND_THRESHOLD * 100:
                trend = "decreasing"

    return SpendingTrend(
        avg_monthly=round(mean(amounts), 2),
        trend=trend,
        trend_percent=round(trend_percent),
        cv=coefficient_of_variation(amounts),
        month_count=len(amounts),
    )


def assess_recommendation_confidence(cv: Optional[float], month_count: int) -> ConfidenceLevel:
    if month_count < MIN_MONTHS_FOR_TREND:
        return "insufficient"
    if cv is None:
        return "low"
    if cv < ADAPTIVE_HIGH_CONFIDENCE_CV and month_count >= 6:
        return "high"
    if cv < ADAPTIVE_MEDIUM_CONFIDENCE_CV:
        return "medium"
    return "low"


@dataclass
class _Proposal:
    recommended_budget: float
    reason: str
    risk: Optional[str] = None


RecommendationRule = Callable[[SpendingTrend, float], Optional[_Proposal]]


def _overspending(trend: SpendingTrend, budget: float) -> Optional[_Proposal]:
    if trend.avg_monthly <= budget * OVERSPEND_RATIO:
        return None
    if budget <= 0:
        return _Proposal(
            round_up_to_ten(trend.avg_monthly),
            f"No budget set but averaging ${trend.avg_monthly:.0f}/month. Recommend starting at average spend.",
        )
    over = round((trend.avg_monthly / budget - 1) * 100)
    return _Proposal(
        round_up_to_ten(trend.avg_monthly),
        f"Consistently overspending by ~{over}%. Recommend adjusting to realistic level.",
        "Increasing this budget may reduce savings. Consider if spending can be reduced instead.",
    )


def _underspending(trend: SpendingTrend, budget: float) -> Optional[_Proposal]:
    if trend.avg_monthly >= budget * UNDERSPEND_RATIO:
        return None
    under = round((1 - trend.avg_monthly / budget) * 100)
    return _Proposal(
        round_up_to_ten(trend.avg_monthly * 1.1),
        f"Underspending by ~{under}%. Budget can be reallocated.",
    )


def _trending_up(trend: SpendingTrend, budget: float) -> Optional[_Proposal]:
    if trend.trend != "increasing" or trend.trend_percent <= TREND_RULE_PERCENT:
        return None
    return _Proposal(
        round_up_to_ten(trend.avg_monthly * 1.1),
        f"Spending trending up {trend.trend_percent}%. Budget adjusted proactively.",
        "Consider if this increase is temporary or represents lifestyle creep.",
    )


def _trending_down(trend: SpendingTrend, budget: float) -> Optional[_Proposal]:
    if trend.trend != "decreasing" or trend.trend_percent >= -TREND_RULE_PERCENT:
        return None
    return _Proposal(
        round_up_to_ten(trend.avg_monthly * 1.05),
        f"Spending trending down {abs(trend.trend_percent)}%. Budget can be reduced.",
    )


# First match wins; a category on track matches none of them
RECOMMENDATION_RULES: Tuple[RecommendationRule, ...] = (
    _overspending,
    _underspending,
    _trending_up,
    _trending_down,
)


def generate_category_recommendation(
    category: str,
    current_budget: float,
    spending_trend: SpendingTrend,
    savings_goal_adjustment: Optional[float] = None,
) -> Optional[BudgetRecommendation]:
    """
    Recommend a new budget for one category, or None when it is on track.

    Requirements:
    - Fewer than 3 months of spending never produces a recommendation
    - Rules are evaluated in RECOMMENDATION_RULES order, first match wins
    - A negative goal adjustment lowers the proposal unless that would put it
      under 80% of average spend
    - Net changes under 5% are suppressed
    """
    if spending_trend.month_count < MIN_MONTHS_FOR_TREND:
        return None

    proposal = None
    for rule in RECOMMENDATION_RULES:
        proposal = rule(spending_trend, current_budget)
        if proposal is not None:
            break
    if proposal is None:
        return None

    if savings_goal_adjustment is not None and savings_goal_adjustment < 0:
        reduced = proposal.recommended_budget + savings_goal_adjustment
        if reduced > spending_trend.avg_monthly * UNDERSPEND_RATIO:
            proposal.recommended_budget = round_up_to_ten(reduced)
            proposal.reason += (
                f" Additionally adjusted by ${abs(savings_goal_adjustment):.0f} to meet savings goals."
            )

    if current_budget > 0:
        change_percent = (proposal.recommended_budget - current_budget) / current_budget * 100
    else:
        change_percent = 100.0
    if abs(change_percent) < MIN_CHANGE_PERCENT:
        return None

    return BudgetRecommendation(
        category=category,
        current_budget=current_budget,
        recommended_budget=proposal.recommended_budget,
        change_percent=round(change_percent),
        reason=proposal.reason,
        confidence=assess_recommendation_confidence(spending_trend.cv, spending_trend.month_count),
        risk=proposal.risk,
    )


def calculate_goal_adjustment(
    current_monthly_savings: float,
    target_monthly_savings: float,
    discretionary: Sequence[DiscretionarySpend],
) -> Dict[str, int]:
    """
    Cuts per discretionary category needed to close a savings shortfall.

    Unused budget (slack) in under-budget categories is reallocated first.
    Whatever it cannot cover is split across categories by budget share.
    Returns negative whole-dollar adjustments; empty when no cuts are needed.
    """
    shortfall = target_monthly_savings - current_monthly_savings
    if shortfall <= 0:
        return {}

    slack = sum(c.budget - c.avg_spend for c in discretionary if c.avg_spend < c.budget)
    if slack >= shortfall:
        return {}

    total_budget = sum(c.budget for c in discretionary)
    if total_budget <= 0:
        return {}

    remaining = shortfall - slack
    return {c.category: -round(remaining * (c.budget / total_budget)) for c in discretionary}


def generate_adaptive_budget(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    options: BudgetOptimizerOptions = BudgetOptimizerOptions(),
) -> AdaptiveBudgetResult:
    """
    Recommendations for every budgeted category, biggest change first.

    With a target savings amount, discretionary categories absorb the cuts
    from calculate_goal_adjustment.
    """
    if not budgets:
        return AdaptiveBudgetResult([], 0.0, 0.0, 0.0, ["No budgets configured. Set up category budgets first."])

    recommendations: List[BudgetRecommendation] = []
    warnings: List[str] = []
    trends: Dict[str, SpendingTrend] = {}
    total_current = 0.0
    total_avg_spending = 0.0

    for budget in budgets:
        total_current += budget.amount
        trend = analyze_spending_trend(transactions, budget.category, options.lookback_months)
        trends[budget.category] = trend
        total_avg_spending += trend.avg_monthly

        recommendation = generate_category_recommendation(budget.category, budget.amount, trend)
        if recommendation is not None:
            recommendations.append(recommendation)

        if trend.cv is not None and trend.cv > VOLATILE_CATEGORY_CV:
            warnings.append(
                f"{budget.category} has highly variable spending (CV: {round(trend.cv * 100)}%). "
                "Consider breaking into sub-categories."
            )

    target = options.target_monthly_savings
    if target is not None:
        current_savings = total_current - total_avg_spending
        if current_savings < target:
            discretionary = [
                DiscretionarySpend(b.category, b.amount, trends[b.category].avg_monthly)
                for b in budgets
                if b.category in options.discretionary_categories
            ]
            adjustments = calculate_goal_adjustment(current_savings, target, discretionary)
            by_category = {r.category: r for r in recommendations}
            amounts = {b.category: b.amount for b in budgets}

            for category, adjustment in adjustments.items():
                existing = by_category.get(category)
                if existing is not None:
                    existing.recommended_budget += adjustment
                    existing.reason += " (includes savings goal adjustment)"
                    continue
                amount = amounts[category]
                recommendations.append(
                    BudgetRecommendation(
                        category=category,
                        current_budget=amount,
                        recommended_budget=amount + adjustment,
                        change_percent=round(adjustment / amount * 100) if amount > 0 else 0,
                        reason=f"Reduced to meet savings goal of ${target:g}/month.",
                        confidence="medium",
                        risk="May require lifestyle adjustments.",
                    )
                )

            warnings.append(
                f"Current projected savings (${round(current_savings)}/mo) is below target (${target:g}/mo). "
                "Recommendations include adjustments to help bridge the gap."
            )

    total_recommended = total_current + sum(r.recommended_budget - r.current_budget for r in recommendations)
    recommendations.sort(key=lambda r: abs(r.recommended_budget - r.current_budget), reverse=True)
    logger.debug(
        "Adaptive budget generated",
        extra={"recommendation_count": len(recommendations), "warning_count": len(warnings)},
    )

    return AdaptiveBudgetResult(
        recommendations=recommendations,
        total_current_budget=round(total_current, 2),
        total_recommended_budget=round(total_recommended, 2),
        projected_savings_impact=round(total_current - total_recommended, 2),
        warnings=warnings,
    )


def identify_quick_wins(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    min_savings: float = QUICK_WIN_MIN_SAVINGS,
) -> List[QuickWin]:
    """Categories reliably under budget by at least `min_savings` with steady spend"""
    wins = []
    for budget in budgets:
        trend = analyze_spending_trend(transactions, budget.category)
        if trend.month_count < MIN_MONTHS_FOR_TREND:
            continue

        savings = budget.amount - trend.avg_monthly
        if savings < min_savings:
            continue
        if trend.cv is not None and trend.cv > QUICK_WIN_MAX_CV:
            continue

        wins.append(
            QuickWin(
                category=budget.category,
                potential_savings=round(savings, 2),
                confidence=assess_recommendation_confidence(trend.cv, trend.month_count),
            )
        )

    return sorted(wins, key=lambda w: w.potential_savings, reverse=True)
