"""Savings rate and goal progress tracking"""

import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Literal, Optional, Sequence

from finsight_engine.domain.aggregation import sorted_monthly_aggregates
from finsight_engine.domain.constants import SAVINGS_RATE_EXCELLENT, SAVINGS_RATE_LOW, SAVINGS_RATE_TARGET
from finsight_engine.domain.models import Goal, Transaction
from finsight_engine.utils.date_utils import add_months

GoalStatus = Literal["on_track", "off_track", "achieved", "overdue"]
SavingsRating = Literal["Excellent", "Good", "Fair", "Needs Improvement"]

DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class SavingsOptions:
    lookback_months: int = 6


@dataclass
class SavingsRateRating:
    rating: SavingsRating
    explanation: str


@dataclass
class GoalAllocation:
    goal_id: int
    allocation: float


@dataclass
class GoalProgressResult:
    goal_id: int
    name: str
    target_amount: float
    current_saved: float
    progress_percent: float
    monthly_allocation: float
    months_to_completion: Optional[int]
    projected_completion_date: Optional[date]
    status: GoalStatus
    months_overdue: Optional[int]


@dataclass
class SavingsAnalysis:
    savings_rate: float  # percent
    total_savings: float
    monthly_average_savings: float
    goals: List[GoalProgressResult]
    recommendation: str


@dataclass
class GoalScenarios:
    current: GoalProgressResult
    increased_by_10: GoalProgressResult
    increased_by_25: GoalProgressResult
    required: float


def calculate_savings_rate(income: float, expenses: float) -> float:
    """(income - expenses) / income * 100; 0 without income"""
    if income <= 0:
        return 0.0
    return ((income - expenses) / income) * 100


def rate_savings_rate(rate: float) -> SavingsRateRating:
    target = f"{SAVINGS_RATE_TARGET * 100:.0f}%"
    if rate >= SAVINGS_RATE_EXCELLENT * 100:
        return SavingsRateRating("Excellent", f"Saving {rate:.1f}% - well above the recommended {target}.")
    if rate >= SAVINGS_RATE_TARGET * 100:
        return SavingsRateRating("Good", f"Saving {rate:.1f}% - meeting the recommended {target} target.")
    if rate >= SAVINGS_RATE_LOW * 100:
        return SavingsRateRating(
            "Fair",
            f"Saving {rate:.1f}% - below the recommended {target}. Consider reducing discretionary spending.",
        )
    if rate > 0:
        return SavingsRateRating(
            "Needs Improvement",
            f"Saving {rate:.1f}% - significantly below recommended. Review budget for savings opportunities.",
        )
    return SavingsRateRating(
        "Needs Improvement",
        "Currently not saving (expenses exceed income). Address spending or increase income.",
    )


def calculate_goal_progress(current_saved: float, target_amount: float) -> float:
    if target_amount <= 0:
        return 100.0
    return min(100.0, (current_saved / target_amount) * 100)


def calculate_months_to_completion(current_saved: float, target_amount: float, monthly_contribution: float) -> Optional[int]:
    """Whole months until the target is reached; None when nothing is contributed"""
    if current_saved >= target_amount:
        return 0
    if monthly_contribution <= 0:
        return None
    return math.ceil((target_amount - current_saved) / monthly_contribution)


def project_completion_date(months_to_completion: Optional[int], as_of: date | None = None) -> Optional[date]:
    if months_to_completion is None:
        return None
    if as_of is None:
        as_of = date.today()
    return add_months(as_of, months_to_completion)


def determine_goal_status(goal: Goal, projected_completion: Optional[date], as_of: date | None = None) -> GoalStatus:
    """achieved > overdue > on_track (projected by the target date) > off_track"""
    if as_of is None:
        as_of = date.today()
    if goal.current_saved >= goal.target_amount:
        return "achieved"
    if goal.target_date < as_of:
        return "overdue"
    if projected_completion is not None and projected_completion <= goal.target_date:
        return "on_track"
    return "off_track"


def calculate_required_monthly_contribution(goal: Goal, as_of: date | None = None) -> float:
    """Remaining amount spread over the 30-day months left until the target date (at least one)"""
    if goal.current_saved >= goal.target_amount:
        return 0.0
    if as_of is None:
        as_of = date.today()
    months_remaining = max(1, math.ceil((goal.target_date - as_of).days / DAYS_PER_MONTH))
    return (goal.target_amount - goal.current_saved) / months_remaining


def allocate_savings_to_goals(
    monthly_savings: float,
    goals: Sequence[Goal],
    as_of: date | None = None,
) -> List[GoalAllocation]:
    """
    Greedy priority allocation.

    Unmet goals are funded in ascending priority number (1 first), each up to
    its required monthly contribution, until savings run out. Everything
    left over gets 0.
    """
    if monthly_savings <= 0 or not goals:
        return [GoalAllocation(g.id, 0.0) for g in goals]

    unmet = sorted((g for g in goals if g.current_saved < g.target_amount), key=lambda g: g.priority)

    remaining = monthly_savings
    allocations: Dict[int, float] = {}
    for goal in unmet:
        if remaining <= 0:
            break
        allocation = min(calculate_required_monthly_contribution(goal, as_of), remaining)
        allocations[goal.id] = allocation
        remaining -= allocation

    return [GoalAllocation(goal.id, allocations.get(goal.id, 0.0)) for goal in unmet]


def analyze_goal_progress(goal: Goal, monthly_contribution: float, as_of: date | None = None) -> GoalProgressResult:
    if as_of is None:
        as_of = date.today()

    months = calculate_months_to_completion(goal.current_saved, goal.target_amount, monthly_contribution)
    projected = project_completion_date(months, as_of)
    status = determine_goal_status(goal, projected, as_of)

    months_overdue = None
    if status == "overdue":
        months_overdue = math.ceil((as_of - goal.target_date).days / DAYS_PER_MONTH)

    return GoalProgressResult(
        goal_id=goal.id,
        name=goal.name,
        target_amount=goal.target_amount,
        current_saved=goal.current_saved,
        progress_percent=round(calculate_goal_progress(goal.current_saved, goal.target_amount), 1),
        monthly_allocation=monthly_contribution,
        months_to_completion=months,
        projected_completion_date=projected,
        status=status,
        months_overdue=months_overdue,
    )


def analyze_savings(
    transactions: Iterable[Transaction],
    goals: Sequence[Goal] = (),
    options: SavingsOptions = SavingsOptions(),
    as_of: date | None = None,
) -> SavingsAnalysis:
    """Savings rate over the lookback window and progress of every goal under priority allocation"""
    recent = sorted_monthly_aggregates(transactions)[-options.lookback_months :]

    if not recent:
        return SavingsAnalysis(0.0, 0.0, 0.0, [], "Add transaction history to calculate savings rate.")

    total_income = sum(m.income for m in recent)
    total_expenses = sum(m.expenses for m in recent)
    total_savings = total_income - total_expenses
    monthly_average = total_savings / len(recent)
    rate = calculate_savings_rate(total_income / len(recent), total_expenses / len(recent))

    allocations = {a.goal_id: a.allocation for a in allocate_savings_to_goals(max(0.0, monthly_average), goals, as_of)}
    progress = [analyze_goal_progress(goal, allocations.get(goal.id, 0.0), as_of) for goal in goals]

    recommendation = rate_savings_rate(rate).explanation
    off_track = sum(1 for g in progress if g.status == "off_track")
    if off_track:
        recommendation += f" {off_track} goal(s) are off track - consider increasing savings or adjusting timelines."

    return SavingsAnalysis(
        savings_rate=round(rate, 1),
        total_savings=round(total_savings, 2),
        monthly_average_savings=round(monthly_average, 2),
        goals=progress,
        recommendation=recommendation,
    )


def project_goal_scenarios(goal: Goal, current_monthly_savings: float, as_of: date | None = None) -> GoalScenarios:
    """Goal outcome at the current contribution and at +10% / +25%"""
    return GoalScenarios(
        current=analyze_goal_progress(goal, current_monthly_savings, as_of),
        increased_by_10=analyze_goal_progress(goal, current_monthly_savings * 1.1, as_of),
        increased_by_25=analyze_goal_progress(goal, current_monthly_savings * 1.25, as_of),
        required=calculate_required_monthly_contribution(goal, as_of),
    )
