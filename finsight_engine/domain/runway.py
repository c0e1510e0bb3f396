"""Runway and burn rate - how long cash on hand lasts at current spending"""

import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Literal, Optional, Sequence

from finsight_engine.domain.aggregation import sorted_monthly_aggregates
from finsight_engine.domain.constants import (
    RUNWAY_ADEQUATE,
    RUNWAY_CAUTION,
    RUNWAY_CRITICAL,
    RUNWAY_EXPENSE_REDUCTION,
    RUNWAY_INCOME_LOSS_FACTOR,
)
from finsight_engine.domain.exceptions import InvalidInputError
from finsight_engine.domain.models import MonthlyAggregate, Transaction
from finsight_engine.domain.statistics import mean
from finsight_engine.utils.date_utils import add_months

RunwayStatus = Literal["critical", "caution", "adequate", "comfortable", "surplus"]
BurnTrend = Literal["accelerating", "stable", "improving"]


@dataclass(frozen=True)
class RunwayOptions:
    income_loss_factor: float = RUNWAY_INCOME_LOSS_FACTOR
    expense_reduction_factor: float = RUNWAY_EXPENSE_REDUCTION
    lookback_months: int = 6


@dataclass
class RunwayScenario:
    name: str
    runway_months: Optional[float]  # None means income covers expenses
    status: RunwayStatus
    burn_rate: float
    depletion_date: Optional[date]


@dataclass
class RunwayScenarios:
    base: RunwayScenario
    conservative: RunwayScenario
    best: RunwayScenario


@dataclass
class RunwayResult:
    cash_on_hand: float
    gross_burn_rate: float
    net_burn_rate: float
    scenarios: RunwayScenarios
    burn_trend: BurnTrend
    recommendation: str


@dataclass
class JobLossRunway:
    runway_months: Optional[float]  # None when no essential expenses are recorded
    depletion_date: Optional[date]
    recommendation: str


def calculate_gross_burn_rate(monthly_expenses: Sequence[float]) -> float:
    return mean(monthly_expenses)


def calculate_net_burn_rate(monthly_income: Sequence[float], monthly_expenses: Sequence[float]) -> float:
    """Average expenses minus average income; negative means a monthly surplus"""
    if not monthly_expenses:
        return 0.0
    return mean(monthly_expenses) - mean(monthly_income)


def calculate_runway(cash_on_hand: float, net_burn_rate: float) -> Optional[float]:
    """Months of cash left; None when nothing is being burned"""
    if net_burn_rate <= 0:
        return None
    if cash_on_hand <= 0:
        return 0.0
    return cash_on_hand / net_burn_rate


def classify_runway_status(months: Optional[float]) -> RunwayStatus:
    if months is None:
        return "surplus"
    if months < RUNWAY_CRITICAL:
        return "critical"
    if months < RUNWAY_CAUTION:
        return "caution"
    if months < RUNWAY_ADEQUATE:
        return "adequate"
    return "comfortable"


def calculate_depletion_date(runway_months: Optional[float], as_of: date | None = None) -> Optional[date]:
    if runway_months is None:
        return None
    if as_of is None:
        as_of = date.today()
    return add_months(as_of, math.ceil(runway_months))


def create_scenario(name: str, cash_on_hand: float, burn_rate: float, as_of: date | None = None) -> RunwayScenario:
    months = calculate_runway(cash_on_hand, burn_rate)
    return RunwayScenario(
        name=name,
        runway_months=round(months, 1) if months is not None else None,
        status=classify_runway_status(months),
        burn_rate=round(burn_rate, 2),
        depletion_date=calculate_depletion_date(months, as_of),
    )


def run_scenarios(
    cash_on_hand: float,
    avg_income: float,
    avg_expenses: float,
    options: RunwayOptions = RunwayOptions(),
    as_of: date | None = None,
) -> RunwayScenarios:
    """
    Three independent runway scenarios:
    - base: current income and expenses
    - conservative: income reduced by the loss factor
    - best: expenses reduced by the reduction factor
    """
    income_loss = options.income_loss_factor
    expense_cut = options.expense_reduction_factor

    base = create_scenario("Base Case", cash_on_hand, avg_expenses - avg_income, as_of)
    conservative = create_scenario(
        f"{income_loss * 100:.0f}% Income Loss",
        cash_on_hand,
        avg_expenses - avg_income * (1 - income_loss),
        as_of,
    )
    best = create_scenario(
        f"{expense_cut * 100:.0f}% Expense Reduction",
        cash_on_hand,
        avg_expenses * (1 - expense_cut) - avg_income,
        as_of,
    )
    return RunwayScenarios(base=base, conservative=conservative, best=best)


def analyze_burn_trend(monthly: Sequence[MonthlyAggregate]) -> BurnTrend:
    """First-half vs second-half average net burn; +/-10% of the first half's magnitude"""
    if len(monthly) < 3:
        return "stable"

    burns = [m.expenses - m.income for m in monthly]
    mid = len(burns) // 2
    first_avg = mean(burns[:mid])
    second_avg = mean(burns[mid:])

    if abs(first_avg) < 0.01:
        return "stable"

    change = (second_avg - first_avg) / abs(first_avg)
    if change > 0.1:
        return "accelerating"
    if change < -0.1:
        return "improving"
    return "stable"


def generate_runway_recommendation(base_runway: Optional[float], burn_trend: BurnTrend) -> str:
    if base_runway is None:
        return "Excellent: Positive cash flow. Focus on goal funding and investment."
    if base_runway == 0:
        return "URGENT: No cash reserves. Immediate action required to reduce expenses or increase income."
    if base_runway < RUNWAY_CRITICAL:
        if burn_trend == "accelerating":
            return (
                "CRITICAL: Runway is very short and burn is accelerating. "
                "Cut non-essential expenses immediately and consider additional income sources."
            )
        return "CRITICAL: Runway is very short. Cut expenses or increase income immediately. Build emergency fund urgently."
    if base_runway < RUNWAY_CAUTION:
        if burn_trend == "improving":
            return "CAUTION: Limited runway, but improving. Continue cost reduction efforts and build reserves."
        return "CAUTION: Consider cost reduction or income boost within 3-6 months. Prioritize building emergency fund."
    if base_runway < RUNWAY_ADEQUATE:
        return "ADEQUATE: Monitor monthly. Consider building runway to 12+ months for better security."
    return "COMFORTABLE: Strong runway. Continue monitoring quarterly while focusing on longer-term goals."


def analyze_runway(
    transactions: Iterable[Transaction],
    cash_on_hand: float,
    options: RunwayOptions = RunwayOptions(),
    as_of: date | None = None,
) -> RunwayResult:
    """Runway over the last `lookback_months` months of history with scenarios and trend"""
    recent = sorted_monthly_aggregates(transactions)[-options.lookback_months :]

    if not recent:
        return RunwayResult(
            cash_on_hand=cash_on_hand,
            gross_burn_rate=0.0,
            net_burn_rate=0.0,
            scenarios=RunwayScenarios(
                base=create_scenario("Base Case", cash_on_hand, 0.0, as_of),
                conservative=create_scenario("Conservative", cash_on_hand, 0.0, as_of),
                best=create_scenario("Best Case", cash_on_hand, 0.0, as_of),
            ),
            burn_trend="stable",
            recommendation="Insufficient data to calculate runway. Add transaction history.",
        )

    avg_income = mean([m.income for m in recent])
    avg_expenses = mean([m.expenses for m in recent])
    scenarios = run_scenarios(cash_on_hand, avg_income, avg_expenses, options, as_of)
    burn_trend = analyze_burn_trend(recent)

    return RunwayResult(
        cash_on_hand=cash_on_hand,
        gross_burn_rate=round(avg_expenses, 2),
        net_burn_rate=round(avg_expenses - avg_income, 2),
        scenarios=scenarios,
        burn_trend=burn_trend,
        recommendation=generate_runway_recommendation(scenarios.base.runway_months, burn_trend),
    )


def calculate_job_loss_runway(
    cash_on_hand: float,
    monthly_essential_expenses: float,
    as_of: date | None = None,
) -> JobLossRunway:
    """Runway with no income at all, covering essential expenses only"""
    if monthly_essential_expenses < 0:
        raise InvalidInputError("monthly_essential_expenses must not be negative")
    if monthly_essential_expenses == 0:
        return JobLossRunway(
            runway_months=None,
            depletion_date=None,
            recommendation="COMFORTABLE: No essential expenses recorded. Cash is not being drawn down.",
        )

    months = cash_on_hand / monthly_essential_expenses
    if months < 3:
        recommendation = "CRITICAL: Less than 3 months runway without income. Build emergency fund immediately."
    elif months < 6:
        recommendation = "CAUTION: 3-6 months runway. Aim for at least 6 months of essential expenses."
    elif months < 12:
        recommendation = "ADEQUATE: 6-12 months runway. Consider building to 12 months for variable income."
    else:
        recommendation = "COMFORTABLE: 12+ months runway. Strong emergency fund position."

    return JobLossRunway(
        runway_months=round(months, 1),
        depletion_date=calculate_depletion_date(months, as_of),
        recommendation=recommendation,
    )
