"""Debt-to-income and payoff planning - amortization, avalanche vs snowball, refinance"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Literal, Optional, Sequence

from finsight_engine.domain.constants import DTI_ACCEPTABLE, DTI_HEALTHY, MAX_PAYOFF_MONTHS
from finsight_engine.domain.exceptions import InvalidInputError
from finsight_engine.domain.models import Debt
from finsight_engine.utils.date_utils import add_months

DTIStatus = Literal["Healthy", "Acceptable", "High Risk"]
PayoffStrategy = Literal["avalanche", "snowball"]

# Balances at or below a cent count as paid off
PAID_OFF_BALANCE = 0.01
# Interest difference above which avalanche is recommended without caveats
CLEAR_SAVINGS_THRESHOLD = 100.0


@dataclass
class PaymentPeriod:
    month: int
    payment: float
    principal: float
    interest: float
    remaining_balance: float


@dataclass
class PayoffSchedule:
    debt_id: int
    name: str
    strategy: PayoffStrategy
    months_to_payoff: int
    total_interest_paid: float
    payoff_date: date
    monthly_payments: List[PaymentPeriod] = field(default_factory=list)


@dataclass
class PayoffSimulation:
    total_months: int
    total_interest: float
    payoff_date: date
    schedules: List[PayoffSchedule]


@dataclass
class StrategyOutcome:
    total_interest: float
    total_months: int
    payoff_date: date


@dataclass
class StrategyComparison:
    avalanche: StrategyOutcome
    snowball: StrategyOutcome
    interest_saved: float  # snowball interest minus avalanche interest
    recommended_strategy: PayoffStrategy
    explanation: str


@dataclass
class DebtAnalysis:
    total_debt: float
    total_min_payment: float
    debt_to_income: float  # percent
    dti_status: DTIStatus
    payoff_comparison: StrategyComparison
    recommendation: str


@dataclass
class RefinanceAnalysis:
    current_total_cost: float
    new_total_cost: float
    savings: float
    break_even_months: Optional[int]  # None when the new rate saves nothing per month
    recommended: bool
    recommendation: str


def calculate_dti(total_monthly_debt_payments: float, gross_monthly_income: float) -> float:
    """Minimum payments as a percent of gross monthly income; 0 without income"""
    if gross_monthly_income <= 0:
        return 0.0
    return (total_monthly_debt_payments / gross_monthly_income) * 100


def classify_dti_status(dti: float) -> DTIStatus:
    if dti <= DTI_HEALTHY * 100:
        return "Healthy"
    if dti <= DTI_ACCEPTABLE * 100:
        return "Acceptable"
    return "High Risk"


def get_dti_recommendation(dti: float, status: DTIStatus) -> str:
    if status == "Healthy":
        return f"DTI of {dti:.1f}% is healthy. Maintain current debt levels and consider accelerating payoff."
    if status == "Acceptable":
        return f"DTI of {dti:.1f}% is within lending limits but elevated. Avoid new debt and focus on payoff."
    return (
        f"DTI of {dti:.1f}% exceeds recommended limits. "
        "Prioritize aggressive debt reduction before taking on new obligations."
    )


def monthly_interest(balance: float, annual_rate_percent: float) -> float:
    return balance * annual_rate_percent / 100 / 12


def _period(month: int, payment: float, principal: float, interest: float, balance: float) -> PaymentPeriod:
    return PaymentPeriod(
        month=month,
        payment=round(payment, 2),
        principal=round(principal, 2),
        interest=round(interest, 2),
        remaining_balance=round(balance, 2),
    )


def calculate_payoff_schedule(
    debt: Debt,
    monthly_payment: float,
    max_months: int = MAX_PAYOFF_MONTHS,
    as_of: date | None = None,
) -> PayoffSchedule:
    """
    Amortize one debt at a fixed monthly payment.

    Stops once the balance is at most a cent or after `max_months`; a payment
    too small to cover interest simply runs to the cap.
    """
    if as_of is None:
        as_of = date.today()

    balance = debt.current_balance
    total_interest = 0.0
    payments = []
    month = 0

    while balance > PAID_OFF_BALANCE and month < max_months:
        month += 1
        interest = monthly_interest(balance, debt.annual_interest_rate)
        total_interest += interest
        payment = min(monthly_payment, balance + interest)
        principal = payment - interest
        balance = max(0.0, balance - principal)
        payments.append(_period(month, payment, principal, interest, balance))

    return PayoffSchedule(
        debt_id=debt.id,
        name=debt.name,
        strategy="avalanche",
        months_to_payoff=month,
        total_interest_paid=round(total_interest, 2),
        payoff_date=add_months(as_of, month),
        monthly_payments=payments,
    )


def sort_for_avalanche(debts: Sequence[Debt]) -> List[Debt]:
    """Highest interest rate first"""
    return sorted(debts, key=lambda d: d.annual_interest_rate, reverse=True)


def sort_for_snowball(debts: Sequence[Debt]) -> List[Debt]:
    """Smallest balance first"""
    return sorted(debts, key=lambda d: d.current_balance)


def order_debts(debts: Sequence[Debt], strategy: PayoffStrategy) -> List[Debt]:
    if strategy == "avalanche":
        return sort_for_avalanche(debts)
    if strategy == "snowball":
        return sort_for_snowball(debts)
    raise InvalidInputError(f"Unknown payoff strategy: {strategy}")


def simulate_payoff(
    debts: Sequence[Debt],
    strategy: PayoffStrategy,
    extra_monthly_payment: float = 0.0,
    as_of: date | None = None,
) -> PayoffSimulation:
    """
    Month-by-month payoff of several debts.

    Every open debt gets its minimum; the first open debt in strategy order
    also gets the extra pool. A debt's minimum joins the extra pool once it
    is paid off, so freed payments roll into the next target.
    """
    if as_of is None:
        as_of = date.today()
    ordered = order_debts(debts, strategy)
    if not ordered:
        return PayoffSimulation(0, 0.0, as_of, [])

    balances: Dict[int, float] = {d.id: d.current_balance for d in ordered}
    payments: Dict[int, List[PaymentPeriod]] = {d.id: [] for d in ordered}
    available_extra = extra_monthly_payment
    total_interest = 0.0
    month = 0

    while any(b > PAID_OFF_BALANCE for b in balances.values()) and month < MAX_PAYOFF_MONTHS:
        month += 1
        target_id = next(d.id for d in ordered if balances[d.id] > PAID_OFF_BALANCE)

        for debt in ordered:
            balance = balances[debt.id]
            if balance <= PAID_OFF_BALANCE:
                continue

            interest = monthly_interest(balance, debt.annual_interest_rate)
            total_interest += interest

            payment = debt.min_monthly_payment
            if debt.id == target_id:
                payment += available_extra
            payment = min(payment, balance + interest)

            principal = payment - interest
            balance = max(0.0, balance - principal)
            balances[debt.id] = balance
            payments[debt.id].append(_period(month, payment, principal, interest, balance))

            if balance <= PAID_OFF_BALANCE:
                available_extra += debt.min_monthly_payment

    schedules = [
        PayoffSchedule(
            debt_id=debt.id,
            name=debt.name,
            strategy=strategy,
            months_to_payoff=len(payments[debt.id]),
            total_interest_paid=round(sum(p.interest for p in payments[debt.id]), 2),
            payoff_date=add_months(as_of, len(payments[debt.id])),
            monthly_payments=payments[debt.id],
        )
        for debt in ordered
    ]

    return PayoffSimulation(
        total_months=month,
        total_interest=round(total_interest, 2),
        payoff_date=add_months(as_of, month),
        schedules=schedules,
    )


def compare_payoff_strategies(
    debts: Sequence[Debt],
    extra_monthly_payment: float = 0.0,
    as_of: date | None = None,
) -> StrategyComparison:
    """
    Avalanche vs snowball with the same extra payment.

    Avalanche is recommended whenever it saves interest; with no saving the
    snowball is recommended for its quicker early payoffs.
    """
    avalanche = simulate_payoff(debts, "avalanche", extra_monthly_payment, as_of)
    snowball = simulate_payoff(debts, "snowball", extra_monthly_payment, as_of)
    saved = round(snowball.total_interest - avalanche.total_interest, 2)

    if saved > CLEAR_SAVINGS_THRESHOLD:
        strategy: PayoffStrategy = "avalanche"
        explanation = f"Avalanche saves ${saved:.0f} in interest. Recommended for maximum savings."
    elif saved > 0:
        strategy = "avalanche"
        explanation = (
            f"Avalanche saves ${saved:.0f} in interest, "
            "but snowball may provide motivational wins from faster payoffs."
        )
    else:
        strategy = "snowball"
        explanation = "Methods are similar. Snowball recommended for motivational benefits of quick wins."

    return StrategyComparison(
        avalanche=StrategyOutcome(avalanche.total_interest, avalanche.total_months, avalanche.payoff_date),
        snowball=StrategyOutcome(snowball.total_interest, snowball.total_months, snowball.payoff_date),
        interest_saved=saved,
        recommended_strategy=strategy,
        explanation=explanation,
    )


def analyze_debt(
    debts: Sequence[Debt],
    gross_monthly_income: float,
    extra_monthly_payment: float = 0.0,
    as_of: date | None = None,
) -> DebtAnalysis:
    comparison = compare_payoff_strategies(debts, extra_monthly_payment, as_of)

    if not debts:
        return DebtAnalysis(0.0, 0.0, 0.0, "Healthy", comparison, "No debts tracked. Great job being debt-free!")

    total_debt = sum(d.current_balance for d in debts)
    total_min_payment = sum(d.min_monthly_payment for d in debts)
    dti = calculate_dti(total_min_payment, gross_monthly_income)
    status = classify_dti_status(dti)

    return DebtAnalysis(
        total_debt=round(total_debt, 2),
        total_min_payment=round(total_min_payment, 2),
        debt_to_income=round(dti, 1),
        dti_status=status,
        payoff_comparison=comparison,
        recommendation=f"{get_dti_recommendation(dti, status)} {comparison.explanation}",
    )


def analyze_refinance_opportunity(debt: Debt, new_rate: float, refinance_cost: float) -> RefinanceAnalysis:
    """
    Compare lifetime cost at the current rate against refinancing.

    The refinance cost is rolled into the new balance. Break-even is the
    cost divided by the first month's interest saving. Refinancing is
    recommended when the total saving exceeds twice the cost.
    """
    current = calculate_payoff_schedule(debt, debt.min_monthly_payment)
    current_total = debt.current_balance + current.total_interest_paid

    refinanced_balance = debt.current_balance + refinance_cost
    refinanced = Debt(
        id=debt.id,
        name=debt.name,
        principal_amount=debt.principal_amount,
        current_balance=refinanced_balance,
        annual_interest_rate=new_rate,
        min_monthly_payment=debt.min_monthly_payment,
    )
    new_schedule = calculate_payoff_schedule(refinanced, debt.min_monthly_payment)
    new_total = refinanced_balance + new_schedule.total_interest_paid

    savings = current_total - new_total
    monthly_saving = monthly_interest(debt.current_balance, debt.annual_interest_rate - new_rate)
    break_even = math.ceil(refinance_cost / monthly_saving) if monthly_saving > 0 else None
    break_even_text = f"{break_even} months" if break_even is not None else "never"

    recommended = savings > refinance_cost * 2
    if recommended:
        recommendation = (
            f"Refinancing recommended. Save ${savings:.0f} over the loan term. Break-even in {break_even_text}."
        )
    elif savings > 0:
        recommendation = (
            f"Refinancing may be worthwhile. Save ${savings:.0f} "
            f"but consider if you'll keep the loan past {break_even_text}."
        )
    else:
        recommendation = "Refinancing not recommended at this rate. Current terms are better."

    return RefinanceAnalysis(
        current_total_cost=round(current_total, 2),
        new_total_cost=round(new_total, 2),
        savings=round(savings, 2),
        break_even_months=break_even,
        recommended=recommended,
        recommendation=recommendation,
    )
