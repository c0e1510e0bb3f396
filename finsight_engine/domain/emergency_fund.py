"""Emergency fund sizing from income stability and household risk factors"""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Mapping, Optional, Tuple

from finsight_engine.domain.constants import (
    EF_BASE_MONTHS,
    EF_DEPENDENT_ADJUSTMENT,
    EF_HEALTH_ADJUSTMENT,
    EF_MAX_MONTHS,
    EF_MIN_MONTHS,
)
from finsight_engine.domain.exceptions import InvalidInputError
from finsight_engine.domain.statistics import clamp

IncomeStability = Literal["stable", "variable", "high_variable"]
HealthRisk = Literal["low", "elevated", "high"]
FundStatus = Literal["above_target", "adequate", "below_target"]
QuickStatus = Literal["critical", "underfunded", "adequate", "well-funded"]

ADEQUATE_FUND_RATIO = 0.8

ESSENTIAL_CATEGORIES = (
    "Rent",
    "Mortgage",
    "Utilities",
    "Groceries",
    "Insurance",
    "Healthcare",
    "Transportation",
    "Phone",
    "Internet",
    "Debt",
    "Loan",
    "Childcare",
)


@dataclass(frozen=True)
class EmergencyFundInput:
    monthly_essential_expenses: float
    current_balance: float
    income_stability: IncomeStability = "variable"
    dependents: int = 0
    health_risk: HealthRisk = "low"
    job_stability_years: float = 0
    has_partner_income: bool = False


@dataclass
class EmergencyFundResult:
    recommended_months: int
    recommended_range: Tuple[int, int]
    recommended_amount: int
    current_balance: float
    status: FundStatus
    action_needed: float
    months_to_target: Optional[int]
    rationale: List[str] = field(default_factory=list)


@dataclass
class StatusExplanation:
    summary: str
    next_step: str


@dataclass
class QuickAssessment:
    minimum_target: int
    recommended_target: int
    status: QuickStatus
    months_covered: float
    advice: str


@dataclass
class EssentialExpenses:
    monthly_essential: int
    breakdown: Dict[str, int]


def assess_income_stability(income_cv: Optional[float]) -> IncomeStability:
    """Unknown volatility is treated as variable"""
    if income_cv is None:
        return "variable"
    if income_cv < 0.1:
        return "stable"
    if income_cv < 0.3:
        return "variable"
    return "high_variable"


def get_dependent_adjustment(dependents: int) -> int:
    return dependents * EF_DEPENDENT_ADJUSTMENT


def get_health_adjustment(health_risk: HealthRisk) -> int:
    if health_risk == "high":
        return EF_HEALTH_ADJUSTMENT
    if health_risk == "elevated":
        return 1
    return 0


def get_job_stability_adjustment(years_at_job: float) -> int:
    # Longer tenure means steadier income
    if years_at_job >= 10:
        return -1
    if years_at_job >= 5:
        return 0
    if years_at_job >= 2:
        return 1
    return 2


def get_partner_income_adjustment(has_partner_income: bool) -> int:
    return -1 if has_partner_income else 0


def _classify_fund(balance: float, target: float) -> FundStatus:
    ratio = balance / target if target > 0 else 1.0
    if ratio >= 1:
        return "above_target"
    if ratio >= ADEQUATE_FUND_RATIO:
        return "adequate"
    return "below_target"


def calculate_emergency_fund(fund_input: EmergencyFundInput) -> EmergencyFundResult:
    """
    Recommended emergency fund in months and dollars.

    Requirements:
    - Base range comes from the income stability tier
    - Dependents, health, job tenure and partner income shift both ends
    - Each end is clamped to [3, 24] months; the midpoint is recommended
    - Status is above_target at 100% funded, adequate at 80%, else below_target
    """
    if fund_input.monthly_essential_expenses < 0:
        raise InvalidInputError("monthly_essential_expenses must not be negative")

    base_min, base_max = EF_BASE_MONTHS[fund_input.income_stability]
    dependent_adj = get_dependent_adjustment(fund_input.dependents)
    health_adj = get_health_adjustment(fund_input.health_risk)
    job_adj = get_job_stability_adjustment(fund_input.job_stability_years)
    partner_adj = get_partner_income_adjustment(fund_input.has_partner_income)
    total_adj = dependent_adj + health_adj + job_adj + partner_adj

    adjusted_min = int(clamp(base_min + total_adj, EF_MIN_MONTHS, EF_MAX_MONTHS))
    adjusted_max = int(clamp(base_max + total_adj, EF_MIN_MONTHS, EF_MAX_MONTHS))
    months = round((adjusted_min + adjusted_max) / 2)
    amount = round(fund_input.monthly_essential_expenses * months)
    action_needed = amount - fund_input.current_balance

    rationale = [
        f"Base recommendation: {base_min}-{base_max} months for {fund_input.income_stability} income."
    ]
    if dependent_adj > 0:
        rationale.append(f"+{dependent_adj} month(s) for {fund_input.dependents} dependent(s).")
    if health_adj > 0:
        rationale.append(f"+{health_adj} month(s) for {fund_input.health_risk} health risk.")
    if job_adj != 0:
        tenure = "long job tenure" if job_adj < 0 else "moderate job tenure" if job_adj == 1 else "short job tenure"
        rationale.append(f"{job_adj:+d} month(s) for {tenure} ({fund_input.job_stability_years:g} years).")
    if partner_adj < 0:
        rationale.append(f"{partner_adj} month(s) for dual income household.")
    rationale.append(f"Final recommendation: {months} months = ${amount:,}.")

    return EmergencyFundResult(
        recommended_months=months,
        recommended_range=(adjusted_min, adjusted_max),
        recommended_amount=amount,
        current_balance=fund_input.current_balance,
        status=_classify_fund(fund_input.current_balance, amount),
        action_needed=action_needed,
        # Without a savings rate the time to target is unknown
        months_to_target=None if action_needed > 0 else 0,
        rationale=rationale,
    )


def get_status_explanation(result: EmergencyFundResult) -> StatusExplanation:
    funded = round(result.current_balance / result.recommended_amount * 100) if result.recommended_amount else 100

    if result.status == "above_target":
        return StatusExplanation(
            f"Emergency fund is {funded}% funded - above your target!",
            "Consider investing excess funds or increasing retirement contributions.",
        )
    if result.status == "adequate":
        return StatusExplanation(
            f"Emergency fund is {funded}% funded - nearly at target.",
            f"Build up ${abs(result.action_needed):,.0f} more to reach full target.",
        )
    return StatusExplanation(
        f"Emergency fund is {funded}% funded - below recommended level.",
        f"Prioritize building ${result.action_needed:,.0f} in emergency savings before other goals.",
    )


def quick_assessment(monthly_expenses: float, current_savings: float, has_variable_income: bool) -> QuickAssessment:
    """Rule-of-thumb check: 3-6 months for steady income, 6-9 for variable"""
    if monthly_expenses <= 0:
        raise InvalidInputError("monthly_expenses must be positive")

    min_months, max_months = EF_BASE_MONTHS["variable" if has_variable_income else "stable"]
    covered = current_savings / monthly_expenses

    if covered < 1:
        status: QuickStatus = "critical"
        advice = (
            "URGENT: Less than 1 month of expenses saved. "
            "Pause non-essential spending and build a starter fund immediately."
        )
    elif covered < min_months:
        status = "underfunded"
        advice = f"Build emergency fund to {min_months} months before investing or paying extra on low-interest debt."
    elif covered < max_months:
        status = "adequate"
        advice = "Good progress! Continue building toward full recommendation while pursuing other goals."
    else:
        status = "well-funded"
        advice = "Emergency fund is healthy. Focus on retirement, debt payoff, or other priorities."

    return QuickAssessment(
        minimum_target=round(monthly_expenses * min_months),
        recommended_target=round(monthly_expenses * max_months),
        status=status,
        months_covered=round(covered, 1),
        advice=advice,
    )


def estimate_essential_expenses(category_totals: Mapping[str, float], months: int) -> EssentialExpenses:
    """
    Monthly essential spend from category totals over `months` months.

    A category is essential when its name contains one of ESSENTIAL_CATEGORIES,
    ignoring case, so "Home Insurance" and "Car Loan" both count.
    """
    if months <= 0:
        raise InvalidInputError(f"months must be positive, got {months}")

    breakdown = {}
    total = 0.0
    for category, amount in category_totals.items():
        lowered = category.lower()
        if any(essential.lower() in lowered for essential in ESSENTIAL_CATEGORIES):
            monthly = amount / months
            breakdown[category] = round(monthly)
            total += monthly

    return EssentialExpenses(monthly_essential=round(total), breakdown=breakdown)
