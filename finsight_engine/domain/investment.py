"""Monte Carlo portfolio projections for goals and retirement"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from finsight_engine.domain.constants import MONTE_CARLO_SIMULATIONS, SAFE_WITHDRAWAL_RATE
from finsight_engine.domain.exceptions import InvalidInputError
from finsight_engine.domain.statistics import percentile

logger = logging.getLogger(__name__)

DISCLAIMER = (
    "IMPORTANT DISCLAIMER: This simulation is for educational and planning purposes only. "
    "It does not constitute financial advice. Past performance does not guarantee future results. "
    "Actual returns may vary significantly from projections. Consider consulting a licensed "
    "financial advisor before making investment decisions."
)


@dataclass(frozen=True)
class ReturnAssumption:
    mean: float
    std_dev: float


# Long-run annual return and volatility per asset class
ASSET_CLASS_ASSUMPTIONS: Dict[str, ReturnAssumption] = {
    "US_LARGE_CAP": ReturnAssumption(0.10, 0.16),
    "US_SMALL_CAP": ReturnAssumption(0.12, 0.20),
    "INTERNATIONAL": ReturnAssumption(0.08, 0.17),
    "BONDS": ReturnAssumption(0.05, 0.05),
    "CASH": ReturnAssumption(0.02, 0.01),
    "REIT": ReturnAssumption(0.09, 0.18),
    "DEFAULT": ReturnAssumption(0.07, 0.15),
}

SCENARIOS: Tuple[Tuple[str, str, ReturnAssumption], ...] = (
    ("conservative", "Conservative (60% Bonds, 40% Stocks)", ReturnAssumption(0.06, 0.08)),
    ("moderate", "Moderate (40% Bonds, 60% Stocks)", ReturnAssumption(0.08, 0.12)),
    ("aggressive", "Aggressive (20% Bonds, 80% Stocks)", ReturnAssumption(0.10, 0.16)),
)

RETIREMENT_TARGETS = {
    "modest_retirement": 500_000,
    "comfortable_retirement": 1_000_000,
    "luxury_retirement": 2_500_000,
}


@dataclass(frozen=True)
class SimulationOptions:
    simulations: int = MONTE_CARLO_SIMULATIONS
    seed: Optional[int] = None
    annual_mean: Optional[float] = None
    annual_std_dev: Optional[float] = None
    asset_allocation: Optional[Mapping[str, float]] = None
    goal_amount: Optional[float] = None


@dataclass
class Percentiles:
    p10: int
    p25: int
    p50: int
    p75: int
    p90: int


@dataclass
class SimulationResult:
    mean: int
    std_dev: int
    percentiles: Percentiles
    confidence_interval: Tuple[int, int]
    probability_of_goal: Optional[int]  # percent of paths reaching the goal
    simulations_run: int
    horizon_months: int
    assumptions: str
    disclaimer: str = DISCLAIMER


@dataclass
class ScenarioResult:
    name: str
    result: SimulationResult


@dataclass
class RetirementProjection:
    age_at_retirement: int
    years_until_retirement: int
    projected_balance: SimulationResult
    monthly_income_from_portfolio: int
    savings_needed_for: Dict[str, int] = field(default_factory=lambda: dict(RETIREMENT_TARGETS))


@dataclass
class RequiredContribution:
    required_monthly_contribution: int
    assumptions: str


def calculate_expected_return(
    asset_allocation: Optional[Mapping[str, float]] = None,
    custom_mean: Optional[float] = None,
    custom_std_dev: Optional[float] = None,
) -> ReturnAssumption:
    """
    Annual return assumption for a portfolio.

    Explicit mean and stdDev win. Otherwise the allocation weights blend asset
    class means linearly and variances by squared weight (asset classes are
    treated as uncorrelated). Unknown classes use the balanced default.
    """
    if custom_mean is not None and custom_std_dev is not None:
        return ReturnAssumption(custom_mean, custom_std_dev)
    if not asset_allocation:
        return ASSET_CLASS_ASSUMPTIONS["DEFAULT"]

    weighted_mean = 0.0
    weighted_var = 0.0
    for asset_class, weight in asset_allocation.items():
        assumption = ASSET_CLASS_ASSUMPTIONS.get(asset_class, ASSET_CLASS_ASSUMPTIONS["DEFAULT"])
        weighted_mean += assumption.mean * weight
        weighted_var += (assumption.std_dev**2) * (weight**2)

    return ReturnAssumption(weighted_mean, math.sqrt(weighted_var))


def simulate_paths(
    rng: np.random.Generator,
    initial_value: float,
    monthly_contribution: float,
    horizon_months: int,
    annual_mean: float,
    annual_std_dev: float,
    simulations: int,
) -> np.ndarray:
    """
    Final portfolio values for `simulations` independent paths.

    Each month the contribution lands first, then a normal monthly return
    (mean/12, stdDev/sqrt(12)) compounds the balance, which never drops below 0.
    """
    monthly_mean = annual_mean / 12
    monthly_std = annual_std_dev / math.sqrt(12)

    values = np.full(simulations, float(initial_value))
    for _ in range(horizon_months):
        values += monthly_contribution
        values *= 1 + rng.normal(monthly_mean, monthly_std, size=simulations)
        np.maximum(values, 0.0, out=values)
    return values


def run_monte_carlo(
    initial_value: float,
    monthly_contribution: float,
    horizon_months: int,
    options: SimulationOptions = SimulationOptions(),
) -> SimulationResult:
    """
    Distribution of final portfolio values.

    Requirements:
    - simulations must be positive and horizon_months non-negative
    - The same seed reproduces the same result
    - Percentiles use the sorted-index method shared with the statistics kernel
    - probability_of_goal is None when no goal amount is given

    Example:
        result = run_monte_carlo(10_000, 500, 120, SimulationOptions(seed=7, goal_amount=100_000))
        result.probability_of_goal  # percent of paths at or above 100k
    """
    if options.simulations <= 0:
        raise InvalidInputError(f"simulations must be positive, got {options.simulations}")
    if horizon_months < 0:
        raise InvalidInputError(f"horizon_months must be non-negative, got {horizon_months}")

    assumption = calculate_expected_return(options.asset_allocation, options.annual_mean, options.annual_std_dev)
    rng = np.random.default_rng(options.seed)
    finals = simulate_paths(
        rng,
        initial_value,
        monthly_contribution,
        horizon_months,
        assumption.mean,
        assumption.std_dev,
        options.simulations,
    )

    ordered = np.sort(finals).tolist()
    points = Percentiles(*(round(percentile(ordered, p)) for p in (10, 25, 50, 75, 90)))

    probability = None
    if options.goal_amount is not None:
        probability = round(float(np.mean(finals >= options.goal_amount)) * 100)

    assumptions = (
        f"Expected annual return: {assumption.mean * 100:.1f}%, "
        f"Volatility (std dev): {assumption.std_dev * 100:.1f}%, "
        f"Monthly contribution: ${monthly_contribution:.0f}, "
        f"Simulations: {options.simulations}"
    )
    logger.debug("Monte Carlo run", extra={"simulations": options.simulations, "horizon_months": horizon_months})

    return SimulationResult(
        mean=round(float(np.mean(finals))),
        std_dev=round(float(np.std(finals))),
        percentiles=points,
        confidence_interval=(points.p10, points.p90),
        probability_of_goal=probability,
        simulations_run=options.simulations,
        horizon_months=horizon_months,
        assumptions=assumptions,
    )


def compare_scenarios(
    initial_value: float,
    monthly_contribution: float,
    horizon_months: int,
    goal_amount: Optional[float] = None,
    simulations: int = MONTE_CARLO_SIMULATIONS,
    seed: Optional[int] = None,
) -> Dict[str, ScenarioResult]:
    """Conservative, moderate and aggressive portfolios side by side, keyed by risk level"""
    results = {}
    for key, name, assumption in SCENARIOS:
        options = SimulationOptions(
            simulations=simulations,
            seed=seed,
            annual_mean=assumption.mean,
            annual_std_dev=assumption.std_dev,
            goal_amount=goal_amount,
        )
        results[key] = ScenarioResult(name, run_monte_carlo(initial_value, monthly_contribution, horizon_months, options))
    return results


def project_retirement(
    current_age: int,
    retirement_age: int,
    current_savings: float,
    monthly_contribution: float,
    annual_mean: float = 0.07,
    annual_std_dev: float = 0.15,
    simulations: int = MONTE_CARLO_SIMULATIONS,
    seed: Optional[int] = None,
) -> RetirementProjection:
    """Median balance at retirement and the monthly income it supports under the 4% rule"""
    years = max(0, retirement_age - current_age)
    projection = run_monte_carlo(
        current_savings,
        monthly_contribution,
        years * 12,
        SimulationOptions(simulations=simulations, seed=seed, annual_mean=annual_mean, annual_std_dev=annual_std_dev),
    )
    return RetirementProjection(
        age_at_retirement=retirement_age,
        years_until_retirement=years,
        projected_balance=projection,
        monthly_income_from_portfolio=round(projection.percentiles.p50 * SAFE_WITHDRAWAL_RATE / 12),
    )


def calculate_required_contribution(
    current_value: float,
    goal_amount: float,
    horizon_months: int,
    annual_mean: float = 0.07,
) -> RequiredContribution:
    """
    Level monthly deposit that reaches the goal under a constant return.

    Solves FV = PV(1+r)^n + PMT((1+r)^n - 1)/r for PMT, rounded up, never negative.
    """
    if horizon_months <= 0:
        raise InvalidInputError(f"horizon_months must be positive, got {horizon_months}")

    monthly_rate = annual_mean / 12
    remaining = goal_amount - current_value * (1 + monthly_rate) ** horizon_months
    if monthly_rate == 0:
        annuity_factor = float(horizon_months)
    else:
        annuity_factor = ((1 + monthly_rate) ** horizon_months - 1) / monthly_rate

    return RequiredContribution(
        required_monthly_contribution=max(0, math.ceil(remaining / annuity_factor)),
        assumptions=f"Assumes {annual_mean * 100:.1f}% annual return, {horizon_months} month horizon",
    )
