"""Investment outlook - Monte Carlo projection driven by service settings"""

import uuid
from typing import Mapping, Optional

from finsight_engine.application.schemas import InvestmentOutlook, SimulationReport
from finsight_engine.application.summary import run_analysis
from finsight_engine.config import settings
from finsight_engine.domain.constants import MONTE_CARLO_SIMULATIONS
from finsight_engine.domain.investment import (
    SimulationOptions,
    SimulationResult,
    calculate_expected_return,
    calculate_required_contribution,
    run_monte_carlo,
)
from finsight_engine.domain.models import ConfidenceLevel

# Below this many paths the percentiles are too noisy to lean on
MIN_USEFUL_SIMULATIONS = 100


def simulation_confidence(result: SimulationResult) -> ConfidenceLevel:
    if result.simulations_run >= MONTE_CARLO_SIMULATIONS:
        return "high"
    if result.simulations_run >= MIN_USEFUL_SIMULATIONS:
        return "medium"
    return "low"


def build_investment_outlook(
    initial_value: float,
    monthly_contribution: float,
    horizon_months: int,
    goal_amount: Optional[float] = None,
    asset_allocation: Optional[Mapping[str, float]] = None,
    request_id: str | None = None,
) -> InvestmentOutlook:
    """
    Project a portfolio with the configured simulation count and seed.

    With a goal, the outlook also carries the level monthly deposit that
    reaches it at the allocation's expected return.
    """
    request_id = request_id or str(uuid.uuid4())
    options = SimulationOptions(
        simulations=settings.monte_carlo_simulations,
        seed=settings.monte_carlo_seed,
        asset_allocation=asset_allocation,
        goal_amount=goal_amount,
    )

    projection = run_analysis(
        request_id,
        "investment_projection",
        lambda: run_monte_carlo(initial_value, monthly_contribution, horizon_months, options),
        simulation_confidence,
    )

    required = None
    if goal_amount is not None and horizon_months > 0:
        expected = calculate_expected_return(asset_allocation)
        required = calculate_required_contribution(
            initial_value, goal_amount, horizon_months, expected.mean
        ).required_monthly_contribution

    return InvestmentOutlook(
        request_id=request_id,
        projection=SimulationReport.model_validate(projection),
        required_monthly_contribution=required,
    )
