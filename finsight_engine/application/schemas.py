"""Pydantic report models for JSON-safe analysis output"""

from datetime import date
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from finsight_engine.domain.budget_variance import serializable_variance


class ReportModel(BaseModel):
    """Base for report models built straight from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


class DataCompletenessReport(ReportModel):
    transaction_coverage: float = Field(..., ge=0, le=100, description="Percent of days with data")
    has_income_data: bool
    has_expense_data: bool
    category_count: int
    days_with_data: int
    total_days: int
    confidence: str
    explanation: str
    warnings: List[str] = []


class RecurringPatternReport(ReportModel):
    merchant: str
    category: str
    avg_amount: float
    period: str
    confidence: int = Field(..., ge=0, le=100)
    status: str
    last_occurrence_date: date
    next_expected_date: date
    occurrences: int


class RecurringReport(ReportModel):
    patterns: List[RecurringPatternReport]
    monthly_total: float
    annual_total: float


class CashFlowReport(ReportModel):
    stability_index: int = Field(..., ge=0, le=100)
    rating: str
    coefficient_of_variation: Optional[float] = None
    mean_net_cash_flow: float
    std_dev_net_cash_flow: float
    recurring_ratio: float
    probability_negative_month: Optional[float] = None
    probability_negative_3_months: Optional[float] = None
    confidence: str
    explanation: str


class RunwayScenarioReport(ReportModel):
    name: str
    runway_months: Optional[float] = None
    status: str
    burn_rate: float
    depletion_date: Optional[date] = None


class RunwayScenariosReport(ReportModel):
    base: RunwayScenarioReport
    conservative: RunwayScenarioReport
    best: RunwayScenarioReport


class RunwayReport(ReportModel):
    cash_on_hand: float
    gross_burn_rate: float
    net_burn_rate: float
    scenarios: RunwayScenariosReport
    burn_trend: str
    recommendation: str


class MonthlyValueReport(ReportModel):
    month: str
    value: float


class ConfidenceIntervalReport(ReportModel):
    lower: float
    upper: float


class ForecastReport(ReportModel):
    category: str
    forecast: float
    confidence_interval: ConfidenceIntervalReport
    confidence: str
    trend: str
    monthly_history: List[MonthlyValueReport]
    method: str


class BudgetVarianceReport(ReportModel):
    category: str
    budgeted: float
    actual: float
    variance: float
    variance_amount: float
    status: str
    is_red_flag: bool

    @field_serializer("variance")
    def serialize_variance(self, variance: float) -> float:
        return serializable_variance(variance)


class MonthlyBudgetReportModel(ReportModel):
    month: str
    total_budgeted: float
    total_actual: float
    total_variance: float
    surplus: float
    categories: List[BudgetVarianceReport]
    red_flag_count: int


class AdherenceHistoryReport(ReportModel):
    month: str
    adherence_score: int
    categories_on_track: int
    total_categories: int


class ProblemCategoryReport(ReportModel):
    category: str
    avg_variance: float
    times_over_budget: int
    is_consistent_offender: bool


class AdherenceReport(ReportModel):
    overall_score: int = Field(..., ge=0, le=100)
    rating: str
    trend: str
    trend_percent: Optional[int] = None
    history: List[AdherenceHistoryReport]
    problem_categories: List[ProblemCategoryReport]
    insights: List[str]


class AnomalySummaryReport(ReportModel):
    total_reviewed: int
    anomalies_found: int
    review_required: int
    flagged_in_ui: int
    duplicates_detected: int
    new_merchants: int
    amount_outliers: int
    by_action: Dict[str, int] = {}
    by_reason: Dict[str, int] = {}


class FinancialSummary(BaseModel):
    """Every analysis for one snapshot of a user's finances"""

    request_id: str
    as_of: date
    period: Tuple[date, date]
    data_completeness: DataCompletenessReport
    recurring: RecurringReport
    cash_flow: CashFlowReport
    runway: RunwayReport
    expense_forecast: ForecastReport
    budget: MonthlyBudgetReportModel
    adherence: AdherenceReport
    anomalies: AnomalySummaryReport


class PercentilesReport(ReportModel):
    p10: int
    p25: int
    p50: int
    p75: int
    p90: int


class SimulationReport(ReportModel):
    mean: int
    std_dev: int
    percentiles: PercentilesReport
    confidence_interval: Tuple[int, int]
    probability_of_goal: Optional[int] = Field(None, ge=0, le=100)
    simulations_run: int
    horizon_months: int
    assumptions: str
    disclaimer: str


class InvestmentOutlook(BaseModel):
    """Projection for one portfolio plus the deposit needed to hit its goal"""

    request_id: str
    projection: SimulationReport
    required_monthly_contribution: Optional[int] = None
