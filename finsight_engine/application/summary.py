"""Financial summary - runs every analysis over one snapshot of transactions"""

import logging
import time
import uuid
from datetime import date
from typing import Callable, Sequence, Tuple, TypeVar

from finsight_engine.config import settings
from finsight_engine.application.schemas import (
    AdherenceReport,
    AnomalySummaryReport,
    CashFlowReport,
    DataCompletenessReport,
    FinancialSummary,
    ForecastReport,
    MonthlyBudgetReportModel,
    RecurringPatternReport,
    RecurringReport,
    RunwayReport,
)
from finsight_engine.domain.adherence import AdherenceOptions, analyze_adherence
from finsight_engine.domain.aggregation import assess_data_completeness
from finsight_engine.domain.anomalies import AnomalyOptions, detect_anomalies_in_batch, summarize_anomalies
from finsight_engine.domain.budget_variance import generate_monthly_budget_report
from finsight_engine.domain.cash_flow import StabilityOptions, analyze_cash_flow_stability, assess_stability_confidence
from finsight_engine.domain.exceptions import InsufficientDataError
from finsight_engine.domain.forecasting import forecast_total_expenses
from finsight_engine.domain.models import Budget, ConfidenceLevel, Transaction
from finsight_engine.domain.recurring import calculate_recurring_total, detect_recurring_patterns
from finsight_engine.domain.runway import RunwayOptions, analyze_runway
from finsight_engine.infrastructure.observability.logging import log_analysis
from finsight_engine.infrastructure.observability.metrics import record_analysis, record_anomaly_summary
from finsight_engine.utils.date_utils import add_days, add_months, format_month_key, month_key, to_date

T = TypeVar("T")

# Transactions newer than this are screened for anomalies
ANOMALY_SCREEN_DAYS = 30


def run_analysis(
    request_id: str,
    analysis: str,
    compute: Callable[[], T],
    confidence_of: Callable[[T], ConfidenceLevel],
) -> T:
    """Run one analysis, then log and record its outcome"""
    start_time = time.time()
    result = compute()
    duration = time.time() - start_time
    confidence = confidence_of(result)

    record_analysis(analysis, confidence, duration)
    log_analysis(request_id, analysis, confidence, duration * 1000)
    return result


def _analysis_window(as_of: date) -> Tuple[date, date]:
    return add_months(as_of, -settings.analysis_lookback_months), as_of


def build_financial_summary(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    cash_on_hand: float,
    as_of: date | None = None,
    request_id: str | None = None,
) -> FinancialSummary:
    """
    Compose the core analyses into one report.

    Flow:
    1. Data completeness over the analysis window
    2. Recurring detection; its confirmed monthly total feeds cash flow
    3. Cash flow stability and runway
    4. Total expense forecast
    5. Current month budget report and adherence history
    6. Anomaly screen of the last 30 days

    Raises:
        InsufficientDataError: when no transactions fall on or before `as_of`
    """
    as_of = as_of or date.today()
    request_id = request_id or str(uuid.uuid4())

    history = [t for t in transactions if to_date(t.date) <= as_of]
    if not history:
        logging.warning("No transactions to summarize", extra={"request_id": request_id})
        raise InsufficientDataError(f"No transactions on or before {as_of.isoformat()}")

    start, end = _analysis_window(as_of)

    completeness = run_analysis(
        request_id,
        "data_completeness",
        lambda: assess_data_completeness(history, start, end),
        lambda r: r.confidence,
    )

    patterns = run_analysis(
        request_id,
        "recurring",
        lambda: detect_recurring_patterns(history),
        lambda r: "high" if any(p.status == "Confirmed" for p in r) else "low" if r else "insufficient",
    )
    recurring_total = calculate_recurring_total(patterns)

    cash_flow = run_analysis(
        request_id,
        "cash_flow_stability",
        lambda: analyze_cash_flow_stability(
            history,
            StabilityOptions(lookback_months=settings.stability_lookback_months),
            recurring_monthly_total=recurring_total.monthly,
        ),
        lambda r: r.confidence,
    )

    runway_months = len({month_key(t.date) for t in history})
    runway = run_analysis(
        request_id,
        "runway",
        lambda: analyze_runway(
            history, cash_on_hand, RunwayOptions(lookback_months=settings.runway_lookback_months), as_of
        ),
        lambda r: assess_stability_confidence(min(runway_months, settings.runway_lookback_months)),
    )

    forecast = run_analysis(
        request_id,
        "expense_forecast",
        lambda: forecast_total_expenses(history),
        lambda r: r.confidence,
    )

    budget_report = run_analysis(
        request_id,
        "budget_variance",
        lambda: generate_monthly_budget_report(format_month_key(month_key(as_of)), budgets, history),
        lambda r: "high" if budgets else "insufficient",
    )

    adherence = run_analysis(
        request_id,
        "adherence",
        lambda: analyze_adherence(history, budgets, AdherenceOptions(lookback_months=settings.analysis_lookback_months)),
        lambda r: "insufficient" if r.trend == "insufficient" else assess_stability_confidence(len(r.history)),
    )

    screen_from = add_days(as_of, -ANOMALY_SCREEN_DAYS)
    recent = [t for t in history if to_date(t.date) > screen_from]
    anomalies = run_analysis(
        request_id,
        "anomalies",
        lambda: summarize_anomalies(
            detect_anomalies_in_batch(recent, history, AnomalyOptions(lookback_days=settings.anomaly_lookback_days))
        ),
        lambda r: "high" if r.total_reviewed else "insufficient",
    )
    record_anomaly_summary(anomalies)

    return FinancialSummary(
        request_id=request_id,
        as_of=as_of,
        period=(start, end),
        data_completeness=DataCompletenessReport.model_validate(completeness),
        recurring=RecurringReport(
            patterns=[RecurringPatternReport.model_validate(p) for p in patterns],
            monthly_total=recurring_total.monthly,
            annual_total=recurring_total.annual,
        ),
        cash_flow=CashFlowReport.model_validate(cash_flow),
        runway=RunwayReport.model_validate(runway),
        expense_forecast=ForecastReport.model_validate(forecast),
        budget=MonthlyBudgetReportModel.model_validate(budget_report),
        adherence=AdherenceReport.model_validate(adherence),
        anomalies=AnomalySummaryReport.model_validate(anomalies),
    )
