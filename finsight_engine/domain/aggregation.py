"""Bucketing of transactions by month and category, and data coverage checks"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Literal, Tuple

from finsight_engine.domain.constants import HIGH_CONFIDENCE_COVERAGE, MEDIUM_CONFIDENCE_COVERAGE
from finsight_engine.domain.models import (
    ConfidenceLevel,
    DataCompleteness,
    MonthKey,
    MonthlyAggregate,
    Transaction,
)
from finsight_engine.utils.date_utils import format_month_key, month_key, to_date

CategoryKind = Literal["income", "expense", "all"]


def aggregate_by_month(transactions: Iterable[Transaction]) -> Dict[MonthKey, MonthlyAggregate]:
    """
    Sum income and expenses per calendar month.

    Transfers are skipped and amounts are taken as absolute values; the
    transaction type carries the direction.
    """
    monthly: Dict[MonthKey, MonthlyAggregate] = {}

    for txn in transactions:
        if txn.type == "transfer":
            continue

        key = month_key(txn.date)
        bucket = monthly.get(key)
        if bucket is None:
            bucket = monthly[key] = MonthlyAggregate(month=format_month_key(key))

        bucket.transaction_count += 1
        if txn.type == "income":
            bucket.income += abs(txn.amount)
        elif txn.type == "expense":
            bucket.expenses += abs(txn.amount)

        bucket.net = bucket.income - bucket.expenses
        bucket.savings_rate = (bucket.net / bucket.income) * 100 if bucket.income > 0 else 0.0

    return monthly


def sorted_monthly_aggregates(transactions: Iterable[Transaction]) -> List[MonthlyAggregate]:
    """Monthly aggregates in chronological order"""
    monthly = aggregate_by_month(transactions)
    return [monthly[key] for key in sorted(monthly)]


def aggregate_by_category(transactions: Iterable[Transaction], kind: CategoryKind = "expense") -> Dict[str, float]:
    """Absolute totals per category, optionally restricted to income or expense"""
    totals: Dict[str, float] = defaultdict(float)

    for txn in transactions:
        if txn.type == "transfer":
            continue
        if kind != "all" and txn.type != kind:
            continue
        totals[txn.category] += abs(txn.amount)

    return dict(totals)


def monthly_amounts_for_category(transactions: Iterable[Transaction], category: str) -> List[Tuple[str, float]]:
    """(YYYY-MM, total) pairs for one category in chronological order"""
    monthly: Dict[MonthKey, float] = defaultdict(float)

    for txn in transactions:
        if txn.category != category or txn.type == "transfer":
            continue
        monthly[month_key(txn.date)] += abs(txn.amount)

    return [(format_month_key(key), monthly[key]) for key in sorted(monthly)]


def determine_coverage_confidence(coverage: float, has_income: bool, has_expenses: bool) -> ConfidenceLevel:
    if coverage >= HIGH_CONFIDENCE_COVERAGE and has_income and has_expenses:
        return "high"
    if coverage >= MEDIUM_CONFIDENCE_COVERAGE and (has_income or has_expenses):
        return "medium"
    if coverage > 0:
        return "low"
    return "insufficient"


def assess_data_completeness(transactions: Iterable[Transaction], start: date, end: date) -> DataCompleteness:
    """
    Measure how well a date range is covered by transaction data.

    Coverage is the share of calendar days in [start, end] with at least one
    transaction. Confidence requires both income and expenses for "high".
    """
    total_days = max(0, (end - start).days + 1)

    days_with_data = set()
    categories = set()
    has_income = False
    has_expenses = False

    for txn in transactions:
        day = to_date(txn.date)
        if start <= day <= end:
            days_with_data.add(day)
            categories.add(txn.category)
            if txn.type == "income":
                has_income = True
            elif txn.type == "expense":
                has_expenses = True

    coverage = len(days_with_data) / total_days if total_days > 0 else 0.0
    confidence = determine_coverage_confidence(coverage, has_income, has_expenses)

    warnings = []
    if not has_income:
        warnings.append("No income transactions recorded in this period")
    if not has_expenses:
        warnings.append("No expense transactions recorded in this period")
    if coverage < MEDIUM_CONFIDENCE_COVERAGE:
        warnings.append(f"Only {coverage * 100:.0f}% of days have transaction data")
    if len(categories) < 3:
        warnings.append("Limited category diversity may indicate incomplete data")

    covered = len(days_with_data)
    if confidence == "high":
        explanation = (
            f"Good data coverage: {covered} of {total_days} days have transactions, "
            "with both income and expenses tracked."
        )
    elif confidence == "medium":
        explanation = (
            f"Partial data coverage: {covered} of {total_days} days have transactions. "
            "Some metrics may be less reliable."
        )
    elif confidence == "low":
        explanation = (
            f"Limited data: Only {covered} of {total_days} days have transactions. "
            "Metrics should be interpreted with caution."
        )
    else:
        explanation = "Insufficient data to calculate reliable metrics for this period."

    return DataCompleteness(
        transaction_coverage=coverage * 100,
        has_income_data=has_income,
        has_expense_data=has_expenses,
        category_count=len(categories),
        days_with_data=covered,
        total_days=total_days,
        confidence=confidence,
        explanation=explanation,
        warnings=warnings,
    )
