"""Unit tests for monthly and category aggregation"""

from datetime import date

from finsight_engine.domain.aggregation import (
    aggregate_by_category,
    aggregate_by_month,
    assess_data_completeness,
    determine_coverage_confidence,
    monthly_amounts_for_category,
    sorted_monthly_aggregates,
)


def test_aggregate_by_month_skips_transfers(make_transaction):
    """Test transfers never count as income or expense"""
    transactions = [
        make_transaction(date(2024, 1, 1), 3000, "Payroll", "Salary", "income"),
        make_transaction(date(2024, 1, 5), -750, "Landlord", "Rent"),  # sign ignored
        make_transaction(date(2024, 1, 9), 1000, "To Savings", "Transfer", "transfer"),
    ]

    monthly = aggregate_by_month(transactions)

    assert list(monthly) == [(2024, 1)]
    january = monthly[(2024, 1)]
    assert january.month == "2024-01"
    assert january.income == 3000
    assert january.expenses == 750
    assert january.net == 2250
    assert january.savings_rate == 75.0
    assert january.transaction_count == 2


def test_sorted_monthly_aggregates_are_chronological(make_transaction):
    transactions = [
        make_transaction(date(2024, 2, 1), 10),
        make_transaction(date(2023, 12, 1), 10),
        make_transaction(date(2024, 1, 1), 10),
    ]
    assert [m.month for m in sorted_monthly_aggregates(transactions)] == ["2023-12", "2024-01", "2024-02"]


def test_aggregate_by_category_kinds(make_transaction):
    transactions = [
        make_transaction(date(2024, 1, 1), 3000, "Payroll", "Salary", "income"),
        make_transaction(date(2024, 1, 2), 40, "Cafe", "Dining"),
        make_transaction(date(2024, 1, 3), 60, "Bistro", "Dining"),
    ]

    assert aggregate_by_category(transactions) == {"Dining": 100}
    assert aggregate_by_category(transactions, "income") == {"Salary": 3000}
    assert aggregate_by_category(transactions, "all") == {"Salary": 3000, "Dining": 100}


def test_monthly_amounts_for_category(make_transaction):
    transactions = [
        make_transaction(date(2024, 2, 10), 30, category="Dining"),
        make_transaction(date(2024, 1, 10), 20, category="Dining"),
        make_transaction(date(2024, 1, 20), 25, category="Dining"),
        make_transaction(date(2024, 1, 20), 99, category="Travel"),
    ]
    assert monthly_amounts_for_category(transactions, "Dining") == [("2024-01", 45), ("2024-02", 30)]


def test_coverage_confidence_levels():
    assert determine_coverage_confidence(0.8, True, True) == "high"
    assert determine_coverage_confidence(0.8, True, False) == "medium"
    assert determine_coverage_confidence(0.1, True, True) == "low"
    assert determine_coverage_confidence(0.0, False, False) == "insufficient"


def test_data_completeness_daily_coverage(make_transaction):
    """Test every day covered with income and expenses is high confidence"""
    start, end = date(2024, 1, 1), date(2024, 1, 10)
    transactions = [make_transaction(date(2024, 1, d), 10, category=f"Cat{d % 4}") for d in range(1, 11)]
    transactions.append(make_transaction(date(2024, 1, 1), 2000, "Payroll", "Salary", "income"))

    result = assess_data_completeness(transactions, start, end)

    assert result.transaction_coverage == 100.0
    assert result.days_with_data == 10
    assert result.total_days == 10
    assert result.confidence == "high"
    assert result.warnings == []


def test_data_completeness_warns_on_sparse_data(make_transaction):
    """Test sparse expense-only data carries warnings"""
    start, end = date(2024, 1, 1), date(2024, 1, 31)
    transactions = [make_transaction(date(2024, 1, 3), 10), make_transaction(date(2024, 2, 3), 10)]

    result = assess_data_completeness(transactions, start, end)

    assert result.days_with_data == 1  # February is outside the range
    assert result.confidence == "low"
    assert "No income transactions recorded in this period" in result.warnings
    assert "Only 3% of days have transaction data" in result.warnings
    assert "Limited category diversity may indicate incomplete data" in result.warnings


def test_data_completeness_empty():
    result = assess_data_completeness([], date(2024, 1, 1), date(2024, 1, 31))
    assert result.confidence == "insufficient"
    assert result.transaction_coverage == 0.0
