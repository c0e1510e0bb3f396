"""Unit tests for recurring charge detection"""

import random
from datetime import date, datetime

import pytest

from finsight_engine.domain.recurring import (
    RecurringOptions,
    calculate_confidence,
    calculate_recurring_total,
    detect_duplicates,
    detect_recurring_patterns,
    filter_outliers,
    group_transactions_by_merchant,
    identify_period,
    matches_pattern,
)


@pytest.mark.parametrize(
    "gap, period",
    [
        (6, "Weekly"),
        (7, "Weekly"),
        (8, "Weekly"),
        (14, "Bi-weekly"),
        (28, "Monthly"),
        (30, "Monthly"),
        (31, "Monthly"),
        (91, "Quarterly"),
        (365, "Annual"),
        (45, "Unknown"),
        (200, "Unknown"),
    ],
)
def test_identify_period(gap, period):
    """Test day gaps map onto the documented period windows"""
    assert identify_period(gap).period == period


def test_confidence_formula():
    """Test timing and amount consistency compound multiplicatively"""
    assert calculate_confidence(1.0, 0.0) == 100
    assert calculate_confidence(0.8, 0.2) == 64
    assert calculate_confidence(1.0, 1.5) == 0  # amount CV capped at 1


def test_netflix_monthly_subscription_is_confirmed(netflix):
    patterns = detect_recurring_patterns(netflix)

    assert len(patterns) == 1
    pattern = patterns[0]
    assert pattern.period == "Monthly"
    assert pattern.status == "Confirmed"
    assert pattern.confidence == 100
    assert pattern.avg_amount == 15.99
    assert pattern.occurrences == 6
    assert pattern.last_occurrence_date == date(2024, 6, 15)


def test_fuzzy_merchant_variants_are_grouped(planet_fitness):
    """Test small spelling differences fold into one merchant"""
    groups = group_transactions_by_merchant(planet_fitness)
    assert len(groups) == 1
    assert len(next(iter(groups.values()))) == 6

    patterns = detect_recurring_patterns(planet_fitness)
    assert [p.period for p in patterns] == ["Monthly"]


def test_same_merchant_in_different_categories_stays_apart(make_transaction):
    transactions = [
        make_transaction(date(2024, 1, 1), 10, "Amazon", "Shopping"),
        make_transaction(date(2024, 1, 2), 15, "Amazon", "Subscriptions"),
    ]
    assert len(group_transactions_by_merchant(transactions)) == 2


def test_two_occurrences_are_unconfirmed(make_transaction):
    transactions = [
        make_transaction(date(2024, 1, 10), 9.99, "Hulu", "Subscriptions"),
        make_transaction(date(2024, 2, 10), 9.99, "Hulu", "Subscriptions"),
    ]
    patterns = detect_recurring_patterns(transactions)
    assert patterns[0].status == "Unconfirmed"
    assert calculate_recurring_total(patterns).monthly == 0.0


def test_irregular_timing_is_rejected(make_transaction):
    """Test a group whose gaps are mostly off-period is dropped"""
    days = [date(2024, 1, 1), date(2024, 1, 31), date(2024, 3, 5), date(2024, 3, 30), date(2024, 5, 6)]
    transactions = [make_transaction(d, 50, "Utility Co", "Utilities") for d in days]
    # Gaps 30, 34, 25, 37: only one is within 3 days of 30
    assert detect_recurring_patterns(transactions) == []


def test_filter_outliers_drops_one_off_spike(make_transaction):
    amounts = [50, 50, 50, 50, 50, 50, 50, 500]
    transactions = [make_transaction(date(2024, 1, i + 1), a) for i, a in enumerate(amounts)]
    kept = filter_outliers(transactions)
    assert [t.amount for t in kept] == [50] * 7


def test_household_patterns(household):
    patterns = detect_recurring_patterns(household)
    found = {(p.category, p.period) for p in patterns}

    assert ("Salary", "Monthly") in found
    assert ("Rent", "Monthly") in found
    assert ("Subscriptions", "Monthly") in found
    assert ("Groceries", "Weekly") in found
    # Ordered by confidence
    assert [p.confidence for p in patterns] == sorted((p.confidence for p in patterns), reverse=True)


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_detection_is_idempotent(random_transactions, seed):
    """Test repeated calls on the same input give identical results"""
    transactions = random_transactions(seed)

    first = detect_recurring_patterns(transactions)
    second = detect_recurring_patterns(transactions)

    assert first == second
    assert any(p.merchant == "Spotify" and p.status == "Confirmed" for p in first)


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_detection_ignores_input_order(random_transactions, seed):
    """Test shuffled input yields the same patterns and duplicates"""
    transactions = random_transactions(seed)
    shuffled = list(transactions)
    random.Random(seed).shuffle(shuffled)

    assert detect_recurring_patterns(shuffled) == detect_recurring_patterns(transactions)
    assert detect_duplicates(shuffled) == detect_duplicates(transactions)


def test_matches_pattern(netflix, make_transaction):
    pattern = detect_recurring_patterns(netflix)[0]
    # Median gap is 31 days
    assert pattern.next_expected_date == date(2024, 7, 16)

    on_time = make_transaction(date(2024, 7, 16), 15.99, "Netflix", "Subscriptions")
    price_hike = make_transaction(date(2024, 7, 15), 22.99, "Netflix", "Subscriptions")
    late = make_transaction(date(2024, 8, 1), 15.99, "Netflix", "Subscriptions")
    other = make_transaction(date(2024, 7, 15), 15.99, "Spotify", "Subscriptions")

    assert matches_pattern(on_time, pattern).matches
    assert not matches_pattern(price_hike, pattern).matches
    assert not matches_pattern(late, pattern).matches
    assert matches_pattern(other, pattern).reason == "Merchant name does not match"


def test_detect_duplicates_same_day_same_amount(make_transaction):
    first = make_transaction(datetime(2024, 3, 1, 9, 0), 42.50, "Corner Cafe", "Dining")
    copy = make_transaction(datetime(2024, 3, 1, 18, 30), 42.50, "CORNER CAFE ", "Dining")
    next_day = make_transaction(date(2024, 3, 2), 42.50, "Corner Cafe", "Dining")

    duplicates = detect_duplicates([first, copy, next_day])

    assert len(duplicates) == 1
    assert duplicates[0].transaction is copy
    assert duplicates[0].duplicate_of is first


def test_detect_duplicates_matches_merchant_variants(make_transaction):
    first = make_transaction(datetime(2024, 3, 1, 8, 0), 15.99, "NETFLIX.COM", "Subscriptions")
    copy = make_transaction(datetime(2024, 3, 1, 20, 0), 15.99, "Netflix", "Subscriptions")

    duplicates = detect_duplicates([copy, first])

    assert len(duplicates) == 1
    assert duplicates[0].transaction is copy
    assert duplicates[0].duplicate_of is first


def test_detect_duplicates_requires_same_day_and_amount(make_transaction):
    charge = make_transaction(date(2024, 3, 1), 15.99, "NETFLIX.COM", "Subscriptions")
    other_amount = make_transaction(date(2024, 3, 1), 17.99, "Netflix", "Subscriptions")
    other_day = make_transaction(date(2024, 3, 2), 15.99, "Netflix", "Subscriptions")
    other_merchant = make_transaction(date(2024, 3, 1), 15.99, "Hulu", "Subscriptions")

    assert detect_duplicates([charge, other_amount, other_day, other_merchant]) == []


def test_recurring_total_normalizes_periods(netflix, groceries):
    patterns = detect_recurring_patterns(netflix + groceries)
    weekly = next(p for p in patterns if p.period == "Weekly")

    total = calculate_recurring_total(patterns)

    expected = round(15.99 + weekly.avg_amount * 4.33, 2)
    assert total.monthly == pytest.approx(expected)
    assert total.annual == pytest.approx(round(expected * 12, 2))


def test_custom_min_consistency(make_transaction):
    days = [date(2024, 1, 1), date(2024, 1, 31), date(2024, 3, 1), date(2024, 4, 10)]
    transactions = [make_transaction(d, 20, "Cloud Storage", "Subscriptions") for d in days]
    # Gaps 30, 30, 40: two of three consistent
    assert detect_recurring_patterns(transactions) == []
    relaxed = detect_recurring_patterns(transactions, RecurringOptions(min_consistency=0.6))
    assert relaxed[0].confidence == round((2 / 3) * (1 - 0) * 100)
