"""Unit tests for transaction anomaly detection"""

from datetime import date, datetime, timedelta

import pytest

from finsight_engine.domain.anomalies import (
    ANOMALY_RULES,
    AnomalyOptions,
    calculate_z_score,
    detect_anomalies_in_batch,
    detect_anomaly,
    detect_duplicate,
    is_new_merchant,
    summarize_anomalies,
    z_score_to_anomaly_score,
)


@pytest.fixture
def grocery_history(make_transaction):
    """Grocery runs mostly between $50 and $150 over the last two months"""
    amounts = [50, 65, 80, 95, 110, 120, 135, 150, 70, 100]
    start = date(2024, 5, 1)
    return [
        make_transaction(start + timedelta(days=5 * i), amount, "Fresh Mart", "Groceries")
        for i, amount in enumerate(amounts)
    ]


def _steady_history(make_transaction, amounts=(90, 100, 110), merchant="Market"):
    return [
        make_transaction(date(2024, 6, 1) + timedelta(days=i), amount, merchant, "Groceries")
        for i, amount in enumerate(amounts)
    ]


def test_z_score_null_for_flat_history():
    """Test near-zero spread yields no z-score regardless of the amount"""
    assert calculate_z_score(500, [100, 100, 100, 100]) is None
    assert calculate_z_score(100, [100, 100.001, 100]) is None


def test_z_score_null_for_short_history():
    assert calculate_z_score(500, [100, 120]) is None


def test_z_score_sign():
    history = [80, 90, 100, 110, 120]
    assert calculate_z_score(150, history) > 0
    assert calculate_z_score(50, history) < 0


def test_anomaly_score_mapping_clamps_negative_z():
    """Test the score map is linear to 100 at z=3 and clamps negatives to 0"""
    assert z_score_to_anomaly_score(3) == 100
    assert z_score_to_anomaly_score(0) == 0
    assert z_score_to_anomaly_score(1.5) == pytest.approx(50)
    assert z_score_to_anomaly_score(-2) == 0
    assert z_score_to_anomaly_score(10) == 100


def test_grocery_spike_is_extreme_outlier(grocery_history, make_transaction):
    spike = make_transaction(date(2024, 6, 25), 450, "Fresh Mart", "Groceries")

    result = detect_anomaly(spike, grocery_history)

    assert result.reason == "amount_extreme_outlier"
    assert result.action == "review"
    assert result.anomaly_score > 70
    low, high = result.expected_range
    assert low < 100 < high


def test_empty_history_is_insufficient(make_transaction):
    txn = make_transaction(date(2024, 6, 25), 450, "Fresh Mart", "Groceries")
    result = detect_anomaly(txn, [])
    assert result.reason == "insufficient_history"
    assert result.action == "none"
    assert result.anomaly_score == 0


def test_duplicate_within_an_hour(make_transaction):
    """Test a same-merchant same-amount charge within an hour is a duplicate"""
    earlier = make_transaction(datetime(2024, 6, 20, 12, 0), 42.10, "Corner Cafe", "Dining")
    later = make_transaction(datetime(2024, 6, 20, 12, 40), 42.10, "CORNER CAFE", "Dining")

    check = detect_duplicate(later, [earlier])

    assert check.is_duplicate
    assert check.duplicate_of is earlier


def test_duplicate_negative_cases(make_transaction):
    earlier = make_transaction(datetime(2024, 6, 20, 12, 0), 40.00, "Corner Cafe", "Dining")
    pricier = make_transaction(datetime(2024, 6, 20, 12, 10), 50.00, "Corner Cafe", "Dining")
    elsewhere = make_transaction(datetime(2024, 6, 20, 12, 10), 40.00, "Burger Barn", "Dining")
    next_day = make_transaction(datetime(2024, 6, 21, 12, 0), 40.00, "Corner Cafe", "Dining")

    assert not detect_duplicate(pricier, [earlier]).is_duplicate  # 25% higher
    assert not detect_duplicate(elsewhere, [earlier]).is_duplicate
    assert not detect_duplicate(next_day, [earlier]).is_duplicate


def test_duplicate_rule_in_detection(make_transaction):
    history = _steady_history(make_transaction)
    first = make_transaction(datetime(2024, 6, 10, 9, 0), 95, "Market", "Groceries")
    second = make_transaction(datetime(2024, 6, 10, 9, 5), 95, "Market", "Groceries")

    result = detect_anomaly(second, history + [first])

    assert result.reason == "duplicate_detected"
    assert result.action == "review"
    assert result.anomaly_score == 95


def test_outlier_actions_follow_score(make_transaction):
    history = _steady_history(make_transaction)  # mean 100, stdDev 10

    strong = detect_anomaly(make_transaction(date(2024, 6, 10), 125, "Market", "Groceries"), history)
    mild = detect_anomaly(make_transaction(date(2024, 6, 10), 120.5, "Market", "Groceries"), history)

    assert strong.reason == "amount_outlier"
    assert strong.action == "review"  # z 2.5 -> score 83
    assert mild.reason == "amount_outlier"
    assert mild.action == "flag_in_ui"  # z 2.05 -> score 68
    assert mild.z_score == 2.05


def test_unusually_small_amount_uses_magnitude(make_transaction):
    history = _steady_history(make_transaction)
    result = detect_anomaly(make_transaction(date(2024, 6, 10), 60, "Market", "Groceries"), history)
    assert result.reason == "amount_extreme_outlier"
    assert result.z_score == -4.0


def test_new_merchant_without_spread(make_transaction):
    """Test first purchases are judged against the category average when z is unavailable"""
    history = _steady_history(make_transaction, amounts=(100, 100, 100))

    large = detect_anomaly(make_transaction(date(2024, 6, 10), 200, "Gourmet Deli", "Groceries"), history)
    small = detect_anomaly(make_transaction(date(2024, 6, 10), 90, "Gourmet Deli", "Groceries"), history)
    known = detect_anomaly(make_transaction(date(2024, 6, 10), 500, "Market", "Groceries"), history)

    assert (large.reason, large.action, large.anomaly_score) == ("merchant_new", "flag_in_ui", 45)
    assert (small.reason, small.action, small.anomaly_score) == ("merchant_new", "none", 30)
    assert known.reason == "normal"


def test_new_merchant_in_normal_range(make_transaction):
    history = _steady_history(make_transaction)
    result = detect_anomaly(make_transaction(date(2024, 6, 10), 100, "Bakery", "Groceries"), history)
    assert result.reason == "merchant_new"
    assert result.anomaly_score == 25
    assert result.action == "none"


def test_normal_transaction(make_transaction):
    history = _steady_history(make_transaction)
    result = detect_anomaly(make_transaction(date(2024, 6, 10), 105, "Market", "Groceries"), history)
    assert result.reason == "normal"
    assert result.z_score == 0.5


def test_history_outside_lookback_is_ignored(make_transaction):
    old = [
        make_transaction(date(2023, 1, 1) + timedelta(days=i), amount, "Market", "Groceries")
        for i, amount in enumerate((90, 100, 110))
    ]
    txn = make_transaction(date(2024, 6, 10), 450, "Market", "Groceries")
    assert detect_anomaly(txn, old).reason == "insufficient_history"
    assert detect_anomaly(txn, old, AnomalyOptions(lookback_days=1000)).reason == "amount_extreme_outlier"


def test_rule_order_is_explicit():
    names = [rule.__name__ for rule in ANOMALY_RULES]
    assert names[:2] == ["_insufficient_history", "_duplicate"]
    assert names[-1] == "_normal"


def test_is_new_merchant(make_transaction):
    history = _steady_history(make_transaction)
    assert is_new_merchant(make_transaction(date(2024, 6, 10), 1, "MARKET #12", "Groceries"), history) is False
    assert is_new_merchant(make_transaction(date(2024, 6, 10), 1, "Butcher", "Groceries"), history) is True


def test_batch_and_summary(grocery_history, make_transaction):
    spike = make_transaction(date(2024, 6, 25), 450, "Fresh Mart", "Groceries")
    usual = make_transaction(date(2024, 6, 26), 100, "Fresh Mart", "Groceries")
    lonely = make_transaction(date(2024, 6, 26), 30, "Bookshop", "Books")
    everything = grocery_history + [spike, usual, lonely]

    results = detect_anomalies_in_batch([spike, usual, lonely], everything)

    assert set(results) == {spike.id, usual.id, lonely.id}
    assert results[lonely.id].reason == "insufficient_history"

    summary = summarize_anomalies(results)
    assert summary.total_reviewed == 3
    assert summary.review_required >= 1
    assert summary.amount_outliers >= 1
    assert summary.by_reason["insufficient_history"] == 1
