"""Recurring charge detection - subscriptions, bills and paychecks from dated history"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from finsight_engine.domain.constants import (
    MERCHANT_FUZZY_MAX_DISTANCE,
    RECURRING_AMOUNT_TOLERANCE,
    RECURRING_DATE_TOLERANCE_ANNUAL,
    RECURRING_DATE_TOLERANCE_BIWEEKLY,
    RECURRING_DATE_TOLERANCE_MONTHLY,
    RECURRING_DATE_TOLERANCE_QUARTERLY,
    RECURRING_DATE_TOLERANCE_WEEKLY,
    RECURRING_MIN_CONSISTENCY,
    RECURRING_MIN_OCCURRENCES_CONFIRMED,
    RECURRING_MIN_OCCURRENCES_UNCONFIRMED,
)
from finsight_engine.domain.models import Transaction
from finsight_engine.domain.statistics import (
    is_similar_merchant,
    mean,
    median,
    normalize_text,
    standard_deviation,
)
from finsight_engine.utils.date_utils import add_days, days_between, to_date, to_datetime

logger = logging.getLogger(__name__)

RecurringPeriod = Literal["Weekly", "Bi-weekly", "Monthly", "Quarterly", "Annual", "Unknown"]
RecurringStatus = Literal["Confirmed", "Unconfirmed"]

# (normalized description, category)
MerchantKey = Tuple[str, str]


@dataclass(frozen=True)
class PeriodRule:
    """Day-gap window that identifies a period, and the tolerance used for timing consistency"""

    period: RecurringPeriod
    min_days: float
    max_days: float
    expected_interval: int
    tolerance: int


# Checked in order; the first window containing the gap wins
PERIOD_RULES: Tuple[PeriodRule, ...] = (
    PeriodRule("Weekly", 6, 8, 7, RECURRING_DATE_TOLERANCE_WEEKLY),
    PeriodRule("Bi-weekly", 13, 16, 14, RECURRING_DATE_TOLERANCE_BIWEEKLY),
    PeriodRule("Monthly", 28, 31, 30, RECURRING_DATE_TOLERANCE_MONTHLY),
    PeriodRule("Quarterly", 87, 93, 90, RECURRING_DATE_TOLERANCE_QUARTERLY),
    PeriodRule("Annual", 358, 372, 365, RECURRING_DATE_TOLERANCE_ANNUAL),
)

UNKNOWN_PERIOD = PeriodRule("Unknown", 0, 0, 0, 0)

# Multipliers that turn one occurrence into a monthly amount
MONTHLY_NORMALIZERS: Dict[str, float] = {
    "Weekly": 4.33,
    "Bi-weekly": 2.17,
    "Monthly": 1.0,
    "Quarterly": 1 / 3,
    "Annual": 1 / 12,
}


@dataclass(frozen=True)
class RecurringOptions:
    amount_tolerance: float = RECURRING_AMOUNT_TOLERANCE
    min_occurrences_confirmed: int = RECURRING_MIN_OCCURRENCES_CONFIRMED
    min_occurrences_unconfirmed: int = RECURRING_MIN_OCCURRENCES_UNCONFIRMED
    min_consistency: float = RECURRING_MIN_CONSISTENCY
    merchant_max_distance: int = MERCHANT_FUZZY_MAX_DISTANCE


@dataclass
class RecurringPattern:
    merchant: str
    category: str
    avg_amount: float
    period: RecurringPeriod
    confidence: int  # 0-100
    status: RecurringStatus
    last_occurrence_date: date
    next_expected_date: date
    occurrences: int
    transactions: List[Transaction]


@dataclass
class PatternMatch:
    matches: bool
    reason: str


@dataclass
class DuplicateCharge:
    transaction: Transaction
    duplicate_of: Transaction


@dataclass
class RecurringTotal:
    monthly: float
    annual: float


def identify_period(interval_days: float) -> PeriodRule:
    """Classify a (median) day gap into a period; Unknown when no window fits"""
    for rule in PERIOD_RULES:
        if rule.min_days <= interval_days <= rule.max_days:
            return rule
    return UNKNOWN_PERIOD


def chronological(txn: Transaction) -> Tuple[datetime, int]:
    """Sort key: timestamp, then id for same-instant charges"""
    return to_datetime(txn.date), txn.id


def period_rule(period: RecurringPeriod) -> PeriodRule:
    for rule in PERIOD_RULES:
        if rule.period == period:
            return rule
    return UNKNOWN_PERIOD


def group_transactions_by_merchant(
    transactions: Iterable[Transaction],
    max_distance: int = MERCHANT_FUZZY_MAX_DISTANCE,
) -> Dict[MerchantKey, List[Transaction]]:
    """
    Group by (normalized description, category), then fold fuzzy-matching
    merchants of the same category into the first group that claims them.
    """
    groups: Dict[MerchantKey, List[Transaction]] = {}
    for txn in transactions:
        key = (normalize_text(txn.description), txn.category)
        groups.setdefault(key, []).append(txn)

    merged: Dict[MerchantKey, List[Transaction]] = {}
    processed = set()

    for key, txns in groups.items():
        if key in processed:
            continue
        merchant, category = key
        combined = list(txns)

        for other_key, other_txns in groups.items():
            if other_key == key or other_key in processed:
                continue
            other_merchant, other_category = other_key
            if category == other_category and is_similar_merchant(merchant, other_merchant, max_distance):
                combined.extend(other_txns)
                processed.add(other_key)

        processed.add(key)
        merged[key] = combined

    return merged


def filter_outliers(transactions: Sequence[Transaction], tolerance: float = RECURRING_AMOUNT_TOLERANCE) -> List[Transaction]:
    """
    Drop amounts that are both beyond 2 standard deviations and more than
    `tolerance` away from the group mean. Groups under 3 are returned as is.
    """
    if len(transactions) < 3:
        return list(transactions)

    amounts = [abs(t.amount) for t in transactions]
    avg = mean(amounts)
    std_dev = standard_deviation(amounts)

    kept = []
    for txn in transactions:
        amount = abs(txn.amount)
        distance = abs(amount - avg) / std_dev if std_dev > 0 else 0.0
        percent_diff = abs(amount - avg) / avg if avg > 0 else 0.0
        if distance <= 2 or percent_diff <= tolerance:
            kept.append(txn)
    return kept


def calculate_confidence(consistency: float, amount_variance_coeff: float) -> int:
    """
    Pattern confidence on a 0-100 scale.

    Timing consistency and amount consistency compound multiplicatively:
    calculate_confidence(1.0, 0) == 100, calculate_confidence(0.8, 0.2) == 64.
    """
    raw = consistency * (1 - min(1.0, amount_variance_coeff))
    return round(raw * 100)


def detect_recurring_patterns(
    transactions: Iterable[Transaction],
    options: RecurringOptions = RecurringOptions(),
) -> List[RecurringPattern]:
    """
    Detect recurring patterns in a transaction set.

    Algorithm:
    1. Group by fuzzy merchant and category
    2. Filter amount outliers within each group
    3. Classify the median day gap into a period
    4. Timing consistency = share of gaps within the period's tolerance
    5. Confidence from consistency and amount CV
    6. Confirmed / Unconfirmed by occurrence count; weaker groups are dropped

    Output is ordered by confidence, highest first. The function holds no
    state and sorts its input chronologically first, so the same transactions
    in any order return identical results.
    """
    results: List[RecurringPattern] = []
    ordered_input = sorted(transactions, key=chronological)
    groups = group_transactions_by_merchant(ordered_input, options.merchant_max_distance)

    for (_, category), group_txns in groups.items():
        if len(group_txns) < options.min_occurrences_unconfirmed:
            continue

        filtered = filter_outliers(group_txns, options.amount_tolerance)
        if len(filtered) < options.min_occurrences_unconfirmed:
            continue

        ordered = sorted(filtered, key=chronological)
        intervals = [days_between(prev.date, cur.date) for prev, cur in zip(ordered, ordered[1:])]
        if not intervals:
            continue

        median_interval = median(intervals)
        rule = identify_period(median_interval)
        if rule.period == "Unknown":
            continue

        consistent = sum(1 for gap in intervals if abs(gap - rule.expected_interval) <= rule.tolerance)
        consistency = consistent / len(intervals)

        amounts = [abs(t.amount) for t in ordered]
        avg_amount = mean(amounts)
        amount_cv = standard_deviation(amounts) / avg_amount if avg_amount > 0 else 0.0
        confidence = calculate_confidence(consistency, amount_cv)

        if consistency < options.min_consistency:
            continue
        if len(ordered) >= options.min_occurrences_confirmed:
            status: RecurringStatus = "Confirmed"
        else:
            status = "Unconfirmed"

        last_date = ordered[-1].date
        results.append(
            RecurringPattern(
                merchant=ordered[0].description,
                category=category,
                avg_amount=round(avg_amount, 2),
                period=rule.period,
                confidence=confidence,
                status=status,
                last_occurrence_date=last_date,
                next_expected_date=add_days(last_date, round(median_interval)),
                occurrences=len(ordered),
                transactions=ordered,
            )
        )

    logger.debug("Recurring detection finished", extra={"pattern_count": len(results)})
    return sorted(results, key=lambda p: p.confidence, reverse=True)


def matches_pattern(
    transaction: Transaction,
    pattern: RecurringPattern,
    amount_tolerance: float = RECURRING_AMOUNT_TOLERANCE,
) -> PatternMatch:
    """Check whether a new transaction is the next occurrence of a known pattern"""
    if not is_similar_merchant(transaction.description, pattern.merchant):
        return PatternMatch(False, "Merchant name does not match")

    if transaction.category != pattern.category:
        return PatternMatch(False, "Category does not match")

    amount_diff = abs(abs(transaction.amount) - pattern.avg_amount)
    percent_diff = amount_diff / pattern.avg_amount if pattern.avg_amount > 0 else 0.0
    if percent_diff > amount_tolerance:
        return PatternMatch(False, f"Amount differs by {percent_diff * 100:.1f}%")

    days_off = days_between(transaction.date, pattern.next_expected_date)
    tolerance = period_rule(pattern.period).tolerance or RECURRING_DATE_TOLERANCE_MONTHLY
    if days_off > tolerance * 2:
        return PatternMatch(False, f"Date is {days_off} days from expected")

    return PatternMatch(True, "Transaction matches expected pattern")


def detect_duplicates(transactions: Iterable[Transaction]) -> List[DuplicateCharge]:
    """
    Same merchant (fuzzy), same amount to the cent, same calendar day.

    Charges are walked in chronological order, so the earliest charge of a
    cluster is always the original regardless of input order.
    """
    duplicates = []
    originals: Dict[Tuple[date, float], List[Transaction]] = {}

    for txn in sorted(transactions, key=chronological):
        bucket = originals.setdefault((to_date(txn.date), round(abs(txn.amount), 2)), [])
        original: Optional[Transaction] = next(
            (o for o in bucket if is_similar_merchant(txn.description, o.description)), None
        )
        if original is not None:
            duplicates.append(DuplicateCharge(transaction=txn, duplicate_of=original))
        else:
            bucket.append(txn)

    return duplicates


def calculate_recurring_total(patterns: Iterable[RecurringPattern]) -> RecurringTotal:
    """Monthly and annual cost of Confirmed patterns, each normalized to a monthly amount"""
    monthly_total = 0.0
    for pattern in patterns:
        if pattern.status != "Confirmed":
            continue
        monthly_total += pattern.avg_amount * MONTHLY_NORMALIZERS.get(pattern.period, 1.0)

    return RecurringTotal(monthly=round(monthly_total, 2), annual=round(monthly_total * 12, 2))
