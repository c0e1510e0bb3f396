"""Transaction anomaly detection - amount outliers, duplicates and new merchants"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from finsight_engine.domain.constants import (
    ANOMALY_LOOKBACK_DAYS,
    ANOMALY_MIN_HISTORY,
    ANOMALY_SCORE_FLAG,
    ANOMALY_SCORE_REVIEW,
    ANOMALY_ZSCORE_EXTREME,
    ANOMALY_ZSCORE_OUTLIER,
    DUPLICATE_AMOUNT_TOLERANCE,
    DUPLICATE_TIME_WINDOW_HOURS,
)
from finsight_engine.domain.models import Transaction
from finsight_engine.domain.statistics import (
    MIN_STD_DEV,
    clamp,
    is_similar_merchant,
    mean,
    normalize_text,
    standard_deviation,
    z_score,
)
from finsight_engine.utils.date_utils import days_between, hours_between, to_date

AnomalyAction = Literal["review", "flag_in_ui", "none"]
AnomalyReason = Literal[
    "amount_outlier",
    "amount_extreme_outlier",
    "merchant_new",
    "duplicate_detected",
    "normal",
    "insufficient_history",
]

DUPLICATE_SCORE = 95
NEW_MERCHANT_LARGE_SCORE = 45
NEW_MERCHANT_SCORE = 30
NEW_MERCHANT_IN_RANGE_SCORE = 25
# A first purchase above this multiple of the category average gets flagged
NEW_MERCHANT_LARGE_MULTIPLE = 1.5


@dataclass(frozen=True)
class AnomalyOptions:
    lookback_days: int = ANOMALY_LOOKBACK_DAYS
    z_score_outlier_threshold: float = ANOMALY_ZSCORE_OUTLIER
    z_score_extreme_threshold: float = ANOMALY_ZSCORE_EXTREME
    review_score_threshold: float = ANOMALY_SCORE_REVIEW
    flag_score_threshold: float = ANOMALY_SCORE_FLAG
    duplicate_window_hours: float = DUPLICATE_TIME_WINDOW_HOURS
    duplicate_amount_tolerance: float = DUPLICATE_AMOUNT_TOLERANCE


@dataclass
class AnomalyResult:
    anomaly_score: int  # 0-100
    reason: AnomalyReason
    action: AnomalyAction
    z_score: Optional[float]
    expected_range: Optional[Tuple[float, float]]
    explanation: str


@dataclass
class DuplicateCheck:
    is_duplicate: bool
    duplicate_of: Optional[Transaction] = None


@dataclass
class AnomalySummary:
    total_reviewed: int
    anomalies_found: int
    review_required: int
    flagged_in_ui: int
    duplicates_detected: int
    new_merchants: int
    amount_outliers: int
    by_action: Dict[str, int] = field(default_factory=dict)
    by_reason: Dict[str, int] = field(default_factory=dict)


def calculate_z_score(amount: float, category_history: Sequence[float]) -> Optional[float]:
    """
    Z-score of |amount| against a category's amounts.

    None below 3 history points or when the history has near-zero spread.
    """
    if len(category_history) < ANOMALY_MIN_HISTORY:
        return None
    std_dev = standard_deviation(category_history)
    if std_dev < MIN_STD_DEV:
        return None
    return z_score(abs(amount), mean(category_history), std_dev)


def z_score_to_anomaly_score(z: float, extreme_threshold: float = ANOMALY_ZSCORE_EXTREME) -> float:
    """
    Map a z-score linearly onto 0-100: z=1 -> 33.3, z=2 -> 66.7, z=3 -> 100.

    The input is NOT made absolute: negative z clamps to 0. Callers that want
    magnitude pass |z| themselves, as detect_anomaly does.
    """
    return clamp((z / extreme_threshold) * 100, 0, 100)


def detect_duplicate(
    transaction: Transaction,
    recent_transactions: Iterable[Transaction],
    time_window_hours: float = DUPLICATE_TIME_WINDOW_HOURS,
    amount_tolerance: float = DUPLICATE_AMOUNT_TOLERANCE,
) -> DuplicateCheck:
    """First other transaction within the time window, fuzzy-same merchant and same amount"""
    amount = abs(transaction.amount)

    for recent in recent_transactions:
        if recent.id == transaction.id:
            continue
        if hours_between(transaction.date, recent.date) > time_window_hours:
            continue
        if not is_similar_merchant(transaction.description, recent.description):
            continue
        if abs(amount - abs(recent.amount)) <= amount_tolerance:
            return DuplicateCheck(is_duplicate=True, duplicate_of=recent)

    return DuplicateCheck(is_duplicate=False)


def is_new_merchant(transaction: Transaction, category_history: Iterable[Transaction]) -> bool:
    merchant = normalize_text(transaction.description)
    return not any(is_similar_merchant(merchant, past.description) for past in category_history)


@dataclass
class _Evaluation:
    """Facts about one transaction shared by every rule"""

    transaction: Transaction
    history: List[Transaction]
    amounts: List[float]
    z: Optional[float]
    options: AnomalyOptions

    @property
    def amount(self) -> float:
        return abs(self.transaction.amount)

    @property
    def expected_range(self) -> Tuple[float, float]:
        avg = mean(self.amounts)
        spread = 2 * standard_deviation(self.amounts)
        return (round(avg - spread, 2), round(avg + spread, 2))

    @property
    def rounded_z(self) -> Optional[float]:
        return round(self.z, 2) if self.z is not None else None

    @property
    def score(self) -> float:
        return z_score_to_anomaly_score(abs(self.z or 0.0), self.options.z_score_extreme_threshold)


AnomalyRule = Callable[[_Evaluation], Optional[AnomalyResult]]


def _insufficient_history(ev: _Evaluation) -> Optional[AnomalyResult]:
    if len(ev.history) >= ANOMALY_MIN_HISTORY:
        return None
    return AnomalyResult(0, "insufficient_history", "none", None, None,
                         "Not enough historical data to assess anomaly status.")


def _duplicate(ev: _Evaluation) -> Optional[AnomalyResult]:
    check = detect_duplicate(
        ev.transaction, ev.history, ev.options.duplicate_window_hours, ev.options.duplicate_amount_tolerance
    )
    if not check.is_duplicate:
        return None
    return AnomalyResult(
        DUPLICATE_SCORE, "duplicate_detected", "review", None, None,
        f"Potential duplicate of transaction from {to_date(check.duplicate_of.date).isoformat()}.",
    )


def _new_merchant_without_z(ev: _Evaluation) -> Optional[AnomalyResult]:
    if ev.z is not None or not is_new_merchant(ev.transaction, ev.history):
        return None
    large = ev.amount > mean(ev.amounts) * NEW_MERCHANT_LARGE_MULTIPLE
    return AnomalyResult(
        NEW_MERCHANT_LARGE_SCORE if large else NEW_MERCHANT_SCORE,
        "merchant_new",
        "flag_in_ui" if large else "none",
        None,
        None,
        "New merchant in this category. First-time purchase.",
    )


def _normal_without_z(ev: _Evaluation) -> Optional[AnomalyResult]:
    if ev.z is not None:
        return None
    return AnomalyResult(0, "normal", "none", None, None, "Transaction appears normal.")


def _extreme_outlier(ev: _Evaluation) -> Optional[AnomalyResult]:
    if abs(ev.z) < ev.options.z_score_extreme_threshold:
        return None
    low, high = ev.expected_range
    return AnomalyResult(
        round(ev.score), "amount_extreme_outlier", "review", ev.rounded_z, (low, high),
        f"Amount (${ev.amount:.2f}) is extremely unusual. Expected range: ${low:.2f} - ${high:.2f}.",
    )


def _outlier(ev: _Evaluation) -> Optional[AnomalyResult]:
    if abs(ev.z) < ev.options.z_score_outlier_threshold:
        return None
    score = ev.score
    action: AnomalyAction = "review" if score >= ev.options.review_score_threshold else "flag_in_ui"
    low, high = ev.expected_range
    return AnomalyResult(
        round(score), "amount_outlier", action, ev.rounded_z, (low, high),
        f"Amount (${ev.amount:.2f}) is higher than typical. Expected range: ${low:.2f} - ${high:.2f}.",
    )


def _new_merchant_in_range(ev: _Evaluation) -> Optional[AnomalyResult]:
    if not is_new_merchant(ev.transaction, ev.history):
        return None
    return AnomalyResult(
        NEW_MERCHANT_IN_RANGE_SCORE, "merchant_new", "none", ev.rounded_z, ev.expected_range,
        "New merchant, but amount is within normal range.",
    )


def _normal(ev: _Evaluation) -> Optional[AnomalyResult]:
    return AnomalyResult(0, "normal", "none", ev.rounded_z, ev.expected_range, "Transaction appears normal.")


# Evaluated top to bottom; the first rule that returns a result wins
ANOMALY_RULES: Tuple[AnomalyRule, ...] = (
    _insufficient_history,
    _duplicate,
    _new_merchant_without_z,
    _normal_without_z,
    _extreme_outlier,
    _outlier,
    _new_merchant_in_range,
    _normal,
)


def detect_anomaly(
    transaction: Transaction,
    category_history: Iterable[Transaction],
    options: AnomalyOptions = AnomalyOptions(),
) -> AnomalyResult:
    """
    Classify one transaction against its category history.

    History is limited to the lookback window around the transaction and
    never includes the transaction itself. Rules run in the order of
    ANOMALY_RULES: insufficient history, duplicate, then z-score outliers,
    then new merchant, then normal.
    """
    history = [
        past
        for past in category_history
        if past.id != transaction.id and days_between(past.date, transaction.date) <= options.lookback_days
    ]
    amounts = [abs(t.amount) for t in history]
    evaluation = _Evaluation(
        transaction=transaction,
        history=history,
        amounts=amounts,
        z=calculate_z_score(transaction.amount, amounts),
        options=options,
    )

    for rule in ANOMALY_RULES[:-1]:
        result = rule(evaluation)
        if result is not None:
            return result
    return _normal(evaluation)


def detect_anomalies_in_batch(
    transactions: Iterable[Transaction],
    all_transactions: Iterable[Transaction],
    options: AnomalyOptions = AnomalyOptions(),
) -> Dict[int, AnomalyResult]:
    """Run detect_anomaly for each transaction against its category's history, keyed by id"""
    histories: Dict[str, List[Transaction]] = defaultdict(list)
    for txn in all_transactions:
        histories[txn.category].append(txn)

    return {txn.id: detect_anomaly(txn, histories.get(txn.category, []), options) for txn in transactions}


def summarize_anomalies(results: Dict[int, AnomalyResult]) -> AnomalySummary:
    by_action = Counter(r.action for r in results.values())
    by_reason = Counter(r.reason for r in results.values())

    return AnomalySummary(
        total_reviewed=len(results),
        anomalies_found=sum(1 for r in results.values() if r.anomaly_score > 0),
        review_required=by_action["review"],
        flagged_in_ui=by_action["flag_in_ui"],
        duplicates_detected=by_reason["duplicate_detected"],
        new_merchants=by_reason["merchant_new"],
        amount_outliers=by_reason["amount_outlier"] + by_reason["amount_extreme_outlier"],
        by_action=dict(by_action),
        by_reason=dict(by_reason),
    )
