"""Statistics and string-matching kernel shared by every analysis module"""

import math
import re
from typing import Optional, Sequence

from rapidfuzz.distance import Levenshtein

from finsight_engine.domain.constants import MERCHANT_FUZZY_MAX_DISTANCE
from finsight_engine.domain.models import ConfidenceLevel

# Below this spread a z-score is numerically meaningless
MIN_STD_DEV = 0.01

_NON_ALNUM = re.compile(r"[^a-z0-9]")

_PUNCTUATION_MAP = str.maketrans(
    {
        **{ch: "'" for ch in "‘’‖�\u0092\u0091`´ʼʻˈˊ"},
        **{ch: '"' for ch in "“”\u0093\u0094„‟"},
        **{ch: "-" for ch in "–—―\u0096\u0097"},
    }
)


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty sequence"""
    if not values:
        return 0.0
    return sum(values) / len(values)


def standard_deviation(values: Sequence[float]) -> float:
    """Sample standard deviation (n-1 denominator); 0 below two points"""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    variance = sum((v - avg) ** 2 for v in values) / (len(values) - 1)
    return math.sqrt(variance)


def population_standard_deviation(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def coefficient_of_variation(values: Sequence[float]) -> Optional[float]:
    """stdDev / |mean|, or None when fewer than two points or the mean is zero"""
    if len(values) < 2:
        return None
    avg = mean(values)
    if avg == 0:
        return None
    return standard_deviation(values) / abs(avg)


def rolling_average(values: Sequence[float], window: int) -> Optional[float]:
    """Mean of the last `window` values, None if the series is shorter"""
    if len(values) < window:
        return None
    return mean(values[-window:])


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def percentile(values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile without interpolation.

    Picks the sorted element at floor(p/100 * n), capped at the last index.
    """
    if not values:
        return 0.0
    ordered = sorted(values)
    index = math.floor((p / 100) * len(ordered))
    return ordered[min(index, len(ordered) - 1)]


def z_score(value: float, avg: float, std_dev: float) -> float:
    """(value - mean) / stdDev; 0 when stdDev is below 0.01"""
    if std_dev < MIN_STD_DEV:
        return 0.0
    return (value - avg) / std_dev


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def safe_divide(numerator: float, denominator: float) -> float:
    """Division that yields 0 instead of raising on a zero denominator"""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def confidence_from_cv(cv: Optional[float], min_months: int, actual_months: int) -> ConfidenceLevel:
    """Grade a series by spread and length: high needs 6+ months and CV < 0.2"""
    if actual_months < min_months or cv is None:
        return "insufficient"
    if cv < 0.2 and actual_months >= 6:
        return "high"
    if cv < 0.4 and actual_months >= 3:
        return "medium"
    return "low"


def levenshtein_distance(a: str, b: str) -> int:
    """Case-insensitive edit distance"""
    return int(Levenshtein.distance(a.lower(), b.lower()))


def normalize_merchant(name: str) -> str:
    """Lowercase and strip everything but letters and digits"""
    return _NON_ALNUM.sub("", name.lower())


def is_similar_merchant(a: str, b: str, max_distance: int = MERCHANT_FUZZY_MAX_DISTANCE) -> bool:
    """
    Fuzzy merchant identity.

    Two labels match when their normalized forms are equal, one contains the
    other, or their edit distance is at most `max_distance`.

    Example:
        is_similar_merchant("NETFLIX.COM", "Netflix") -> True
        is_similar_merchant("Spotify", "Hulu") -> False
    """
    a_norm = normalize_merchant(a)
    b_norm = normalize_merchant(b)

    if a_norm == b_norm:
        return True
    if a_norm in b_norm or b_norm in a_norm:
        return True
    return levenshtein_distance(a_norm, b_norm) <= max_distance


def normalize_text(text: str) -> str:
    """Lowercase, unify curly quotes and dashes, trim"""
    return text.lower().translate(_PUNCTUATION_MAP).strip()
