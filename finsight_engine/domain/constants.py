"""Default analysis thresholds - every option object falls back to these"""

# Data quality
MIN_MONTHS_FOR_TREND = 3
MIN_MONTHS_FOR_SEASONALITY = 12
HIGH_CONFIDENCE_COVERAGE = 0.7
MEDIUM_CONFIDENCE_COVERAGE = 0.4

# Budget variance (fractions of budget)
BUDGET_VARIANCE_ON_TRACK = 0.20
BUDGET_VARIANCE_ALERT = 0.20
# Stand-in for an infinite variance (zero budget with spend) in serialized reports
VARIANCE_REVIEW_SENTINEL = 999

# Recurring detection
RECURRING_AMOUNT_TOLERANCE = 0.15
RECURRING_DATE_TOLERANCE_WEEKLY = 1
RECURRING_DATE_TOLERANCE_BIWEEKLY = 2
RECURRING_DATE_TOLERANCE_MONTHLY = 3
RECURRING_DATE_TOLERANCE_QUARTERLY = 5
RECURRING_DATE_TOLERANCE_ANNUAL = 10
RECURRING_MIN_CONSISTENCY = 0.80
RECURRING_MIN_OCCURRENCES_CONFIRMED = 3
RECURRING_MIN_OCCURRENCES_UNCONFIRMED = 2
MERCHANT_FUZZY_MAX_DISTANCE = 2

# Forecasting
FORECAST_ALPHA = 0.3
FORECAST_BETA = 0.1
FORECAST_GAMMA = 0.1
FORECAST_HORIZON = 1
FORECAST_CONFIDENCE_INTERVAL = 1.96  # z for a 95% normal interval
FORECAST_HIGH_CONFIDENCE_CV = 0.2
FORECAST_MEDIUM_CONFIDENCE_CV = 0.4
FORECAST_OVERRIDE_WEIGHT = 0.4

# Cash flow stability
STABILITY_UNSTABLE_CV = 0.5
STABILITY_INDEX_VERY_STABLE = 80
STABILITY_INDEX_STABLE = 60
STABILITY_INDEX_MODERATE = 40
STABILITY_VOLATILITY_SOURCE_CV = 0.2

# Anomaly detection
ANOMALY_ZSCORE_OUTLIER = 2.0
ANOMALY_ZSCORE_EXTREME = 3.0
ANOMALY_LOOKBACK_DAYS = 90
ANOMALY_SCORE_REVIEW = 70
ANOMALY_SCORE_FLAG = 40
ANOMALY_MIN_HISTORY = 3
DUPLICATE_TIME_WINDOW_HOURS = 1
DUPLICATE_AMOUNT_TOLERANCE = 0.01

# Runway & burn rate (months)
RUNWAY_CRITICAL = 3
RUNWAY_CAUTION = 6
RUNWAY_ADEQUATE = 12
RUNWAY_INCOME_LOSS_FACTOR = 0.20
RUNWAY_EXPENSE_REDUCTION = 0.10

# Savings rate (fractions of income)
SAVINGS_RATE_TARGET = 0.20
SAVINGS_RATE_LOW = 0.10
SAVINGS_RATE_EXCELLENT = 0.30

# Debt-to-income (fractions of gross income)
DTI_HEALTHY = 0.20
DTI_ACCEPTABLE = 0.36
MAX_PAYOFF_MONTHS = 360

# Budget adherence
ADHERENCE_TREND_IMPROVEMENT = 0.10
ADHERENCE_TREND_DECLINE = -0.10
ADHERENCE_EXCELLENT = 90
ADHERENCE_GOOD = 70
ADHERENCE_FAIR = 50

# Adaptive budget
ADAPTIVE_TREND_THRESHOLD = 0.15
ADAPTIVE_HIGH_CONFIDENCE_CV = 0.2
ADAPTIVE_MEDIUM_CONFIDENCE_CV = 0.4
QUICK_WIN_MIN_SAVINGS = 20.0

# Investment simulator
MONTE_CARLO_SIMULATIONS = 1000
SAFE_WITHDRAWAL_RATE = 0.04

# Emergency fund (months of essential expenses)
EF_BASE_MONTHS = {
    "stable": (3, 6),
    "variable": (6, 9),
    "high_variable": (9, 12),
}
EF_DEPENDENT_ADJUSTMENT = 1
EF_HEALTH_ADJUSTMENT = 2
EF_MAX_MONTHS = 24
EF_MIN_MONTHS = 3

# Category classifications
EXCLUDED_BUDGET_CATEGORIES = (
    "Transfer",
    "Credit Card Payment",
    "Internal Transfer",
)
