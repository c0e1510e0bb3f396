"""Domain models - pure Python dataclasses representing financial records"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Literal, Optional

ConfidenceLevel = Literal["high", "medium", "low", "insufficient"]
TransactionType = Literal["income", "expense", "transfer"]
BudgetPeriod = Literal["monthly", "annual"]
TrendDirection = Literal["increasing", "decreasing", "stable", "volatile", "insufficient"]

# (year, month) - rendered as YYYY-MM only on output
MonthKey = tuple[int, int]


@dataclass(frozen=True)
class Transaction:
    """Already-parsed transaction record; amount sign is ignored, type carries direction"""

    id: int
    date: date  # a datetime is accepted where time-of-day matters (duplicate windows)
    description: str
    category: str
    amount: float
    type: TransactionType
    account: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class Budget:
    """Spending limit for one category"""

    category: str
    amount: float
    period: BudgetPeriod = "monthly"


@dataclass(frozen=True)
class Debt:
    """Outstanding debt; annual_interest_rate is a percent (e.g. 19.99)"""

    id: int
    name: str
    principal_amount: float
    current_balance: float
    annual_interest_rate: float
    min_monthly_payment: float


@dataclass(frozen=True)
class Goal:
    """Savings goal; priority 1 is the highest"""

    id: int
    name: str
    target_amount: float
    current_saved: float
    target_date: date
    priority: int = 1


@dataclass
class MonthlyAggregate:
    """Income/expense totals for one calendar month"""

    month: str  # YYYY-MM
    income: float = 0.0
    expenses: float = 0.0
    net: float = 0.0
    savings_rate: float = 0.0
    transaction_count: int = 0


@dataclass
class MonthlyValue:
    """One point of a monthly series"""

    month: str
    value: float


@dataclass
class TrendAnalysis:
    """Direction and spread of a monthly series"""

    direction: TrendDirection
    change_percent: Optional[float]
    rolling_avg_3_month: Optional[float]
    rolling_avg_6_month: Optional[float]
    standard_deviation: Optional[float]
    coefficient_of_variation: Optional[float]
    monthly_values: List[MonthlyValue]
    explanation: str
    confidence: ConfidenceLevel


@dataclass
class DataCompleteness:
    """How much of a date range is covered by transactions"""

    transaction_coverage: float
    has_income_data: bool
    has_expense_data: bool
    category_count: int
    days_with_data: int
    total_days: int
    confidence: ConfidenceLevel
    explanation: str
    warnings: List[str] = field(default_factory=list)
