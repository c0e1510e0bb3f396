"""Pytest fixtures for testing"""

import random
from datetime import date, timedelta
from itertools import count
from typing import Callable, List

import pytest

from finsight_engine.domain.models import Budget, Debt, Goal, Transaction

AS_OF = date(2024, 6, 30)
HISTORY_MONTHS = [(2024, m) for m in range(1, 7)]


@pytest.fixture
def as_of() -> date:
    """Fixed reference date so date-relative results are reproducible"""
    return AS_OF


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Factory for transactions with auto-incrementing ids"""
    ids = count(1)

    def _make(
        when: date,
        amount: float,
        description: str = "Test Merchant",
        category: str = "Shopping",
        type: str = "expense",
    ) -> Transaction:
        return Transaction(
            id=next(ids),
            date=when,
            description=description,
            category=category,
            amount=amount,
            type=type,
        )

    return _make


@pytest.fixture
def salary(make_transaction) -> List[Transaction]:
    """$5000 paycheck on the 1st of every month, January to June"""
    return [make_transaction(date(y, m, 1), 5000.0, "ACME Payroll", "Salary", "income") for y, m in HISTORY_MONTHS]


@pytest.fixture
def rent(make_transaction) -> List[Transaction]:
    return [make_transaction(date(y, m, 1), 1500.0, "Oakwood Apartments", "Rent") for y, m in HISTORY_MONTHS]


@pytest.fixture
def netflix(make_transaction) -> List[Transaction]:
    """Monthly subscription on the 15th with a consistent amount"""
    return [make_transaction(date(y, m, 15), 15.99, "NETFLIX.COM", "Subscriptions") for y, m in HISTORY_MONTHS]


@pytest.fixture
def planet_fitness(make_transaction) -> List[Transaction]:
    """Gym membership billed on the 5th, descriptions vary slightly"""
    descriptions = ["Planet Fitness", "PLANET FITNESS", "Planet Fitnes", "Planet Fitness", "PLANET FITNESS", "Planet Fitness"]
    return [
        make_transaction(date(y, m, 5), 24.99, desc, "Health")
        for (y, m), desc in zip(HISTORY_MONTHS, descriptions)
    ]


@pytest.fixture
def groceries(make_transaction) -> List[Transaction]:
    """Weekly grocery runs between $80 and $120"""
    amounts = [95.0, 110.0, 88.0, 102.0, 120.0, 80.0, 99.0]
    start = date(2024, 1, 3)
    return [
        make_transaction(start + timedelta(days=7 * week), amounts[week % len(amounts)], "Whole Foods Market", "Groceries")
        for week in range(26)
    ]


@pytest.fixture
def household(salary, rent, netflix, planet_fitness, groceries) -> List[Transaction]:
    """Six months of steady household activity"""
    return sorted(salary + rent + netflix + planet_fitness + groceries, key=lambda t: t.date)


@pytest.fixture
def budgets() -> List[Budget]:
    return [
        Budget("Rent", 1500.0),
        Budget("Groceries", 450.0),
        Budget("Subscriptions", 20.0),
        Budget("Dining", 200.0),
    ]


@pytest.fixture
def debts() -> List[Debt]:
    return [
        Debt(1, "Visa", 5000.0, 4000.0, 22.99, 120.0),
        Debt(2, "Car Loan", 15000.0, 9000.0, 6.5, 300.0),
        Debt(3, "Store Card", 1000.0, 600.0, 18.0, 35.0),
    ]


@pytest.fixture
def goals(as_of) -> List[Goal]:
    return [
        Goal(1, "Emergency Fund", 10000.0, 4000.0, date(2025, 6, 30), priority=1),
        Goal(2, "Vacation", 3000.0, 500.0, date(2024, 12, 31), priority=2),
    ]


@pytest.fixture
def random_transactions() -> Callable[[int], List[Transaction]]:
    """Seeded generator of noisy histories with a few embedded monthly subscriptions"""

    def _generate(seed: int, months: int = 8) -> List[Transaction]:
        rng = random.Random(seed)
        merchants = ["Corner Cafe", "Gas Station", "Bookshop", "Hardware Store", "Pharmacy"]
        transactions = []
        ids = count(1)
        start = date(2023, 11, 1)

        for month in range(months):
            month_start = date(start.year + (start.month - 1 + month) // 12, (start.month - 1 + month) % 12 + 1, 1)
            transactions.append(
                Transaction(next(ids), month_start + timedelta(days=9), "Spotify", "Subscriptions", 10.99, "expense")
            )
            transactions.append(
                Transaction(next(ids), month_start, "Payroll", "Salary", round(rng.uniform(3800, 4200), 2), "income")
            )
            for _ in range(rng.randint(3, 8)):
                transactions.append(
                    Transaction(
                        next(ids),
                        month_start + timedelta(days=rng.randint(0, 27)),
                        rng.choice(merchants),
                        "Misc",
                        round(rng.uniform(5, 150), 2),
                        "expense",
                    )
                )

        return transactions

    return _generate
