"""Unit tests for savings rate and goal tracking"""

from datetime import date

import pytest

from finsight_engine.domain.models import Goal
from finsight_engine.domain.savings import (
    allocate_savings_to_goals,
    analyze_goal_progress,
    analyze_savings,
    calculate_goal_progress,
    calculate_months_to_completion,
    calculate_required_monthly_contribution,
    calculate_savings_rate,
    project_goal_scenarios,
    rate_savings_rate,
)


def test_savings_rate():
    assert calculate_savings_rate(5000, 4000) == 20.0
    assert calculate_savings_rate(5000, 6000) == -20.0
    assert calculate_savings_rate(0, 100) == 0.0


@pytest.mark.parametrize(
    "rate, rating",
    [(35, "Excellent"), (20, "Good"), (12, "Fair"), (5, "Needs Improvement"), (-3, "Needs Improvement")],
)
def test_rate_savings_rate(rate, rating):
    assert rate_savings_rate(rate).rating == rating


def test_negative_rate_explanation():
    assert rate_savings_rate(-3).explanation.startswith("Currently not saving")


def test_goal_progress_is_capped():
    assert calculate_goal_progress(2500, 10000) == 25.0
    assert calculate_goal_progress(12000, 10000) == 100.0
    assert calculate_goal_progress(0, 0) == 100.0


def test_months_to_completion():
    assert calculate_months_to_completion(4000, 10000, 500) == 12
    assert calculate_months_to_completion(4000, 10000, 0) is None
    assert calculate_months_to_completion(10000, 10000, 0) == 0


def test_required_contribution(goals, as_of):
    emergency, vacation = goals
    # 365 days left -> 13 thirty-day months
    assert calculate_required_monthly_contribution(emergency, as_of) == pytest.approx(6000 / 13)
    # 184 days left -> 7 thirty-day months
    assert calculate_required_monthly_contribution(vacation, as_of) == pytest.approx(2500 / 7)


def test_required_contribution_past_target_date(as_of):
    goal = Goal(9, "Late", 1000.0, 400.0, date(2024, 1, 1))
    assert calculate_required_monthly_contribution(goal, as_of) == 600.0


def test_allocation_follows_priority(goals, as_of):
    allocations = allocate_savings_to_goals(600, goals, as_of)

    assert [a.goal_id for a in allocations] == [1, 2]
    assert allocations[0].allocation == pytest.approx(6000 / 13)
    assert allocations[1].allocation == pytest.approx(600 - 6000 / 13)


def test_allocation_without_savings(goals, as_of):
    assert all(a.allocation == 0.0 for a in allocate_savings_to_goals(0, goals, as_of))


def test_allocation_skips_achieved_goals(as_of):
    done = Goal(1, "Done", 1000.0, 1000.0, date(2025, 1, 1), priority=1)
    open_goal = Goal(2, "Open", 1000.0, 0.0, date(2025, 1, 1), priority=2)
    allocations = allocate_savings_to_goals(100, [done, open_goal], as_of)
    assert [a.goal_id for a in allocations] == [2]
    assert allocations[0].allocation == 100


def test_goal_on_and_off_track(goals, as_of):
    emergency = goals[0]

    on_track = analyze_goal_progress(emergency, 500, as_of)
    assert on_track.months_to_completion == 12
    assert on_track.projected_completion_date == date(2025, 6, 30)
    assert on_track.status == "on_track"
    assert on_track.progress_percent == 40.0

    assert analyze_goal_progress(emergency, 400, as_of).status == "off_track"
    assert analyze_goal_progress(emergency, 0, as_of).status == "off_track"


def test_goal_overdue(as_of):
    goal = Goal(5, "Laptop", 2000.0, 500.0, date(2024, 3, 31))
    result = analyze_goal_progress(goal, 100, as_of)
    assert result.status == "overdue"
    assert result.months_overdue == 4


def test_goal_achieved(as_of):
    goal = Goal(5, "Laptop", 2000.0, 2000.0, date(2024, 3, 31))
    result = analyze_goal_progress(goal, 0, as_of)
    assert result.status == "achieved"
    assert result.months_to_completion == 0


def test_analyze_savings(make_transaction, goals, as_of):
    transactions = []
    for month in range(1, 7):
        transactions.append(make_transaction(date(2024, month, 1), 5000, "Payroll", "Salary", "income"))
        transactions.append(make_transaction(date(2024, month, 3), 4000, "Landlord", "Rent"))

    result = analyze_savings(transactions, goals, as_of=as_of)

    assert result.savings_rate == 20.0
    assert result.total_savings == 6000
    assert result.monthly_average_savings == 1000
    assert [g.goal_id for g in result.goals] == [1, 2]
    assert result.recommendation.startswith("Saving 20.0% - meeting")
    assert "2 goal(s) are off track" in result.recommendation


def test_analyze_savings_without_history(goals):
    result = analyze_savings([], goals)
    assert result.goals == []
    assert result.recommendation == "Add transaction history to calculate savings rate."


def test_goal_scenarios(goals, as_of):
    vacation = goals[1]
    scenarios = project_goal_scenarios(vacation, 250, as_of)

    assert scenarios.current.months_to_completion == 10
    assert scenarios.increased_by_10.months_to_completion == 10
    assert scenarios.increased_by_25.months_to_completion == 8
    assert scenarios.required == pytest.approx(2500 / 7)
