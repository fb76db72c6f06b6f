import numpy as np
import pandas as pd
import pytest

from monte_carlo import (
    FALLBACK_WEIGHTS,
    annual_contribution,
    portfolio_mean_return,
    portfolio_std_dev,
    run_monte_carlo_analytics,
)


def _zero_returns(mean, std, shape):
    return np.zeros(shape)


def test_seeded_runs_are_reproducible(scenario):
    first = run_monte_carlo_analytics(scenario, simulations=200, random_seed=42)
    second = run_monte_carlo_analytics(scenario, simulations=200, random_seed=42)
    assert first["outcomes"] == second["outcomes"]
    pd.testing.assert_frame_equal(first["balance_percentiles"], second["balance_percentiles"])


def test_outcome_ranges(scenario):
    result = run_monte_carlo_analytics(scenario, simulations=200, random_seed=7)
    outcomes = result["outcomes"]
    assert 0 <= outcomes["probability_fire_by_desired_age"] <= 1
    assert 0 <= outcomes["probability_funds_last_to_end_age"] <= 1
    at_retirement = outcomes["balance_at_retirement"]
    assert at_retirement["p10"] <= at_retirement["p50"] <= at_retirement["p90"]


def test_percentile_frame_covers_every_age(scenario):
    result = run_monte_carlo_analytics(scenario, simulations=100, random_seed=1, end_age=90)
    frame = result["balance_percentiles"]
    assert list(frame.columns) == ["p10", "p50", "p90"]
    assert frame.index.name == "Age"
    assert frame.index[0] == 35
    assert frame.index[-1] == 90


def test_minimum_simulation_count(scenario):
    assert run_monte_carlo_analytics(scenario, simulations=10, random_seed=1)["inputs"]["simulations"] == 100


def test_custom_distribution_is_deterministic(scenario):
    result = run_monte_carlo_analytics(scenario, simulations=100, return_dist=_zero_returns)
    at_retirement = result["outcomes"]["balance_at_retirement"]
    assert at_retirement["p10"] == pytest.approx(at_retirement["p90"])


def test_unknown_distribution(scenario):
    with pytest.raises(ValueError):
        run_monte_carlo_analytics(scenario, simulations=100, return_dist="cauchy")


def test_generous_income_always_reaches_fire(scenario):
    scenario["fire"].update({"monthlyFireIncomeGoal": 1000, "spouseIncome": 5000})
    result = run_monte_carlo_analytics(scenario, simulations=100, random_seed=3)
    assert result["outcomes"]["probability_fire_by_desired_age"] == 1.0
    assert result["outcomes"]["probability_funds_last_to_end_age"] == 1.0


def test_portfolio_moments():
    assert portfolio_mean_return(FALLBACK_WEIGHTS) == pytest.approx(0.058)
    assert portfolio_mean_return({"G": 0, "F": 0, "C": 1, "S": 0, "I": 0}, {"C": 10}) == pytest.approx(0.10)
    assert portfolio_std_dev({"G": 1, "F": 0, "C": 0, "S": 0, "I": 0}) == pytest.approx(0.01)


def test_annual_contribution():
    # 10% employee, 1% automatic, 4% matching
    assert annual_contribution(100000, 10, 40) == pytest.approx(15000)
    # employee deferral capped at the IRS limit below catch-up age
    assert annual_contribution(300000, 10, 40) == pytest.approx(23500 + 3000 + 12000)
    assert annual_contribution(300000, 10, 50) == pytest.approx(30000 + 3000 + 12000)
    assert annual_contribution(100000, 10, 40, include_employer_match=False,
                               include_automatic_1_percent=False) == pytest.approx(10000)
