import logging
import math

import numpy as np
import pandas as pd

from analysis_utils import clamp_number, summarize_percentiles, to_finite_number
from config import (
    DEFAULT_FUND_RETURNS,
    DEFAULT_SAFE_WITHDRAWAL_RATE,
    DEFAULT_SS_CLAIMING_AGE,
    FUND_CODES,
    FUND_STDDEV,
    MC_DEFAULT_END_AGE,
    MC_DEFAULT_SIMULATIONS,
    MC_MIN_SIMULATIONS,
    MC_RETURN_CLIP,
)
from tsp_projection import allocation_weights, calculate_matching_percent

logger = logging.getLogger(__name__)

FALLBACK_WEIGHTS = {"G": 0.1, "F": 0.2, "C": 0.4, "S": 0.2, "I": 0.1}


def portfolio_mean_return(weights, fund_returns_pct=None):
    """Expected annual return; fund_returns_pct overrides the defaults, in percent."""
    fund_returns_pct = fund_returns_pct or {}
    return sum(
        weights[fund] * to_finite_number(fund_returns_pct.get(fund), DEFAULT_FUND_RETURNS[fund] * 100) / 100
        for fund in FUND_CODES
    )


def portfolio_std_dev(weights):
    """Naive portfolio volatility ignoring correlations: sqrt(sum((w*sd)^2))"""
    return math.sqrt(sum((weights[fund] * FUND_STDDEV[fund]) ** 2 for fund in FUND_CODES))


def annual_contribution(salary, employee_pct, age, include_employer_match=True,
                        include_automatic_1_percent=True, annual_employee_deferral_limit=23500,
                        annual_catch_up_limit=7500, catch_up_age=50):
    """Employee deferral capped at the IRS limit (plus catch-up), automatic 1% and matching."""
    salary = max(0, to_finite_number(salary, 0))
    pct = max(0, to_finite_number(employee_pct, 0))

    limit = max(0, to_finite_number(annual_employee_deferral_limit, 23500))
    catch_up = 0
    if age >= max(0, to_finite_number(catch_up_age, 50)):
        catch_up = max(0, to_finite_number(annual_catch_up_limit, 7500))
    employee = min(salary * pct / 100, limit + catch_up)

    automatic = salary * 0.01 if include_automatic_1_percent else 0
    matching = salary * calculate_matching_percent(pct) / 100 if include_employer_match else 0
    return employee + automatic + matching


def run_monte_carlo_analytics(scenario, pension_monthly=0, pension_start_age=None,
                              social_security_monthly=0, social_security_start_age=DEFAULT_SS_CLAIMING_AGE,
                              simulations=MC_DEFAULT_SIMULATIONS, end_age=MC_DEFAULT_END_AGE,
                              random_seed=None, return_dist="normal"):
    """
    Run a Monte Carlo simulation of the TSP through accumulation and FIRE withdrawals.
    - Annual returns sampled per path and year from the allocation's mean/volatility.
    - Working years contribute with salary growth until min(retirement age, desired FIRE age).
    - From the desired FIRE age the inflated goal, less pension/SS/other income, is withdrawn.
    - Reproducible with random_seed.
    - Returns: dict with "inputs", "outcomes" and a per-age "balance_percentiles" DataFrame.
    """
    rng = np.random.default_rng(random_seed)

    def sample_dist(dist, mean, std, shape):
        if callable(dist):
            return dist(mean, std, shape)
        if dist == "normal":
            return rng.normal(mean, std, shape)
        raise ValueError(f"Unknown distribution: {dist}")

    scenario = scenario or {}
    tsp = scenario.get("tsp") or {}
    fire = scenario.get("fire") or {}
    summary = scenario.get("summary") or {}
    assumptions = summary.get("assumptions") or {}

    current_age = int(to_finite_number(tsp.get("currentAge"), 0))
    retirement_age = int(to_finite_number(tsp.get("retirementAge"), 0))
    desired_fire_age = int(to_finite_number(fire.get("desiredFireAge"), retirement_age))

    sims = max(MC_MIN_SIMULATIONS, int(to_finite_number(simulations, MC_DEFAULT_SIMULATIONS)))
    end_age = max(desired_fire_age, int(to_finite_number(end_age, MC_DEFAULT_END_AGE)))
    swr = to_finite_number(assumptions.get("safeWithdrawalRate"), DEFAULT_SAFE_WITHDRAWAL_RATE)
    inflation = to_finite_number(tsp.get("inflationRate"), 2.5) / 100

    fire_goal_monthly = max(0, to_finite_number(fire.get("monthlyFireIncomeGoal"), 0)) or \
        max(0, to_finite_number(summary.get("monthlyExpenses"), 0))

    weights = allocation_weights(tsp.get("allocation")) or dict(FALLBACK_WEIGHTS)
    mu = portfolio_mean_return(weights, tsp.get("fundReturns"))
    sigma = portfolio_std_dev(weights)

    salary = max(0, to_finite_number(tsp.get("annualSalary"), 0))
    salary_growth = to_finite_number(tsp.get("annualSalaryGrowthRate"), 3) / 100
    employee_pct = to_finite_number(tsp.get("monthlyContributionPercent"), 0)
    base_balance = max(0, to_finite_number(tsp.get("currentBalance"), 0))
    other_monthly = max(0, to_finite_number(fire.get("sideHustleIncome"), 0)) + \
        max(0, to_finite_number(fire.get("spouseIncome"), 0))

    pension = max(0, to_finite_number(pension_monthly, 0))
    pension_start = max(0, to_finite_number(pension_start_age, retirement_age))
    ss = max(0, to_finite_number(social_security_monthly, 0))
    ss_start = max(0, to_finite_number(social_security_start_age, DEFAULT_SS_CLAIMING_AGE))

    ages = np.arange(current_age, end_age + 1)
    returns = np.clip(sample_dist(return_dist, mu, sigma, (sims, len(ages))), -MC_RETURN_CLIP, MC_RETURN_CLIP)

    balance = np.full(sims, base_balance, dtype=float)
    failed = np.zeros(sims, dtype=bool)
    work_end_age = min(retirement_age, desired_fire_age)
    balance_at_retirement = None
    balance_at_desired = None
    percentile_rows = []

    for idx, age in enumerate(ages):
        r = returns[:, idx]
        if age < work_end_age:
            contribution = annual_contribution(
                salary, employee_pct, age,
                include_employer_match=bool(tsp.get("includeEmployerMatch", True)),
                include_automatic_1_percent=bool(tsp.get("includeAutomatic1Percent", True)),
                annual_employee_deferral_limit=tsp.get("annualEmployeeDeferralLimit", 23500),
                annual_catch_up_limit=tsp.get("annualCatchUpLimit", 7500),
                catch_up_age=tsp.get("catchUpAge", 50),
            )
            balance = (balance + contribution) * (1 + r)
            salary *= 1 + salary_growth
        else:
            if age >= desired_fire_age:
                years_since = age - desired_fire_age
                need_annual = fire_goal_monthly * 12 * (1 + inflation) ** years_since
                pension_annual = pension * 12 if age >= pension_start else 0
                ss_annual = ss * 12 if age >= ss_start else 0
                from_tsp = max(0, need_annual - pension_annual - ss_annual - other_monthly * 12)
                balance = balance - from_tsp
                failed |= balance < 0
            balance = np.where(failed, 0.0, balance * (1 + r))

        if age == retirement_age:
            balance_at_retirement = balance.copy()
        if age == desired_fire_age:
            balance_at_desired = balance.copy()
        percentile_rows.append(np.percentile(balance, [10, 50, 90]))

    if balance_at_desired is None:
        # Desired age already passed
        balance_at_desired = np.full(sims, base_balance, dtype=float)

    passive_at_desired = (
        balance_at_desired * clamp_number(swr, 0, 1, DEFAULT_SAFE_WITHDRAWAL_RATE) / 12
        + (pension if desired_fire_age >= pension_start else 0)
        + (ss if desired_fire_age >= ss_start else 0)
        + other_monthly
    )
    achieved = passive_at_desired >= fire_goal_monthly

    balance_percentiles = pd.DataFrame(percentile_rows, columns=["p10", "p50", "p90"], index=ages)
    balance_percentiles.index.name = "Age"

    logger.debug("Monte Carlo: %d paths, mu=%.4f sigma=%.4f, %d failed", sims, mu, sigma, int(failed.sum()))

    return {
        "inputs": {
            "simulations": sims,
            "current_age": current_age,
            "retirement_age": retirement_age,
            "desired_fire_age": desired_fire_age,
            "end_age": end_age,
            "swr": swr,
            "inflation_rate": inflation,
            "mean_return": mu,
            "portfolio_std_dev": sigma,
            "fire_goal_monthly": fire_goal_monthly,
            "random_seed": random_seed,
        },
        "outcomes": {
            "probability_fire_by_desired_age": float(achieved.mean()),
            "probability_funds_last_to_end_age": float((~failed).mean()),
            "balance_at_retirement": (
                summarize_percentiles(balance_at_retirement.tolist()) if balance_at_retirement is not None else None
            ),
            "balance_at_desired_fire_age": summarize_percentiles(balance_at_desired.tolist()),
        },
        "balance_percentiles": balance_percentiles,
    }
