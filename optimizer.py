"""
Search a small grid of plan changes (retire later, contribute more, spend
less) for the ones that bring the projected FIRE age forward the most.
"""

import logging

from analysis_utils import clamp_number, to_finite_number
from config import DEFAULT_SAFE_WITHDRAWAL_RATE
from fers_pension import calculate_fers_results
from fire_gap import estimate_projected_fire_age
from retirement_model import compute_social_security, real_value_inflation
from tsp_projection import project_tsp

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3


def _evaluate(scenario, retirement_age, contribution_pct, monthly_expenses, social_security, swr):
    tsp = scenario.get("tsp") or {}
    fers = scenario.get("fers") or {}
    fire = scenario.get("fire") or {}

    tsp_results = project_tsp(
        current_balance=tsp.get("currentBalance"),
        annual_salary=tsp.get("annualSalary"),
        monthly_contribution_percent=contribution_pct,
        current_age=tsp.get("currentAge"),
        retirement_age=retirement_age,
        allocation=tsp.get("allocation"),
        current_tax_rate=tsp.get("currentTaxRate", 22),
        retirement_tax_rate=tsp.get("retirementTaxRate", 15),
        include_employer_match=bool(tsp.get("includeEmployerMatch", False)),
        include_automatic_1_percent=bool(tsp.get("includeAutomatic1Percent", True)),
        inflation_rate=real_value_inflation(tsp),
    )
    selected = tsp_results["roth"] if tsp.get("contributionType") == "roth" else tsp_results["traditional"]

    fers_results = calculate_fers_results(
        years_of_service=fers.get("yearsOfService"),
        months_of_service=fers.get("monthsOfService"),
        high3_salary=fers.get("high3Salary"),
        current_age=fers.get("currentAge"),
        retirement_age=retirement_age,
        include_future_service=True,
    )

    goal = max(0, to_finite_number(fire.get("monthlyFireIncomeGoal"), 0)) or max(0, monthly_expenses)

    earliest = estimate_projected_fire_age(
        selected["yearly_data"],
        swr,
        goal,
        side_hustle_income=fire.get("sideHustleIncome"),
        spouse_income=fire.get("spouseIncome"),
        pension_monthly=fers_results["monthly_pension"],
        pension_start_age=retirement_age,
        social_security_monthly=social_security["monthly"],
        social_security_start_age=social_security["claiming_age"],
    )
    return {
        "earliest_fire_age": earliest,
        "tsp_projected_balance": selected["projected_balance"],
        "pension_monthly": fers_results["monthly_pension"],
        "goal_monthly": goal,
    }


def build_optimization_suggestions(scenario):
    """
    Rank retirement age, contribution and expense tweaks by projected FIRE age.

    Candidates must beat the baseline's projected FIRE age (any candidate
    qualifies when the baseline never reaches FIRE). The score favours an
    earlier FIRE age first, then the smallest change from today's plan.
    """
    scenario = scenario or {}
    tsp = scenario.get("tsp") or {}
    fers = scenario.get("fers") or {}
    fire = scenario.get("fire") or {}
    summary = scenario.get("summary") or {}

    swr = to_finite_number((summary.get("assumptions") or {}).get("safeWithdrawalRate"), DEFAULT_SAFE_WITHDRAWAL_RATE)
    current_age = clamp_number(tsp.get("currentAge"), 0, 120, 0)
    base_retirement_age = clamp_number(
        tsp.get("retirementAge", fers.get("retirementAge")), current_age + 1, 80, 62
    )
    base_contribution = clamp_number(tsp.get("monthlyContributionPercent"), 0, 100, 10)
    goal_base = max(0, to_finite_number(fire.get("monthlyFireIncomeGoal"), 0)) or \
        max(0, to_finite_number(summary.get("monthlyExpenses"), 0))
    base_expenses = to_finite_number(summary.get("monthlyExpenses"), goal_base)
    social_security = compute_social_security(scenario)

    baseline = _evaluate(scenario, base_retirement_age, base_contribution, base_expenses, social_security, swr)

    retirement_candidates = sorted(set(
        min(80, base_retirement_age + step) for step in (0, 1, 2, 3, 5)
    ))
    retirement_candidates = [age for age in retirement_candidates if age >= current_age + 1]
    contribution_candidates = sorted(set(
        min(50, base_contribution + step) for step in (0, 2, 5, 10)
    ))
    expense_candidates = sorted(set(
        max(0, base_expenses * factor) for factor in (1.0, 0.95, 0.9)
    ), reverse=True)

    scored = []
    for retirement_age in retirement_candidates:
        for contribution_pct in contribution_candidates:
            for monthly_expenses in expense_candidates:
                metrics = _evaluate(
                    scenario, retirement_age, contribution_pct, monthly_expenses, social_security, swr
                )
                earliest = metrics["earliest_fire_age"]
                if earliest is None:
                    continue
                improvement = baseline["earliest_fire_age"] - earliest if baseline["earliest_fire_age"] else 0
                score = (
                    earliest * 100
                    + abs(retirement_age - base_retirement_age) * 10
                    + abs(contribution_pct - base_contribution) * 2
                    + abs(monthly_expenses - base_expenses) / 100
                )
                scored.append({
                    "retirement_age": retirement_age,
                    "contribution_pct": contribution_pct,
                    "monthly_expenses": monthly_expenses,
                    "earliest_fire_age": earliest,
                    "improvement_years": improvement,
                    "score": score,
                    "metrics": metrics,
                })

    scored.sort(key=lambda candidate: candidate["score"])

    suggestions = []
    for candidate in scored:
        if baseline["earliest_fire_age"] and candidate["earliest_fire_age"] >= baseline["earliest_fire_age"]:
            continue
        candidate["id"] = f"opt_{len(suggestions)}_{candidate['retirement_age']}_{candidate['contribution_pct']}"
        suggestions.append(candidate)
        if len(suggestions) >= MAX_SUGGESTIONS:
            break

    logger.debug("Optimizer scored %d candidates, kept %d", len(scored), len(suggestions))

    return {
        "baseline": {
            "retirement_age": base_retirement_age,
            "contribution_pct": base_contribution,
            "monthly_expenses": base_expenses,
            "earliest_fire_age": baseline["earliest_fire_age"],
        },
        "suggestions": suggestions,
    }
