"""
fire_gap.py
-----------
Financial-independence income gap: TSP withdrawals, pension once started,
and other income against a monthly goal, plus the pre-pension bridge.
"""

import logging

from analysis_utils import to_finite_number
from config import DEFAULT_SAFE_WITHDRAWAL_RATE

logger = logging.getLogger(__name__)


def normalize_withdrawal_rate(safe_withdrawal_rate):
    """Safe withdrawal rate in (0, 1]; anything unusable becomes the 4% default."""
    swr = to_finite_number(safe_withdrawal_rate, DEFAULT_SAFE_WITHDRAWAL_RATE)
    if swr <= 0:
        return DEFAULT_SAFE_WITHDRAWAL_RATE
    return min(swr, 1.0)


def balance_at_age(yearly_data, age, start_balance=None):
    """
    Balance of the last yearly point at or before age, scanning chronologically.
    An age before the first point uses start_balance (today's balance) when
    given, otherwise the first point.
    """
    balance = None
    for point in yearly_data:
        point_age = to_finite_number(point.get("year"), 0)
        if point_age > age:
            break
        balance = point.get("balance")
    if balance is None:
        balance = start_balance if start_balance is not None else yearly_data[0].get("balance")
    return max(0, to_finite_number(balance, 0))


def calculate_bridge_strategy(desired_fire_age, pension_start_age, fire_income_goal_monthly,
                              monthly_income_before_pension):
    """
    Cash needed to cover the shortfall between the FIRE age and the pension.
    Assumes level dollars with no growth or interest.
    """
    desired = to_finite_number(desired_fire_age, 0)
    pension_start = to_finite_number(pension_start_age, 0)

    years_to_bridge = max(0, pension_start - desired) if desired > 0 and pension_start > 0 else 0
    goal = max(0, to_finite_number(fire_income_goal_monthly, 0))
    before_pension = max(0, to_finite_number(monthly_income_before_pension, 0))
    monthly_shortfall = max(0, goal - before_pension)

    return {
        "years_to_bridge": years_to_bridge,
        "monthly_shortfall": monthly_shortfall,
        "required_bridge_assets": monthly_shortfall * 12 * years_to_bridge,
    }


def calculate_pension_asset_equivalent(pension_monthly, safe_withdrawal_rate=DEFAULT_SAFE_WITHDRAWAL_RATE):
    """Portfolio size whose safe withdrawal would pay the same as the pension."""
    swr = normalize_withdrawal_rate(safe_withdrawal_rate)
    annual_pension = max(0, to_finite_number(pension_monthly, 0)) * 12
    return annual_pension / swr


def estimate_projected_fire_age(tsp_yearly_data, safe_withdrawal_rate, fire_income_goal_monthly,
                                side_hustle_income=0, spouse_income=0, pension_monthly=0,
                                pension_start_age=None, social_security_monthly=0,
                                social_security_start_age=None):
    """
    First age in the yearly series where passive income covers the goal.
    Pension and social security count once their start ages are reached.
    Returns None for an empty series, a non-positive goal, or no match.
    """
    swr = normalize_withdrawal_rate(safe_withdrawal_rate)
    goal = max(0, to_finite_number(fire_income_goal_monthly, 0))
    other = max(0, to_finite_number(side_hustle_income, 0)) + max(0, to_finite_number(spouse_income, 0))
    pension = max(0, to_finite_number(pension_monthly, 0))
    pension_age = to_finite_number(pension_start_age, 0)
    ss = max(0, to_finite_number(social_security_monthly, 0))
    ss_age = to_finite_number(social_security_start_age, 0)

    if not tsp_yearly_data or goal <= 0:
        return None

    for point in tsp_yearly_data:
        age = to_finite_number(point.get("year"), 0)
        balance = max(0, to_finite_number(point.get("balance"), 0))
        income = balance * swr / 12 + other
        if pension_age > 0 and age >= pension_age:
            income += pension
        if ss_age > 0 and age >= ss_age:
            income += ss
        if income >= goal:
            return age
    return None


def calculate_fire_gap(tsp_yearly_data=None, tsp_projected_balance=0, pension_monthly=0,
                       pension_start_age=None, fire=None,
                       safe_withdrawal_rate=DEFAULT_SAFE_WITHDRAWAL_RATE, desired_fire_age=None,
                       social_security_monthly=0, social_security_start_age=None,
                       tsp_current_balance=None):
    """
    Monthly passive income against the FIRE goal at the desired FIRE age.

    Passive income at an age is the safe withdrawal from the TSP balance at
    that age, the pension once pension_start_age is reached, and the side
    hustle and spouse income from the fire section. The gap is the part of
    the goal left uncovered (never negative). Without a desired age or a
    pension start age the pension is counted and the final balance is used.
    """
    fire = fire or {}
    swr = normalize_withdrawal_rate(safe_withdrawal_rate)
    side_hustle_income = to_finite_number(fire.get("sideHustleIncome"), 0)
    spouse_income = to_finite_number(fire.get("spouseIncome"), 0)
    fire_income_goal = to_finite_number(fire.get("monthlyFireIncomeGoal"), 0)

    desired = to_finite_number(desired_fire_age, 0)
    pension_start = to_finite_number(pension_start_age, 0)
    pension_after_start = to_finite_number(pension_monthly, 0)
    pension_included = desired >= pension_start if desired > 0 and pension_start > 0 else True
    pension_at_desired_age = pension_after_start if pension_included else 0

    if tsp_yearly_data and desired > 0:
        tsp_balance = balance_at_age(tsp_yearly_data, desired, tsp_current_balance)
    else:
        tsp_balance = max(0, to_finite_number(tsp_projected_balance, 0))
    tsp_monthly_withdrawal = tsp_balance * swr / 12

    monthly_income_before_pension = tsp_monthly_withdrawal + side_hustle_income + spouse_income
    total_passive_income_at_desired_age = monthly_income_before_pension + pension_at_desired_age
    total_passive_income_after_pension = monthly_income_before_pension + pension_after_start

    surplus_at_desired_age = total_passive_income_at_desired_age - fire_income_goal
    surplus_after_pension = total_passive_income_after_pension - fire_income_goal

    is_fire_ready_at_desired_age = surplus_at_desired_age >= 0
    confidence_level = "low"
    if is_fire_ready_at_desired_age:
        denominator = fire_income_goal if fire_income_goal > 0 else 1
        surplus_percentage = surplus_at_desired_age / denominator * 100
        if surplus_percentage >= 25:
            confidence_level = "high"
        elif surplus_percentage >= 10:
            confidence_level = "medium"

    bridge = calculate_bridge_strategy(
        desired, pension_start, fire_income_goal, monthly_income_before_pension
    )

    projected_fire_age = estimate_projected_fire_age(
        tsp_yearly_data or [],
        swr,
        fire_income_goal,
        side_hustle_income=side_hustle_income,
        spouse_income=spouse_income,
        pension_monthly=pension_after_start,
        pension_start_age=pension_start,
        social_security_monthly=social_security_monthly,
        social_security_start_age=social_security_start_age,
    )

    logger.debug(
        "FIRE gap at age %s: goal $%.2f, passive $%.2f, bridge %s years",
        desired or None, fire_income_goal, total_passive_income_at_desired_age, bridge["years_to_bridge"]
    )

    return {
        "fire_income_goal": fire_income_goal,
        "tsp_monthly_withdrawal": tsp_monthly_withdrawal,
        "monthly_income_before_pension": monthly_income_before_pension,
        "total_passive_income_at_desired_age": total_passive_income_at_desired_age,
        "total_passive_income_after_pension": total_passive_income_after_pension,
        "monthly_gap_at_desired_age": max(0, -surplus_at_desired_age),
        "monthly_gap_after_pension": max(0, -surplus_after_pension),
        "monthly_surplus_at_desired_age": surplus_at_desired_age,
        "is_fire_ready_at_desired_age": is_fire_ready_at_desired_age,
        "is_fire_ready_after_pension": surplus_after_pension >= 0,
        "confidence_level": confidence_level,
        "projected_fire_age": projected_fire_age,
        "bridge": bridge,
        "pension": {
            "desired_fire_age": desired or None,
            "pension_start_age": pension_start or None,
            "pension_monthly_at_desired_age": pension_at_desired_age,
            "pension_monthly_after_start": pension_after_start,
            "pension_included_at_desired_age": pension_included,
            "pension_asset_equivalent": calculate_pension_asset_equivalent(pension_after_start, swr),
        },
        "inputs": {
            "safe_withdrawal_rate": swr,
            "side_hustle_income": side_hustle_income,
            "spouse_income": spouse_income,
            "desired_fire_age": desired or None,
            "pension_start_age": pension_start or None,
        },
    }
