"""
fers_pension.py
---------------
FERS basic annuity: service credit, multiplier tier, eligibility rules,
earliest immediate retirement search, and the stay-vs-leave comparison.
"""

import logging
import math

from analysis_utils import to_finite_number
from config import (
    DEFAULT_MRA,
    DEFAULT_PENSION_END_AGE,
    DEFERRED_YEARS_ASSUMPTION,
    ENHANCED_MULTIPLIER,
    MAX_AGE_TO_CHECK,
    STANDARD_MULTIPLIER,
)

logger = logging.getLogger(__name__)

IMMEDIATE_FULL_MESSAGE = "Eligible for immediate retirement with full pension"
NOT_ELIGIBLE_MESSAGE = "Not eligible for immediate retirement. Consider deferred retirement."


def calculate_service_years(years_of_service, months_of_service=0):
    """Whole years plus months of creditable service, in years"""
    return to_finite_number(years_of_service, 0) + to_finite_number(months_of_service, 0) / 12


def calculate_fers_multiplier(retirement_age, total_years_of_service):
    """1.1% if retiring at/after 62 with 20+ years, otherwise 1.0%"""
    age = to_finite_number(retirement_age, 0)
    years = to_finite_number(total_years_of_service, 0)
    if age >= 62 and years >= 20:
        return ENHANCED_MULTIPLIER
    return STANDARD_MULTIPLIER


def is_immediate_full(age, total_years_of_service, mra=DEFAULT_MRA):
    """The three unreduced immediate retirement rules: 62/5, 60/20, MRA/30."""
    return (
        (age >= 62 and total_years_of_service >= 5)
        or (age >= 60 and total_years_of_service >= 20)
        or (age >= mra and total_years_of_service >= 30)
    )


def calculate_fers_eligibility(retirement_age, total_years_of_service, mra=DEFAULT_MRA):
    """Return (is_eligible, message) for an immediate unreduced annuity."""
    age = to_finite_number(retirement_age, 0)
    years = to_finite_number(total_years_of_service, 0)
    mra_age = to_finite_number(mra, DEFAULT_MRA)
    if is_immediate_full(age, years, mra_age):
        return True, IMMEDIATE_FULL_MESSAGE
    return False, NOT_ELIGIBLE_MESSAGE


def calculate_mra10_reduction_percent(annuity_start_age, mra=DEFAULT_MRA):
    """Simplified MRA+10 reduction: 5% per year the annuity starts before 62."""
    start_age = to_finite_number(annuity_start_age, 0)
    mra_age = to_finite_number(mra, DEFAULT_MRA)
    if start_age <= 0 or start_age >= 62 or start_age < mra_age:
        return 0.0
    return max(0.0, (62 - start_age) * 5.0)


def evaluate_fers_regular_eligibility(age, total_years_of_service, mra=DEFAULT_MRA):
    """
    Detailed eligibility for the report: immediate unreduced, immediate
    MRA+10 (reduced), and deferred, each with user-facing messages.
    """
    a = to_finite_number(age, 0)
    y = to_finite_number(total_years_of_service, 0)
    mra_age = to_finite_number(mra, DEFAULT_MRA)

    immediate_full = is_immediate_full(a, y, mra_age)
    immediate_mra10 = not immediate_full and a >= mra_age and y >= 10
    deferred = y >= 5

    messages = []
    if immediate_full:
        messages.append("Eligible for immediate retirement (unreduced annuity)")
    elif immediate_mra10:
        reduction = calculate_mra10_reduction_percent(a, mra_age)
        messages.append(
            f"Eligible for immediate retirement under MRA+10 (simplified reduction: ~{reduction:.1f}%)"
        )
        messages.append(
            "You may be able to postpone the annuity start to reduce/eliminate the reduction (not fully modeled)."
        )
    elif deferred:
        messages.append(
            "Not eligible for immediate retirement; may be eligible for deferred retirement (FEHB rules differ)."
        )
    else:
        messages.append("Not eligible yet (needs at least 5 years of service for deferred options).")

    return {
        "age": a,
        "total_years_of_service": y,
        "mra": mra_age,
        "is_eligible_immediate": immediate_full or immediate_mra10,
        "is_eligible_immediate_unreduced": immediate_full,
        "is_eligible_immediate_mra10": immediate_mra10,
        "is_eligible_deferred": deferred,
        "messages": messages,
    }


def find_earliest_fers_immediate_retirement_age(current_age, total_years_of_service, mra=DEFAULT_MRA,
                                                max_age_to_check=MAX_AGE_TO_CHECK):
    """
    First whole age, from the current age up to max_age_to_check, at which
    continued service qualifies for an immediate unreduced annuity. The MRA
    only gates the 30-year rule, so a late MRA never hides 60/20 or 62/5.
    Returns None when no age in the window qualifies.
    """
    age_now = to_finite_number(current_age, None)
    years_now = to_finite_number(total_years_of_service, None)
    mra_age = to_finite_number(mra, DEFAULT_MRA)
    max_age = to_finite_number(max_age_to_check, MAX_AGE_TO_CHECK)

    if age_now is None or years_now is None:
        return None
    if age_now <= 0 or max_age < age_now:
        return None

    for age in range(math.ceil(age_now), math.floor(max_age) + 1):
        projected_years = years_now + max(0, age - age_now)
        if is_immediate_full(age, projected_years, mra_age):
            return age

    logger.debug("No immediate retirement age found between %s and %s", age_now, max_age)
    return None


def calculate_fers_results(years_of_service=0, months_of_service=0, high3_salary=0, current_age=0,
                           retirement_age=0, show_comparison=False, private_job_salary=0,
                           private_job_years=0, include_future_service=False,
                           pension_end_age=DEFAULT_PENSION_END_AGE, mra=DEFAULT_MRA,
                           deferred_years_assumption=DEFERRED_YEARS_ASSUMPTION):
    """
    Pension estimate for retiring from federal service at retirement_age.

    With include_future_service the service already accrued is extended by the
    years left until retirement_age. When show_comparison is set, a "leave
    early" path is added: separate after deferred_years_assumption years,
    collect a 1.0% deferred annuity from the MRA, and earn the private-sector
    salary meanwhile. The break-even age is only defined when the stay-path
    pension is larger and the leave path earned more up front; otherwise it
    is 0.
    """
    high3 = max(0, to_finite_number(high3_salary, 0))
    age_now = to_finite_number(current_age, 0)
    retire_age = to_finite_number(retirement_age, 0)
    end_age = to_finite_number(pension_end_age, DEFAULT_PENSION_END_AGE)
    mra_age = to_finite_number(mra, DEFAULT_MRA)

    total_years = calculate_service_years(years_of_service, months_of_service)
    projected_years = total_years + max(0, retire_age - age_now) if include_future_service else total_years

    multiplier = calculate_fers_multiplier(retire_age, projected_years)
    annual_pension = high3 * projected_years * multiplier
    monthly_pension = annual_pension / 12
    lifetime_pension = annual_pension * max(0, end_age - retire_age)
    is_eligible, eligibility_message = calculate_fers_eligibility(retire_age, projected_years, mra_age)

    working_years = max(0, retire_age - age_now)
    total_lifetime_earnings = working_years * high3 + lifetime_pension

    results = {
        "total_years": total_years,
        "projected_years": projected_years,
        "annual_pension": annual_pension,
        "monthly_pension": monthly_pension,
        "multiplier": multiplier,
        "lifetime_pension": lifetime_pension,
        "is_eligible": is_eligible,
        "eligibility_message": eligibility_message,
        "total_lifetime_earnings": total_lifetime_earnings,
        "deferred": None,
    }

    if show_comparison:
        deferred_years = max(0, to_finite_number(deferred_years_assumption, DEFERRED_YEARS_ASSUMPTION))
        # The 1.1% tier needs separation at a qualifying age, never the case here
        deferred_pension = high3 * deferred_years * STANDARD_MULTIPLIER
        lifetime_deferred = deferred_pension * max(0, end_age - mra_age)
        private_sector_earnings = (
            max(0, to_finite_number(private_job_years, 0)) * max(0, to_finite_number(private_job_salary, 0))
        )
        leave_early_earnings = deferred_years * high3 + private_sector_earnings + lifetime_deferred

        break_even_age = 0
        annual_difference = annual_pension - deferred_pension
        if annual_difference > 0:
            earnings_gap = leave_early_earnings - total_lifetime_earnings
            if earnings_gap > 0:
                break_even_age = retire_age + earnings_gap / annual_difference

        results["deferred"] = {
            "deferred_pension": deferred_pension,
            "mra": mra_age,
            "lifetime_deferred": lifetime_deferred,
            "total_lifetime_earnings": leave_early_earnings,
            "break_even_age": break_even_age,
        }

    logger.debug(
        "FERS: %.2f years at %.1f%% -> $%.2f/year, eligible=%s",
        projected_years, multiplier * 100, annual_pension, is_eligible
    )
    return results


def validate_fers_inputs(fers):
    """Validate the FERS section of a scenario. Returns {field: message}."""
    errors = {}
    current_age = to_finite_number(fers.get("currentAge"), None)
    retirement_age = to_finite_number(fers.get("retirementAge"), None)
    if current_age is None or current_age < 0:
        errors["currentAge"] = "Current age must be a non-negative number."
    if retirement_age is None or retirement_age < 0:
        errors["retirementAge"] = "Retirement age must be a non-negative number."
    elif current_age is not None and retirement_age <= current_age:
        errors["retirementAge"] = "Retirement age must be greater than current age."
    years = to_finite_number(fers.get("yearsOfService"), None)
    if years is None or years < 0:
        errors["yearsOfService"] = "Years of service cannot be negative."
    months = to_finite_number(fers.get("monthsOfService", 0), None)
    if months is None or not 0 <= months <= 11:
        errors["monthsOfService"] = "Months of service must be between 0 and 11."
    high3 = to_finite_number(fers.get("high3Salary"), None)
    if high3 is None or high3 < 0:
        errors["high3Salary"] = "High-3 salary cannot be negative."
    return errors
