"""
retirement_model.py
------------------
Scenario-level orchestration: input validation, social security estimate,
and running the TSP, FERS and FIRE calculators over one scenario snapshot.
"""

import logging

from analysis_utils import to_finite_number
from config import (
    DEFAULT_MRA,
    DEFAULT_PENSION_END_AGE,
    DEFAULT_SAFE_WITHDRAWAL_RATE,
    DEFAULT_SS_CLAIMING_AGE,
    DEFAULT_SS_PERCENT_OF_SALARY,
)
from fers_pension import (
    calculate_fers_results,
    evaluate_fers_regular_eligibility,
    find_earliest_fers_immediate_retirement_age,
    validate_fers_inputs,
)
from fire_gap import calculate_fire_gap
from scenario_manager import normalize_scenario
from tsp_projection import project_tsp, validate_tsp_inputs

logger = logging.getLogger(__name__)


def compute_social_security(scenario):
    """Monthly Social Security benefit and claiming age from the summary section"""
    ss = ((scenario or {}).get("summary") or {}).get("socialSecurity") or {}
    mode = ss.get("mode", "not_configured")
    claiming_age = to_finite_number(ss.get("claimingAge"), DEFAULT_SS_CLAIMING_AGE)
    salary = to_finite_number(((scenario or {}).get("tsp") or {}).get("annualSalary"), 0)

    if mode == "manual":
        monthly = to_finite_number(ss.get("monthlyBenefit"), 0)
    elif mode == "estimate" and salary > 0:
        pct = to_finite_number(ss.get("percentOfSalary"), DEFAULT_SS_PERCENT_OF_SALARY)
        monthly = salary * pct / 100 / 12
    else:
        monthly = 0

    return {"mode": mode, "claiming_age": claiming_age, "monthly": max(0, monthly)}


def real_value_inflation(tsp):
    """Inflation fraction for today's-dollar projections; 0 in nominal mode"""
    if (tsp or {}).get("valueMode", "nominal") != "real":
        return 0
    return max(0, to_finite_number(tsp.get("inflationRate"), 0)) / 100


def validate_scenario(scenario):
    """
    Validate a scenario. Returns {dotted field path: message}.
    An empty dict means the scenario can be saved; results are computed either way.
    """
    scenario = scenario or {}
    errors = {}
    for field, message in validate_tsp_inputs(scenario.get("tsp") or {}).items():
        errors[f"tsp.{field}"] = message
    for field, message in validate_fers_inputs(scenario.get("fers") or {}).items():
        errors[f"fers.{field}"] = message

    fire = scenario.get("fire") or {}
    desired = to_finite_number(fire.get("desiredFireAge"), None)
    if desired is not None and desired < 0:
        errors["fire.desiredFireAge"] = "Desired FIRE age cannot be negative."
    for field in ("monthlyFireIncomeGoal", "sideHustleIncome", "spouseIncome"):
        value = to_finite_number(fire.get(field), None)
        if value is not None and value < 0:
            errors[f"fire.{field}"] = "Monthly amounts cannot be negative."

    summary = scenario.get("summary") or {}
    assumptions = summary.get("assumptions") or {}
    swr = to_finite_number(assumptions.get("safeWithdrawalRate"), None)
    if swr is None or not 0 < swr <= 1:
        errors["summary.assumptions.safeWithdrawalRate"] = "Safe withdrawal rate must be above 0 and at most 1."
    end_age = to_finite_number(assumptions.get("pensionEndAge"), None)
    if end_age is None or end_age < 0:
        errors["summary.assumptions.pensionEndAge"] = "Pension end age must be a non-negative number."
    ss = summary.get("socialSecurity") or {}
    if ss.get("mode", "not_configured") != "not_configured":
        claiming_age = to_finite_number(ss.get("claimingAge"), None)
        if claiming_age is None or not 62 <= claiming_age <= 70:
            errors["summary.socialSecurity.claimingAge"] = "Social Security start age should be between 62 and 70."

    if errors:
        logger.warning("Scenario has %d validation issue(s): %s", len(errors), ", ".join(sorted(errors)))
    return errors


def run_scenario(scenario, mra=DEFAULT_MRA):
    """
    Compute every projection for one scenario snapshot.

    TSP and FERS run independently; the FIRE gap consumes both. Validation
    issues are reported under "errors" and never stop the computation.
    """
    scenario = normalize_scenario(scenario)
    errors = validate_scenario(scenario)
    tsp = scenario["tsp"]
    fers = scenario["fers"]
    fire = dict(scenario["fire"])
    summary = scenario["summary"]
    assumptions = summary["assumptions"]

    swr = to_finite_number(assumptions.get("safeWithdrawalRate"), DEFAULT_SAFE_WITHDRAWAL_RATE)
    pension_end_age = to_finite_number(assumptions.get("pensionEndAge"), DEFAULT_PENSION_END_AGE)

    tsp_results = project_tsp(
        current_balance=tsp.get("currentBalance"),
        annual_salary=tsp.get("annualSalary"),
        monthly_contribution_percent=tsp.get("monthlyContributionPercent"),
        current_age=tsp.get("currentAge"),
        retirement_age=tsp.get("retirementAge"),
        allocation=tsp.get("allocation"),
        current_tax_rate=tsp.get("currentTaxRate"),
        retirement_tax_rate=tsp.get("retirementTaxRate"),
        include_employer_match=bool(tsp.get("includeEmployerMatch", False)),
        include_automatic_1_percent=bool(tsp.get("includeAutomatic1Percent", True)),
        inflation_rate=real_value_inflation(tsp),
    )
    selected_type = "roth" if tsp.get("contributionType") == "roth" else "traditional"
    selected_tsp = tsp_results[selected_type]

    fers_results = calculate_fers_results(
        years_of_service=fers.get("yearsOfService"),
        months_of_service=fers.get("monthsOfService"),
        high3_salary=fers.get("high3Salary"),
        current_age=fers.get("currentAge"),
        retirement_age=fers.get("retirementAge"),
        show_comparison=bool(fers.get("showComparison", False)),
        private_job_salary=fers.get("privateJobSalary"),
        private_job_years=fers.get("privateJobYears"),
        include_future_service=True,
        pension_end_age=pension_end_age,
        mra=mra,
    )
    pension_start_age = to_finite_number(fers.get("retirementAge"), 0)
    eligibility_detail = evaluate_fers_regular_eligibility(
        pension_start_age, fers_results["projected_years"], mra
    )
    earliest_age = find_earliest_fers_immediate_retirement_age(
        fers.get("currentAge"), fers_results["total_years"], mra
    )

    social_security = compute_social_security(scenario)

    if to_finite_number(fire.get("monthlyFireIncomeGoal"), 0) <= 0:
        fire["monthlyFireIncomeGoal"] = to_finite_number(summary.get("monthlyExpenses"), 0)

    fire_results = calculate_fire_gap(
        tsp_yearly_data=selected_tsp["yearly_data"],
        tsp_projected_balance=selected_tsp["projected_balance"],
        pension_monthly=fers_results["monthly_pension"],
        pension_start_age=pension_start_age,
        fire=fire,
        safe_withdrawal_rate=swr,
        desired_fire_age=fire.get("desiredFireAge"),
        social_security_monthly=social_security["monthly"],
        social_security_start_age=social_security["claiming_age"] if social_security["monthly"] > 0 else None,
        tsp_current_balance=max(0, to_finite_number(tsp.get("currentBalance"), 0)),
    )

    logger.info(
        "Scenario %r: TSP $%.0f, pension $%.0f/month, gap $%.0f/month",
        scenario.get("name"), selected_tsp["projected_balance"],
        fers_results["monthly_pension"], fire_results["monthly_gap_at_desired_age"]
    )

    return {
        "scenario": scenario,
        "errors": errors,
        "tsp": tsp_results,
        "selected_tsp_type": selected_type,
        "selected_tsp": selected_tsp,
        "fers": fers_results,
        "fers_eligibility": eligibility_detail,
        "earliest_fers_immediate_age": earliest_age,
        "social_security": social_security,
        "fire": fire_results,
        "mra": mra,
        "safe_withdrawal_rate": fire_results["inputs"]["safe_withdrawal_rate"],
        "pension_end_age": pension_end_age,
    }
