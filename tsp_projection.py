"""
tsp_projection.py
-----------------
TSP account growth: blended fund return, agency contributions, and the
month-by-month traditional vs Roth accumulation simulation.
"""

import logging

import pandas as pd

from analysis_utils import clamp_number, to_finite_number
from config import DEFAULT_FUND_RETURNS, FUND_CODES, MAX_PROJECTION_AGE

logger = logging.getLogger(__name__)


def allocation_weights(allocation, funds=FUND_CODES):
    """
    Fund weights as fractions of the allocation total.

    Zero, negative or non-numeric percentages count as zero. Returns None when
    no fund has a positive weight.
    """
    allocation = allocation or {}
    raw = {fund: max(0, to_finite_number(allocation.get(fund), 0)) for fund in funds}
    total = sum(raw.values())
    if total <= 0:
        return None
    return {fund: value / total for fund, value in raw.items()}


def calculate_weighted_return(allocation, fund_returns=DEFAULT_FUND_RETURNS):
    """
    Blend per-fund annual returns by allocation weight.

    Weights are normalized by their total, so a partial allocation is used
    proportionally. No positive weight means no growth.
    """
    weights = allocation_weights(allocation, tuple(fund_returns))
    if weights is None:
        return 0.0
    return sum(to_finite_number(fund_returns[fund], 0) * weight for fund, weight in weights.items())


def calculate_matching_percent(employee_percent):
    """Agency matching as a percent of salary for a given employee contribution percent."""
    pct = max(0, to_finite_number(employee_percent, 0))
    # Match dollar-for-dollar on first 3%
    matching = min(3, pct)
    # Match 50 cents on the dollar for next 2%
    matching += max(0, min(5, pct) - 3) * 0.5
    return matching


def calculate_agency_contribution_percent(employee_percent, include_employer_match=True,
                                          include_automatic_1_percent=True):
    """Agency automatic 1% plus matching, as a percent of salary."""
    automatic = 1.0 if include_automatic_1_percent else 0.0
    if not include_employer_match:
        return automatic
    return automatic + calculate_matching_percent(employee_percent)


def _snapshot(age, pre_tax, roth, contributions, retirement_tax_rate, deflator=1.0):
    balance = (pre_tax + roth) / deflator
    return {
        "year": age,
        "balance": balance,
        "after_tax_value": (pre_tax * (1 - retirement_tax_rate / 100) + roth) / deflator,
        "contributions": contributions,
    }


def calculate_tsp_projection(start_balance, monthly_pre_tax, monthly_roth, annual_return,
                             months, current_age, retirement_tax_rate, inflation_rate=0):
    """
    Simulate monthly compounding for a single contribution type.

    Each month the contributions are added first, then the balance grows by
    annual_return / 12. Pre-tax money (the starting balance included) is taxed
    at retirement_tax_rate on withdrawal; Roth money is not. A snapshot is
    recorded at the end of every simulated year.
    With a positive inflation_rate, balances and after-tax values are
    reported in today's dollars; contributions stay nominal.
    """
    monthly_rate = annual_return / 12
    pre_tax = start_balance
    roth = 0
    total_contributions = 0
    yearly_data = []

    for month in range(1, months + 1):
        pre_tax += monthly_pre_tax
        roth += monthly_roth
        total_contributions += monthly_pre_tax + monthly_roth
        pre_tax *= 1 + monthly_rate
        roth *= 1 + monthly_rate
        if month % 12 == 0:
            yearly_data.append(
                _snapshot(current_age + month // 12, pre_tax, roth, total_contributions, retirement_tax_rate,
                          (1 + inflation_rate) ** (month // 12))
            )

    final = _snapshot(current_age + months / 12, pre_tax, roth, total_contributions, retirement_tax_rate,
                      (1 + inflation_rate) ** (months / 12))
    return {
        "projected_balance": final["balance"],
        "total_contributions": total_contributions,
        "total_growth": final["balance"] - start_balance - total_contributions,
        "after_tax_value": final["after_tax_value"],
        "pre_tax_balance": pre_tax,
        "roth_balance": roth,
        "yearly_data": yearly_data,
    }


def project_tsp(current_balance=0, annual_salary=0, monthly_contribution_percent=0,
                current_age=0, retirement_age=0, allocation=None,
                current_tax_rate=0, retirement_tax_rate=0,
                fund_returns=DEFAULT_FUND_RETURNS, include_employer_match=False,
                include_automatic_1_percent=False, inflation_rate=0):
    """
    Project the TSP balance at retirement as both traditional and Roth.

    Traditional contributions go in pre-tax and every dollar is taxed at
    retirement_tax_rate on withdrawal. Roth employee contributions are paid
    after current_tax_rate, so only (1 - current rate) of the same paycheck
    deduction lands in the account, and they come out tax free. Agency
    contributions and the existing balance are pre-tax money in both cases.
    With equal tax rates the two after-tax values match.

    Agency money (automatic 1% and matching) is off unless requested.
    Ages are bounded to [0, MAX_PROJECTION_AGE]. inflation_rate (a fraction)
    above zero reports balances in today's dollars.

    Returns a dict with "traditional" and "roth" projections plus the inputs
    derived along the way. Never raises; a retirement age at or below the
    current age gives a zero-month horizon.
    """
    start_balance = max(0, to_finite_number(current_balance, 0))
    salary = max(0, to_finite_number(annual_salary, 0))
    employee_pct = max(0, to_finite_number(monthly_contribution_percent, 0))
    age_now = clamp_number(current_age, 0, MAX_PROJECTION_AGE, 0)
    retire_age = clamp_number(retirement_age, 0, MAX_PROJECTION_AGE, 0)
    current_rate = clamp_number(current_tax_rate, 0, 100, 0)
    retirement_rate = clamp_number(retirement_tax_rate, 0, 100, 0)

    years = max(0, retire_age - age_now)
    months = int(round(years * 12))

    monthly_contribution = salary * employee_pct / 100 / 12
    inflation = clamp_number(inflation_rate, 0, 1, 0)
    agency_pct = calculate_agency_contribution_percent(
        employee_pct, include_employer_match, include_automatic_1_percent
    )
    agency_contribution = salary * agency_pct / 100 / 12

    weighted_return = calculate_weighted_return(allocation, fund_returns)
    logger.debug(
        "TSP projection: %d months at %.4f blended return, $%.2f/month employee, $%.2f/month agency",
        months, weighted_return, monthly_contribution, agency_contribution
    )

    traditional = calculate_tsp_projection(
        start_balance,
        monthly_pre_tax=monthly_contribution + agency_contribution,
        monthly_roth=0,
        annual_return=weighted_return,
        months=months,
        current_age=age_now,
        retirement_tax_rate=retirement_rate,
        inflation_rate=inflation,
    )
    roth = calculate_tsp_projection(
        start_balance,
        monthly_pre_tax=agency_contribution,
        monthly_roth=monthly_contribution * (1 - current_rate / 100),
        annual_return=weighted_return,
        months=months,
        current_age=age_now,
        retirement_tax_rate=retirement_rate,
        inflation_rate=inflation,
    )

    return {
        "traditional": traditional,
        "roth": roth,
        "weighted_return": weighted_return,
        "monthly_contribution": monthly_contribution,
        "agency_contribution": agency_contribution,
        "years": years,
        "months": months,
    }


def validate_tsp_inputs(tsp):
    """Validate the TSP section of a scenario. Returns {field: message}."""
    errors = {}
    current_age = to_finite_number(tsp.get("currentAge"), None)
    retirement_age = to_finite_number(tsp.get("retirementAge"), None)
    if current_age is None or current_age < 0:
        errors["currentAge"] = "Current age must be a non-negative number."
    if retirement_age is None or retirement_age < 0:
        errors["retirementAge"] = "Retirement age must be a non-negative number."
    elif current_age is not None and retirement_age <= current_age:
        errors["retirementAge"] = "Retirement age must be greater than current age."
    for field, label in (("currentBalance", "Current TSP balance"),
                         ("annualSalary", "Annual salary"),
                         ("monthlyContributionPercent", "Contribution percent")):
        value = to_finite_number(tsp.get(field), None)
        if value is not None and value < 0:
            errors[field] = f"{label} cannot be negative."
    for field in ("currentTaxRate", "retirementTaxRate"):
        value = to_finite_number(tsp.get(field), None)
        if value is not None and not 0 <= value <= 100:
            errors[field] = "Tax rate must be between 0 and 100 percent."
    if tsp.get("contributionType", "traditional") not in ("traditional", "roth"):
        errors["contributionType"] = "Contribution type must be 'traditional' or 'roth'."
    if tsp.get("valueMode", "nominal") not in ("nominal", "real"):
        errors["valueMode"] = "Value mode must be 'nominal' or 'real'."
    return errors


def yearly_data_frame(yearly_data):
    """Yearly snapshots as a DataFrame, one row per age."""
    return pd.DataFrame({
        "Age": [point["year"] for point in yearly_data],
        "Balance": [point["balance"] for point in yearly_data],
        "After_Tax_Value": [point["after_tax_value"] for point in yearly_data],
        "Contributions": [point["contributions"] for point in yearly_data],
    })
