import math

import pytest

from tsp_projection import (
    allocation_weights,
    calculate_agency_contribution_percent,
    calculate_matching_percent,
    calculate_weighted_return,
    project_tsp,
    validate_tsp_inputs,
    yearly_data_frame,
)

DEFAULT_ALLOCATION = {"G": 10, "F": 20, "C": 40, "S": 20, "I": 10}


def _params(**overrides):
    params = {
        "current_balance": 50000,
        "annual_salary": 80000,
        "monthly_contribution_percent": 10,
        "current_age": 40,
        "retirement_age": 45,
        "allocation": DEFAULT_ALLOCATION,
        "current_tax_rate": 22,
        "retirement_tax_rate": 15,
    }
    params.update(overrides)
    return params


def test_zero_horizon_returns_current_balance():
    result = project_tsp(**_params(retirement_age=40))
    for variant in ("traditional", "roth"):
        assert result[variant]["projected_balance"] == 50000
        assert result[variant]["total_contributions"] == 0
        assert result[variant]["total_growth"] == 0
        assert result[variant]["yearly_data"] == []
    assert result["months"] == 0


def test_retirement_before_current_age_is_zero_horizon():
    result = project_tsp(**_params(retirement_age=30))
    assert result["months"] == 0
    assert result["traditional"]["projected_balance"] == 50000


def test_weighted_return_full_allocation():
    # 0.1*2% + 0.2*3% + 0.4*7% + 0.2*8% + 0.1*6%
    assert calculate_weighted_return(DEFAULT_ALLOCATION) == pytest.approx(0.058)
    assert calculate_weighted_return({"G": 100}) == pytest.approx(0.02)


def test_weighted_return_partial_and_negative_weights():
    assert calculate_weighted_return({"C": 50}) == pytest.approx(0.07)
    assert calculate_weighted_return({"C": 100, "G": -50, "F": "abc"}) == pytest.approx(0.07)
    assert calculate_weighted_return({}) == 0.0
    assert allocation_weights({"G": 0, "C": -1}) is None


def test_substitute_fund_returns():
    returns = {"G": 0.0, "F": 0.0, "C": 0.10, "S": 0.0, "I": 0.0}
    assert calculate_weighted_return({"C": 50, "G": 50}, returns) == pytest.approx(0.05)


def test_contributions_only_without_growth():
    result = project_tsp(**_params(
        current_balance=0, annual_salary=12000, monthly_contribution_percent=10,
        retirement_age=41, allocation={},
    ))
    traditional = result["traditional"]
    assert result["monthly_contribution"] == pytest.approx(100)
    assert traditional["projected_balance"] == pytest.approx(1200)
    assert traditional["total_contributions"] == pytest.approx(1200)
    assert traditional["total_growth"] == pytest.approx(0)
    assert [point["year"] for point in traditional["yearly_data"]] == [41]


def test_monthly_growth_uses_simple_monthly_rate():
    result = project_tsp(**_params(
        current_balance=1000, annual_salary=0, retirement_age=41, allocation={"G": 100},
    ))
    assert result["traditional"]["projected_balance"] == pytest.approx(1000 * (1 + 0.02 / 12) ** 12)


def test_yearly_snapshots_cover_each_year():
    result = project_tsp(**_params(current_age=40, retirement_age=43))
    ages = [point["year"] for point in result["traditional"]["yearly_data"]]
    assert ages == [41, 42, 43]
    balances = [point["balance"] for point in result["traditional"]["yearly_data"]]
    assert balances == sorted(balances)
    assert balances[-1] == pytest.approx(result["traditional"]["projected_balance"])


def test_growth_identity():
    traditional = project_tsp(**_params())["traditional"]
    assert traditional["total_growth"] == pytest.approx(
        traditional["projected_balance"] - 50000 - traditional["total_contributions"]
    )


def test_equal_tax_rates_make_traditional_and_roth_equal():
    result = project_tsp(**_params(current_tax_rate=22, retirement_tax_rate=22, include_employer_match=True))
    assert result["traditional"]["after_tax_value"] == pytest.approx(result["roth"]["after_tax_value"])
    for trad_point, roth_point in zip(result["traditional"]["yearly_data"], result["roth"]["yearly_data"]):
        assert trad_point["after_tax_value"] == pytest.approx(roth_point["after_tax_value"])


def test_lower_retirement_tax_rate_favours_traditional():
    result = project_tsp(**_params(current_tax_rate=24, retirement_tax_rate=12))
    assert result["traditional"]["after_tax_value"] > result["roth"]["after_tax_value"]


def test_employer_match():
    assert calculate_matching_percent(2) == 2
    assert calculate_matching_percent(4) == 3.5
    assert calculate_matching_percent(5) == 4
    assert calculate_matching_percent(10) == 4
    assert calculate_agency_contribution_percent(5) == 5
    assert calculate_agency_contribution_percent(5, include_employer_match=False) == 1
    assert calculate_agency_contribution_percent(5, include_automatic_1_percent=False) == 4
    assert calculate_agency_contribution_percent(5, include_employer_match=False, include_automatic_1_percent=False) == 0

    without = project_tsp(**_params())["traditional"]["projected_balance"]
    with_match = project_tsp(**_params(include_employer_match=True))["traditional"]["projected_balance"]
    assert with_match > without


def test_malformed_inputs_do_not_produce_nan():
    result = project_tsp(
        current_balance="abc", annual_salary=None, monthly_contribution_percent=float("nan"),
        current_age="", retirement_age="x", allocation=None,
    )
    assert result["traditional"]["projected_balance"] == 0
    assert result["roth"]["after_tax_value"] == 0


def test_projection_is_idempotent():
    assert project_tsp(**_params()) == project_tsp(**_params())


def test_validate_tsp_inputs():
    assert validate_tsp_inputs({"currentAge": 35, "retirementAge": 62}) == {}
    errors = validate_tsp_inputs({
        "currentAge": 50, "retirementAge": 45, "annualSalary": -1,
        "currentTaxRate": 120, "contributionType": "hsa",
    })
    assert set(errors) == {"retirementAge", "annualSalary", "currentTaxRate", "contributionType"}


def test_yearly_data_frame():
    df = yearly_data_frame(project_tsp(**_params())["traditional"]["yearly_data"])
    assert list(df.columns) == ["Age", "Balance", "After_Tax_Value", "Contributions"]
    assert len(df) == 5


def test_out_of_range_ages_stay_finite():
    result = project_tsp(**_params(retirement_age=15000, allocation={"S": 100}, retirement_tax_rate=100))
    # Ages are capped at 120
    assert result["months"] == (120 - 40) * 12
    for variant in ("traditional", "roth"):
        projection = result[variant]
        for key in ("projected_balance", "total_growth", "after_tax_value"):
            assert math.isfinite(projection[key])
        assert projection["yearly_data"][-1]["year"] == 120


def test_huge_current_age_is_zero_horizon():
    result = project_tsp(**_params(current_age=1e9, retirement_age=1e12))
    assert result["months"] == 0
    assert result["traditional"]["projected_balance"] == 50000


def test_automatic_1_percent_is_optional():
    params = _params(current_balance=0, annual_salary=12000, monthly_contribution_percent=0,
                     retirement_age=41, allocation={})
    assert project_tsp(**params)["traditional"]["projected_balance"] == pytest.approx(0)
    with_automatic = project_tsp(**params, include_automatic_1_percent=True)
    assert with_automatic["agency_contribution"] == pytest.approx(10)
    assert with_automatic["traditional"]["projected_balance"] == pytest.approx(120)


def test_real_value_mode_deflates_balances():
    nominal = project_tsp(**_params(current_balance=1000, annual_salary=0, retirement_age=42, allocation={"G": 100}))
    real = project_tsp(**_params(current_balance=1000, annual_salary=0, retirement_age=42, allocation={"G": 100},
                                 inflation_rate=0.02))
    assert real["traditional"]["projected_balance"] == pytest.approx(
        nominal["traditional"]["projected_balance"] / 1.02 ** 2
    )
    assert real["traditional"]["yearly_data"][0]["balance"] == pytest.approx(
        nominal["traditional"]["yearly_data"][0]["balance"] / 1.02
    )
    assert real["roth"]["after_tax_value"] < nominal["roth"]["after_tax_value"]


def test_validate_value_mode():
    assert validate_tsp_inputs({"currentAge": 35, "retirementAge": 62, "valueMode": "real"}) == {}
    assert "valueMode" in validate_tsp_inputs({"currentAge": 35, "retirementAge": 62, "valueMode": "future"})
