import pytest

from fers_pension import (
    IMMEDIATE_FULL_MESSAGE,
    NOT_ELIGIBLE_MESSAGE,
    calculate_fers_eligibility,
    calculate_fers_multiplier,
    calculate_fers_results,
    calculate_mra10_reduction_percent,
    evaluate_fers_regular_eligibility,
    find_earliest_fers_immediate_retirement_age,
    validate_fers_inputs,
)

BASE = {"years_of_service": 20, "high3_salary": 85000, "current_age": 42, "retirement_age": 62}


def test_enhanced_multiplier_at_62_with_20_years():
    result = calculate_fers_results(**BASE)
    assert result["multiplier"] == 0.011
    assert result["annual_pension"] == pytest.approx(18700)
    assert result["monthly_pension"] == pytest.approx(18700 / 12)
    assert result["lifetime_pension"] == pytest.approx(18700 * 23)
    assert result["is_eligible"] is True
    assert result["eligibility_message"] == IMMEDIATE_FULL_MESSAGE


def test_multiplier_threshold_is_exact():
    assert calculate_fers_results(**dict(BASE, retirement_age=61))["multiplier"] == 0.01
    assert calculate_fers_results(**dict(BASE, years_of_service=19, months_of_service=11))["multiplier"] == 0.01
    assert calculate_fers_multiplier(61.99, 30) == 0.01
    assert calculate_fers_multiplier(62, 19.99) == 0.01
    assert calculate_fers_multiplier(62, 20) == 0.011


def test_months_of_service_count_as_fractional_years():
    result = calculate_fers_results(**dict(BASE, years_of_service=10, months_of_service=6))
    assert result["total_years"] == pytest.approx(10.5)
    assert result["annual_pension"] == pytest.approx(85000 * 10.5 * 0.01)


def test_future_service_extends_years():
    result = calculate_fers_results(**dict(BASE, years_of_service=10, include_future_service=True))
    assert result["total_years"] == 10
    assert result["projected_years"] == 30
    assert result["multiplier"] == 0.011


def test_lifetime_pension_never_negative():
    result = calculate_fers_results(**dict(BASE, retirement_age=90))
    assert result["lifetime_pension"] == 0


@pytest.mark.parametrize("age, years, eligible", [
    (62, 5, True),
    (60, 20, True),
    (57, 30, True),
    (61, 19, False),
    (59, 29, False),
    (56, 30, False),
    (62, 4.9, False),
])
def test_immediate_eligibility_rules(age, years, eligible):
    is_eligible, message = calculate_fers_eligibility(age, years)
    assert is_eligible is eligible
    assert message == (IMMEDIATE_FULL_MESSAGE if eligible else NOT_ELIGIBLE_MESSAGE)


def test_mra_is_configurable():
    assert calculate_fers_eligibility(56, 30, mra=56)[0] is True
    assert calculate_fers_results(**dict(BASE, retirement_age=56, years_of_service=30), mra=56)["is_eligible"]


def test_earliest_age_when_already_eligible():
    assert find_earliest_fers_immediate_retirement_age(62, 5) == 62
    assert find_earliest_fers_immediate_retirement_age(60, 20) == 60


def test_earliest_age_searches_forward():
    # 60/20 is met at 60 before MRA/30 would be
    assert find_earliest_fers_immediate_retirement_age(45, 15) == 60
    # MRA/30 at 57 with 32 years
    assert find_earliest_fers_immediate_retirement_age(50, 25) == 57
    # 62/5 for a late starter
    assert find_earliest_fers_immediate_retirement_age(58, 0) == 63


def test_earliest_age_not_found_within_bound():
    assert find_earliest_fers_immediate_retirement_age(55, 0, max_age_to_check=61) is None
    assert find_earliest_fers_immediate_retirement_age(85, 0) is None


def test_earliest_age_invalid_inputs():
    assert find_earliest_fers_immediate_retirement_age("abc", 10) is None
    assert find_earliest_fers_immediate_retirement_age(45, None) is None
    assert find_earliest_fers_immediate_retirement_age(0, 10) is None


def test_deferred_comparison_uses_standard_multiplier():
    result = calculate_fers_results(**BASE, show_comparison=True)
    deferred = result["deferred"]
    assert deferred["deferred_pension"] == pytest.approx(85000 * 20 * 0.01)
    assert deferred["mra"] == 57
    assert deferred["lifetime_deferred"] == pytest.approx(17000 * (85 - 57))


def test_break_even_age():
    # stay: 20 * 85000 + 18700 * 23 = 2,130,100
    # leave: 20 * 85000 + 17000 * 28 = 2,176,000
    # (2,176,000 - 2,130,100) / (18700 - 17000) = 27 years after 62
    result = calculate_fers_results(**BASE, show_comparison=True)
    assert result["total_lifetime_earnings"] == pytest.approx(2130100)
    assert result["deferred"]["total_lifetime_earnings"] == pytest.approx(2176000)
    assert result["deferred"]["break_even_age"] == pytest.approx(89)


def test_break_even_zero_when_undefined():
    assert calculate_fers_results(**dict(BASE, high3_salary=0), show_comparison=True)["deferred"]["break_even_age"] == 0
    # stay pension smaller than deferred pension
    result = calculate_fers_results(**dict(BASE, years_of_service=5, retirement_age=50), show_comparison=True)
    assert result["deferred"]["break_even_age"] == 0


def test_deferred_assumptions_are_parameters():
    result = calculate_fers_results(**BASE, show_comparison=True, deferred_years_assumption=10, pension_end_age=80)
    assert result["deferred"]["deferred_pension"] == pytest.approx(8500)
    assert result["deferred"]["lifetime_deferred"] == pytest.approx(8500 * 23)
    assert result["lifetime_pension"] == pytest.approx(18700 * 18)


def test_no_comparison_by_default():
    assert calculate_fers_results(**BASE)["deferred"] is None


def test_regular_eligibility_mra10():
    detail = evaluate_fers_regular_eligibility(58, 12)
    assert detail["is_eligible_immediate_mra10"] is True
    assert detail["is_eligible_immediate_unreduced"] is False
    assert "20.0%" in detail["messages"][0]
    assert calculate_mra10_reduction_percent(58) == 20
    assert calculate_mra10_reduction_percent(62) == 0


def test_regular_eligibility_deferred_and_none():
    assert evaluate_fers_regular_eligibility(45, 8)["is_eligible_deferred"] is True
    detail = evaluate_fers_regular_eligibility(45, 3)
    assert detail["is_eligible_deferred"] is False
    assert detail["is_eligible_immediate"] is False


def test_results_are_idempotent():
    assert calculate_fers_results(**BASE, show_comparison=True) == calculate_fers_results(**BASE, show_comparison=True)


def test_validate_fers_inputs():
    assert validate_fers_inputs({"currentAge": 42, "retirementAge": 62, "yearsOfService": 20,
                                 "monthsOfService": 0, "high3Salary": 85000}) == {}
    errors = validate_fers_inputs({"currentAge": 42, "retirementAge": 40, "yearsOfService": -1,
                                   "monthsOfService": 12, "high3Salary": 85000})
    assert set(errors) == {"retirementAge", "yearsOfService", "monthsOfService"}


def test_earliest_age_with_late_mra_keeps_current_age():
    assert find_earliest_fers_immediate_retirement_age(60, 20, mra=61) == 60
    assert find_earliest_fers_immediate_retirement_age(58, 18, mra=62) == 60
