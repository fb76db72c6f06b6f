"""
config.py
---------
Default assumptions for the retirement projection engine.

Rates are fractions unless the name says percent. Everything here can be
overridden through the keyword arguments of the calculators.
"""

from types import MappingProxyType

APP_NAME = "FireFed"

FUND_CODES = ("G", "F", "C", "S", "I")

# Ages above this are treated as this age by the projections
MAX_PROJECTION_AGE = 120

# Long-run expected annual returns per TSP fund
DEFAULT_FUND_RETURNS = MappingProxyType({
    "G": 0.02,  # Government securities, stable value
    "F": 0.03,  # Fixed income index
    "C": 0.07,  # Tracks S&P 500
    "S": 0.08,  # Small/mid cap index
    "I": 0.06,  # International stocks
})

# Coarse annualized volatility per fund, used by the Monte Carlo analytics
FUND_STDDEV = MappingProxyType({
    "G": 0.01,
    "F": 0.05,
    "C": 0.16,
    "S": 0.18,
    "I": 0.17,
})

# FERS
DEFAULT_MRA = 57
DEFAULT_PENSION_END_AGE = 85
DEFERRED_YEARS_ASSUMPTION = 20
MAX_AGE_TO_CHECK = 80
STANDARD_MULTIPLIER = 0.01
ENHANCED_MULTIPLIER = 0.011

# FIRE
DEFAULT_SAFE_WITHDRAWAL_RATE = 0.04
SAFE_WITHDRAWAL_RATE_PRESETS = (0.03, 0.035, 0.04)

# Social Security
DEFAULT_SS_CLAIMING_AGE = 67
DEFAULT_SS_PERCENT_OF_SALARY = 30

# Scenario storage format
SCENARIO_SCHEMA_VERSION = 2

DEFAULTS = {
    "tsp": {
        "currentBalance": 50000,
        "currentAge": 35,
        "retirementAge": 62,
        "monthlyContributionPercent": 10,
        "annualSalary": 80000,
        "annualSalaryGrowthRate": 3,
        "includeEmployerMatch": True,
        "includeAutomatic1Percent": True,
        "annualEmployeeDeferralLimit": 23500,
        "annualCatchUpLimit": 7500,
        "catchUpAge": 50,
        "inflationRate": 2.5,
        "valueMode": "nominal",
        "allocation": {"G": 10, "F": 20, "C": 40, "S": 20, "I": 10},
        "contributionType": "traditional",
        "currentTaxRate": 22,
        "retirementTaxRate": 15,
        "showComparison": False,
    },
    "fers": {
        "yearsOfService": 20,
        "monthsOfService": 0,
        "high3Salary": 85000,
        "retirementAge": 62,
        "currentAge": 42,
    },
    "fire": {
        "desiredFireAge": 55,
        "monthlyFireIncomeGoal": 6000,
        "sideHustleIncome": 500,
        "spouseIncome": 4000,
    },
    "summary": {
        "monthlyExpenses": 4000,
        "socialSecurity": {
            "mode": "not_configured",  # not_configured | estimate | manual
            "claimingAge": DEFAULT_SS_CLAIMING_AGE,
            "monthlyBenefit": 0,
            "percentOfSalary": DEFAULT_SS_PERCENT_OF_SALARY,
        },
        "assumptions": {
            "pensionEndAge": DEFAULT_PENSION_END_AGE,
            "safeWithdrawalRate": DEFAULT_SAFE_WITHDRAWAL_RATE,
        },
    },
}

# Monte Carlo
MC_DEFAULT_SIMULATIONS = 750
MC_MIN_SIMULATIONS = 100
MC_DEFAULT_END_AGE = 95
MC_RETURN_CLIP = 0.65

# Report layout (millimetres, A4 portrait)
PAGE_WIDTH_MM = 210
PAGE_HEIGHT_MM = 297
PAGE_MARGIN_MM = 15
HEADER_HEIGHT_MM = 14
REPORT_TITLE = f"{APP_NAME} Retirement Report"
REPORT_DISCLAIMER = (
    "These estimates are educational and simplified. Always verify with official "
    "resources (TSP.gov / OPM) and consider professional advice."
)
