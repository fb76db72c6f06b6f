import copy
import datetime as dt
import json
import logging
import math
import numbers

from config import DEFAULTS, SCENARIO_SCHEMA_VERSION

logger = logging.getLogger(__name__)

# Fields shown when previewing a switch to another scenario, in display order
DIFF_FIELDS = (
    ("tsp.currentAge", "TSP: current age"),
    ("tsp.retirementAge", "TSP: retirement age"),
    ("tsp.currentBalance", "TSP: current balance"),
    ("tsp.monthlyContributionPercent", "TSP: contribution %"),
    ("tsp.annualSalary", "TSP: salary"),
    ("tsp.allocation", "TSP: fund allocation"),
    ("tsp.contributionType", "TSP: traditional vs Roth"),
    ("tsp.currentTaxRate", "TSP: current tax rate"),
    ("tsp.retirementTaxRate", "TSP: retirement tax rate"),
    ("tsp.valueMode", "TSP: real vs nominal"),
    ("fers.currentAge", "FERS: current age"),
    ("fers.retirementAge", "FERS: planned retirement age"),
    ("fers.yearsOfService", "FERS: years of service"),
    ("fers.monthsOfService", "FERS: months of service"),
    ("fers.high3Salary", "FERS: high-3"),
    ("fire.desiredFireAge", "FIRE: desired FIRE age"),
    ("fire.monthlyFireIncomeGoal", "FIRE: income goal (monthly)"),
    ("fire.sideHustleIncome", "FIRE: side hustle income (monthly)"),
    ("fire.spouseIncome", "FIRE: spouse income (monthly)"),
    ("summary.monthlyExpenses", "Summary: monthly expenses"),
    ("summary.assumptions.safeWithdrawalRate", "Assumptions: SWR"),
    ("summary.assumptions.pensionEndAge", "Assumptions: pension end age"),
    ("summary.socialSecurity.mode", "Social Security: mode"),
    ("summary.socialSecurity.claimingAge", "Social Security: claiming age"),
    ("summary.socialSecurity.monthlyBenefit", "Social Security: monthly benefit"),
    ("summary.socialSecurity.percentOfSalary", "Social Security: % of salary"),
)

SCENARIO_TEMPLATES = (
    {
        "id": "template_20s",
        "name": "Starter (20s)",
        "description": "Early career baseline with modest TSP savings and high growth runway.",
        "overrides": {
            "tsp": {"currentAge": 27, "retirementAge": 62, "currentBalance": 15000,
                    "annualSalary": 70000, "monthlyContributionPercent": 10},
            "fers": {"currentAge": 27, "retirementAge": 62, "yearsOfService": 2,
                     "monthsOfService": 0, "high3Salary": 70000},
            "fire": {"desiredFireAge": 50, "monthlyFireIncomeGoal": 5500},
            "summary": {"monthlyExpenses": 3500},
        },
    },
    {
        "id": "template_30s",
        "name": "Starter (30s)",
        "description": "Mid-career baseline: stronger salary, meaningful TSP base, and a realistic FIRE target.",
        "overrides": {
            "tsp": {"currentAge": 35, "retirementAge": 62, "currentBalance": 50000,
                    "annualSalary": 90000, "monthlyContributionPercent": 12},
            "fers": {"currentAge": 35, "retirementAge": 62, "yearsOfService": 8,
                     "monthsOfService": 0, "high3Salary": 90000},
            "fire": {"desiredFireAge": 55, "monthlyFireIncomeGoal": 6000},
            "summary": {"monthlyExpenses": 4200},
        },
    },
    {
        "id": "template_40s",
        "name": "Starter (40s)",
        "description": "Late mid-career: prioritize eligibility timing and bridge planning.",
        "overrides": {
            "tsp": {"currentAge": 45, "retirementAge": 62, "currentBalance": 160000,
                    "annualSalary": 115000, "monthlyContributionPercent": 15},
            "fers": {"currentAge": 45, "retirementAge": 62, "yearsOfService": 15,
                     "monthsOfService": 0, "high3Salary": 115000},
            "fire": {"desiredFireAge": 57, "monthlyFireIncomeGoal": 7000},
            "summary": {"monthlyExpenses": 5200},
        },
    },
    {
        "id": "template_50s",
        "name": "Starter (50s)",
        "description": "Pre-retirement: focus on earliest eligible age and near-term cashflow assumptions.",
        "overrides": {
            "tsp": {"currentAge": 55, "retirementAge": 62, "currentBalance": 350000,
                    "annualSalary": 140000, "monthlyContributionPercent": 15},
            "fers": {"currentAge": 55, "retirementAge": 62, "yearsOfService": 25,
                     "monthsOfService": 0, "high3Salary": 140000},
            "fire": {"desiredFireAge": 60, "monthlyFireIncomeGoal": 8000},
            "summary": {"monthlyExpenses": 6500},
        },
    },
)

_MISSING = object()


def _now_iso():
    return dt.datetime.now(dt.timezone.utc).isoformat()


def create_default_scenario(name="New Scenario"):
    """Build a new scenario populated with the default assumptions"""
    scenario = copy.deepcopy(DEFAULTS)
    scenario.update({
        "schemaVersion": SCENARIO_SCHEMA_VERSION,
        "id": str(int(dt.datetime.now().timestamp() * 1000)),
        "name": name,
        "createdAt": _now_iso(),
    })
    return scenario


def migrate_scenario_to_latest(scenario):
    """Bring an older stored scenario up to the current schema version"""
    if not isinstance(scenario, dict):
        return scenario

    s = dict(scenario)
    version = s.get("schemaVersion") or 0
    if not isinstance(version, numbers.Real) or isinstance(version, bool):
        version = 0

    # v0 -> v1: schemaVersion exists
    if version < 1:
        s["schemaVersion"] = 1
        version = 1

    # v1 -> v2: metadata with an updatedAt timestamp
    if version < 2:
        meta = dict(s.get("meta") or {})
        meta.setdefault("updatedAt", s.get("createdAt") or _now_iso())
        s["meta"] = meta
        s["schemaVersion"] = 2
        version = 2

    if version != SCENARIO_SCHEMA_VERSION:
        logger.warning("Scenario schema version %s reset to %s", version, SCENARIO_SCHEMA_VERSION)
        s["schemaVersion"] = SCENARIO_SCHEMA_VERSION
    return s


def _check_section(value, name):
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"Scenario section '{name}' must be an object, got {type(value).__name__}")


def _merge_section(base, override):
    merged = dict(base)
    merged.update(override or {})
    return merged


def normalize_scenario(scenario):
    """
    Migrate a scenario and fill every missing section or field from the defaults.
    Raises ValueError when the scenario or one of its sections is not a mapping.
    """
    if scenario is not None and not isinstance(scenario, dict):
        raise ValueError(f"Scenario must be an object, got {type(scenario).__name__}")
    migrated = migrate_scenario_to_latest(scenario) or {}
    for section in ("tsp", "fers", "fire", "summary"):
        _check_section(migrated.get(section), section)
    summary = migrated.get("summary") or {}
    for section in ("socialSecurity", "assumptions"):
        _check_section(summary.get(section), f"summary.{section}")
    base = create_default_scenario(migrated.get("name") or "Scenario")

    merged = dict(base)
    merged.update(migrated)
    merged["tsp"] = _merge_section(base["tsp"], migrated.get("tsp"))
    merged["fers"] = _merge_section(base["fers"], migrated.get("fers"))
    merged["fire"] = _merge_section(base["fire"], migrated.get("fire"))
    merged["summary"] = _merge_section(base["summary"], summary)
    merged["summary"]["socialSecurity"] = _merge_section(
        base["summary"]["socialSecurity"], summary.get("socialSecurity")
    )
    merged["summary"]["assumptions"] = _merge_section(
        base["summary"]["assumptions"], summary.get("assumptions")
    )
    if not merged.get("schemaVersion"):
        merged["schemaVersion"] = SCENARIO_SCHEMA_VERSION
    return copy.deepcopy(merged)


def get_scenario_templates():
    return list(SCENARIO_TEMPLATES)


def build_scenario_from_template(template_id, name=None):
    """New scenario from one of the starter templates. Raises ValueError for an unknown id."""
    template = next((t for t in SCENARIO_TEMPLATES if t["id"] == template_id), None)
    if template is None:
        raise ValueError(f"Unknown scenario template: {template_id}")

    base = create_default_scenario(name or template["name"])
    overrides = template["overrides"]
    scenario = dict(base)
    scenario["meta"] = {"templateId": template["id"], "updatedAt": _now_iso()}
    for section in ("tsp", "fers", "fire", "summary"):
        scenario[section] = _merge_section(base[section], overrides.get(section))
    return normalize_scenario(scenario)


def get_value_by_path(obj, path):
    """Walk a dotted path through nested dicts; _MISSING when any step is absent"""
    value = obj
    for key in path.split("."):
        if not isinstance(value, dict) or key not in value:
            return _MISSING
        value = value[key]
    return value


def _is_number(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def values_equal(a, b):
    """
    Type-aware equality for scenario values.

    Numbers compare numerically (85000 == 85000.0), booleans only with
    booleans, dicts key by key, lists element by element. A missing value
    only equals another missing value, so missing and 0 differ. NaN equals NaN.
    """
    if a is _MISSING or b is _MISSING:
        return a is b
    if _is_number(a) and _is_number(b):
        return a == b or (math.isnan(a) and math.isnan(b))
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(values_equal(a[key], b[key]) for key in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if type(a) is not type(b) and not (a is None or b is None):
        return False
    return a == b


def _display_value(value):
    return None if value is _MISSING else copy.deepcopy(value)


def get_scenario_diff(current, target, fields=DIFF_FIELDS):
    """
    Field-level differences between two scenario snapshots.

    Walks the tracked fields in declaration order and returns one entry
    {"path", "label", "from", "to"} per field whose values differ. A missing
    snapshot gives an empty list.
    """
    if not current or not target:
        return []

    diffs = []
    for path, label in fields:
        from_value = get_value_by_path(current, path)
        to_value = get_value_by_path(target, path)
        if not values_equal(from_value, to_value):
            diffs.append({
                "path": path,
                "label": label,
                "from": _display_value(from_value),
                "to": _display_value(to_value),
            })
    return diffs


def apply_scenario(current, target):
    """Replace the current scenario with the target, returning an independent copy"""
    if target is None:
        return copy.deepcopy(current)
    return copy.deepcopy(target)


def scenario_to_json(scenario):
    """Serialize a scenario to a JSON string"""
    return json.dumps(scenario, indent=2, sort_keys=False)


def scenario_from_json(text):
    """Parse and normalize a scenario from a JSON string"""
    return normalize_scenario(json.loads(text))
