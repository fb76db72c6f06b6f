import copy
import os
import sys

import pytest

# Ensure project root is on sys.path before imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from scenario_manager import create_default_scenario, normalize_scenario  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: mark a test as a slow test")


@pytest.fixture
def scenario():
    """Default scenario, normalized, with a fixed id/timestamp for comparisons"""
    s = normalize_scenario(create_default_scenario("Baseline"))
    s["id"] = "baseline"
    s["createdAt"] = "2024-01-01T00:00:00+00:00"
    return s


@pytest.fixture
def other_scenario(scenario):
    s = copy.deepcopy(scenario)
    s["id"] = "other"
    s["name"] = "Other"
    return s
