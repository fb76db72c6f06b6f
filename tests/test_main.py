import json

import pytest

import main
from scenario_manager import scenario_to_json


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    # Keep pytest's own log capture handlers on the root logger
    monkeypatch.setattr(main, "setup_logging", lambda debug=False, log_file=None: None)


@pytest.fixture
def scenario_files(tmp_path, scenario, other_scenario):
    other_scenario["fers"]["high3Salary"] = 90000
    current = tmp_path / "current.json"
    other = tmp_path / "other.json"
    current.write_text(scenario_to_json(scenario), encoding="utf-8")
    other.write_text(scenario_to_json(other_scenario), encoding="utf-8")
    return current, other


def test_runs_default_scenario(capsys):
    assert main.main([]) == 0
    out = capsys.readouterr().out
    assert "Scenario: Default" in out
    assert "FERS pension:" in out
    assert "Projected FIRE age:" in out


def test_runs_template(capsys):
    assert main.main(["--template", "template_30s"]) == 0
    assert "Scenario: Starter (30s)" in capsys.readouterr().out


def test_list_templates(capsys):
    assert main.main(["--list-templates"]) == 0
    out = capsys.readouterr().out
    assert "template_20s" in out
    assert "template_50s" in out


def test_compare_prints_diff(scenario_files, capsys):
    current, other = scenario_files
    assert main.main([str(current), "--compare", str(other)]) == 0
    out = capsys.readouterr().out
    assert "Changes switching to 'Other': 1" in out
    assert "FERS: high-3: 85000 -> 90000" in out


def test_exports(scenario_files, tmp_path, capsys):
    current, other = scenario_files
    excel_path = tmp_path / "out.xlsx"
    report_path = tmp_path / "report.json"
    assert main.main([
        str(current), "--compare", str(other), "--excel", str(excel_path), "--report", str(report_path),
    ]) == 0
    assert excel_path.read_bytes()[:2] == b"PK"
    document = json.loads(report_path.read_text(encoding="utf-8"))
    assert len(document["pages"]) == 7


def test_monte_carlo_and_optimizer(scenario_files, capsys):
    current, _ = scenario_files
    assert main.main([str(current), "--monte-carlo", "100", "--seed", "5", "--optimize"]) == 0
    out = capsys.readouterr().out
    assert "Monte Carlo (100 paths)" in out
    assert "Suggestions" in out


def test_missing_file(tmp_path, capsys):
    assert main.main([str(tmp_path / "nope.json")]) == 1
    assert "Error:" in capsys.readouterr().out


def test_invalid_json(tmp_path, capsys):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert main.main([str(broken)]) == 1


def test_unknown_template(capsys):
    assert main.main(["--template", "template_90s"]) == 1
    assert "Unknown scenario template" in capsys.readouterr().out


def test_non_object_json(tmp_path, capsys):
    listed = tmp_path / "list.json"
    listed.write_text("[1, 2]", encoding="utf-8")
    assert main.main([str(listed)]) == 1
    assert "Scenario must be an object" in capsys.readouterr().out
