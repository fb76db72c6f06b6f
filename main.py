#!/usr/bin/env python
"""
FireFed command line

Run the TSP, FERS and FIRE projections for a saved scenario (or a starter
template) and print a summary. Optionally compare against another scenario,
export to Excel, or write the assembled report document as JSON.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from logging_config import setup_logging
from monte_carlo import run_monte_carlo_analytics
from optimizer import build_optimization_suggestions
from report import assemble_report, build_report_data, format_money, to_excel
from retirement_model import run_scenario
from scenario_manager import (
    build_scenario_from_template,
    create_default_scenario,
    get_scenario_diff,
    get_scenario_templates,
    normalize_scenario,
    scenario_from_json,
)

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="firefed", description="Federal retirement and FIRE projections")
    parser.add_argument("scenario", nargs="?", help="Scenario JSON file (defaults are used when omitted)")
    parser.add_argument("--template", help="Start from a starter template instead of a file")
    parser.add_argument("--list-templates", action="store_true", help="List starter templates and exit")
    parser.add_argument("--compare", help="Second scenario JSON file to diff against")
    parser.add_argument("--excel", help="Write summary and yearly TSP data to this .xlsx file")
    parser.add_argument("--report", help="Write the assembled report document to this .json file")
    parser.add_argument("--detail", choices=("summary", "detailed"), default="detailed",
                        help="Report detail level")
    parser.add_argument("--monte-carlo", type=int, metavar="N", help="Run N Monte Carlo simulations")
    parser.add_argument("--seed", type=int, help="Random seed for the Monte Carlo run")
    parser.add_argument("--optimize", action="store_true", help="Suggest plan changes for an earlier FIRE age")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--log-file", help="Also log to this file")
    return parser.parse_args(argv)


def load_scenario(path):
    """Read and normalize a scenario JSON file"""
    return scenario_from_json(Path(path).read_text(encoding="utf-8"))


def print_summary(results):
    data = build_report_data(results)
    fire = results["fire"]
    print(f"Scenario: {data['scenario_name']}")
    print(f"  TSP projected balance ({data['tsp_contribution_type']}): {format_money(data['tsp_projected_balance'])}")
    print(f"  FERS pension: {format_money(data['pension_monthly'])}/month "
          f"({data['fers_multiplier'] * 100:.1f}% multiplier)")
    print(f"  {results['fers']['eligibility_message']}")
    earliest = data["earliest_fers_immediate_age"]
    print(f"  Earliest immediate FERS retirement age: {earliest if earliest is not None else 'none by 80'}")
    if data["social_security_monthly"] > 0:
        print(f"  Social Security: {format_money(data['social_security_monthly'])}/month "
              f"from {data['social_security_claiming_age']}")
    print(f"  FIRE goal: {format_money(fire['fire_income_goal'])}/month, "
          f"gap at desired age: {format_money(fire['monthly_gap_at_desired_age'])}/month "
          f"(confidence {fire['confidence_level']})")
    projected = fire["projected_fire_age"]
    print(f"  Projected FIRE age: {projected if projected is not None else 'not reached'}")
    bridge = fire["bridge"]
    if bridge["years_to_bridge"] > 0:
        print(f"  Bridge: {bridge['years_to_bridge']} years, {format_money(bridge['required_bridge_assets'])} needed")
    for path, message in sorted(results["errors"].items()):
        print(f"  ! {path}: {message}")


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    setup_logging(debug=args.debug, log_file=args.log_file)

    if args.list_templates:
        for template in get_scenario_templates():
            print(f"{template['id']:<14} {template['name']}: {template['description']}")
        return 0

    try:
        if args.template:
            scenario = build_scenario_from_template(args.template)
        elif args.scenario:
            scenario = load_scenario(args.scenario)
        else:
            scenario = normalize_scenario(create_default_scenario("Default"))
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        logger.error("Could not load scenario: %s", e)
        print(f"Error: {e}")
        return 1

    results = run_scenario(scenario)
    print_summary(results)

    diff = None
    if args.compare:
        try:
            other = load_scenario(args.compare)
        except (OSError, ValueError) as e:
            logger.error("Could not load comparison scenario: %s", e)
            print(f"Error: {e}")
            return 1
        diff = get_scenario_diff(results["scenario"], other)
        print(f"\nChanges switching to {other.get('name')!r}: {len(diff)}")
        for entry in diff:
            print(f"  {entry['label']}: {entry['from']} -> {entry['to']}")

    if args.monte_carlo:
        mc = run_monte_carlo_analytics(
            results["scenario"],
            pension_monthly=results["fers"]["monthly_pension"],
            pension_start_age=results["scenario"]["fers"].get("retirementAge"),
            social_security_monthly=results["social_security"]["monthly"],
            social_security_start_age=results["social_security"]["claiming_age"],
            simulations=args.monte_carlo,
            random_seed=args.seed,
        )
        outcomes = mc["outcomes"]
        print(f"\nMonte Carlo ({mc['inputs']['simulations']} paths)")
        print(f"  P(FIRE by desired age): {outcomes['probability_fire_by_desired_age']:.0%}")
        print(f"  P(funds last to {mc['inputs']['end_age']}): {outcomes['probability_funds_last_to_end_age']:.0%}")

    if args.optimize:
        optimization = build_optimization_suggestions(results["scenario"])
        print("\nSuggestions")
        if not optimization["suggestions"]:
            print("  No change in the search grid gives an earlier FIRE age.")
        for suggestion in optimization["suggestions"]:
            print(f"  Retire at {suggestion['retirement_age']:g}, contribute {suggestion['contribution_pct']:g}%, "
                  f"spend {format_money(suggestion['monthly_expenses'])}/month "
                  f"-> FIRE at {suggestion['earliest_fire_age']:g}")

    if args.excel:
        Path(args.excel).write_bytes(to_excel(results, diff))
        print(f"\nExcel written to {args.excel}")

    if args.report:
        document = assemble_report(build_report_data(results), detail_level=args.detail)
        Path(args.report).write_text(json.dumps(document, indent=2), encoding="utf-8")
        print(f"Report written to {args.report} ({len(document['pages'])} pages)")

    return 0


if __name__ == "__main__":
    sys.exit(main())
