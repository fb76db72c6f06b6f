"""
report.py
---------
Arrange computed scenario results into a paginated retirement report and a
spreadsheet export. The report is a plain document structure (pages of
positioned blocks) that any renderer can draw; nothing here draws.
"""

import datetime as dt
import logging
import textwrap
from io import BytesIO

import pandas as pd

from analysis_utils import to_finite_number
from config import (
    APP_NAME,
    DEFAULT_MRA,
    DEFAULT_PENSION_END_AGE,
    DEFAULT_SAFE_WITHDRAWAL_RATE,
    HEADER_HEIGHT_MM,
    PAGE_HEIGHT_MM,
    PAGE_MARGIN_MM,
    PAGE_WIDTH_MM,
    REPORT_DISCLAIMER,
    REPORT_TITLE,
)
from tsp_projection import yearly_data_frame

logger = logging.getLogger(__name__)

# Approximate glyph width at body size, used to wrap text to a column width
CHAR_WIDTH_MM = 1.9
FOOTER_OFFSET_MM = 12
CHART_HEIGHT_MM = 95


def format_money(amount):
    """Whole-dollar USD, e.g. $18,700 or -$1,250"""
    n = to_finite_number(amount, 0)
    text = f"${abs(n):,.0f}"
    return f"-{text}" if round(n) < 0 else text


def safe_text(value):
    """Collapse whitespace; None becomes an empty string"""
    if value is None:
        return ""
    return " ".join(str(value).split())


def _or_dash(value):
    return "—" if value is None or value == "" else safe_text(value)


def build_report_data(results, generated_at=None):
    """
    Flatten a run_scenario() result bundle into the fields the report shows.
    This dict is the shape handed to any external renderer.
    """
    scenario = results["scenario"]
    tsp_inputs = scenario.get("tsp") or {}
    fers_inputs = scenario.get("fers") or {}
    fire_inputs = scenario.get("fire") or {}

    selected_tsp = results["selected_tsp"]
    fers = results["fers"]
    fire = results["fire"]
    ss = results["social_security"]
    swr = to_finite_number(results.get("safe_withdrawal_rate"), DEFAULT_SAFE_WITHDRAWAL_RATE)

    tsp_balance = selected_tsp["projected_balance"]
    total_annual_income = fers["annual_pension"] + tsp_balance * swr + ss["monthly"] * 12
    salary = to_finite_number(tsp_inputs.get("annualSalary"), 0)
    income_replacement_pct = round(total_annual_income / salary * 100) if salary > 0 else None

    return {
        "scenario_name": scenario.get("name") or "Scenario",
        "generated_at": generated_at or dt.datetime.now().strftime("%Y-%m-%d %H:%M"),
        "total_net_worth_at_retirement": tsp_balance + fers["lifetime_pension"],
        "total_annual_income_estimate": total_annual_income,
        "income_replacement_pct": income_replacement_pct,
        "swr": swr,
        "pension_end_age": results.get("pension_end_age", DEFAULT_PENSION_END_AGE),
        "social_security_mode": ss["mode"],
        "social_security_claiming_age": ss["claiming_age"],
        "social_security_monthly": ss["monthly"],
        "tsp_value_mode": tsp_inputs.get("valueMode", "nominal"),
        "tsp_inflation_rate": tsp_inputs.get("inflationRate", 0),
        "tsp_current_age": tsp_inputs.get("currentAge"),
        "tsp_retirement_age": tsp_inputs.get("retirementAge"),
        "tsp_current_balance": tsp_inputs.get("currentBalance"),
        "tsp_annual_salary": tsp_inputs.get("annualSalary"),
        "tsp_employee_contribution_pct": tsp_inputs.get("monthlyContributionPercent"),
        "tsp_allocation": dict(tsp_inputs.get("allocation") or {}),
        "tsp_contribution_type": results.get("selected_tsp_type", "traditional"),
        "tsp_projected_balance": tsp_balance,
        "tsp_total_contributions": selected_tsp["total_contributions"],
        "tsp_total_growth": selected_tsp["total_growth"],
        "fers_current_age": fers_inputs.get("currentAge"),
        "planned_retirement_age": fers_inputs.get("retirementAge"),
        "fers_projected_years_of_service": round(fers["projected_years"], 2),
        "fers_high3_salary": fers_inputs.get("high3Salary"),
        "fers_multiplier": fers["multiplier"],
        "fers_eligibility_messages": list(results["fers_eligibility"]["messages"]),
        "pension_annual": fers["annual_pension"],
        "pension_monthly": fers["monthly_pension"],
        "pension_lifetime_value": fers["lifetime_pension"],
        "mra": results.get("mra", DEFAULT_MRA),
        "earliest_fers_immediate_age": results.get("earliest_fers_immediate_age"),
        "desired_fire_age": fire_inputs.get("desiredFireAge"),
        "projected_fire_age": fire["projected_fire_age"],
        "fire_income_goal_monthly": fire["fire_income_goal"],
        "tsp_monthly_withdrawal": fire["tsp_monthly_withdrawal"],
        "monthly_income_before_pension": fire["monthly_income_before_pension"],
        "monthly_gap_at_desired_age": fire["monthly_gap_at_desired_age"],
        "bridge_years_to_bridge": fire["bridge"]["years_to_bridge"],
        "bridge_required_assets": fire["bridge"]["required_bridge_assets"],
    }


class ReportDocument:
    """
    Page/cursor bookkeeping for an A4 portrait report, in millimetres.

    Every page after the cover starts with a header; a block that would run
    past the bottom margin moves to a fresh page. Footers are added once all
    pages exist so they can say "Page i of n".
    """

    def __init__(self, title, scenario_name):
        self.title = title
        self.scenario_name = scenario_name
        self.pages = []
        self.y = 0
        self.left = PAGE_MARGIN_MM
        self.right = PAGE_MARGIN_MM
        self.usable_bottom = PAGE_HEIGHT_MM - PAGE_MARGIN_MM

    @property
    def content_width(self):
        return PAGE_WIDTH_MM - self.left - self.right

    def add_page(self, with_header=True):
        header = {"title": self.title, "scenario_name": self.scenario_name} if with_header else None
        self.pages.append({"number": len(self.pages) + 1, "header": header, "blocks": [], "footer": None})
        self.y = PAGE_MARGIN_MM + HEADER_HEIGHT_MM if with_header else PAGE_MARGIN_MM
        return self.pages[-1]

    def ensure_space(self, needed_mm):
        if self.y + needed_mm > self.usable_bottom:
            self.add_page()

    def _place(self, block):
        block["y"] = self.y
        self.pages[-1]["blocks"].append(block)

    def wrap(self, text, width_mm):
        width_chars = max(10, int(width_mm / CHAR_WIDTH_MM))
        return textwrap.wrap(safe_text(text), width_chars) or [""]

    def cover_title(self, text):
        self.y = 22
        self._place({"type": "cover_title", "text": safe_text(text), "x": self.left})

    def text(self, text, line_height=4.5, style="body"):
        for line in self.wrap(text, self.content_width):
            self.ensure_space(line_height)
            self._place({"type": "text", "style": style, "text": line, "x": self.left})
            self.y += line_height

    def section_title(self, title):
        self.ensure_space(10)
        self._place({"type": "section_title", "text": safe_text(title), "x": self.left})
        self.y += 9

    def key_value_table(self, rows, label_width=70, line_height=5):
        value_x = self.left + label_width
        value_width = PAGE_WIDTH_MM - self.right - value_x
        for label, value in rows:
            label, value = safe_text(label), safe_text(value)
            if not label and not value:
                continue
            lines = self.wrap(value, value_width)
            self.ensure_space(max(8, line_height * len(lines) + 1.5))
            self._place({
                "type": "key_value", "label": label, "value_lines": lines,
                "x": self.left, "value_x": value_x, "height": line_height * len(lines),
            })
            self.y += line_height * len(lines) + 1.5

    def bullets(self, items, line_height=4.5):
        for item in items:
            if not item:
                continue
            lines = self.wrap(f"• {safe_text(item)}", self.content_width - 3)
            self.ensure_space(max(6, line_height * len(lines) + 1))
            self._place({"type": "bullet", "lines": lines, "x": self.left + 3, "height": line_height * len(lines)})
            self.y += line_height * len(lines) + 1

    def image(self, label, image_ref):
        self.ensure_space(CHART_HEIGHT_MM + 18)
        self._place({
            "type": "image", "label": safe_text(label), "image": image_ref,
            "x": self.left, "width": self.content_width, "height": CHART_HEIGHT_MM,
        })
        self.y += CHART_HEIGHT_MM + 16

    def finish(self, disclaimer=None):
        page_count = len(self.pages)
        for page in self.pages:
            page["footer"] = {
                "left": f"{APP_NAME} — Educational use only",
                "right": f"Page {page['number']} of {page_count}",
                "disclaimer_lines": self.wrap(disclaimer, self.content_width) if disclaimer else [],
                "y": PAGE_HEIGHT_MM - FOOTER_OFFSET_MM,
            }
        return {
            "properties": {
                "title": f"{self.title} - {self.scenario_name}",
                "subject": "Retirement summary report",
                "author": APP_NAME,
            },
            "page_width_mm": PAGE_WIDTH_MM,
            "page_height_mm": PAGE_HEIGHT_MM,
            "pages": self.pages,
        }


def assemble_report(report_data, detail_level="detailed", include_charts=False, chart_images=None):
    """
    Lay out the report: cover, executive summary, assumptions, one page per
    module (TSP, FERS, FIRE & bridge), timeline, and an optional charts page.
    chart_images maps "pension_vs_tsp" / "net_worth" to renderer image refs.
    """
    d = report_data
    detailed = detail_level == "detailed"
    doc = ReportDocument(REPORT_TITLE, safe_text(d.get("scenario_name") or "Scenario"))
    swr = to_finite_number(d.get("swr"), DEFAULT_SAFE_WITHDRAWAL_RATE)

    # Cover
    doc.add_page(with_header=False)
    doc.cover_title("Retirement Report")
    doc.y = 32
    doc.text(f"Scenario: {doc.scenario_name}", line_height=7)
    doc.text(f"Generated: {safe_text(d.get('generated_at'))}", line_height=7)
    doc.y = 60
    doc.section_title("Overview")
    doc.bullets([
        "Total net worth at retirement (TSP + pension value proxy): "
        f"{format_money(d.get('total_net_worth_at_retirement'))}",
        f"Estimated annual retirement income (pension + {round(swr * 100)}% TSP withdrawal + Social Security): "
        f"{format_money(d.get('total_annual_income_estimate'))}",
        f"Planned retirement age: {_or_dash(d.get('planned_retirement_age'))}",
        f"Projected FIRE age: {_or_dash(d.get('projected_fire_age'))}",
    ])
    doc.y += 4
    doc.text(REPORT_DISCLAIMER)

    doc.add_page()
    doc.section_title("Executive Summary")
    replacement = d.get("income_replacement_pct")
    doc.key_value_table([
        ("Total net worth at retirement", format_money(d.get("total_net_worth_at_retirement"))),
        ("TSP projected balance", format_money(d.get("tsp_projected_balance"))),
        ("Estimated pension (monthly)", format_money(d.get("pension_monthly"))),
        ("Estimated pension (annual)", format_money(d.get("pension_annual"))),
        ("Social Security (monthly)", format_money(d.get("social_security_monthly"))),
        ("Estimated annual retirement income", format_money(d.get("total_annual_income_estimate"))),
        ("Income replacement (approx.)", f"{replacement}%" if replacement is not None else "—"),
    ])
    messages = d.get("fers_eligibility_messages") or []
    if messages:
        doc.y += 2
        doc.section_title("FERS Eligibility (simplified)")
        doc.bullets(messages)

    doc.add_page()
    doc.section_title("Assumptions & Sources")
    doc.key_value_table([
        ("Safe withdrawal rate (SWR)", f"{swr * 100:.1f}%"),
        ("Pension end age (life expectancy proxy)", _or_dash(d.get("pension_end_age"))),
        ("Social Security mode", _or_dash(d.get("social_security_mode"))),
        ("Social Security claiming age", _or_dash(d.get("social_security_claiming_age"))),
        ("TSP value mode", _or_dash(d.get("tsp_value_mode"))),
        ("TSP inflation rate (if real mode used)", f"{to_finite_number(d.get('tsp_inflation_rate'), 0)}%"),
    ], label_width=82)
    doc.y += 2
    doc.bullets([
        "TSP projections are simplified and do not include all IRS rules, taxes, or withdrawal sequencing.",
        "FERS eligibility and reductions are simplified; FEHB nuances are not fully modeled.",
        "Social Security estimates are user-configured or a coarse heuristic; verify on SSA.gov.",
        "Always validate with official resources: TSP.gov and OPM retirement services.",
    ])

    doc.add_page()
    doc.section_title("TSP Module")
    contribution = d.get("tsp_employee_contribution_pct")
    doc.key_value_table([
        ("Current age", d.get("tsp_current_age")),
        ("Retirement age", d.get("tsp_retirement_age")),
        ("Current balance", format_money(d.get("tsp_current_balance"))),
        ("Annual salary", format_money(d.get("tsp_annual_salary"))),
        ("Employee contribution", f"{contribution}%" if contribution is not None else "—"),
        ("Projected balance", format_money(d.get("tsp_projected_balance"))),
        ("Total contributions", format_money(d.get("tsp_total_contributions"))),
        ("Total growth (est.)", format_money(d.get("tsp_total_growth"))),
    ])
    allocation = d.get("tsp_allocation")
    if detailed and allocation:
        doc.y += 2
        doc.bullets([
            "Allocation: " + ", ".join(f"{fund} {allocation.get(fund, 0)}%" for fund in ("G", "F", "C", "S", "I")),
            f"Contribution type: {safe_text(d.get('tsp_contribution_type') or 'traditional')}",
        ])

    doc.add_page()
    doc.section_title("FERS Module")
    multiplier = d.get("fers_multiplier")
    doc.key_value_table([
        ("Current age", d.get("fers_current_age")),
        ("Planned retirement age", d.get("planned_retirement_age")),
        ("Years of service (projected)", d.get("fers_projected_years_of_service")),
        ("High-3 salary", format_money(d.get("fers_high3_salary"))),
        ("Multiplier (simplified)", f"{multiplier * 100:.2f}%" if multiplier is not None else "—"),
        ("Annual pension", format_money(d.get("pension_annual"))),
        ("Monthly pension", format_money(d.get("pension_monthly"))),
        ("Lifetime pension value proxy", format_money(d.get("pension_lifetime_value"))),
    ], label_width=78)

    doc.add_page()
    doc.section_title("FIRE & Bridge")
    doc.key_value_table([
        ("Desired FIRE age", d.get("desired_fire_age")),
        ("Projected FIRE age", _or_dash(d.get("projected_fire_age"))),
        ("FIRE income goal (monthly)", format_money(d.get("fire_income_goal_monthly"))),
        ("TSP withdrawal (monthly)", format_money(d.get("tsp_monthly_withdrawal"))),
        ("Income before pension (monthly)", format_money(d.get("monthly_income_before_pension"))),
        ("Gap at desired age (monthly)", format_money(d.get("monthly_gap_at_desired_age"))),
        ("Bridge years (until pension starts)", d.get("bridge_years_to_bridge")),
        ("Bridge assets needed (simple)", format_money(d.get("bridge_required_assets"))),
    ], label_width=90)

    doc.add_page()
    doc.section_title("Timeline")
    current_age = d.get("tsp_current_age")
    doc.key_value_table([
        ("Current age", current_age if current_age is not None else d.get("fers_current_age")),
        ("MRA (assumed)", _or_dash(d.get("mra"))),
        ("Earliest immediate FERS retirement age (est.)", _or_dash(d.get("earliest_fers_immediate_age"))),
        ("Planned retirement age", _or_dash(d.get("planned_retirement_age"))),
        ("Desired FIRE age", _or_dash(d.get("desired_fire_age"))),
        ("Social Security claiming age", _or_dash(d.get("social_security_claiming_age"))),
    ], label_width=95)
    if detailed:
        doc.y += 2
        doc.bullets([
            "Milestones to consider: age 60, 62, and your MRA.",
            "Eligibility is simplified; confirm with your agency/OPM for your specific case.",
        ])

    chart_images = chart_images or {}
    if include_charts and (chart_images.get("pension_vs_tsp") or chart_images.get("net_worth")):
        doc.add_page()
        doc.section_title("Charts")
        if chart_images.get("pension_vs_tsp"):
            doc.image("Pension vs TSP Share", chart_images["pension_vs_tsp"])
        if chart_images.get("net_worth"):
            doc.image("Net Worth Growth", chart_images["net_worth"])

    document = doc.finish(disclaimer=REPORT_DISCLAIMER)
    logger.debug("Report for %r assembled with %d pages", doc.scenario_name, len(document["pages"]))
    return document


def to_excel(results, diff=None):
    """Export summary, yearly TSP balances and an optional scenario diff to Excel bytes"""
    report_data = build_report_data(results)
    summary_rows = [
        (key, ", ".join(value) if isinstance(value, list) else value)
        for key, value in report_data.items()
        if not isinstance(value, dict)
    ]

    output = BytesIO()
    writer = pd.ExcelWriter(output, engine='xlsxwriter')
    pd.DataFrame(summary_rows, columns=["Field", "Value"]).to_excel(writer, sheet_name='Summary', index=False)
    yearly_data_frame(results["tsp"]["traditional"]["yearly_data"]).to_excel(
        writer, sheet_name='TSP_Traditional', index=False
    )
    yearly_data_frame(results["tsp"]["roth"]["yearly_data"]).to_excel(
        writer, sheet_name='TSP_Roth', index=False
    )
    if diff:
        pd.DataFrame(
            [(entry["path"], entry["label"], str(entry["from"]), str(entry["to"])) for entry in diff],
            columns=["Path", "Label", "From", "To"],
        ).to_excel(writer, sheet_name='Scenario_Diff', index=False)
    writer.close()
    return output.getvalue()
