"""Tabular export of projection records and summaries."""

import csv
from decimal import Decimal
from pathlib import Path
from typing import TextIO

from retireplan.engines.present_value import present_value
from retireplan.exceptions import UnknownFieldError
from retireplan.formatting import DEFAULT_FORMAT, FormatConfig, format_value
from retireplan.models.records import ScenarioResult, ScenarioSummary, YearRecord

# (field, column header)
PROJECTION_COLUMNS: list[tuple[str, str]] = [
    ("year", "Year"),
    ("age", "Age"),
    ("after_tax_boy", "After-Tax BOY"),
    ("ira_boy", "IRA BOY"),
    ("roth_boy", "Roth BOY"),
    ("total_boy", "Total BOY"),
    ("social_security", "Social Security"),
    ("expenses", "Expenses"),
    ("rmd_required", "RMD"),
    ("roth_conversion", "Roth Conversion"),
    ("after_tax_withdrawal", "After-Tax Withdrawal"),
    ("ira_withdrawal", "IRA Withdrawal"),
    ("roth_withdrawal", "Roth Withdrawal"),
    ("capital_gains", "Capital Gains"),
    ("ordinary_income", "Ordinary Income"),
    ("federal_tax", "Federal Tax"),
    ("ltcg_tax", "LTCG Tax"),
    ("niit", "NIIT"),
    ("state_tax", "State Tax"),
    ("total_tax", "Total Tax"),
    ("irmaa_total", "IRMAA"),
    ("after_tax_eoy", "After-Tax EOY"),
    ("ira_eoy", "IRA EOY"),
    ("roth_eoy", "Roth EOY"),
    ("total_eoy", "Total EOY"),
    ("roth_percent", "Roth %"),
    ("heir_value", "Heir Value"),
    ("cumulative_tax", "Cumulative Tax"),
    ("shortfall", "Shortfall"),
    ("convergence_status", "Solver"),
]

# Fields that are dollar amounts and can be discounted to present value
_NON_MONETARY = {
    "year", "age", "years_from_start", "is_survivor", "filing_status",
    "after_tax_return", "ira_return", "roth_return", "effective_rate",
    "irmaa_tier", "rmd_factor", "rmd_status", "conversion_capped",
    "roth_percent", "heir_details", "iterations", "convergence_status",
}

SUMMARY_LABELS: list[tuple[str, str]] = [
    ("starting_portfolio", "Starting Portfolio"),
    ("ending_portfolio", "Ending Portfolio"),
    ("starting_heir_value", "Starting Heir Value"),
    ("ending_heir_value", "Ending Heir Value"),
    ("total_tax", "Total Tax"),
    ("total_irmaa", "Total IRMAA"),
    ("total_expenses", "Total Expenses"),
    ("final_roth_percent", "Final Roth %"),
    ("peak_portfolio", "Peak Portfolio"),
    ("peak_year", "Peak Year"),
    ("total_conversion_requested", "Conversions Requested"),
    ("total_conversion_actual", "Conversions Actual"),
    ("conversion_feasibility_percent", "Conversion Feasibility %"),
    ("first_conversion_capped_year", "First Capped Year"),
]


def _columns(fields: list[str] | None) -> list[tuple[str, str]]:
    if fields is None:
        return PROJECTION_COLUMNS
    headers = dict(PROJECTION_COLUMNS)
    columns = []
    for name in fields:
        if name not in YearRecord.model_fields:
            raise UnknownFieldError(name)
        columns.append((name, headers.get(name, name)))
    return columns


def record_values(
    record: YearRecord,
    fields: list[str],
    present_value_rate: Decimal | None = None,
) -> dict[str, object]:
    """Raw values for ``fields``; monetary ones discounted when a rate is given."""
    values: dict[str, object] = {}
    for name in fields:
        value = getattr(record, name)
        if (
            present_value_rate is not None
            and name not in _NON_MONETARY
            and isinstance(value, Decimal)
        ):
            value = present_value(value, record.years_from_start, present_value_rate)
        values[name] = value
    return values


def projection_rows(
    result: ScenarioResult,
    fields: list[str] | None = None,
    present_value_rate: Decimal | None = None,
    config: FormatConfig | None = None,
) -> list[list[str]]:
    """Header row followed by one row per year.

    With ``config`` values are display-formatted, otherwise they are plain
    strings of the full-precision value.
    """
    columns = _columns(fields)
    names = [name for name, _ in columns]
    rows = [[header for _, header in columns]]
    for record in result.records:
        values = record_values(record, names, present_value_rate)
        if config is None:
            rows.append(["" if values[n] is None else str(values[n]) for n in names])
        else:
            rows.append([format_value(n, values[n], config) for n in names])
    return rows


def summary_rows(summary: ScenarioSummary, config: FormatConfig = DEFAULT_FORMAT) -> list[list[str]]:
    rows = [["Metric", "Value"]]
    for name, label in SUMMARY_LABELS:
        value = getattr(summary, name)
        if name == "conversion_feasibility_percent":
            text = f"{value:.1f}%"
        elif name in ("peak_year", "first_conversion_capped_year"):
            text = "" if value is None else str(value)
        else:
            text = format_value(name, value, config)
        rows.append([label, text])
    rows.append(["Fully Feasible", "Yes" if summary.is_fully_feasible else "No"])
    rows.append(["Shortfall Years", ", ".join(str(y) for y in summary.shortfall_years)])
    return rows


def write_csv(rows: list[list[str]], out: TextIO) -> None:
    writer = csv.writer(out)
    writer.writerows(rows)


def export_csv(
    result: ScenarioResult,
    path: Path,
    fields: list[str] | None = None,
    present_value_rate: Decimal | None = None,
) -> Path:
    """Write the projection table to ``path`` and return it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        write_csv(projection_rows(result, fields, present_value_rate), f)
    return path
