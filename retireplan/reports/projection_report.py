"""Projection summary report generator."""

from decimal import Decimal
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from retireplan.formatting import DEFAULT_FORMAT, FormatConfig, format_currency, format_percent
from retireplan.models.records import ScenarioResult
from retireplan.reports.export import projection_rows

TEMPLATE_DIR = Path(__file__).parent / "templates"

REPORT_FIELDS = [
    "year", "age", "total_boy", "expenses", "ira_withdrawal", "roth_conversion",
    "total_tax", "irmaa_total", "total_eoy", "roth_percent", "heir_value",
]


class ProjectionReportGenerator:
    """Generates a plain-text projection report."""

    def __init__(self, config: FormatConfig = DEFAULT_FORMAT) -> None:
        self.config = config
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))
        self.env.filters["currency"] = lambda v: format_currency(v, config)
        self.env.filters["percent"] = lambda v: format_percent(v, config)

    def render(
        self,
        result: ScenarioResult,
        present_value_rate: Decimal | None = None,
    ) -> str:
        """Render the projection report."""
        rows = projection_rows(result, REPORT_FIELDS, present_value_rate, self.config)
        widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
        table = [
            "  ".join(cell.rjust(width) for cell, width in zip(row, widths))
            for row in rows
        ]
        template = self.env.get_template("projection_report.txt")
        return template.render(
            result=result,
            summary=result.summary,
            table=table,
            present_value_rate=present_value_rate,
        )
