"""Roth conversion optimizer report generator."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from retireplan.engines.optimizer import OptimizationResult
from retireplan.formatting import DEFAULT_FORMAT, FormatConfig, format_currency, format_percent
from retireplan.models.enums import Objective

TEMPLATE_DIR = Path(__file__).parent / "templates"


class OptimizerReportGenerator:
    """Generates the ranked candidate report for an optimization run."""

    def __init__(self, config: FormatConfig = DEFAULT_FORMAT) -> None:
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))
        self.env.filters["currency"] = lambda v: format_currency(v, config)
        self.env.filters["percent"] = lambda v: format_percent(v, config)

    def render(self, result: OptimizationResult, top: int = 10) -> str:
        """Render optimizer report."""
        template = self.env.get_template("optimizer_report.txt")
        return template.render(
            result=result,
            candidates=result.candidates[:top],
            score_is_percent=result.objective == Objective.TARGET_ROTH_PERCENT,
        )
