"""Report generation for retirement projections."""

from retireplan.reports.export import export_csv, projection_rows, summary_rows
from retireplan.reports.optimizer_report import OptimizerReportGenerator
from retireplan.reports.projection_report import ProjectionReportGenerator

__all__ = [
    "OptimizerReportGenerator",
    "ProjectionReportGenerator",
    "export_csv",
    "projection_rows",
    "summary_rows",
]
