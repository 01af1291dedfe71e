"""Projection and tax-resolution engines."""

from retireplan.engines.heirs import HeirValueCalculator
from retireplan.engines.optimizer import ScenarioOptimizer
from retireplan.engines.rmd import RMDResolver
from retireplan.engines.sequencer import ProjectionSequencer, project, project_range
from retireplan.engines.solver import YearConvergenceSolver
from retireplan.engines.tax import TaxCalculator
from retireplan.engines.waterfall import WithdrawalWaterfall

__all__ = [
    "HeirValueCalculator",
    "ProjectionSequencer",
    "RMDResolver",
    "ScenarioOptimizer",
    "TaxCalculator",
    "WithdrawalWaterfall",
    "YearConvergenceSolver",
    "project",
    "project_range",
]
