"""Data models for the retirement projection engine."""

from retireplan.models.enums import (
    CandidateKind,
    ConvergenceStatus,
    FilingStatus,
    HeirDistributionStrategy,
    Objective,
    ReturnMode,
    RMDStatus,
)
from retireplan.models.params import Heir, Parameters, SurvivorEvent
from retireplan.models.records import (
    AccountBalances,
    HeirDetail,
    InheritanceProjection,
    InheritanceYear,
    InheritedDistribution,
    IRMAAResult,
    RMDResult,
    ScenarioResult,
    ScenarioSummary,
    TaxResult,
    WaterfallResult,
    YearRecord,
)

__all__ = [
    "AccountBalances",
    "CandidateKind",
    "ConvergenceStatus",
    "FilingStatus",
    "Heir",
    "HeirDetail",
    "HeirDistributionStrategy",
    "InheritanceProjection",
    "InheritanceYear",
    "InheritedDistribution",
    "IRMAAResult",
    "Objective",
    "Parameters",
    "ReturnMode",
    "RMDResult",
    "RMDStatus",
    "ScenarioResult",
    "ScenarioSummary",
    "SurvivorEvent",
    "TaxResult",
    "WaterfallResult",
    "YearRecord",
]
