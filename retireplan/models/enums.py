"""Enumerations for the retirement projection engine."""

from enum import StrEnum


class FilingStatus(StrEnum):
    SINGLE = "SINGLE"
    MFJ = "MARRIED_FILING_JOINTLY"


class ReturnMode(StrEnum):
    ACCOUNT = "ACCOUNT"  # fixed rate per account
    BLENDED = "BLENDED"  # risk-band allocation across the whole portfolio


class HeirDistributionStrategy(StrEnum):
    RMD_BASED = "rmd_based"
    LUMP_SUM_YEAR0 = "lump_sum_year0"


class RMDStatus(StrEnum):
    NOT_REQUIRED = "NOT_REQUIRED"
    REQUIRED = "REQUIRED"


class ConvergenceStatus(StrEnum):
    INITIAL = "INITIAL"
    ITERATING = "ITERATING"
    CONVERGED = "CONVERGED"
    MAX_ITERATIONS_REACHED = "MAX_ITERATIONS_REACHED"
    SINGLE_PASS = "SINGLE_PASS"


class Objective(StrEnum):
    MAX_HEIR_VALUE = "MAX_HEIR_VALUE"
    MIN_LIFETIME_TAX = "MIN_LIFETIME_TAX"
    MAX_PORTFOLIO = "MAX_PORTFOLIO"
    TARGET_ROTH_PERCENT = "TARGET_ROTH_PERCENT"


class CandidateKind(StrEnum):
    NONE = "NONE"
    SINGLE_YEAR = "SINGLE_YEAR"
    MULTI_YEAR_EVEN = "MULTI_YEAR_EVEN"
    FRONT_LOADED = "FRONT_LOADED"
