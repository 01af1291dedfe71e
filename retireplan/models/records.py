"""Projection output models."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from retireplan.models.enums import ConvergenceStatus, FilingStatus, RMDStatus
from retireplan.models.params import Parameters

ZERO = Decimal("0")


class TaxResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    filing_status: FilingStatus
    # Income
    social_security: Decimal
    taxable_social_security: Decimal
    ordinary_income: Decimal  # gross, before standard deduction
    capital_gains: Decimal
    standard_deduction: Decimal
    taxable_ordinary_income: Decimal
    magi: Decimal
    # Tax components
    federal_tax: Decimal
    ltcg_tax: Decimal
    niit: Decimal
    state_tax: Decimal
    total_tax: Decimal
    effective_rate: Decimal
    marginal_rate: Decimal


class IRMAAResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    lookback_magi: Decimal
    tier: int
    part_b: Decimal  # annual, all covered people
    part_d: Decimal
    total: Decimal
    people: int


class RMDResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    age: int
    factor: Decimal | None
    required: Decimal
    status: RMDStatus


class AccountBalances(BaseModel):
    model_config = ConfigDict(frozen=True)

    after_tax: Decimal
    ira: Decimal
    roth: Decimal
    cost_basis: Decimal

    @property
    def total(self) -> Decimal:
        return self.after_tax + self.ira + self.roth


class WaterfallResult(BaseModel):
    """Outcome of one pass of the withdrawal waterfall."""

    model_config = ConfigDict(frozen=True)

    cash_need: Decimal
    rmd_required: Decimal
    after_tax_withdrawal: Decimal
    ira_withdrawal: Decimal
    roth_withdrawal: Decimal
    total_withdrawal: Decimal
    rmd_surplus: Decimal  # RMD cash beyond need, reinvested after-tax
    shortfall: Decimal
    capital_gains: Decimal
    cost_basis_used: Decimal
    harvest_amount: Decimal
    harvest_gains: Decimal
    conversion_requested: Decimal
    conversion_actual: Decimal
    conversion_capped: bool
    after_tax_remaining: Decimal
    ira_remaining: Decimal
    roth_remaining: Decimal
    cost_basis_remaining: Decimal


class HeirDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    split: Decimal  # fraction, 0.5 == 50%
    state: str
    federal_rate: Decimal
    state_rate: Decimal
    combined_rate: Decimal
    gross_inheritance: Decimal
    ira_tax: Decimal
    net_value: Decimal


class InheritedDistribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    year_index: int
    heir_age: int
    factor: Decimal | None
    balance_start: Decimal
    distribution: Decimal
    balance_end: Decimal


class InheritanceYear(BaseModel):
    model_config = ConfigDict(frozen=True)

    year_index: int
    distribution: Decimal
    federal_tax: Decimal
    state_tax: Decimal
    net_distribution: Decimal
    marginal_rate: Decimal


class InheritanceProjection(BaseModel):
    heir: str
    strategy: str
    gross_ira: Decimal
    gross_after_tax: Decimal
    gross_roth: Decimal
    years: list[InheritanceYear]
    total_distributions: Decimal
    total_tax: Decimal
    normalization_years: int
    normalized_value: Decimal


class YearRecord(BaseModel):
    """Immutable per-year projection row."""

    model_config = ConfigDict(frozen=True)

    year: int
    age: int
    years_from_start: int
    is_survivor: bool
    filing_status: FilingStatus

    # Balances
    after_tax_boy: Decimal
    ira_boy: Decimal
    roth_boy: Decimal
    total_boy: Decimal
    cost_basis_boy: Decimal
    after_tax_eoy: Decimal
    ira_eoy: Decimal
    roth_eoy: Decimal
    total_eoy: Decimal
    cost_basis_eoy: Decimal
    after_tax_return: Decimal
    ira_return: Decimal
    roth_return: Decimal

    # Income
    social_security: Decimal
    taxable_social_security: Decimal
    expenses: Decimal
    ordinary_income: Decimal
    capital_gains: Decimal
    standard_deduction: Decimal
    taxable_ordinary_income: Decimal
    magi: Decimal

    # Tax
    federal_tax: Decimal
    ltcg_tax: Decimal
    niit: Decimal
    state_tax: Decimal
    total_tax: Decimal
    effective_rate: Decimal

    # IRMAA
    irmaa_lookback_magi: Decimal
    irmaa_tier: int
    irmaa_part_b: Decimal
    irmaa_part_d: Decimal
    irmaa_total: Decimal

    # Withdrawals
    after_tax_withdrawal: Decimal
    ira_withdrawal: Decimal
    roth_withdrawal: Decimal
    total_withdrawal: Decimal
    rmd_surplus: Decimal
    shortfall: Decimal

    # RMD
    rmd_factor: Decimal | None
    rmd_required: Decimal
    rmd_status: RMDStatus

    # Conversion and harvest
    roth_conversion_requested: Decimal
    roth_conversion: Decimal
    conversion_capped: bool
    harvest_amount: Decimal
    harvest_gains: Decimal

    # Heirs
    heir_value: Decimal
    heir_details: list[HeirDetail] = Field(default_factory=list)
    roth_percent: Decimal

    # Cumulative
    cumulative_tax: Decimal
    cumulative_irmaa: Decimal
    cumulative_capital_gains: Decimal
    cumulative_expenses: Decimal

    # Solver
    iterations: int
    convergence_status: ConvergenceStatus


class ScenarioSummary(BaseModel):
    start_year: int
    end_year: int
    starting_portfolio: Decimal
    ending_portfolio: Decimal
    starting_heir_value: Decimal
    ending_heir_value: Decimal
    total_tax: Decimal
    total_irmaa: Decimal
    total_expenses: Decimal
    final_roth_percent: Decimal
    peak_portfolio: Decimal
    peak_year: int
    shortfall_years: list[int] = Field(default_factory=list)
    non_converged_years: list[int] = Field(default_factory=list)
    total_conversion_requested: Decimal = ZERO
    total_conversion_actual: Decimal = ZERO
    conversion_feasibility_percent: Decimal = Decimal("100")
    is_fully_feasible: bool = True
    first_conversion_capped_year: int | None = None
    inheritance: list[InheritanceProjection] = Field(default_factory=list)


class ScenarioResult(BaseModel):
    parameters: Parameters
    records: list[YearRecord]
    summary: ScenarioSummary
    warnings: list[str] = Field(default_factory=list)

    def record_for(self, year: int) -> YearRecord | None:
        for record in self.records:
            if record.year == year:
                return record
        return None
