"""Projection input models."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from retireplan.models.enums import FilingStatus, HeirDistributionStrategy, ReturnMode


class SurvivorEvent(BaseModel):
    """Death of one spouse: filing status drops to SINGLE from death_year onward."""

    model_config = ConfigDict(frozen=True)

    death_year: int
    ss_percent: Decimal = Decimal("0.67")
    expense_percent: Decimal = Decimal("0.70")


class Heir(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    state: str = "IL"
    agi: Decimal = Decimal("150000")
    split_percent: Decimal = Decimal("100")
    expected_return: Decimal = Decimal("0.06")
    birth_year: int = 1990
    distribution_strategy: HeirDistributionStrategy | None = None  # None -> plan default


class Parameters(BaseModel):
    """Complete input set for one projection run.

    Balances, incomes and expenses are nominal dollars; rates are decimal
    fractions (0.06 == 6%). Sparse schedules are keyed by calendar year.
    """

    model_config = ConfigDict(frozen=True)

    # Timeline
    start_year: int = 2025
    end_year: int = 2054
    birth_year: int = 1960
    filing_status: FilingStatus = FilingStatus.MFJ
    household_size: int = 2
    bracket_base_year: int = 2024

    # Starting balances
    after_tax_start: Decimal = Decimal("1500000")
    ira_start: Decimal = Decimal("3000000")
    roth_start: Decimal = Decimal("2000000")
    after_tax_cost_basis: Decimal = Decimal("500000")

    # Returns
    return_mode: ReturnMode = ReturnMode.BLENDED
    after_tax_return: Decimal = Decimal("0.04")
    ira_return: Decimal = Decimal("0.06")
    roth_return: Decimal = Decimal("0.08")
    low_risk_target: Decimal = Decimal("2500000")
    mod_risk_target: Decimal = Decimal("2500000")
    low_risk_return: Decimal = Decimal("0.04")
    mod_risk_return: Decimal = Decimal("0.06")
    high_risk_return: Decimal = Decimal("0.08")

    # Income and expenses
    social_security_monthly: Decimal = Decimal("4000")
    ss_cola: Decimal = Decimal("0.025")
    annual_expenses: Decimal = Decimal("120000")
    expense_inflation: Decimal = Decimal("0.03")
    other_ordinary_income: Decimal = Decimal("0")

    # Tax settings
    state_tax_rate: Decimal = Decimal("0.0495")
    bracket_inflation: Decimal = Decimal("0.03")
    exempt_ss_from_tax: bool = False
    medicare_start_age: int = 65

    # Sparse yearly schedules
    roth_conversions: dict[int, Decimal] = Field(default_factory=dict)
    expense_overrides: dict[int, Decimal] = Field(default_factory=dict)
    capital_gains_harvest: dict[int, Decimal] = Field(default_factory=dict)

    # MAGI for the two years before start_year (IRMAA lookback)
    magi_two_years_prior: Decimal = Decimal("0")
    magi_prior_year: Decimal = Decimal("0")

    survivor: SurvivorEvent | None = None

    # Heirs
    heir_federal_rate: Decimal = Decimal("0.32")
    heir_state_rate: Decimal = Decimal("0.0495")
    heirs: list[Heir] = Field(default_factory=list)
    heir_distribution_strategy: HeirDistributionStrategy = HeirDistributionStrategy.RMD_BASED
    heir_normalization_years: int = 10

    # Solver
    iterative_tax: bool = True
    max_iterations: int = 5
    convergence_epsilon: Decimal = Decimal("1")

    discount_rate: Decimal = Decimal("0.03")

    def is_survivor_year(self, year: int) -> bool:
        return self.survivor is not None and year >= self.survivor.death_year

    def age_in(self, year: int) -> int:
        return year - self.birth_year
