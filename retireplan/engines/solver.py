"""Per-year withdrawal/tax fixed-point solver.

Withdrawals must cover taxes that depend on the withdrawals. Starting from a
zero tax estimate, each iteration sizes the cash need, runs the waterfall,
recomputes tax, and stops once total tax moves by less than epsilon.
"""

import logging
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from retireplan.engines.brackets import YearTaxTables
from retireplan.engines.tax import TaxCalculator
from retireplan.engines.waterfall import WithdrawalWaterfall
from retireplan.models.enums import ConvergenceStatus
from retireplan.models.records import AccountBalances, TaxResult, WaterfallResult

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class YearInputs(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    balances: AccountBalances
    tables: YearTaxTables
    social_security: Decimal
    expenses: Decimal
    irmaa: Decimal = ZERO
    rmd_required: Decimal = ZERO
    conversion_requested: Decimal = ZERO
    harvest_requested: Decimal = ZERO
    other_ordinary_income: Decimal = ZERO
    state_tax_rate: Decimal = ZERO
    exempt_ss: bool = False


class SolverResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    waterfall: WaterfallResult
    tax: TaxResult
    iterations: int
    status: ConvergenceStatus
    tax_history: list[Decimal] = Field(default_factory=list)


class YearConvergenceSolver:
    def __init__(
        self,
        calculator: TaxCalculator | None = None,
        waterfall: WithdrawalWaterfall | None = None,
        max_iterations: int = 5,
        epsilon: Decimal = Decimal("1"),
        iterative: bool = True,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.calculator = calculator or TaxCalculator()
        self.waterfall = waterfall or WithdrawalWaterfall()
        self.max_iterations = max_iterations
        self.epsilon = epsilon
        self.iterative = iterative
        self.warnings: list[str] = []

    def solve(self, inputs: YearInputs) -> SolverResult:
        status = ConvergenceStatus.INITIAL
        estimated_tax = ZERO
        history: list[Decimal] = []
        iterations = 0
        waterfall: WaterfallResult | None = None
        tax: TaxResult | None = None

        while iterations < self.max_iterations:
            iterations += 1
            status = ConvergenceStatus.ITERATING
            need = inputs.expenses + inputs.irmaa + estimated_tax - inputs.social_security
            waterfall = self.waterfall.allocate(
                need,
                inputs.balances,
                rmd_required=inputs.rmd_required,
                conversion_requested=inputs.conversion_requested,
                harvest_requested=inputs.harvest_requested,
            )
            tax = self.calculator.calculate(
                inputs.tables,
                ira_withdrawal=waterfall.ira_withdrawal,
                roth_conversion=waterfall.conversion_actual,
                social_security=inputs.social_security,
                capital_gains=waterfall.capital_gains + waterfall.harvest_gains,
                other_ordinary_income=inputs.other_ordinary_income,
                state_tax_rate=inputs.state_tax_rate,
                exempt_ss=inputs.exempt_ss,
            )
            history.append(tax.total_tax)
            logger.debug(
                "Year %s iteration %s: estimate=%s tax=%s",
                inputs.year, iterations, estimated_tax, tax.total_tax,
            )

            if not self.iterative:
                status = ConvergenceStatus.SINGLE_PASS
                break
            if abs(tax.total_tax - estimated_tax) < self.epsilon:
                status = ConvergenceStatus.CONVERGED
                break
            estimated_tax = tax.total_tax

        if status == ConvergenceStatus.ITERATING:
            status = ConvergenceStatus.MAX_ITERATIONS_REACHED
            message = (
                f"Year {inputs.year}: tax did not converge after "
                f"{iterations} iterations (last {history[-1]:.2f})"
            )
            logger.warning(message)
            self.warnings.append(message)

        return SolverResult(
            waterfall=waterfall,
            tax=tax,
            iterations=iterations,
            status=status,
            tax_history=history,
        )
