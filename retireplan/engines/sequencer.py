"""Year-by-year projection driver.

Each year starts from the prior year's ending balances, resolves the
withdrawal/tax fixed point, grows what remains and appends an immutable
YearRecord. MAGI is remembered for the two-year IRMAA lookback.
"""

import logging
from decimal import Decimal

from retireplan.engines.allocation import effective_returns
from retireplan.engines.brackets import build_year_tables
from retireplan.engines.heirs import HeirValueCalculator
from retireplan.engines.rmd import RMDResolver
from retireplan.engines.solver import YearConvergenceSolver, YearInputs
from retireplan.engines.tax import TaxCalculator
from retireplan.exceptions import InvalidYearRangeError
from retireplan.models.enums import ConvergenceStatus, FilingStatus
from retireplan.models.params import Parameters
from retireplan.models.records import (
    AccountBalances,
    InheritanceProjection,
    ScenarioResult,
    ScenarioSummary,
    YearRecord,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


class ProjectionSequencer:
    """Runs a full projection for one parameter set."""

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.calculator = TaxCalculator()
        self.rmd_resolver = RMDResolver()
        self.heir_calculator = HeirValueCalculator(self.rmd_resolver)

    def project(self, params: Parameters) -> ScenarioResult:
        self.warnings = []
        records = self._run(params, params.start_year, params.end_year)
        self.warnings.extend(self.heir_calculator.check_split(params.heirs))
        summary = self.summarize(params, records)
        if summary.first_conversion_capped_year is not None:
            self.warnings.append(
                f"Roth conversions capped by IRA balance starting {summary.first_conversion_capped_year}"
            )
        if summary.shortfall_years:
            self.warnings.append(
                "Expenses not fully funded in: "
                + ", ".join(str(y) for y in summary.shortfall_years)
            )
        return ScenarioResult(
            parameters=params,
            records=records,
            summary=summary,
            warnings=list(self.warnings),
        )

    def project_range(self, params: Parameters, start_year: int, end_year: int) -> list[YearRecord]:
        """Records for ``start_year``..``end_year``; earlier plan years are simulated but not returned."""
        if end_year < start_year:
            raise InvalidYearRangeError(start_year, end_year)
        if start_year < params.start_year:
            raise InvalidYearRangeError(
                start_year, end_year, f"plan starts in {params.start_year}"
            )
        if end_year > params.end_year:
            raise InvalidYearRangeError(start_year, end_year, f"plan ends in {params.end_year}")
        self.warnings = []
        records = self._run(params, params.start_year, end_year)
        return [r for r in records if r.year >= start_year]

    def _run(self, params: Parameters, first_year: int, last_year: int) -> list[YearRecord]:
        if last_year < first_year:
            raise InvalidYearRangeError(first_year, last_year)

        solver = YearConvergenceSolver(
            calculator=self.calculator,
            max_iterations=params.max_iterations,
            epsilon=params.convergence_epsilon,
            iterative=params.iterative_tax,
        )
        self._warn_unused_schedules(params, first_year, last_year)

        balances = AccountBalances(
            after_tax=params.after_tax_start,
            ira=params.ira_start,
            roth=params.roth_start,
            cost_basis=params.after_tax_cost_basis,
        )
        magi_history: dict[int, Decimal] = {
            first_year - 2: params.magi_two_years_prior,
            first_year - 1: params.magi_prior_year,
        }
        cumulative_tax = ZERO
        cumulative_irmaa = ZERO
        cumulative_gains = ZERO
        cumulative_expenses = ZERO
        records: list[YearRecord] = []

        for year in range(first_year, last_year + 1):
            age = params.age_in(year)
            years_from_start = year - first_year
            survivor = params.is_survivor_year(year)
            filing_status = FilingStatus.SINGLE if survivor else params.filing_status
            people = 1 if survivor or filing_status == FilingStatus.SINGLE else params.household_size

            social_security = (
                params.social_security_monthly * 12 * (ONE + params.ss_cola) ** years_from_start
            )
            if year in params.expense_overrides:
                expenses = params.expense_overrides[year]
            else:
                expenses = params.annual_expenses * (ONE + params.expense_inflation) ** years_from_start
                if survivor:
                    expenses *= params.survivor.expense_percent
            if survivor:
                social_security *= params.survivor.ss_percent

            tables = build_year_tables(
                year,
                filing_status,
                base_year=params.bracket_base_year,
                inflation=params.bracket_inflation,
                age=age,
            )
            rmd = self.rmd_resolver.resolve(age, balances.ira)

            lookback = magi_history.get(year - 2, ZERO)
            irmaa = self.calculator.compute_irmaa(lookback, tables.irmaa_tiers, people)
            irmaa_total = irmaa.total if age >= params.medicare_start_age else ZERO

            solved = solver.solve(
                YearInputs(
                    year=year,
                    balances=balances,
                    tables=tables,
                    social_security=social_security,
                    expenses=expenses,
                    irmaa=irmaa_total,
                    rmd_required=rmd.required,
                    conversion_requested=params.roth_conversions.get(year, ZERO),
                    harvest_requested=params.capital_gains_harvest.get(year, ZERO),
                    other_ordinary_income=params.other_ordinary_income,
                    state_tax_rate=params.state_tax_rate,
                    exempt_ss=params.exempt_ss_from_tax,
                )
            )
            wf = solved.waterfall
            tax = solved.tax

            at_return, ira_return, roth_return = effective_returns(params, balances)
            after_tax_eoy = max(wf.after_tax_remaining * (ONE + at_return), ZERO)
            ira_eoy = max(wf.ira_remaining * (ONE + ira_return), ZERO)
            roth_eoy = max(wf.roth_remaining * (ONE + roth_return), ZERO)
            total_eoy = after_tax_eoy + ira_eoy + roth_eoy

            heir_value, heir_details = self.heir_calculator.calculate(
                after_tax_eoy, ira_eoy, roth_eoy, params
            )

            magi_history[year] = tax.magi
            cumulative_tax += tax.total_tax
            cumulative_irmaa += irmaa_total
            cumulative_gains += tax.capital_gains
            cumulative_expenses += expenses

            records.append(
                YearRecord(
                    year=year,
                    age=age,
                    years_from_start=years_from_start,
                    is_survivor=survivor,
                    filing_status=filing_status,
                    after_tax_boy=balances.after_tax,
                    ira_boy=balances.ira,
                    roth_boy=balances.roth,
                    total_boy=balances.total,
                    cost_basis_boy=balances.cost_basis,
                    after_tax_eoy=after_tax_eoy,
                    ira_eoy=ira_eoy,
                    roth_eoy=roth_eoy,
                    total_eoy=total_eoy,
                    cost_basis_eoy=wf.cost_basis_remaining,
                    after_tax_return=at_return,
                    ira_return=ira_return,
                    roth_return=roth_return,
                    social_security=social_security,
                    taxable_social_security=tax.taxable_social_security,
                    expenses=expenses,
                    ordinary_income=tax.ordinary_income,
                    capital_gains=tax.capital_gains,
                    standard_deduction=tax.standard_deduction,
                    taxable_ordinary_income=tax.taxable_ordinary_income,
                    magi=tax.magi,
                    federal_tax=tax.federal_tax,
                    ltcg_tax=tax.ltcg_tax,
                    niit=tax.niit,
                    state_tax=tax.state_tax,
                    total_tax=tax.total_tax,
                    effective_rate=tax.effective_rate,
                    irmaa_lookback_magi=lookback,
                    irmaa_tier=irmaa.tier,
                    irmaa_part_b=irmaa.part_b if irmaa_total else ZERO,
                    irmaa_part_d=irmaa.part_d if irmaa_total else ZERO,
                    irmaa_total=irmaa_total,
                    after_tax_withdrawal=wf.after_tax_withdrawal,
                    ira_withdrawal=wf.ira_withdrawal,
                    roth_withdrawal=wf.roth_withdrawal,
                    total_withdrawal=wf.total_withdrawal,
                    rmd_surplus=wf.rmd_surplus,
                    shortfall=wf.shortfall,
                    rmd_factor=rmd.factor,
                    rmd_required=rmd.required,
                    rmd_status=rmd.status,
                    roth_conversion_requested=wf.conversion_requested,
                    roth_conversion=wf.conversion_actual,
                    conversion_capped=wf.conversion_capped,
                    harvest_amount=wf.harvest_amount,
                    harvest_gains=wf.harvest_gains,
                    heir_value=heir_value,
                    heir_details=heir_details,
                    roth_percent=roth_eoy / total_eoy if total_eoy > ZERO else ZERO,
                    cumulative_tax=cumulative_tax,
                    cumulative_irmaa=cumulative_irmaa,
                    cumulative_capital_gains=cumulative_gains,
                    cumulative_expenses=cumulative_expenses,
                    iterations=solved.iterations,
                    convergence_status=solved.status,
                )
            )

            balances = AccountBalances(
                after_tax=after_tax_eoy,
                ira=ira_eoy,
                roth=roth_eoy,
                cost_basis=wf.cost_basis_remaining,
            )

        self.warnings.extend(solver.warnings)
        return records

    def _warn_unused_schedules(self, params: Parameters, first_year: int, last_year: int) -> None:
        for label, schedule in (
            ("Roth conversion", params.roth_conversions),
            ("Expense override", params.expense_overrides),
            ("Capital gains harvest", params.capital_gains_harvest),
        ):
            outside = sorted(y for y in schedule if y < first_year or y > last_year)
            if outside:
                self.warnings.append(
                    f"{label} scheduled outside {first_year}-{last_year} ignored: "
                    + ", ".join(str(y) for y in outside)
                )

    def summarize(self, params: Parameters, records: list[YearRecord]) -> ScenarioSummary:
        first = records[0]
        last = records[-1]
        starting_heir_value, _ = self.heir_calculator.calculate(
            first.after_tax_boy, first.ira_boy, first.roth_boy, params
        )
        peak = max(records, key=lambda r: r.total_eoy)

        requested = sum((r.roth_conversion_requested for r in records), ZERO)
        actual = sum((r.roth_conversion for r in records), ZERO)
        capped_years = [r.year for r in records if r.conversion_capped]
        feasibility = actual / requested * HUNDRED if requested > ZERO else HUNDRED

        return ScenarioSummary(
            start_year=first.year,
            end_year=last.year,
            starting_portfolio=first.total_boy,
            ending_portfolio=last.total_eoy,
            starting_heir_value=starting_heir_value,
            ending_heir_value=last.heir_value,
            total_tax=last.cumulative_tax,
            total_irmaa=last.cumulative_irmaa,
            total_expenses=last.cumulative_expenses,
            final_roth_percent=last.roth_percent,
            peak_portfolio=peak.total_eoy,
            peak_year=peak.year,
            shortfall_years=[r.year for r in records if r.shortfall > ZERO],
            non_converged_years=[
                r.year for r in records
                if r.convergence_status == ConvergenceStatus.MAX_ITERATIONS_REACHED
            ],
            total_conversion_requested=requested,
            total_conversion_actual=actual,
            conversion_feasibility_percent=feasibility,
            is_fully_feasible=not capped_years,
            first_conversion_capped_year=capped_years[0] if capped_years else None,
            inheritance=self._project_inheritance(params, last),
        )

    def _project_inheritance(
        self, params: Parameters, last: YearRecord
    ) -> list[InheritanceProjection]:
        projections = []
        for heir in params.heirs:
            split = heir.split_percent / HUNDRED
            projections.append(
                self.heir_calculator.project_inheritance(
                    heir,
                    last.after_tax_eoy * split,
                    last.ira_eoy * split,
                    last.roth_eoy * split,
                    inheritance_year=last.year + 1,
                    owner_death_age=last.age,
                    strategy=params.heir_distribution_strategy,
                    normalization_years=params.heir_normalization_years,
                )
            )
        return projections


def project(params: Parameters) -> ScenarioResult:
    return ProjectionSequencer().project(params)


def project_range(params: Parameters, start_year: int, end_year: int) -> list[YearRecord]:
    return ProjectionSequencer().project_range(params, start_year, end_year)
