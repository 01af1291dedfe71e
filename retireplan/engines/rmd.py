"""Required minimum distribution resolver.

Owner RMDs use the Uniform Lifetime table from RMD_START_AGE. Inherited IRAs
follow the SECURE Act 10-year rule, with annual Single Life Expectancy
distributions when the owner had already reached RMD age.
"""

from decimal import Decimal

from retireplan.engines.brackets import (
    INHERITED_IRA_WINDOW_YEARS,
    RMD_START_AGE,
    single_life_factor,
    uniform_lifetime_factor,
)
from retireplan.models.enums import HeirDistributionStrategy, RMDStatus
from retireplan.models.records import InheritedDistribution, RMDResult

ZERO = Decimal("0")
ONE = Decimal("1")


class RMDResolver:
    def resolve(self, age: int, prior_year_end_balance: Decimal) -> RMDResult:
        """RMD for the owner at ``age`` given the prior year-end IRA balance."""
        if age < RMD_START_AGE:
            return RMDResult(age=age, factor=None, required=ZERO, status=RMDStatus.NOT_REQUIRED)

        factor = uniform_lifetime_factor(age)
        balance = max(prior_year_end_balance, ZERO)
        return RMDResult(
            age=age,
            factor=factor,
            required=balance / factor,
            status=RMDStatus.REQUIRED,
        )

    def resolve_inherited(
        self, heir_age: int, years_since_first: int, balance: Decimal
    ) -> RMDResult:
        """Inherited-IRA RMD using the reduce-by-one method.

        ``heir_age`` is the heir's age in the first distribution year; the
        factor drops by one for each later year and never goes below one.
        """
        factor = max(single_life_factor(heir_age) - years_since_first, ONE)
        return RMDResult(
            age=heir_age + years_since_first,
            factor=factor,
            required=max(balance, ZERO) / factor,
            status=RMDStatus.REQUIRED,
        )

    def inherited_schedule(
        self,
        balance: Decimal,
        strategy: HeirDistributionStrategy,
        heir_age: int,
        owner_death_age: int,
        growth: Decimal = ZERO,
        window: int = INHERITED_IRA_WINDOW_YEARS,
    ) -> list[InheritedDistribution]:
        """Year-by-year distributions of an inherited IRA.

        Year 0 is the year of death. Undistributed balances grow at ``growth``
        and the account is emptied by the end of year ``window``.
        """
        schedule: list[InheritedDistribution] = []
        remaining = max(balance, ZERO)

        if strategy == HeirDistributionStrategy.LUMP_SUM_YEAR0:
            schedule.append(
                InheritedDistribution(
                    year_index=0,
                    heir_age=heir_age,
                    factor=None,
                    balance_start=remaining,
                    distribution=remaining,
                    balance_end=ZERO,
                )
            )
            return schedule

        annual_rmds = owner_death_age >= RMD_START_AGE
        for year_index in range(window + 1):
            start = remaining
            factor = None
            if year_index == window:
                distribution = start
            elif year_index >= 1 and annual_rmds:
                rmd = self.resolve_inherited(heir_age + 1, year_index - 1, start)
                factor = rmd.factor
                distribution = min(rmd.required, start)
            else:
                distribution = ZERO
            remaining = start - distribution
            if year_index < window:
                remaining = remaining * (ONE + growth)
            schedule.append(
                InheritedDistribution(
                    year_index=year_index,
                    heir_age=heir_age + year_index,
                    factor=factor,
                    balance_start=start,
                    distribution=distribution,
                    balance_end=remaining,
                )
            )
        return schedule
