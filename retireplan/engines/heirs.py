"""After-tax value of the estate to heirs.

After-tax brokerage gets a step-up in basis and Roth money is tax-free, so
only the IRA is taxed, at each heir's combined federal + state marginal rate.
"""

import logging
from decimal import Decimal

from retireplan.engines.brackets import (
    FEDERAL_BRACKETS,
    HEIR_BRACKET_YEAR,
    STATE_TAX_RATES,
)
from retireplan.engines.rmd import RMDResolver
from retireplan.engines.tax import TaxCalculator
from retireplan.exceptions import UnknownJurisdictionError
from retireplan.models.enums import FilingStatus, HeirDistributionStrategy
from retireplan.models.params import Heir, Parameters
from retireplan.models.records import HeirDetail, InheritanceProjection, InheritanceYear

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def state_tax_rate(state: str) -> Decimal:
    code = state.strip().upper()
    if code not in STATE_TAX_RATES:
        raise UnknownJurisdictionError(state)
    return STATE_TAX_RATES[code]


class HeirValueCalculator:
    def __init__(self, rmd_resolver: RMDResolver | None = None) -> None:
        self.rmd_resolver = rmd_resolver or RMDResolver()
        self._brackets = FEDERAL_BRACKETS[HEIR_BRACKET_YEAR][FilingStatus.MFJ]

    def federal_rate(self, agi: Decimal) -> Decimal:
        return TaxCalculator.marginal_rate(agi, self._brackets)

    def heir_rates(self, heir: Heir) -> tuple[Decimal, Decimal, Decimal]:
        """(federal, state, combined) marginal rates for one heir."""
        federal = self.federal_rate(heir.agi)
        state = state_tax_rate(heir.state)
        return federal, state, federal + state

    @staticmethod
    def legacy_value(
        after_tax: Decimal,
        ira: Decimal,
        roth: Decimal,
        federal_rate: Decimal,
        state_rate: Decimal,
    ) -> Decimal:
        return after_tax + roth + ira * (ONE - (federal_rate + state_rate))

    def check_split(self, heirs: list[Heir]) -> list[str]:
        """Warn (never fail, never rescale) when splits do not total 100%."""
        if not heirs:
            return []
        total = sum((h.split_percent for h in heirs), ZERO)
        if total == HUNDRED:
            return []
        message = f"Heir split percentages sum to {total}%, not 100%; values used as given"
        logger.warning(message)
        return [message]

    def multi_heir_value(
        self, after_tax: Decimal, ira: Decimal, roth: Decimal, heirs: list[Heir]
    ) -> tuple[Decimal, list[HeirDetail]]:
        total = ZERO
        details: list[HeirDetail] = []
        for heir in heirs:
            split = heir.split_percent / HUNDRED
            federal, state, combined = self.heir_rates(heir)
            heir_at = after_tax * split
            heir_ira = ira * split
            heir_roth = roth * split
            ira_tax = heir_ira * combined
            net = heir_at + heir_roth + heir_ira - ira_tax
            total += net
            details.append(
                HeirDetail(
                    name=heir.name,
                    split=split,
                    state=heir.state.upper(),
                    federal_rate=federal,
                    state_rate=state,
                    combined_rate=combined,
                    gross_inheritance=heir_at + heir_ira + heir_roth,
                    ira_tax=ira_tax,
                    net_value=net,
                )
            )
        return total, details

    def calculate(
        self, after_tax: Decimal, ira: Decimal, roth: Decimal, params: Parameters
    ) -> tuple[Decimal, list[HeirDetail]]:
        """Heir value for the given balances: multi-heir when heirs are configured."""
        after_tax, ira, roth = (max(v, ZERO) for v in (after_tax, ira, roth))
        if params.heirs:
            return self.multi_heir_value(after_tax, ira, roth, params.heirs)
        value = self.legacy_value(
            after_tax, ira, roth, params.heir_federal_rate, params.heir_state_rate
        )
        return value, []

    def project_inheritance(
        self,
        heir: Heir,
        after_tax: Decimal,
        ira: Decimal,
        roth: Decimal,
        inheritance_year: int,
        owner_death_age: int,
        strategy: HeirDistributionStrategy,
        normalization_years: int = 10,
    ) -> InheritanceProjection:
        """Distribute one heir's share of the estate and normalize its value.

        Balances passed in are the heir's share. Each IRA distribution is
        taxed incrementally on top of the heir's AGI, so a lump sum climbs
        brackets. Net distributions and the tax-free shares are grown at the
        heir's expected return to ``normalization_years`` after inheritance.
        """
        strategy = heir.distribution_strategy or strategy
        heir_age = inheritance_year - heir.birth_year
        growth = heir.expected_return
        state = state_tax_rate(heir.state)
        schedule = self.rmd_resolver.inherited_schedule(
            ira, strategy, heir_age, owner_death_age, growth=growth
        )

        years: list[InheritanceYear] = []
        total_distributions = ZERO
        total_tax = ZERO
        normalized = (after_tax + roth) * (ONE + growth) ** normalization_years
        for entry in schedule:
            if entry.distribution <= ZERO:
                continue
            base_tax = TaxCalculator._apply_brackets(heir.agi, self._brackets)
            stacked = heir.agi + entry.distribution
            federal_tax = TaxCalculator._apply_brackets(stacked, self._brackets) - base_tax
            state_tax = entry.distribution * state
            net = entry.distribution - federal_tax - state_tax
            total_distributions += entry.distribution
            total_tax += federal_tax + state_tax
            normalized += net * (ONE + growth) ** (normalization_years - entry.year_index)
            years.append(
                InheritanceYear(
                    year_index=entry.year_index,
                    distribution=entry.distribution,
                    federal_tax=federal_tax,
                    state_tax=state_tax,
                    net_distribution=net,
                    marginal_rate=self.federal_rate(stacked) + state,
                )
            )

        return InheritanceProjection(
            heir=heir.name,
            strategy=str(strategy),
            gross_ira=ira,
            gross_after_tax=after_tax,
            gross_roth=roth,
            years=years,
            total_distributions=total_distributions,
            total_tax=total_tax,
            normalization_years=normalization_years,
            normalized_value=normalized,
        )
