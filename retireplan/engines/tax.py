"""Annual household tax engine.

Computes one projection year's tax from withdrawals, conversions, Social
Security and realized gains. Implements:
  - Progressive ordinary income tax over (ordinary income - standard deduction)
  - LTCG stacking on top of ordinary taxable income (0/15/20% tiers)
  - Net Investment Income Tax (NIIT) per IRC Section 1411
  - Flat state tax on capital gains (retirement income exempt)
  - Social Security taxability worksheet per IRC Section 86
  - Medicare IRMAA premiums from lookback MAGI
"""

from decimal import Decimal

from retireplan.engines.brackets import NIIT_RATE, Brackets, YearTaxTables
from retireplan.models.records import IRMAAResult, TaxResult

ZERO = Decimal("0")


class TaxCalculator:
    """Pure tax computation for a single year."""

    def calculate(
        self,
        tables: YearTaxTables,
        ira_withdrawal: Decimal = ZERO,
        roth_conversion: Decimal = ZERO,
        social_security: Decimal = ZERO,
        capital_gains: Decimal = ZERO,
        other_ordinary_income: Decimal = ZERO,
        state_tax_rate: Decimal = ZERO,
        exempt_ss: bool = False,
    ) -> TaxResult:
        """Compute every tax component for one year.

        Roth withdrawals are tax-free and never passed in. The conversion is
        ordinary income in the year it happens.
        """
        capital_gains = max(capital_gains, ZERO)
        non_ss_income = ira_withdrawal + roth_conversion + other_ordinary_income

        if exempt_ss:
            taxable_ss = ZERO
        else:
            taxable_ss = self.compute_taxable_social_security(
                social_security, non_ss_income + capital_gains, tables.ss_thresholds
            )

        ordinary_income = non_ss_income + taxable_ss
        magi = ordinary_income + capital_gains

        # Gains fill the top of taxable income; the deduction is used up by
        # ordinary income first.
        taxable_income = max(magi - tables.standard_deduction, ZERO)
        preferential = min(capital_gains, taxable_income)
        taxable_ordinary = taxable_income - preferential

        federal_tax = self.compute_federal_tax(taxable_ordinary, tables.federal_brackets)
        ltcg_tax = self.compute_ltcg_tax(preferential, taxable_income, tables.ltcg_brackets)
        niit = self.compute_niit(capital_gains, magi, tables.niit_threshold)
        state_tax = self.compute_state_tax(capital_gains, state_tax_rate)
        total = federal_tax + ltcg_tax + niit + state_tax

        effective = total / magi if magi > ZERO else ZERO

        return TaxResult(
            filing_status=tables.filing_status,
            social_security=social_security,
            taxable_social_security=taxable_ss,
            ordinary_income=ordinary_income,
            capital_gains=capital_gains,
            standard_deduction=tables.standard_deduction,
            taxable_ordinary_income=taxable_ordinary,
            magi=magi,
            federal_tax=federal_tax,
            ltcg_tax=ltcg_tax,
            niit=niit,
            state_tax=state_tax,
            total_tax=total,
            effective_rate=effective,
            marginal_rate=self.marginal_rate(taxable_ordinary, tables.federal_brackets),
        )

    def compute_federal_tax(self, taxable_income: Decimal, brackets: Brackets) -> Decimal:
        """Compute federal ordinary income tax using progressive brackets."""
        if not brackets:
            raise ValueError("No federal brackets supplied")
        return self._apply_brackets(max(taxable_income, ZERO), brackets)

    def compute_ltcg_tax(
        self,
        capital_gains: Decimal,
        taxable_income: Decimal,
        brackets: Brackets,
    ) -> Decimal:
        """Compute federal tax on long-term gains.

        The gains sit on top of ordinary income in the bracket structure.
        The portion that falls in each LTCG bracket is taxed at that
        bracket's rate.
        """
        if capital_gains <= ZERO:
            return ZERO

        ordinary_income_top = max(taxable_income - capital_gains, ZERO)

        tax = ZERO
        remaining = capital_gains
        prev_bound = ZERO

        for upper_bound, rate in brackets:
            if remaining <= ZERO:
                break

            if upper_bound is None:
                tax += remaining * rate
                remaining = ZERO
            else:
                bracket_start = max(prev_bound, ordinary_income_top)
                if bracket_start >= upper_bound:
                    prev_bound = upper_bound
                    continue
                taxed_here = min(remaining, upper_bound - bracket_start)
                tax += taxed_here * rate
                remaining -= taxed_here
                prev_bound = upper_bound

        return tax

    def compute_niit(
        self, investment_income: Decimal, magi: Decimal, threshold: Decimal
    ) -> Decimal:
        """Compute Net Investment Income Tax (3.8%) per IRC Section 1411."""
        excess = max(magi - threshold, ZERO)
        return min(max(investment_income, ZERO), excess) * NIIT_RATE

    def compute_state_tax(self, capital_gains: Decimal, rate: Decimal) -> Decimal:
        return max(capital_gains, ZERO) * rate

    def compute_taxable_social_security(
        self,
        benefits: Decimal,
        other_income: Decimal,
        thresholds: tuple[Decimal, Decimal],
    ) -> Decimal:
        """Taxable portion of Social Security (Pub. 915 worksheet).

        Provisional income is other income plus half of benefits. Up to 50%
        of benefits are taxable between the two thresholds, up to 85% above.
        """
        if benefits <= ZERO:
            return ZERO
        base, upper = thresholds
        half = Decimal("0.5")
        provisional = other_income + benefits * half

        if provisional <= base:
            return ZERO
        if provisional <= upper:
            return min((provisional - base) * half, benefits * half)

        first_tier = min(benefits * half, (upper - base) * half)
        return min(
            benefits * Decimal("0.85"),
            (provisional - upper) * Decimal("0.85") + first_tier,
        )

    def compute_irmaa(
        self,
        lookback_magi: Decimal,
        tiers: list[tuple[Decimal, Decimal, Decimal]],
        people: int,
    ) -> IRMAAResult:
        """Annual Medicare Part B/D premiums for the tier the lookback MAGI lands in."""
        tier = 0
        for index, (threshold, _, _) in enumerate(tiers):
            if lookback_magi > threshold:
                tier = index
        _, part_b_monthly, part_d_monthly = tiers[tier]
        months = Decimal(12 * people)
        part_b = part_b_monthly * months
        part_d = part_d_monthly * months
        return IRMAAResult(
            lookback_magi=lookback_magi,
            tier=tier,
            part_b=part_b,
            part_d=part_d,
            total=part_b + part_d,
            people=people,
        )

    @staticmethod
    def marginal_rate(income: Decimal, brackets: Brackets) -> Decimal:
        """Rate of the bracket that ``income`` falls in (bounds are inclusive)."""
        for upper_bound, rate in brackets:
            if upper_bound is None or income <= upper_bound:
                return rate
        return brackets[-1][1]

    @staticmethod
    def _apply_brackets(income: Decimal, brackets: Brackets) -> Decimal:
        """Apply progressive tax brackets to income."""
        tax = ZERO
        prev_bound = ZERO

        for upper_bound, rate in brackets:
            if upper_bound is None:
                taxable_in_bracket = max(income - prev_bound, ZERO)
            else:
                taxable_in_bracket = max(min(income, upper_bound) - prev_bound, ZERO)
            tax += taxable_in_bracket * rate
            prev_bound = upper_bound if upper_bound is not None else income
            if upper_bound is not None and income <= upper_bound:
                break

        return tax
