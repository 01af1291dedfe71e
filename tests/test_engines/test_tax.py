"""Tests for TaxCalculator.

Expected values are hand-computed from the 2025 MFJ tables with no inflation
(10% to $23,850, 12% to $96,950; standard deduction $30,000; LTCG 0% to
$96,950).
"""

from decimal import Decimal

import pytest

from retireplan.engines.brackets import build_year_tables
from retireplan.engines.tax import TaxCalculator
from retireplan.models.enums import FilingStatus


@pytest.fixture
def calc():
    return TaxCalculator()


@pytest.fixture
def irmaa_tables():
    return build_year_tables(2026, FilingStatus.MFJ, base_year=2025, inflation=Decimal("0"))


class TestOrdinaryIncome:
    def test_ira_withdrawal_only(self, calc, mfj_tables_2025):
        result = calc.calculate(mfj_tables_2025, ira_withdrawal=Decimal("100000"))
        assert result.ordinary_income == Decimal("100000")
        assert result.taxable_ordinary_income == Decimal("70000")
        # 23850 * 10% + (70000 - 23850) * 12%
        assert result.federal_tax == Decimal("7923.00")
        assert result.total_tax == result.federal_tax
        assert result.marginal_rate == Decimal("0.12")

    def test_income_below_deduction(self, calc, mfj_tables_2025):
        result = calc.calculate(mfj_tables_2025, ira_withdrawal=Decimal("20000"))
        assert result.taxable_ordinary_income == Decimal("0")
        assert result.total_tax == Decimal("0")
        assert result.effective_rate == Decimal("0")

    def test_conversion_counted_once_in_magi(self, calc, mfj_tables_2025):
        withdrawal = calc.calculate(mfj_tables_2025, ira_withdrawal=Decimal("100000"))
        conversion = calc.calculate(mfj_tables_2025, roth_conversion=Decimal("100000"))
        assert conversion.magi == Decimal("100000")
        assert conversion.total_tax == withdrawal.total_tax

    def test_no_income(self, calc, mfj_tables_2025):
        result = calc.calculate(mfj_tables_2025)
        assert result.magi == Decimal("0")
        assert result.total_tax == Decimal("0")


class TestCapitalGains:
    def test_gains_stack_on_ordinary_income(self, calc, mfj_tables_2025):
        result = calc.calculate(
            mfj_tables_2025,
            ira_withdrawal=Decimal("50000"),
            capital_gains=Decimal("100000"),
            state_tax_rate=Decimal("0.0495"),
        )
        assert result.magi == Decimal("150000")
        assert result.taxable_ordinary_income == Decimal("20000")
        assert result.federal_tax == Decimal("2000.00")
        # 76950 at 0%, 23050 at 15%
        assert result.ltcg_tax == Decimal("3457.50")
        assert result.niit == Decimal("0")
        assert result.state_tax == Decimal("4950.0000")
        assert result.total_tax == Decimal("10407.5")

    def test_deduction_absorbs_small_gains(self, calc, mfj_tables_2025):
        result = calc.calculate(mfj_tables_2025, capital_gains=Decimal("20000"))
        assert result.ltcg_tax == Decimal("0")
        assert result.federal_tax == Decimal("0")

    def test_state_tax_ignores_ira_and_ss(self, calc, mfj_tables_2025):
        result = calc.calculate(
            mfj_tables_2025,
            ira_withdrawal=Decimal("200000"),
            social_security=Decimal("48000"),
            state_tax_rate=Decimal("0.05"),
        )
        assert result.state_tax == Decimal("0")

    def test_negative_gains_treated_as_zero(self, calc, mfj_tables_2025):
        result = calc.calculate(mfj_tables_2025, capital_gains=Decimal("-5000"))
        assert result.capital_gains == Decimal("0")


class TestNIIT:
    def test_below_threshold(self, calc):
        assert calc.compute_niit(Decimal("10000"), Decimal("150000"), Decimal("250000")) == Decimal("0")

    def test_above_threshold(self, calc):
        niit = calc.compute_niit(Decimal("50000"), Decimal("300000"), Decimal("250000"))
        assert niit == Decimal("1900.000")

    def test_limited_by_investment_income(self, calc):
        niit = calc.compute_niit(Decimal("10000"), Decimal("400000"), Decimal("250000"))
        assert niit == Decimal("380.000")


class TestSocialSecurity:
    THRESHOLDS = (Decimal("32000"), Decimal("44000"))

    def test_low_income_not_taxable(self, calc):
        taxable = calc.compute_taxable_social_security(Decimal("48000"), Decimal("0"), self.THRESHOLDS)
        assert taxable == Decimal("0")

    def test_middle_tier(self, calc):
        # provisional 39000: (39000 - 32000) * 50%
        taxable = calc.compute_taxable_social_security(
            Decimal("48000"), Decimal("15000"), self.THRESHOLDS
        )
        assert taxable == Decimal("3500.0")

    def test_upper_tier(self, calc):
        # provisional 74000: 85% * 30000 + 6000
        taxable = calc.compute_taxable_social_security(
            Decimal("48000"), Decimal("50000"), self.THRESHOLDS
        )
        assert taxable == Decimal("31500.00")

    def test_capped_at_85_percent(self, calc):
        taxable = calc.compute_taxable_social_security(
            Decimal("48000"), Decimal("1000000"), self.THRESHOLDS
        )
        assert taxable == Decimal("40800.00")

    def test_exempt_switch(self, calc, mfj_tables_2025):
        result = calc.calculate(
            mfj_tables_2025,
            ira_withdrawal=Decimal("200000"),
            social_security=Decimal("48000"),
            exempt_ss=True,
        )
        assert result.taxable_social_security == Decimal("0")
        assert result.ordinary_income == Decimal("200000")


class TestIRMAA:
    def test_base_tier(self, calc, irmaa_tables):
        result = calc.compute_irmaa(Decimal("100000"), irmaa_tables.irmaa_tiers, 2)
        assert result.tier == 0
        assert result.part_b == Decimal("202.90") * 24
        assert result.part_d == Decimal("0")

    def test_threshold_is_exclusive(self, calc, irmaa_tables):
        result = calc.compute_irmaa(Decimal("218000"), irmaa_tables.irmaa_tiers, 2)
        assert result.tier == 0

    def test_surcharge_tier(self, calc, irmaa_tables):
        result = calc.compute_irmaa(Decimal("300000"), irmaa_tables.irmaa_tiers, 2)
        assert result.tier == 2
        assert result.part_b == Decimal("9739.20")
        assert result.part_d == Decimal("897.60")
        assert result.total == Decimal("10636.80")

    def test_single_person(self, calc, irmaa_tables):
        couple = calc.compute_irmaa(Decimal("300000"), irmaa_tables.irmaa_tiers, 2)
        single = calc.compute_irmaa(Decimal("300000"), irmaa_tables.irmaa_tiers, 1)
        assert couple.total == single.total * 2


class TestProgressivity:
    def test_tax_never_decreases_with_income(self, calc, mfj_tables_2025):
        previous = Decimal("-1")
        for amount in range(0, 1_000_001, 50_000):
            tax = calc.calculate(mfj_tables_2025, ira_withdrawal=Decimal(amount)).total_tax
            assert tax >= previous
            previous = tax

    def test_effective_rate_below_top_rate(self, calc, mfj_tables_2025):
        result = calc.calculate(mfj_tables_2025, ira_withdrawal=Decimal("5000000"))
        assert result.effective_rate < Decimal("0.37")


class TestMarginalRate:
    def test_bounds_are_inclusive(self, mfj_tables_2025):
        brackets = mfj_tables_2025.federal_brackets
        assert TaxCalculator.marginal_rate(Decimal("23850"), brackets) == Decimal("0.10")
        assert TaxCalculator.marginal_rate(Decimal("23851"), brackets) == Decimal("0.12")

    def test_top_bracket(self, mfj_tables_2025):
        rate = TaxCalculator.marginal_rate(Decimal("10000000"), mfj_tables_2025.federal_brackets)
        assert rate == Decimal("0.37")
