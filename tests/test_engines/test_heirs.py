"""Tests for heir value and inheritance projection."""

from decimal import Decimal

import pytest

from retireplan.engines.heirs import HeirValueCalculator, state_tax_rate
from retireplan.exceptions import TableLookupError, UnknownJurisdictionError
from retireplan.models.enums import HeirDistributionStrategy
from retireplan.models.params import Heir, Parameters


@pytest.fixture
def calc():
    return HeirValueCalculator()


@pytest.fixture
def heir():
    return Heir(name="Alex", state="IL", agi=Decimal("150000"), expected_return=Decimal("0"))


class TestRates:
    def test_state_lookup_case_insensitive(self):
        assert state_tax_rate("il") == Decimal("0.0495")
        assert state_tax_rate("TX") == Decimal("0")

    def test_unknown_state_fails(self):
        with pytest.raises(UnknownJurisdictionError):
            state_tax_rate("ZZ")

    def test_unknown_state_is_lookup_error(self):
        with pytest.raises(TableLookupError):
            state_tax_rate("XX")

    def test_federal_rate_from_agi(self, calc):
        assert calc.federal_rate(Decimal("150000")) == Decimal("0.22")
        assert calc.federal_rate(Decimal("50000")) == Decimal("0.12")

    def test_combined_rate(self, calc, heir):
        federal, state, combined = calc.heir_rates(heir)
        assert combined == federal + state == Decimal("0.2695")


class TestHeirValue:
    def test_legacy_value(self):
        value = HeirValueCalculator.legacy_value(
            Decimal("100"), Decimal("1000"), Decimal("200"), Decimal("0.32"), Decimal("0.0495")
        )
        assert value == Decimal("930.5")

    def test_calculate_without_heirs_uses_flat_rates(self, calc):
        value, details = calc.calculate(Decimal("100"), Decimal("1000"), Decimal("200"), Parameters())
        assert value == Decimal("930.5")
        assert details == []

    def test_only_ira_is_taxed(self, calc, heir):
        value, details = calc.multi_heir_value(Decimal("300000"), Decimal("0"), Decimal("200000"), [heir])
        assert value == Decimal("500000")
        assert details[0].ira_tax == Decimal("0")

    def test_two_heirs_split_evenly(self, calc, two_heirs):
        value, details = calc.multi_heir_value(
            Decimal("0"), Decimal("1000000"), Decimal("0"), two_heirs
        )
        assert details[0].net_value == details[1].net_value == Decimal("365250")
        assert value == Decimal("730500")
        assert details[0].gross_inheritance == Decimal("500000")

    def test_heir_value_never_exceeds_estate(self, calc, two_heirs):
        value, _ = calc.multi_heir_value(
            Decimal("250000"), Decimal("750000"), Decimal("100000"), two_heirs
        )
        assert value <= Decimal("1100000")

    def test_unknown_heir_state_fails(self, calc):
        params = Parameters(heirs=[Heir(name="Kim", state="ZZ")])
        with pytest.raises(UnknownJurisdictionError):
            calc.calculate(Decimal("0"), Decimal("100"), Decimal("0"), params)


class TestCheckSplit:
    def test_balanced_split(self, calc, two_heirs):
        assert calc.check_split(two_heirs) == []

    def test_no_heirs(self, calc):
        assert calc.check_split([]) == []

    def test_unbalanced_split_warns(self, calc):
        heirs = [Heir(name="A", split_percent=Decimal("70")), Heir(name="B", split_percent=Decimal("40"))]
        warnings = calc.check_split(heirs)
        assert len(warnings) == 1
        assert "110" in warnings[0]


class TestProjectInheritance:
    def _project(self, calc, heir, strategy, ira=Decimal("1000000")):
        return calc.project_inheritance(
            heir,
            after_tax=Decimal("0"),
            ira=ira,
            roth=Decimal("0"),
            inheritance_year=2055,
            owner_death_age=80,
            strategy=strategy,
        )

    def test_lump_sum_costs_more_tax_than_spreading(self, calc, heir):
        lump = self._project(calc, heir, HeirDistributionStrategy.LUMP_SUM_YEAR0)
        spread = self._project(calc, heir, HeirDistributionStrategy.RMD_BASED)
        assert lump.total_tax > spread.total_tax
        assert lump.normalized_value < spread.normalized_value

    def test_lump_sum_single_year(self, calc, heir):
        result = self._project(calc, heir, HeirDistributionStrategy.LUMP_SUM_YEAR0)
        assert len(result.years) == 1
        assert result.years[0].distribution == Decimal("1000000")
        assert result.years[0].marginal_rate == Decimal("0.37") + Decimal("0.0495")

    def test_distributions_total_balance_without_growth(self, calc, heir):
        result = self._project(calc, heir, HeirDistributionStrategy.RMD_BASED)
        assert abs(result.total_distributions - Decimal("1000000")) < Decimal("0.01")

    def test_heir_strategy_overrides_plan_default(self, calc, heir):
        lump_heir = heir.model_copy(
            update={"distribution_strategy": HeirDistributionStrategy.LUMP_SUM_YEAR0}
        )
        result = self._project(calc, lump_heir, HeirDistributionStrategy.RMD_BASED)
        assert result.strategy == "lump_sum_year0"

    def test_tax_free_shares_grow(self, calc):
        heir = Heir(name="Alex", expected_return=Decimal("0.06"))
        result = calc.project_inheritance(
            heir,
            after_tax=Decimal("60000"),
            ira=Decimal("0"),
            roth=Decimal("40000"),
            inheritance_year=2055,
            owner_death_age=80,
            strategy=HeirDistributionStrategy.RMD_BASED,
        )
        assert result.total_tax == Decimal("0")
        assert result.normalized_value == Decimal("100000") * Decimal("1.06") ** 10
